"""Mappers between domain entities and ORM models."""
