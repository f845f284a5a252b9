"""
Infrastructure Persistence Package.

Historial de análisis sobre SQLAlchemy async (MySQL / SQLite) o en memoria.
"""
