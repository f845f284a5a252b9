"""Repository implementations."""
from chartsage.infrastructure.persistence.repositories.in_memory_history_repository import (
    InMemoryAnalysisHistoryRepository,
)

__all__ = ["InMemoryAnalysisHistoryRepository"]
