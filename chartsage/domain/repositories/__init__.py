"""Domain repository interfaces."""
from chartsage.domain.repositories.analysis_history_repository import IAnalysisHistoryRepository

__all__ = ["IAnalysisHistoryRepository"]
