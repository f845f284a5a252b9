"""Application use cases - Business logic orchestration."""

from chartsage.application.use_cases.request_analysis_usecase import (
    AnalysisOutcome,
    RequestAnalysisUseCase,
    parse_model_response,
)
from chartsage.application.use_cases.review_history_usecase import ReviewHistoryUseCase

__all__ = [
    "AnalysisOutcome",
    "RequestAnalysisUseCase",
    "ReviewHistoryUseCase",
    "parse_model_response",
]
