"""Application DTOs - Pydantic contracts at the analysis boundary."""
from chartsage.application.dto.analysis_dto import (
    AnalysisRequestSchema,
    AnalysisResponseSchema,
    CandleSchema,
    IndicatorSettingsSchema,
)

__all__ = [
    "AnalysisRequestSchema",
    "AnalysisResponseSchema",
    "CandleSchema",
    "IndicatorSettingsSchema",
]
