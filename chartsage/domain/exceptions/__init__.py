"""Domain exceptions."""
from chartsage.domain.exceptions.domain_errors import (
    DomainError,
    ValidationError,
    FeedUnavailable,
    StreamDropped,
    MissingChartImage,
    Unauthenticated,
    AnalysisFailed,
    SchemaMismatch,
    PersistenceFailed,
)

__all__ = [
    "DomainError",
    "ValidationError",
    "FeedUnavailable",
    "StreamDropped",
    "MissingChartImage",
    "Unauthenticated",
    "AnalysisFailed",
    "SchemaMismatch",
    "PersistenceFailed",
]
