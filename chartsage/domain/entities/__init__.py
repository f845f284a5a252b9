"""Domain entities."""
from chartsage.domain.entities.candle import Candle
from chartsage.domain.entities.candle_window import CandleWindow, UpdateKind, WindowUpdate
from chartsage.domain.entities.analysis import (
    AnalysisRequest,
    AnalysisResult,
    HigherTimeframeContext,
    HistoryEntry,
    HistoryPage,
    Swot,
    TradeSignal,
)

__all__ = [
    "Candle",
    "CandleWindow",
    "UpdateKind",
    "WindowUpdate",
    "AnalysisRequest",
    "AnalysisResult",
    "HigherTimeframeContext",
    "HistoryEntry",
    "HistoryPage",
    "Swot",
    "TradeSignal",
]
