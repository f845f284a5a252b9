"""
ChartSage – Domain Entities: Analysis
======================================
Petición de análisis, resultado del modelo y entrada de historial.

Todas son inmutables: una AnalysisRequest se congela al enviarse y
una HistoryEntry nunca se modifica tras persistirse (append-only).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple

from chartsage.domain.entities.candle import Candle
from chartsage.domain.value_objects.indicator_config import IndicatorSettings
from chartsage.domain.value_objects.indicator_series import IndicatorSnapshot


@dataclass(frozen=True, slots=True)
class HigherTimeframeContext:
    """Tendencia primaria del marco temporal superior."""

    timeframe: str
    price_above_sma: bool

    @property
    def bias(self) -> str:
        return "bullish" if self.price_above_sma else "bearish"

    def to_dict(self) -> dict:
        return {"timeframe": self.timeframe, "priceAboveSma": self.price_above_sma}


@dataclass(frozen=True, slots=True)
class AnalysisRequest:
    chart_image: str                                  # data URI (image/png;base64)
    symbol: str
    interval: str
    candles: Tuple[Candle, ...] = ()
    indicators: IndicatorSnapshot = field(default_factory=IndicatorSnapshot)
    indicator_settings: IndicatorSettings = field(default_factory=IndicatorSettings)
    higher_timeframe: Optional[HigherTimeframeContext] = None
    question: Optional[str] = None
    prior_analysis: Optional[str] = None

    @property
    def is_follow_up(self) -> bool:
        return bool(self.question and self.question.strip())


@dataclass(frozen=True, slots=True)
class Swot:
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()
    opportunities: Tuple[str, ...] = ()
    threats: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "opportunities": list(self.opportunities),
            "threats": list(self.threats),
        }


@dataclass(frozen=True, slots=True)
class TradeSignal:
    entry_range: str
    take_profit_levels: Tuple[str, ...]
    stop_loss: str

    def to_dict(self) -> dict:
        return {
            "entryPriceRange": self.entry_range,
            "takeProfitLevels": list(self.take_profit_levels),
            "stopLossLevel": self.stop_loss,
        }


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    narrative: str
    swot: Swot
    trade_signal: TradeSignal

    def to_dict(self) -> dict:
        return {
            "analysis": self.narrative,
            "swot": self.swot.to_dict(),
            "tradeSignal": self.trade_signal.to_dict(),
        }


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    owner_id: str
    symbol: str
    chart_image: str
    result: AnalysisResult
    timestamp: datetime = field(default_factory=_utcnow)
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "symbol": self.symbol,
            "timestamp": self.timestamp.isoformat(),
            "chartImage": self.chart_image,
            **self.result.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class HistoryPage:
    entries: Tuple[HistoryEntry, ...]
    next_cursor: Optional[datetime] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None

    def to_dict(self) -> dict:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "nextCursor": self.next_cursor.isoformat() if self.next_cursor else None,
        }
