"""
ChartSage – Domain Entity: Candle
==================================
Vela OHLCV inmutable de un bucket temporal del feed.

Decisiones de diseño:
- frozen=True → una revisión de la vela en curso es una Candle NUEVA
  con el mismo `time`; la ventana sustituye la última, nunca la muta.
- Se usa dataclass por rendimiento (más ligera que Pydantic para hot-path).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True, slots=True)
class Candle:
    """Vela OHLCV con timestamp de apertura del bucket."""

    time: int            # epoch (segundos) de apertura del bucket
    open: float
    high: float
    low: float
    close: float
    volume: float

    def iso_time(self) -> str:
        """Apertura del bucket en ISO 8601 UTC."""
        return datetime.fromtimestamp(self.time, tz=timezone.utc).isoformat()

    def to_dict(self) -> dict:
        """Serialización para WebSocket / frontend."""
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }
