"""
ChartSage – Value Objects: Indicator Series
============================================
Series de indicadores alineadas 1:1 por índice con la ventana de velas.

PUNTO DE SERIE (sum type):
    Value(time, value, tag)   → valor calculado
    Pending(time)             → "sin valor" durante el warm-up

`Pending` es un centinela explícito: nunca 0.0, nunca omitido. Así un
consumidor no puede confundir "aún no calculable" con un número real.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple, Union


@dataclass(frozen=True, slots=True)
class Value:
    time: int
    value: float
    tag: Optional[str] = None    # solo histograma MACD: "positive" | "negative"

    def to_dict(self) -> dict:
        data = {"time": self.time, "value": self.value}
        if self.tag is not None:
            data["tag"] = self.tag
        return data


@dataclass(frozen=True, slots=True)
class Pending:
    time: int

    def to_dict(self) -> dict:
        return {"time": self.time, "value": None}


IndicatorPoint = Union[Value, Pending]


def latest_value(points: Sequence[IndicatorPoint]) -> Optional[float]:
    """Último valor calculado de una serie (None si todo está pendiente)."""
    for point in reversed(points):
        if isinstance(point, Value):
            return point.value
    return None


@dataclass(frozen=True, slots=True)
class LineSeries:
    """Serie de una sola línea (SMA, RSI)."""

    points: Tuple[IndicatorPoint, ...]

    def __len__(self) -> int:
        return len(self.points)

    def latest(self) -> Optional[float]:
        return latest_value(self.points)

    def to_dict(self) -> dict:
        return {"points": [p.to_dict() for p in self.points]}


@dataclass(frozen=True, slots=True)
class MacdSeries:
    line: Tuple[IndicatorPoint, ...]
    signal: Tuple[IndicatorPoint, ...]
    histogram: Tuple[IndicatorPoint, ...]

    def __len__(self) -> int:
        return len(self.line)

    def latest(self) -> Optional[Dict[str, float]]:
        """Últimos valores, solo si las tres líneas tienen valor."""
        line, signal, hist = (
            latest_value(self.line),
            latest_value(self.signal),
            latest_value(self.histogram),
        )
        if line is None or signal is None or hist is None:
            return None
        return {"line": line, "signal": signal, "histogram": hist}

    def to_dict(self) -> dict:
        return {
            "line": [p.to_dict() for p in self.line],
            "signal": [p.to_dict() for p in self.signal],
            "histogram": [p.to_dict() for p in self.histogram],
        }


@dataclass(frozen=True, slots=True)
class BollingerSeries:
    upper: Tuple[IndicatorPoint, ...]
    middle: Tuple[IndicatorPoint, ...]
    lower: Tuple[IndicatorPoint, ...]

    def __len__(self) -> int:
        return len(self.middle)

    def latest(self) -> Optional[Dict[str, float]]:
        upper, middle, lower = (
            latest_value(self.upper),
            latest_value(self.middle),
            latest_value(self.lower),
        )
        if upper is None or middle is None or lower is None:
            return None
        return {"upper": upper, "middle": middle, "lower": lower}

    def to_dict(self) -> dict:
        return {
            "upper": [p.to_dict() for p in self.upper],
            "middle": [p.to_dict() for p in self.middle],
            "lower": [p.to_dict() for p in self.lower],
        }


IndicatorSeries = Union[LineSeries, MacdSeries, BollingerSeries]


@dataclass(frozen=True, slots=True)
class IndicatorSnapshot:
    """Últimos valores de cada indicador habilitado, para el LLM."""

    sma: Optional[float] = None
    rsi: Optional[float] = None
    macd: Optional[Dict[str, float]] = None
    bollinger: Optional[Dict[str, float]] = None

    def to_dict(self) -> dict:
        return {
            "sma": self.sma,
            "rsi": self.rsi,
            "macd": self.macd,
            "bollinger": self.bollinger,
        }


@dataclass(frozen=True, slots=True)
class IndicatorSet:
    """Series de todos los indicadores HABILITADOS en un instante."""

    series: Tuple[Tuple[str, IndicatorSeries], ...] = ()

    @classmethod
    def from_mapping(cls, mapping: Dict[str, IndicatorSeries]) -> "IndicatorSet":
        return cls(tuple(mapping.items()))

    def as_dict(self) -> Dict[str, IndicatorSeries]:
        return dict(self.series)

    def get(self, kind: str) -> Optional[IndicatorSeries]:
        return self.as_dict().get(str(getattr(kind, "value", kind)))

    def kinds(self) -> Tuple[str, ...]:
        return tuple(kind for kind, _ in self.series)

    def snapshot(self) -> IndicatorSnapshot:
        """Último valor de cada serie (None si deshabilitada o pendiente)."""
        data = self.as_dict()
        sma, rsi = data.get("sma"), data.get("rsi")
        macd, bollinger = data.get("macd"), data.get("bollinger")
        return IndicatorSnapshot(
            sma=sma.latest() if sma is not None else None,
            rsi=rsi.latest() if rsi is not None else None,
            macd=macd.latest() if macd is not None else None,
            bollinger=bollinger.latest() if bollinger is not None else None,
        )

    def to_dict(self) -> dict:
        return {kind: s.to_dict() for kind, s in self.series}
