"""
ChartSage – Value Object: Timeframe
====================================
Intervalos de vela estilo Binance ("5m", "4h", "1d", "1w", "1M") y las
reglas que dependen de su duración: validación del marco temporal
superior y estilo de trader para el prompt.
"""

from __future__ import annotations

from enum import Enum

from chartsage.domain.exceptions.domain_errors import ValidationError

_UNIT_SECONDS = {
    "m": 60,
    "h": 3_600,
    "d": 86_400,
    "w": 604_800,
    "M": 2_592_000,   # mes nominal de 30 días, solo para comparar
}


class TraderPersona(str, Enum):
    SCALPER = "scalper"
    SWING = "swing trader"
    POSITION = "position trader"


def interval_seconds(interval: str) -> int:
    """Duración nominal de un intervalo en segundos."""
    if not interval or len(interval) < 2:
        raise ValidationError(f"Intervalo inválido: {interval!r}", field="interval", value=interval)
    amount, unit = interval[:-1], interval[-1]
    if unit not in _UNIT_SECONDS or not amount.isdigit() or int(amount) <= 0:
        raise ValidationError(f"Intervalo inválido: {interval!r}", field="interval", value=interval)
    return int(amount) * _UNIT_SECONDS[unit]


def is_higher_timeframe(candidate: str, interval: str) -> bool:
    """True si `candidate` es estrictamente más largo que `interval`."""
    return interval_seconds(candidate) > interval_seconds(interval)


def trader_persona(interval: str) -> TraderPersona:
    seconds = interval_seconds(interval)
    if seconds < _UNIT_SECONDS["h"]:
        return TraderPersona.SCALPER
    if seconds < _UNIT_SECONDS["d"]:
        return TraderPersona.SWING
    return TraderPersona.POSITION
