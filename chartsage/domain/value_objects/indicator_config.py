"""
ChartSage – Value Object: Indicator Configuration
===================================================
Configuración por indicador (habilitado + períodos) propiedad de la
sesión de gráfico. Cambiar la config de un indicador invalida su serie
y fuerza un recálculo completo de ESE indicador.

Valores por defecto:
    SMA 20 (on) · RSI 14 (on) · MACD 12/26/9 (off) · Bollinger 20/2.0 (off)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Union

from chartsage.domain.exceptions.domain_errors import ValidationError


class IndicatorKind(str, Enum):
    SMA = "sma"
    RSI = "rsi"
    MACD = "macd"
    BOLLINGER = "bollinger"


def _check_period(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} debe ser un entero > 0", field=name, value=value)


@dataclass(frozen=True, slots=True)
class SmaConfig:
    enabled: bool = True
    period: int = 20

    def __post_init__(self) -> None:
        _check_period("sma.period", self.period)

    def to_dict(self) -> dict:
        return {"enabled": self.enabled, "period": self.period}


@dataclass(frozen=True, slots=True)
class RsiConfig:
    enabled: bool = True
    period: int = 14

    def __post_init__(self) -> None:
        _check_period("rsi.period", self.period)

    def to_dict(self) -> dict:
        return {"enabled": self.enabled, "period": self.period}


@dataclass(frozen=True, slots=True)
class MacdConfig:
    enabled: bool = False
    fast: int = 12
    slow: int = 26
    signal: int = 9

    def __post_init__(self) -> None:
        _check_period("macd.fast", self.fast)
        _check_period("macd.slow", self.slow)
        _check_period("macd.signal", self.signal)
        if self.fast >= self.slow:
            raise ValidationError(
                f"macd.fast ({self.fast}) debe ser menor que macd.slow ({self.slow})",
                field="macd.fast", value=self.fast,
            )

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "fast": self.fast,
            "slow": self.slow,
            "signal": self.signal,
        }


@dataclass(frozen=True, slots=True)
class BollingerConfig:
    enabled: bool = False
    period: int = 20
    std_dev: float = 2.0

    def __post_init__(self) -> None:
        _check_period("bollinger.period", self.period)
        if isinstance(self.std_dev, bool) or not isinstance(self.std_dev, (int, float)) or self.std_dev <= 0:
            raise ValidationError(
                "bollinger.std_dev debe ser > 0", field="bollinger.std_dev", value=self.std_dev,
            )

    def to_dict(self) -> dict:
        return {"enabled": self.enabled, "period": self.period, "stdDev": self.std_dev}


IndicatorConfig = Union[SmaConfig, RsiConfig, MacdConfig, BollingerConfig]


@dataclass(frozen=True, slots=True)
class IndicatorSettings:
    """Configuración completa de indicadores de una sesión."""

    sma: SmaConfig = field(default_factory=SmaConfig)
    rsi: RsiConfig = field(default_factory=RsiConfig)
    macd: MacdConfig = field(default_factory=MacdConfig)
    bollinger: BollingerConfig = field(default_factory=BollingerConfig)

    def get(self, kind: IndicatorKind) -> IndicatorConfig:
        return getattr(self, IndicatorKind(kind).value)

    def with_config(self, kind: IndicatorKind, config: IndicatorConfig) -> "IndicatorSettings":
        """Copia con la config de `kind` sustituida."""
        return replace(self, **{IndicatorKind(kind).value: config})

    def enabled_kinds(self) -> List[IndicatorKind]:
        return [k for k in IndicatorKind if self.get(k).enabled]

    def changed_kinds(self, other: "IndicatorSettings") -> List[IndicatorKind]:
        """Indicadores cuya config difiere entre `self` y `other`."""
        return [k for k in IndicatorKind if self.get(k) != other.get(k)]

    def to_dict(self) -> Dict[str, dict]:
        return {k.value: self.get(k).to_dict() for k in IndicatorKind}
