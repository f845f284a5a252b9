"""Domain value objects - Immutable, self-validating."""
from chartsage.domain.value_objects.indicator_config import (
    BollingerConfig,
    IndicatorKind,
    IndicatorSettings,
    MacdConfig,
    RsiConfig,
    SmaConfig,
)
from chartsage.domain.value_objects.indicator_series import (
    BollingerSeries,
    IndicatorSet,
    IndicatorSnapshot,
    LineSeries,
    MacdSeries,
    Pending,
    Value,
)
from chartsage.domain.value_objects.timeframe import TraderPersona, interval_seconds, trader_persona

__all__ = [
    "BollingerConfig",
    "IndicatorKind",
    "IndicatorSettings",
    "MacdConfig",
    "RsiConfig",
    "SmaConfig",
    "BollingerSeries",
    "IndicatorSet",
    "IndicatorSnapshot",
    "LineSeries",
    "MacdSeries",
    "Pending",
    "Value",
    "TraderPersona",
    "interval_seconds",
    "trader_persona",
]
