"""Domain services - Pure business logic with no external dependencies."""
from chartsage.domain.services.indicator_calculator import (
    EmaState,
    IndicatorCalculator,
    MacdState,
    RsiState,
)

__all__ = ["IndicatorCalculator", "EmaState", "RsiState", "MacdState"]
