"""
ChartSage – Application Port: Chart Renderer
=============================================
Genera la imagen (snapshot) del gráfico de velas con sus overlays.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from chartsage.domain.entities.candle import Candle
from chartsage.domain.value_objects.indicator_series import IndicatorSet


class IChartRenderer(ABC):

    @abstractmethod
    def render(
        self,
        candles: Sequence[Candle],
        indicators: IndicatorSet,
        title: str = "",
    ) -> bytes:
        """Devuelve los bytes PNG del gráfico."""
        pass
