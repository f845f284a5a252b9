"""
Plotly Chart Renderer.

Dibuja velas + overlays (SMA, Bollinger) y paneles de volumen, RSI y
MACD, y exporta a PNG con kaleido. Los puntos pendientes del warm-up se
dibujan como huecos (None), nunca como ceros.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from chartsage.application.ports.chart_renderer import IChartRenderer
from chartsage.domain.entities.candle import Candle
from chartsage.domain.value_objects.indicator_series import (
    BollingerSeries,
    IndicatorPoint,
    IndicatorSet,
    LineSeries,
    MacdSeries,
    Value,
)
from chartsage.shared.logging.logger import get_logger

logger = get_logger("plotly_renderer")


def _values(points: Sequence[IndicatorPoint]) -> List[Optional[float]]:
    return [p.value if isinstance(p, Value) else None for p in points]


class PlotlyChartRenderer(IChartRenderer):

    def __init__(self, width: int = 1200, height: int = 700) -> None:
        self._width = width
        self._height = height

    def build_figure(
        self,
        candles: Sequence[Candle],
        indicators: IndicatorSet,
        title: str = "",
    ) -> go.Figure:
        rsi = indicators.get("rsi")
        macd = indicators.get("macd")
        panels = ["Price", "Volume"]
        if isinstance(rsi, LineSeries):
            panels.append("RSI")
        if isinstance(macd, MacdSeries):
            panels.append("MACD")
        heights = [0.55] + [0.45 / (len(panels) - 1)] * (len(panels) - 1)

        fig = make_subplots(
            rows=len(panels), cols=1,
            shared_xaxes=True,
            vertical_spacing=0.03,
            row_heights=heights,
            subplot_titles=panels,
        )
        x = [datetime.fromtimestamp(c.time, tz=timezone.utc) for c in candles]

        # Velas
        fig.add_trace(
            go.Candlestick(
                x=x,
                open=[c.open for c in candles],
                high=[c.high for c in candles],
                low=[c.low for c in candles],
                close=[c.close for c in candles],
                name="Price",
                increasing_line_color="green",
                decreasing_line_color="red",
            ),
            row=1, col=1,
        )

        sma = indicators.get("sma")
        if isinstance(sma, LineSeries):
            fig.add_trace(
                go.Scatter(x=x, y=_values(sma.points), name="SMA", line=dict(color="orange", width=1.5)),
                row=1, col=1,
            )

        bands = indicators.get("bollinger")
        if isinstance(bands, BollingerSeries):
            for name, points, dash in (
                ("BB Upper", bands.upper, "dot"),
                ("BB Middle", bands.middle, "solid"),
                ("BB Lower", bands.lower, "dot"),
            ):
                fig.add_trace(
                    go.Scatter(x=x, y=_values(points), name=name, line=dict(color="royalblue", width=1, dash=dash)),
                    row=1, col=1,
                )

        # Volumen
        colors = ["green" if c.close >= c.open else "red" for c in candles]
        fig.add_trace(
            go.Bar(x=x, y=[c.volume for c in candles], name="Volume", marker_color=colors, showlegend=False),
            row=2, col=1,
        )

        row = 3
        if isinstance(rsi, LineSeries):
            fig.add_trace(
                go.Scatter(x=x, y=_values(rsi.points), name="RSI", line=dict(color="purple", width=1.5)),
                row=row, col=1,
            )
            fig.update_yaxes(range=[0, 100], row=row, col=1)
            row += 1

        if isinstance(macd, MacdSeries):
            hist_colors = [
                "green" if isinstance(p, Value) and p.tag == "positive" else "red"
                for p in macd.histogram
            ]
            fig.add_trace(
                go.Bar(x=x, y=_values(macd.histogram), name="Histogram", marker_color=hist_colors),
                row=row, col=1,
            )
            fig.add_trace(
                go.Scatter(x=x, y=_values(macd.line), name="MACD", line=dict(color="blue", width=1.2)),
                row=row, col=1,
            )
            fig.add_trace(
                go.Scatter(x=x, y=_values(macd.signal), name="Signal", line=dict(color="orange", width=1.2)),
                row=row, col=1,
            )

        fig.update_layout(
            title=title,
            xaxis_rangeslider_visible=False,
            width=self._width,
            height=self._height,
            template="plotly_dark",
        )
        return fig

    def render(
        self,
        candles: Sequence[Candle],
        indicators: IndicatorSet,
        title: str = "",
    ) -> bytes:
        fig = self.build_figure(candles, indicators, title)
        image = fig.to_image(format="png", width=self._width, height=self._height)
        logger.debug("Snapshot %s: %d velas, %d bytes", title, len(candles), len(image))
        return image
