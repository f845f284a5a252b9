"""Application services - Chart session orchestration."""
from chartsage.application.services.indicator_engine import IndicatorEngine
from chartsage.application.services.chart_session import ChartSession, ChartView
from chartsage.application.services.higher_timeframe import HigherTimeframeService

__all__ = ["IndicatorEngine", "ChartSession", "ChartView", "HigherTimeframeService"]
