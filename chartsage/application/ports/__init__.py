"""Application ports - Interfaces to infrastructure."""
from chartsage.application.ports.market_data_provider import ICandleFeed, CandleSubscription
from chartsage.application.ports.analysis_model import IAnalysisModel
from chartsage.application.ports.chart_renderer import IChartRenderer
from chartsage.application.ports.token_validator import ITokenValidator

__all__ = [
    "ICandleFeed",
    "CandleSubscription",
    "IAnalysisModel",
    "IChartRenderer",
    "ITokenValidator",
]
