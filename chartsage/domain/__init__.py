"""
ChartSage – Domain Layer
=========================
Núcleo puro del sistema. CERO dependencias externas.

Este módulo contiene:
- entities/: Entidades de negocio (Candle, CandleWindow, HistoryEntry)
- value_objects/: Objetos inmutables (IndicatorSettings, series, timeframe)
- services/: Servicios de dominio puros (IndicatorCalculator)
- repositories/: Interfaces abstractas (ABCs)
- exceptions/: Excepciones de dominio

REGLA DE DEPENDENCIA:
Este módulo NO puede importar de:
- infrastructure/
- presentation/
- application/
- Frameworks externos (SQLAlchemy, FastAPI, etc.)
"""

from chartsage.domain.entities.candle import Candle
from chartsage.domain.entities.candle_window import CandleWindow, UpdateKind, WindowUpdate
from chartsage.domain.entities.analysis import AnalysisRequest, AnalysisResult, HistoryEntry
from chartsage.domain.value_objects.indicator_config import IndicatorKind, IndicatorSettings

__all__ = [
    "Candle",
    "CandleWindow",
    "UpdateKind",
    "WindowUpdate",
    "AnalysisRequest",
    "AnalysisResult",
    "HistoryEntry",
    "IndicatorKind",
    "IndicatorSettings",
]
