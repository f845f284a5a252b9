"""
ChartSage – Application Layer
==============================
Capa de casos de uso y orquestación.

Este módulo contiene:
- use_cases/: Casos de uso (análisis, historial)
- ports/: Interfaces hacia infraestructura (feed, LLM, renderer, auth)
- dto/: Contratos Pydantic de entrada/salida
- services/: Sesión de gráfico, motor de indicadores, contexto HTF

REGLA DE DEPENDENCIA:
Esta capa puede importar de:
- domain/ (entidades, servicios, interfaces)
- ports/ propios (interfaces hacia infra)

NO puede importar de:
- infrastructure/ (implementaciones concretas)
- presentation/ (API)
"""

from chartsage.application.use_cases.request_analysis_usecase import (
    AnalysisOutcome,
    RequestAnalysisUseCase,
)
from chartsage.application.use_cases.review_history_usecase import ReviewHistoryUseCase

__all__ = [
    "AnalysisOutcome",
    "RequestAnalysisUseCase",
    "ReviewHistoryUseCase",
]
