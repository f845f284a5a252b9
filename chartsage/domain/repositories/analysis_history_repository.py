"""
ChartSage – Repository Interface: Analysis History
====================================================
Contrato para persistir y paginar análisis pasados.

Implementaciones en infrastructure/persistence:
- SqlAnalysisHistoryRepository (SQLAlchemy async)
- InMemoryAnalysisHistoryRepository (sin base de datos / tests)

PAGINACIÓN POR CURSOR:
El cursor es el timestamp de la última entrada de la página anterior
(orden descendente). Al ser un valor explícito y no un offset, las
entradas añadidas entre dos peticiones no desplazan páginas ya emitidas.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from chartsage.domain.entities.analysis import HistoryEntry, HistoryPage


class IAnalysisHistoryRepository(ABC):
    """Historial append-only de análisis por usuario."""

    @abstractmethod
    async def append(self, entry: HistoryEntry) -> str:
        """
        Persiste una entrada nueva.

        Returns:
            ID de la entrada
        """
        pass

    @abstractmethod
    async def page(
        self,
        owner_id: str,
        page_size: int,
        cursor: Optional[datetime] = None,
    ) -> HistoryPage:
        """
        Página de entradas del usuario, más recientes primero.

        Args:
            owner_id: Dueño de las entradas
            page_size: Máximo de entradas a devolver
            cursor: Solo entradas estrictamente anteriores a este instante

        Returns:
            HistoryPage con `next_cursor` si quedan más entradas
        """
        pass
