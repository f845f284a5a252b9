"""
Review History Use Case.

Paginación del historial de análisis del usuario autenticado.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from chartsage.domain.entities.analysis import HistoryPage
from chartsage.domain.exceptions.domain_errors import DomainError, PersistenceFailed, Unauthenticated
from chartsage.domain.repositories.analysis_history_repository import IAnalysisHistoryRepository
from chartsage.shared.logging.logger import get_logger

logger = get_logger("review_history")


class ReviewHistoryUseCase:

    def __init__(
        self,
        history_repository: IAnalysisHistoryRepository,
        default_page_size: int = 10,
        max_page_size: int = 50,
    ):
        self._history = history_repository
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    async def execute(
        self,
        owner_id: Optional[str],
        page_size: Optional[int] = None,
        cursor: Optional[datetime] = None,
    ) -> HistoryPage:
        """
        Raises:
            Unauthenticated: sin usuario
            PersistenceFailed: el repositorio no pudo leer
        """
        if not owner_id or not owner_id.strip():
            raise Unauthenticated()

        size = page_size or self._default_page_size
        size = max(1, min(size, self._max_page_size))

        try:
            return await self._history.page(owner_id, size, cursor)
        except DomainError:
            raise
        except Exception as e:
            logger.error("Error leyendo historial owner=%s: %s", owner_id, e)
            raise PersistenceFailed(f"No se pudo leer el historial: {e}", operation="page") from e
