"""
Analysis History Repository Implementation.

Implementación concreta del historial usando SQLAlchemy async.
Implementa la interfaz IAnalysisHistoryRepository del dominio.

Cada operación abre su propia sesión: las escrituras fire-and-forget
del caso de uso no comparten transacción con las lecturas de la API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError

from chartsage.domain.entities.analysis import HistoryEntry, HistoryPage
from chartsage.domain.exceptions.domain_errors import PersistenceFailed
from chartsage.domain.repositories.analysis_history_repository import IAnalysisHistoryRepository
from chartsage.infrastructure.persistence.database import DatabaseManager
from chartsage.infrastructure.persistence.mappers.analysis_mapper import (
    AnalysisHistoryMapper,
    to_naive_utc,
)
from chartsage.infrastructure.persistence.models.analysis_history import AnalysisHistoryModel
from chartsage.shared.logging.logger import get_logger

logger = get_logger("infrastructure.history_repository")


class SqlAnalysisHistoryRepository(IAnalysisHistoryRepository):
    """Implementación async del historial sobre SQLAlchemy."""

    def __init__(self, db: DatabaseManager):
        self._db = db
        self._mapper = AnalysisHistoryMapper()

    async def append(self, entry: HistoryEntry) -> str:
        """Persiste una entrada y retorna su ID."""
        try:
            async with self._db.session() as session:
                session.add(AnalysisHistoryModel(**self._mapper.to_model(entry)))
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailed(f"Error guardando análisis {entry.id}: {e}", operation="append") from e

        logger.debug("Análisis guardado: id=%s owner=%s symbol=%s", entry.id, entry.owner_id, entry.symbol)
        return entry.id

    async def page(
        self,
        owner_id: str,
        page_size: int,
        cursor: Optional[datetime] = None,
    ) -> HistoryPage:
        """Página descendente por created_at, estrictamente anterior al cursor."""
        query = select(AnalysisHistoryModel).where(AnalysisHistoryModel.owner_id == owner_id)
        if cursor is not None:
            query = query.where(AnalysisHistoryModel.created_at < to_naive_utc(cursor))
        query = (
            query
            .order_by(desc(AnalysisHistoryModel.created_at), desc(AnalysisHistoryModel.id))
            .limit(page_size + 1)
        )

        try:
            async with self._db.session() as session:
                result = await session.execute(query)
                models = result.scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceFailed(f"Error leyendo historial de {owner_id}: {e}", operation="page") from e

        entries = tuple(self._mapper.to_entity(m) for m in models[:page_size])
        next_cursor = entries[-1].timestamp if len(models) > page_size else None
        return HistoryPage(entries=entries, next_cursor=next_cursor)
