"""
ChartSage – Analysis History ORM Model
=======================================
Modelo para la tabla `analysis_history` (historial append-only).

DECISIONES DE DISEÑO:

- id CHAR(32): uuid4 hex generado por la entidad de dominio.
- created_at DATETIME(6) en UTC naive: el cursor de paginación compara
  por este campo, así que se conserva la precisión de microsegundos.
- JSON para swot / trade_signal: estructuras anidadas de tamaño libre.
- MEDIUMTEXT en MySQL para la imagen (data URI base64 de cientos de KB).
- Índice compuesto (owner_id, created_at) para la query de paginación.

RELACIÓN CON ENTIDAD DE DOMINIO:
- Este modelo mapea a/desde domain.entities.analysis.HistoryEntry.
- La conversión se hace en AnalysisHistoryMapper (no aquí).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import Mapped, mapped_column

from chartsage.infrastructure.persistence.database import Base


class AnalysisHistoryModel(Base):
    """Un análisis completado de un usuario."""

    __tablename__ = "analysis_history"

    # ─── Primary Key ──────────────────────────────────────────────────
    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    # ─── Dueño y contexto ─────────────────────────────────────────────
    owner_id: Mapped[str] = mapped_column(
        String(128), nullable=False,
        comment="Claim `sub` del usuario autenticado",
    )
    symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql"),
        nullable=False,
        comment="Instante del análisis (UTC)",
    )

    # ─── Resultado del modelo ─────────────────────────────────────────
    analysis_summary: Mapped[str] = mapped_column(Text, nullable=False)
    swot: Mapped[dict] = mapped_column(JSON, nullable=False)
    trade_signal: Mapped[dict] = mapped_column(JSON, nullable=False)
    chart_image: Mapped[str] = mapped_column(
        Text().with_variant(mysql.MEDIUMTEXT(), "mysql"), nullable=False,
    )

    __table_args__ = (
        Index("ix_analysis_history_owner_created", "owner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AnalysisHistoryModel {self.id} owner={self.owner_id} {self.symbol}>"
