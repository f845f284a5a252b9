"""
ChartSage – Analysis History Mapper
====================================
Mapea entre HistoryEntry (domain entity) y AnalysisHistoryModel (ORM).

- El domain NO conoce SQLAlchemy
- El ORM Model NO tiene lógica de negocio
- El mapper traduce entre ambos mundos
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from chartsage.domain.entities.analysis import AnalysisResult, HistoryEntry, Swot, TradeSignal


def to_naive_utc(moment: datetime) -> datetime:
    """datetime aware → UTC naive (lo que guarda la columna DATETIME)."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def from_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc)
    return moment.replace(tzinfo=timezone.utc)


class AnalysisHistoryMapper:
    """
    Mapper bidireccional HistoryEntry ↔ AnalysisHistoryModel.

    USO:
        mapper = AnalysisHistoryMapper()
        model = AnalysisHistoryModel(**mapper.to_model(entry))
        entry = mapper.to_entity(model)
    """

    def to_model(self, entry: HistoryEntry) -> Dict[str, Any]:
        """
        Convierte HistoryEntry a dict para crear AnalysisHistoryModel.

        Retorna dict para no importar el modelo aquí (dependency direction).
        """
        result = entry.result
        return {
            "id": entry.id,
            "owner_id": entry.owner_id,
            "symbol": entry.symbol,
            "created_at": to_naive_utc(entry.timestamp),
            "analysis_summary": result.narrative,
            "swot": result.swot.to_dict(),
            "trade_signal": result.trade_signal.to_dict(),
            "chart_image": entry.chart_image,
        }

    def to_entity(self, model: Any) -> HistoryEntry:
        swot = model.swot or {}
        signal = model.trade_signal or {}
        return HistoryEntry(
            id=model.id,
            owner_id=model.owner_id,
            symbol=model.symbol,
            chart_image=model.chart_image,
            timestamp=from_naive_utc(model.created_at),
            result=AnalysisResult(
                narrative=model.analysis_summary,
                swot=Swot(
                    strengths=tuple(swot.get("strengths", [])),
                    weaknesses=tuple(swot.get("weaknesses", [])),
                    opportunities=tuple(swot.get("opportunities", [])),
                    threats=tuple(swot.get("threats", [])),
                ),
                trade_signal=TradeSignal(
                    entry_range=signal.get("entryPriceRange", ""),
                    take_profit_levels=tuple(signal.get("takeProfitLevels", [])),
                    stop_loss=signal.get("stopLossLevel", ""),
                ),
            ),
        )
