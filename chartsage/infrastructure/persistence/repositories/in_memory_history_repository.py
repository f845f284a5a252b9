"""
In-memory Analysis History Repository.

Se usa cuando db_enabled=False (desarrollo local) y en tests.
Mismas reglas de paginación que la implementación SQL.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from chartsage.domain.entities.analysis import HistoryEntry, HistoryPage
from chartsage.domain.repositories.analysis_history_repository import IAnalysisHistoryRepository


class InMemoryAnalysisHistoryRepository(IAnalysisHistoryRepository):

    def __init__(self) -> None:
        self._entries: Dict[str, List[HistoryEntry]] = {}

    async def append(self, entry: HistoryEntry) -> str:
        self._entries.setdefault(entry.owner_id, []).append(entry)
        return entry.id

    async def page(
        self,
        owner_id: str,
        page_size: int,
        cursor: Optional[datetime] = None,
    ) -> HistoryPage:
        entries = list(self._entries.get(owner_id, []))

        entries.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
        if cursor is not None:
            entries = [e for e in entries if e.timestamp < cursor]

        selected = tuple(entries[:page_size])
        next_cursor = selected[-1].timestamp if len(entries) > page_size else None
        return HistoryPage(entries=selected, next_cursor=next_cursor)

    def __len__(self) -> int:
        return sum(len(v) for v in self._entries.values())
