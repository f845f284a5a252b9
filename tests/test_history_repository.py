import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from chartsage.application.use_cases.review_history_usecase import ReviewHistoryUseCase
from chartsage.domain.entities.analysis import AnalysisResult, HistoryEntry, Swot, TradeSignal
from chartsage.domain.exceptions.domain_errors import PersistenceFailed, Unauthenticated
from chartsage.infrastructure.persistence.database import DatabaseManager
from chartsage.infrastructure.persistence.repositories.analysis_history_repository_impl import (
    SqlAnalysisHistoryRepository,
)
from chartsage.infrastructure.persistence.repositories.in_memory_history_repository import (
    InMemoryAnalysisHistoryRepository,
)
from chartsage.shared.config.settings import Settings

BASE = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

RESULT = AnalysisResult(
    narrative="Rango lateral",
    swot=Swot(strengths=("soporte",), threats=("resistencia",)),
    trade_signal=TradeSignal("100-101", ("105",), "98"),
)


def _entry(i, owner="user-1", symbol="BTCUSDT"):
    return HistoryEntry(
        owner_id=owner,
        symbol=symbol,
        chart_image=f"data:image/png;base64,{i}",
        result=RESULT,
        timestamp=BASE + timedelta(minutes=i),
    )


async def _pagination_scenario(repo):
    for i in range(5):
        await repo.append(_entry(i))
    await repo.append(_entry(99, owner="user-2"))

    first = await repo.page("user-1", 2)
    # llega un análisis nuevo entre las dos peticiones
    await repo.append(_entry(10))
    second = await repo.page("user-1", 2, first.next_cursor)
    third = await repo.page("user-1", 2, second.next_cursor)
    return first, second, third


def _assert_stable_pages(first, second, third):
    first_ids = {e.id for e in first.entries}
    assert [e.timestamp for e in first.entries] == [BASE + timedelta(minutes=4), BASE + timedelta(minutes=3)]
    assert first.next_cursor == BASE + timedelta(minutes=3)
    assert not first_ids & {e.id for e in second.entries}
    assert [e.timestamp for e in second.entries] == [BASE + timedelta(minutes=2), BASE + timedelta(minutes=1)]
    assert [e.timestamp for e in third.entries] == [BASE]
    assert third.next_cursor is None
    assert not third.has_more


def test_in_memory_pagination_is_stable():
    """Página 2 con cursor nunca repite entradas de la página 1"""
    pages = asyncio.run(_pagination_scenario(InMemoryAnalysisHistoryRepository()))
    _assert_stable_pages(*pages)


def test_in_memory_isolates_owners():
    repo = InMemoryAnalysisHistoryRepository()

    async def scenario():
        await repo.append(_entry(1, owner="user-1"))
        await repo.append(_entry(2, owner="user-2"))
        return await repo.page("user-2", 10), await repo.page("nadie", 10)

    mine, nobody = asyncio.run(scenario())
    assert [e.owner_id for e in mine.entries] == ["user-2"]
    assert nobody.entries == ()


@pytest.fixture
def sql_settings(tmp_path):
    return Settings(db_enabled=True, db_url=f"sqlite+aiosqlite:///{tmp_path / 'history.db'}")


def test_sql_pagination_is_stable(sql_settings):
    """Mismo escenario sobre SQLAlchemy + aiosqlite"""
    async def scenario():
        db = DatabaseManager(sql_settings)
        await db.initialize()
        try:
            return await _pagination_scenario(SqlAnalysisHistoryRepository(db))
        finally:
            await db.close()

    _assert_stable_pages(*asyncio.run(scenario()))


def test_sql_round_trip(sql_settings):
    """El resultado completo sobrevive a la persistencia"""
    entry = _entry(7)

    async def scenario():
        db = DatabaseManager(sql_settings)
        await db.initialize()
        try:
            repo = SqlAnalysisHistoryRepository(db)
            assert await repo.append(entry) == entry.id
            return await repo.page("user-1", 10)
        finally:
            await db.close()

    page = asyncio.run(scenario())
    stored = page.entries[0]
    assert stored.id == entry.id
    assert stored.timestamp == entry.timestamp
    assert stored.result == entry.result
    assert stored.chart_image == entry.chart_image


def test_sql_without_initialize_raises(sql_settings):
    repo = SqlAnalysisHistoryRepository(DatabaseManager(sql_settings))
    with pytest.raises(RuntimeError):
        asyncio.run(repo.page("user-1", 10))


def test_review_history_requires_owner():
    use_case = ReviewHistoryUseCase(InMemoryAnalysisHistoryRepository())
    with pytest.raises(Unauthenticated):
        asyncio.run(use_case.execute(None))


def test_review_history_clamps_page_size():
    """page_size se limita a [1, max]"""
    repo = InMemoryAnalysisHistoryRepository()
    use_case = ReviewHistoryUseCase(repo, default_page_size=3, max_page_size=4)

    async def scenario():
        for i in range(10):
            await repo.append(_entry(i))
        return (
            await use_case.execute("user-1"),
            await use_case.execute("user-1", page_size=100),
        )

    default_page, big_page = asyncio.run(scenario())
    assert len(default_page.entries) == 3
    assert len(big_page.entries) == 4


def test_review_history_wraps_unexpected_errors():
    class BrokenRepository(InMemoryAnalysisHistoryRepository):
        async def page(self, owner_id, page_size, cursor=None):
            raise OSError("sin conexión")

    with pytest.raises(PersistenceFailed):
        asyncio.run(ReviewHistoryUseCase(BrokenRepository()).execute("user-1"))
