import pytest

from chartsage.domain.entities.candle import Candle
from chartsage.domain.entities.candle_window import CandleWindow, UpdateKind
from chartsage.domain.exceptions.domain_errors import ValidationError

from conftest import HOUR, START, make_candles


@pytest.fixture
def full_window():
    return CandleWindow(capacity=5, candles=make_candles([10, 11, 12, 13, 14]))


def test_append_evicts_oldest_when_full(full_window):
    """Vela posterior con ventana llena → expulsa la más antigua, misma longitud"""
    oldest = full_window.candles()[0]
    new = Candle(START + 5 * HOUR, 14, 16, 13, 15, 1)

    update = full_window.apply(new)

    assert update.kind is UpdateKind.APPEND
    assert update.evicted == oldest
    assert len(full_window) == 5
    assert full_window.candles()[0].time == START + HOUR
    assert full_window.last == new


def test_same_time_replaces_in_place(full_window):
    """Misma `time` que la última → se sustituye en sitio, misma longitud"""
    before = full_window.candles()
    revised = Candle(before[-1].time, 13, 20, 12, 19.5, 99)

    update = full_window.apply(revised)

    assert update.kind is UpdateKind.REVISION
    assert update.evicted is None
    assert len(full_window) == 5
    assert full_window.candles()[:-1] == before[:-1]
    assert full_window.last.close == 19.5


def test_older_candle_is_ignored(full_window):
    """Vela anterior a la última → STALE, la ventana no cambia"""
    before = full_window.candles()
    update = full_window.apply(Candle(START, 1, 1, 1, 1, 1))

    assert update.kind is UpdateKind.STALE
    assert not update.changed
    assert full_window.candles() == before


def test_append_below_capacity_grows():
    """Por debajo de la capacidad se añade sin expulsar"""
    window = CandleWindow(capacity=10, candles=make_candles([1, 2, 3]))
    update = window.apply(Candle(START + 3 * HOUR, 3, 5, 2, 4, 1))

    assert update.evicted is None
    assert len(window) == 4
    assert not window.is_full


def test_times_stay_strictly_increasing():
    """Secuencia mixta de revisiones, appends y stale → times crecientes"""
    window = CandleWindow(capacity=4)
    for t, close in [(0, 1), (0, 2), (1, 3), (3, 4), (2, 5), (3, 6), (4, 7), (5, 8)]:
        window.apply(Candle(START + t * HOUR, close, close, close, close, 1))

    times = [c.time for c in window]
    assert times == sorted(set(times))
    assert len(window) == 4
    assert window.closes() == [3, 6, 7, 8]


def test_invalid_capacity():
    with pytest.raises(ValidationError):
        CandleWindow(capacity=0)
