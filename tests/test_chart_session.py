import asyncio

import pytest

from chartsage.application.services.chart_session import ChartSession
from chartsage.domain.entities.candle import Candle
from chartsage.domain.value_objects.indicator_config import (
    IndicatorKind,
    IndicatorSettings,
    MacdConfig,
)

from conftest import HOUR, FakeChartRenderer


def _session(feed, **kwargs):
    return ChartSession("BTCUSDT", "1h", feed, renderer=FakeChartRenderer(), **kwargs)


def test_start_loads_history_and_subscribes(fake_feed, candles_100):
    """start() → histórico en la ventana, indicadores calculados y stream abierto"""
    session = _session(fake_feed)
    view = asyncio.run(session.start())

    assert fake_feed.fetches == [("BTCUSDT", "1h", 200)]
    assert len(fake_feed.subscriptions) == 1
    assert view.candles == tuple(candles_100)
    assert set(view.indicators.kinds()) == {"sma", "rsi"}
    assert len(view.indicators.get("sma")) == len(view.candles)
    assert not view.stale
    assert view.feed_error is None


def test_feed_unavailable_leaves_empty_session(failing_feed):
    """FeedUnavailable → ventana vacía, indicadores sin datos, sin excepción"""
    session = _session(failing_feed)
    view = asyncio.run(session.start())

    assert view.candles == ()
    assert view.feed_error is not None
    assert session.latest_indicator_series(IndicatorKind.SMA).points == ()
    assert session.indicator_snapshot().sma is None


def test_stream_candle_updates_view_atomically(fake_feed):
    """Una vela del stream publica velas e indicadores juntos"""
    session = _session(fake_feed)
    seen = []
    session.add_listener(seen.append)
    asyncio.run(session.start())

    last = session.latest_candles()[-1]
    fake_feed.subscriptions[0].emit(Candle(last.time + HOUR, last.close, 200, 90, 150.0, 5))

    view = seen[-1]
    assert view.candles[-1].close == 150.0
    assert len(view.indicators.get("rsi")) == len(view.candles)
    assert view.indicators.get("sma").points[-1].time == view.candles[-1].time
    assert view.version > seen[0].version


def test_dispose_drops_late_messages(fake_feed):
    """Tras dispose() un mensaje tardío se descarta"""
    session = _session(fake_feed)
    asyncio.run(session.start())
    subscription = fake_feed.subscriptions[0]
    before = session.view

    session.dispose()
    session.dispose()
    last = before.candles[-1]
    subscription.emit(Candle(last.time + HOUR, 1, 1, 1, 1, 1))

    assert subscription.closed
    assert session.disposed
    assert session.view is before


def test_stream_drop_marks_stale_until_next_candle(fake_feed):
    """StreamDropped → vista stale; la siguiente vela la limpia"""
    session = _session(fake_feed)
    asyncio.run(session.start())
    subscription = fake_feed.subscriptions[0]

    subscription.drop()
    assert session.is_stale
    assert session.view.to_dict()["stale"] is True

    last = session.latest_candles()[-1]
    subscription.emit(Candle(last.time, last.open, last.high, last.low, last.close + 1, 1))
    assert not session.is_stale


def test_reconfigure_adds_macd(fake_feed):
    session = _session(fake_feed)
    asyncio.run(session.start())

    settings = IndicatorSettings().with_config(IndicatorKind.MACD, MacdConfig(True))
    view = session.reconfigure(settings)

    assert "macd" in view.indicators.kinds()
    assert view.settings.macd.enabled
    assert session.indicator_snapshot().macd is not None


def test_build_request_freezes_view(fake_feed):
    """La petición lleva velas e indicadores de la vista dada"""
    session = _session(fake_feed)
    asyncio.run(session.start())
    view = session.view

    last = view.candles[-1]
    fake_feed.subscriptions[0].emit(Candle(last.time + HOUR, 1, 1, 1, 1, 1))
    request = session.build_request("data:image/png;base64,AAAA", view=view)

    assert request.candles == view.candles
    assert request.indicators == view.indicators.snapshot()
    assert request.symbol == "BTCUSDT"
    assert not request.is_follow_up


def test_snapshot_uses_renderer(fake_feed):
    renderer = FakeChartRenderer()
    session = ChartSession("BTCUSDT", "1h", fake_feed, renderer=renderer)
    asyncio.run(session.start())

    assert session.snapshot().startswith(b"\x89PNG")
    assert renderer.renders == 1


def test_snapshot_without_renderer(fake_feed):
    session = ChartSession("BTCUSDT", "1h", fake_feed)
    with pytest.raises(RuntimeError):
        session.snapshot()
