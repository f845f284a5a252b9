import asyncio
import json

import httpx
import pytest

from chartsage.domain.exceptions.domain_errors import FeedUnavailable, StreamDropped
from chartsage.infrastructure.external.binance_adapter import (
    BinanceCandleFeed,
    parse_rest_kline,
    parse_stream_message,
)
from chartsage.shared.config.settings import Settings

KLINES = [
    [1700000000000, "100.0", "101.5", "99.5", "101.0", "12.5", 1700003599999, "0", 10, "0", "0", "0"],
    [1700003600000, "101.0", "103.0", "100.5", "102.5", "8.25", 1700007199999, "0", 7, "0", "0", "0"],
]


def _kline_message(t_ms, close, closed=False):
    return json.dumps({
        "e": "kline",
        "s": "BTCUSDT",
        "k": {"t": t_ms, "o": "1", "h": "2", "l": "0.5", "c": str(close), "v": "3", "x": closed},
    })


def _feed(handler, connect=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BinanceCandleFeed(Settings(), client=client, connect=connect)


class FakeStream:
    """Conexión WS falsa: entrega mensajes y luego cierra o se queda abierta."""

    def __init__(self, messages, error=None, hang=False):
        self.messages = messages
        self.error = error
        self.hang = hang
        self.urls = []

    def __call__(self, url):
        self.urls.append(url)
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()


def test_parse_rest_kline():
    """Fila REST → Candle con time en segundos"""
    candle = parse_rest_kline(KLINES[0])
    assert candle.time == 1_700_000_000
    assert (candle.open, candle.high, candle.low, candle.close, candle.volume) == (100.0, 101.5, 99.5, 101.0, 12.5)


def test_parse_stream_message():
    candle, closed = parse_stream_message(_kline_message(1700000000000, 42.5, closed=True))
    assert candle.time == 1_700_000_000
    assert candle.close == 42.5
    assert closed is True
    assert parse_stream_message('{"result": null, "id": 1}') is None


def test_fetch_history_ok():
    """200 → velas parseadas y parámetros symbol/interval/limit"""
    seen = {}

    def handler(request):
        seen.update(request.url.params)
        return httpx.Response(200, json=KLINES)

    candles = asyncio.run(_feed(handler).fetch_history("BTCUSDT", "1h", 2))

    assert [c.close for c in candles] == [101.0, 102.5]
    assert seen == {"symbol": "BTCUSDT", "interval": "1h", "limit": "2"}


def test_fetch_history_http_error():
    """No-2xx → FeedUnavailable con el status"""
    feed = _feed(lambda request: httpx.Response(500, json={"msg": "boom"}))

    with pytest.raises(FeedUnavailable) as info:
        asyncio.run(feed.fetch_history("BTCUSDT", "1h"))
    assert info.value.status_code == 500
    assert info.value.code == "FEED_UNAVAILABLE"


def test_fetch_history_network_error():
    def handler(request):
        raise httpx.ConnectError("sin red", request=request)

    with pytest.raises(FeedUnavailable):
        asyncio.run(_feed(handler).fetch_history("BTCUSDT", "1h"))


def test_fetch_history_bad_payload():
    feed = _feed(lambda request: httpx.Response(200, json=[["no", "es", "kline"]]))
    with pytest.raises(FeedUnavailable):
        asyncio.run(feed.fetch_history("BTCUSDT", "1h"))


def test_stream_delivers_candles_then_reports_drop():
    """Mensajes → on_candle; cierre del servidor → on_drop una vez"""
    stream = FakeStream([
        _kline_message(1700000000000, 10),
        "not json",
        _kline_message(1700000000000, 11),
        _kline_message(1700003600000, 12, closed=True),
    ])
    feed = _feed(lambda request: httpx.Response(200, json=[]), connect=stream)
    received, drops = [], []

    async def scenario():
        feed.subscribe("BTCUSDT", "1h", received.append, drops.append)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert stream.urls == ["wss://stream.binance.com:9443/ws/btcusdt@kline_1h"]
    assert [c.close for c in received] == [10.0, 11.0, 12.0]
    assert len(drops) == 1
    assert isinstance(drops[0], StreamDropped)


def test_stream_error_reports_drop():
    stream = FakeStream([], error=ConnectionResetError("reset"))
    feed = _feed(lambda request: httpx.Response(200, json=[]), connect=stream)
    drops = []

    async def scenario():
        feed.subscribe("BTCUSDT", "1h", lambda c: None, drops.append)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert len(drops) == 1
    assert "ConnectionResetError" in drops[0].message


def test_close_stops_delivery_without_drop():
    """close() cancela la escucha y no notifica caída"""
    stream = FakeStream([_kline_message(1700000000000, 10)], hang=True)
    feed = _feed(lambda request: httpx.Response(200, json=[]), connect=stream)
    received, drops = [], []

    async def scenario():
        subscription = feed.subscribe("BTCUSDT", "1h", received.append, drops.append)
        await asyncio.sleep(0.05)
        subscription.close()
        subscription.close()
        await asyncio.sleep(0.05)
        await feed.aclose()
        return subscription

    subscription = asyncio.run(scenario())
    assert subscription.closed
    assert len(received) == 1
    assert drops == []
