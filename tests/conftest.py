"""
Fixtures compartidas: velas sintéticas y dobles de los puertos
(feed, modelo LLM, renderer, validador de tokens).
"""

import json
import logging
import random
from typing import Dict, List, Optional, Tuple

import pytest

from chartsage.application.ports.analysis_model import IAnalysisModel
from chartsage.application.ports.chart_renderer import IChartRenderer
from chartsage.application.ports.market_data_provider import CandleSubscription, ICandleFeed
from chartsage.application.ports.token_validator import ITokenValidator
from chartsage.domain.entities.candle import Candle
from chartsage.domain.exceptions.domain_errors import FeedUnavailable, StreamDropped, Unauthenticated

# Los logs no deben ensuciar la salida de los tests
logging.getLogger("chartsage").setLevel(logging.CRITICAL)

START = 1_700_000_000
HOUR = 3_600

VALID_RESPONSE = {
    "analysis": "Tendencia alcista con soporte en 100.",
    "swot": {
        "strengths": ["Mínimos crecientes"],
        "weaknesses": ["Volumen decreciente"],
        "opportunities": ["Ruptura de 120"],
        "threats": ["Resistencia en 125"],
    },
    "tradeSignal": {
        "entryPriceRange": "101-103",
        "takeProfitLevels": ["110", "118"],
        "stopLossLevel": "97",
    },
}

CHART_IMAGE = "data:image/png;base64,iVBORw0KGgo="


def make_candles(closes, start: int = START, step: int = HOUR) -> List[Candle]:
    """Velas con open = close anterior y un rango de ±1."""
    candles = []
    prev = closes[0] if closes else 0.0
    for i, close in enumerate(closes):
        candles.append(Candle(
            time=start + i * step,
            open=prev,
            high=max(prev, close) + 1.0,
            low=min(prev, close) - 1.0,
            close=float(close),
            volume=10.0 + i,
        ))
        prev = close
    return candles


def random_walk(n: int, seed: int = 7, start: float = 100.0) -> List[float]:
    rng = random.Random(seed)
    closes, price = [], start
    for _ in range(n):
        price = max(1.0, price + rng.gauss(0, 1.5))
        closes.append(price)
    return closes


# ─── Dobles de los puertos ──────────────────────────────────────────────

class FakeSubscription(CandleSubscription):
    def __init__(self, on_candle, on_drop) -> None:
        self.on_candle = on_candle
        self.on_drop = on_drop
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def emit(self, candle: Candle) -> None:
        """Entrega sin filtrar: la sesión debe descartar si ya cerró."""
        self.on_candle(candle)

    def drop(self, reason: str = "conexión reseteada") -> None:
        self.on_drop(StreamDropped(reason))


class FakeCandleFeed(ICandleFeed):
    def __init__(self, history: Optional[Dict[Tuple[str, str], List[Candle]]] = None) -> None:
        self.history = history or {}
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.fetches: List[Tuple[str, str, int]] = []
        self.subscriptions: List[FakeSubscription] = []
        self.closed = False

    async def fetch_history(self, symbol, interval, limit=200):
        self.fetches.append((symbol, interval, limit))
        error = self.failures.get((symbol, interval))
        if error is not None:
            raise error
        return list(self.history.get((symbol, interval), []))[-limit:]

    def subscribe(self, symbol, interval, on_candle, on_drop=None):
        subscription = FakeSubscription(on_candle, on_drop)
        self.subscriptions.append(subscription)
        return subscription

    async def aclose(self):
        self.closed = True


class FakeAnalysisModel(IAnalysisModel):
    def __init__(self, response: Optional[str] = None, error: Optional[Exception] = None) -> None:
        self.response = response if response is not None else json.dumps(VALID_RESPONSE)
        self.error = error
        self.calls: List[Tuple[str, str, str]] = []

    async def generate(self, system_prompt, user_prompt, image_data_uri):
        self.calls.append((system_prompt, user_prompt, image_data_uri))
        if self.error is not None:
            raise self.error
        return self.response


class FakeChartRenderer(IChartRenderer):
    def __init__(self) -> None:
        self.renders = 0

    def render(self, candles, indicators, title=""):
        self.renders += 1
        return b"\x89PNG\r\n\x1a\nfake"


class FakeTokenValidator(ITokenValidator):
    def __init__(self, tokens: Optional[Dict[str, str]] = None) -> None:
        self.tokens = tokens or {"good-token": "user-1", "other-token": "user-2"}

    def validate(self, token):
        if token not in self.tokens:
            raise Unauthenticated("Token inválido")
        return {"sub": self.tokens[token]}


# ─── Fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def candles_100():
    return make_candles(random_walk(100))


@pytest.fixture
def fake_feed(candles_100):
    return FakeCandleFeed({("BTCUSDT", "1h"): candles_100})


@pytest.fixture
def failing_feed():
    feed = FakeCandleFeed()
    feed.failures[("BTCUSDT", "1h")] = FeedUnavailable("Binance respondió 503", symbol="BTCUSDT", status_code=503)
    return feed


@pytest.fixture
def fake_model():
    return FakeAnalysisModel()


@pytest.fixture
def fake_renderer():
    return FakeChartRenderer()


@pytest.fixture
def fake_validator():
    return FakeTokenValidator()
