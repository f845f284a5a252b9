import asyncio
import time

import pytest
from jose import jwt

from chartsage.application.services.indicator_engine import IndicatorEngine
from chartsage.domain.exceptions.domain_errors import Unauthenticated
from chartsage.domain.value_objects.indicator_config import (
    BollingerConfig,
    IndicatorSettings,
    MacdConfig,
    RsiConfig,
)
from chartsage.infrastructure.auth.jwt_validator import JwtTokenValidator
from chartsage.infrastructure.llm.openai_adapter import (
    DisabledAnalysisModel,
    OpenAIAnalysisModel,
    _content_text,
    build_analysis_model,
)
from chartsage.infrastructure.rendering.plotly_renderer import PlotlyChartRenderer
from chartsage.shared.config.settings import Settings

from conftest import CHART_IMAGE, make_candles, random_walk

SECRET = "secreto-de-test"


# ─── JWT ───────────────────────────────────────────────────────────────

def test_jwt_valid_token():
    token = jwt.encode({"sub": "user-1", "exp": int(time.time()) + 60}, SECRET, algorithm="HS256")
    assert JwtTokenValidator(SECRET).validate(token)["sub"] == "user-1"


@pytest.mark.parametrize("claims, secret", [
    ({"sub": "user-1", "exp": int(time.time()) - 60}, SECRET),
    ({"sub": "user-1"}, "otro-secreto"),
    ({"name": "sin sub"}, SECRET),
])
def test_jwt_rejected(claims, secret):
    """Expirado, firma incorrecta o sin `sub` → Unauthenticated"""
    token = jwt.encode(claims, secret, algorithm="HS256")
    with pytest.raises(Unauthenticated):
        JwtTokenValidator(SECRET).validate(token)


def test_jwt_audience():
    token = jwt.encode({"sub": "user-1", "aud": "chartsage"}, SECRET, algorithm="HS256")
    assert JwtTokenValidator(SECRET, audience="chartsage").validate(token)["sub"] == "user-1"
    with pytest.raises(Unauthenticated):
        JwtTokenValidator(SECRET, audience="otra-app").validate(token)


def test_jwt_garbage():
    with pytest.raises(Unauthenticated):
        JwtTokenValidator(SECRET).validate("no.es.jwt")


# ─── LLM ───────────────────────────────────────────────────────────────

class FakeRunnable:
    def __init__(self, content):
        self.content = content
        self.messages = None

    async def ainvoke(self, messages):
        self.messages = messages
        return type("AIMessage", (), {"content": self.content})()


def test_openai_adapter_sends_image_part():
    """Mensaje de sistema + mensaje humano con texto e image_url"""
    runnable = FakeRunnable('{"analysis": "ok"}')
    model = OpenAIAnalysisModel(Settings(openai_api_key="sk-test"), _runnable=runnable)

    text = asyncio.run(model.generate("sistema", "usuario", CHART_IMAGE))

    assert text == '{"analysis": "ok"}'
    system, human = runnable.messages
    assert system.content == "sistema"
    assert human.content[0] == {"type": "text", "text": "usuario"}
    assert human.content[1]["image_url"]["url"] == CHART_IMAGE


def test_content_text_joins_parts():
    assert _content_text([{"type": "text", "text": "{\"a\""}, ": 1}", {"type": "image_url"}]) == '{"a": 1}'
    assert _content_text(None) == ""


def test_without_api_key_model_is_disabled():
    model = build_analysis_model(Settings(openai_api_key=None))
    assert isinstance(model, DisabledAnalysisModel)
    with pytest.raises(RuntimeError):
        asyncio.run(model.generate("s", "u", CHART_IMAGE))


# ─── Renderer ──────────────────────────────────────────────────────────

def test_figure_panels_and_gaps():
    """Paneles según indicadores activos; el warm-up son huecos, no ceros"""
    settings = IndicatorSettings(macd=MacdConfig(enabled=True), bollinger=BollingerConfig(enabled=True))
    candles = make_candles(random_walk(60))
    indicators = IndicatorEngine(settings).recompute(candles)

    fig = PlotlyChartRenderer(width=800, height=600).build_figure(candles, indicators, "BTCUSDT 1h")

    names = [trace.name for trace in fig.data]
    assert names == ["Price", "SMA", "BB Upper", "BB Middle", "BB Lower", "Volume", "RSI", "Histogram", "MACD", "Signal"]
    sma = fig.data[1]
    assert sma.y[0] is None
    assert sma.y[-1] is not None
    assert fig.layout.title.text == "BTCUSDT 1h"


def test_figure_without_oscillators():
    settings = IndicatorSettings(rsi=RsiConfig(enabled=False))
    candles = make_candles(random_walk(30))
    indicators = IndicatorEngine(settings).recompute(candles)

    fig = PlotlyChartRenderer().build_figure(candles, indicators)

    assert [trace.name for trace in fig.data] == ["Price", "SMA", "Volume"]
