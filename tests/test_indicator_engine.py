import random

import pytest

from chartsage.application.services.indicator_engine import IndicatorEngine
from chartsage.domain.entities.candle import Candle
from chartsage.domain.entities.candle_window import CandleWindow
from chartsage.domain.exceptions.domain_errors import ValidationError
from chartsage.domain.value_objects.indicator_config import (
    BollingerConfig,
    IndicatorKind,
    IndicatorSettings,
    MacdConfig,
    RsiConfig,
    SmaConfig,
)
from chartsage.domain.value_objects.indicator_series import Pending, Value

from conftest import HOUR, START, make_candles, random_walk

ALL_ON = IndicatorSettings(
    sma=SmaConfig(True, 20),
    rsi=RsiConfig(True, 14),
    macd=MacdConfig(True, 12, 26, 9),
    bollinger=BollingerConfig(True, 20, 2.0),
)


def _values(points):
    return [p.value if isinstance(p, Value) else None for p in points]


def _flatten(indicator_set):
    """{kind.linea: [valores]} para comparar dos IndicatorSet."""
    out = {}
    for kind, series in indicator_set.series:
        if hasattr(series, "points"):
            out[kind] = _values(series.points)
        elif hasattr(series, "histogram"):
            out[f"{kind}.line"] = _values(series.line)
            out[f"{kind}.signal"] = _values(series.signal)
            out[f"{kind}.histogram"] = _values(series.histogram)
        else:
            out[f"{kind}.upper"] = _values(series.upper)
            out[f"{kind}.middle"] = _values(series.middle)
            out[f"{kind}.lower"] = _values(series.lower)
    return out


def _assert_equivalent(incremental, full):
    a, b = _flatten(incremental), _flatten(full)
    assert a.keys() == b.keys()
    for name in a:
        assert len(a[name]) == len(b[name]), name
        for x, y in zip(a[name], b[name]):
            if y is None:
                assert x is None, name
            else:
                assert x == pytest.approx(y, rel=1e-9, abs=1e-12), name


def test_incremental_matches_full_recompute():
    """Stream con revisiones, appends, stale y expulsiones: incremental == completo"""
    rng = random.Random(42)
    closes = random_walk(400, seed=5)
    window = CandleWindow(capacity=120)
    engine = IndicatorEngine(ALL_ON)

    history = make_candles(closes[:60])
    for candle in history:
        window.apply(candle)
    engine.recompute(window.candles())

    t = history[-1].time
    for close in closes[60:]:
        roll = rng.random()
        if roll < 0.4:
            # revisión de la vela en curso
            last = window.last
            candle = Candle(last.time, last.open, max(last.high, close), min(last.low, close), close, last.volume + 1)
        elif roll < 0.45:
            candle = Candle(t - 5 * HOUR, close, close, close, close, 1)   # stale
        else:
            t += HOUR
            candle = Candle(t, close, close + 1, close - 1, close, 1)

        update = window.apply(candle)
        incremental = engine.update(window.candles(), update)
        full = IndicatorEngine(ALL_ON).recompute(window.candles())
        _assert_equivalent(incremental, full)

    assert window.is_full


def test_revision_does_not_trigger_full_recompute():
    """Revisión y append sin expulsión no recalculan todo"""
    window = CandleWindow(capacity=200, candles=make_candles(random_walk(50)))
    engine = IndicatorEngine(ALL_ON)
    engine.recompute(window.candles())
    assert engine.full_recomputes == 1

    last = window.last
    update = window.apply(Candle(last.time, last.open, last.high, last.low, 123.0, 1))
    engine.update(window.candles(), update)
    update = window.apply(Candle(last.time + HOUR, 1, 2, 0.5, 1.5, 1))
    indicators = engine.update(window.candles(), update)

    assert engine.full_recomputes == 1
    assert len(engine.series(IndicatorKind.SMA)) == 51
    _assert_equivalent(indicators, IndicatorEngine(ALL_ON).recompute(window.candles()))


def test_update_with_outdated_candles_recomputes():
    """Velas de antes del apply → recálculo completo, nunca un último punto erróneo"""
    window = CandleWindow(capacity=200, candles=make_candles(random_walk(50)))
    engine = IndicatorEngine(ALL_ON)
    engine.recompute(window.candles())

    before = window.candles()
    last = window.last
    update = window.apply(Candle(last.time, last.open, last.high, last.low, last.close + 25.0, 1))
    indicators = engine.update(before, update)

    assert engine.full_recomputes == 2
    _assert_equivalent(indicators, IndicatorEngine(ALL_ON).recompute(before))

    # el siguiente update con la ventana correcta vuelve a cuadrar
    indicators = engine.update(window.candles(), update)
    _assert_equivalent(indicators, IndicatorEngine(ALL_ON).recompute(window.candles()))


def test_eviction_triggers_full_recompute():
    window = CandleWindow(capacity=30, candles=make_candles(random_walk(30)))
    engine = IndicatorEngine(ALL_ON)
    engine.recompute(window.candles())

    update = window.apply(Candle(window.last.time + HOUR, 1, 2, 0.5, 1.5, 1))
    engine.update(window.candles(), update)

    assert update.evicted is not None
    assert engine.full_recomputes == 2


def test_disabled_indicators_are_absent():
    """Solo los indicadores habilitados tienen serie"""
    engine = IndicatorEngine()   # SMA y RSI por defecto
    indicators = engine.recompute(make_candles(random_walk(40)))

    assert set(indicators.kinds()) == {"sma", "rsi"}
    assert indicators.get(IndicatorKind.MACD) is None
    assert indicators.get("bollinger") is None
    assert indicators.snapshot().macd is None


def test_series_aligned_with_candles():
    """Cada serie tiene un punto por vela con la misma `time`"""
    candles = make_candles(random_walk(35))
    indicators = IndicatorEngine(ALL_ON).recompute(candles)

    times = [c.time for c in candles]
    assert [p.time for p in indicators.get("sma").points] == times
    assert [p.time for p in indicators.get("macd").histogram] == times
    assert [p.time for p in indicators.get("bollinger").upper] == times
    # señal MACD desde el índice 26 − 1 + 9 − 1 = 33
    signal = indicators.get("macd").signal
    assert isinstance(signal[32], Pending)
    assert isinstance(signal[33], Value)
    assert isinstance(indicators.get("macd").histogram[32], Pending)


def test_reenable_with_new_period_recomputes_from_scratch():
    """Deshabilitar y rehabilitar con otro período → serie nueva sin residuos"""
    candles = make_candles(random_walk(60))
    engine = IndicatorEngine()
    engine.recompute(candles)

    disabled = engine.settings.with_config(IndicatorKind.SMA, SmaConfig(False, 20))
    indicators = engine.configure(disabled, candles)
    assert indicators.get("sma") is None

    reenabled = disabled.with_config(IndicatorKind.SMA, SmaConfig(True, 5))
    indicators = engine.configure(reenabled, candles)

    expected = IndicatorEngine(reenabled).recompute(candles)
    assert _values(indicators.get("sma").points) == _values(expected.get("sma").points)
    assert _values(indicators.get("sma").points)[:4] == [None] * 4
    assert _values(indicators.get("sma").points)[4] is not None


def test_configure_keeps_unchanged_series():
    """Cambiar MACD no toca la serie RSI ya calculada"""
    candles = make_candles(random_walk(60))
    engine = IndicatorEngine()
    before = engine.recompute(candles).get("rsi")

    after = engine.configure(
        engine.settings.with_config(IndicatorKind.MACD, MacdConfig(True, 5, 10, 3)), candles,
    )

    assert after.get("rsi") == before
    assert after.get("macd") is not None


def test_incremental_after_configure():
    """Tras configure el camino incremental sigue igual al completo"""
    window = CandleWindow(capacity=100, candles=make_candles(random_walk(50)))
    engine = IndicatorEngine()
    engine.recompute(window.candles())
    engine.configure(ALL_ON, window.candles())

    update = window.apply(Candle(window.last.time + HOUR, 100, 101, 99, 100.5, 1))
    incremental = engine.update(window.candles(), update)

    _assert_equivalent(incremental, IndicatorEngine(ALL_ON).recompute(window.candles()))


def test_empty_window():
    """Sin velas → series vacías, sin excepción"""
    indicators = IndicatorEngine(ALL_ON).recompute([])
    assert len(indicators.get("sma")) == 0
    assert indicators.snapshot().rsi is None


def test_histogram_tag():
    candles = make_candles(random_walk(80, seed=9))
    hist = IndicatorEngine(ALL_ON).recompute(candles).get("macd").histogram
    for point in hist:
        if isinstance(point, Value):
            assert point.tag == ("positive" if point.value >= 0 else "negative")


@pytest.mark.parametrize("build", [
    lambda: MacdConfig(True, 26, 12, 9),
    lambda: MacdConfig(True, 12, 12, 9),
    lambda: SmaConfig(True, 0),
    lambda: RsiConfig(True, -3),
    lambda: BollingerConfig(True, 20, 0.0),
])
def test_invalid_indicator_config(build):
    """Períodos no positivos o MACD con fast ≥ slow → ValidationError"""
    with pytest.raises(ValidationError):
        build()
