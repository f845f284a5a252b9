"""
ChartSage – Indicator Engine (SMA, RSI, MACD, Bollinger)
=========================================================
Mantiene las series de los indicadores HABILITADOS alineadas 1:1 con la
ventana de velas de una sesión.

═══════════════════════════════════════════════════════════════════
                    POLÍTICA DE RECÁLCULO
═══════════════════════════════════════════════════════════════════

  REVISION (misma vela en curso)      → solo se recalcula el último punto
  APPEND sin expulsión                → se añade un punto al final
  APPEND con expulsión (ventana llena)→ recálculo COMPLETO
  STALE                               → nada cambia
  configure()                         → recálculo completo SOLO de los
                                        indicadores cuya config cambió;
                                        los deshabilitados se descartan

─── Checkpoints ─────────────────────────────────────────────────

  RSI y MACD son recurrencias. Se guardan dos estados:
      prev  = estado tras procesar close[0..n-2]
      last  = estado tras procesar close[0..n-1]
  Revisión:  last = prev.step(close_nuevo)
  Append:    prev = last;  last = prev.step(close_nuevo)

  El fold del recálculo completo ejecuta EXACTAMENTE los mismos pasos,
  así que ambos caminos dan el mismo valor en todo índice.

─── Ventana acotada ─────────────────────────────────────────────

  Los indicadores se calculan sobre la ventana retenida, no sobre el
  histórico del exchange: al expulsar la vela más antigua cambia la
  semilla de las EMAs, por eso la expulsión fuerza recálculo completo.
  Un hueco en el stream no corrompe el estado: la siguiente vela se
  clasifica contra la ventana y el recálculo parte de lo retenido.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from chartsage.domain.entities.candle import Candle
from chartsage.domain.entities.candle_window import UpdateKind, WindowUpdate
from chartsage.domain.services.indicator_calculator import (
    IndicatorCalculator,
    MacdState,
    RsiState,
)
from chartsage.domain.value_objects.indicator_config import IndicatorKind, IndicatorSettings
from chartsage.domain.value_objects.indicator_series import (
    BollingerSeries,
    IndicatorPoint,
    IndicatorSeries,
    IndicatorSet,
    LineSeries,
    MacdSeries,
    Pending,
    Value,
)
from chartsage.shared.logging.logger import get_logger

logger = get_logger("indicator_engine")

Buffers = Dict[str, List[IndicatorPoint]]


def _point(time: int, value: Optional[float], tag: Optional[str] = None) -> IndicatorPoint:
    if value is None:
        return Pending(time)
    return Value(time, value, tag)


def _histogram_point(time: int, value: Optional[float]) -> IndicatorPoint:
    if value is None:
        return Pending(time)
    return Value(time, value, "positive" if value >= 0 else "negative")


class IndicatorEngine:
    """
    Motor de indicadores de UNA sesión de gráfico.

    Uso:
        engine = IndicatorEngine(settings)
        indicators = engine.recompute(window.candles())
        update = window.apply(candle)
        indicators = engine.update(window.candles(), update)
    """

    def __init__(self, settings: Optional[IndicatorSettings] = None) -> None:
        self._settings = settings or IndicatorSettings()
        self._buffers: Dict[IndicatorKind, Buffers] = {}
        self._rsi_prev: Optional[RsiState] = None
        self._rsi_last: Optional[RsiState] = None
        self._macd_prev: Optional[MacdState] = None
        self._macd_last: Optional[MacdState] = None
        self._current = IndicatorSet()
        self._full_recomputes = 0

    @property
    def settings(self) -> IndicatorSettings:
        return self._settings

    @property
    def current(self) -> IndicatorSet:
        return self._current

    @property
    def full_recomputes(self) -> int:
        """Recálculos completos realizados (diagnóstico)."""
        return self._full_recomputes

    # ════════════════════════════════════════════════════════════════
    #  API PÚBLICA
    # ════════════════════════════════════════════════════════════════

    def recompute(self, candles: Sequence[Candle]) -> IndicatorSet:
        """Recalcula desde cero todos los indicadores habilitados."""
        self._buffers.clear()
        for kind in self._settings.enabled_kinds():
            self._compute_full(kind, candles)
        self._full_recomputes += 1
        logger.debug(
            "Recálculo completo: %d velas, indicadores=%s",
            len(candles), [k.value for k in self._settings.enabled_kinds()],
        )
        return self._publish()

    def update(self, candles: Sequence[Candle], update: WindowUpdate) -> IndicatorSet:
        """
        Aplica el efecto de una vela ya aplicada a la ventana.

        `candles` es el contenido de la ventana DESPUÉS de `update`; si su
        última vela no es la del update se recalcula todo.
        """
        if update.kind is UpdateKind.STALE:
            return self._current
        if not candles or candles[-1] != update.candle:
            logger.warning(
                "Velas desalineadas con el update (%s t=%d): recálculo completo",
                update.kind.value, update.candle.time,
            )
            return self.recompute(candles)
        if update.evicted is not None or not self._aligned_for(update.kind, len(candles)):
            return self.recompute(candles)

        for kind in self._settings.enabled_kinds():
            self._compute_last(kind, candles, update.kind)
        return self._publish()

    def configure(self, settings: IndicatorSettings, candles: Sequence[Candle]) -> IndicatorSet:
        """Cambia la configuración; re-deriva desde cero lo que cambió."""
        changed = self._settings.changed_kinds(settings)
        self._settings = settings
        for kind in changed:
            self._buffers.pop(kind, None)
            if settings.get(kind).enabled:
                self._compute_full(kind, candles)
        if changed:
            logger.info("Indicadores reconfigurados: %s", [k.value for k in changed])
        return self._publish()

    def series(self, kind: IndicatorKind) -> Optional[IndicatorSeries]:
        return self._current.get(IndicatorKind(kind).value)

    # ════════════════════════════════════════════════════════════════
    #  RECÁLCULO COMPLETO
    # ════════════════════════════════════════════════════════════════

    def _compute_full(self, kind: IndicatorKind, candles: Sequence[Candle]) -> None:
        times = [c.time for c in candles]
        closes = [c.close for c in candles]
        calc = IndicatorCalculator

        if kind is IndicatorKind.SMA:
            values = calc.sma(closes, self._settings.sma.period)
            self._buffers[kind] = {"points": [_point(t, v) for t, v in zip(times, values)]}

        elif kind is IndicatorKind.RSI:
            state = prev = RsiState(self._settings.rsi.period)
            points: List[IndicatorPoint] = []
            for t, close in zip(times, closes):
                prev = state
                state, value = state.step(close)
                points.append(_point(t, value))
            self._rsi_prev, self._rsi_last = prev, state
            self._buffers[kind] = {"points": points}

        elif kind is IndicatorKind.MACD:
            cfg = self._settings.macd
            state = prev = MacdState.initial(cfg.fast, cfg.slow, cfg.signal)
            line: List[IndicatorPoint] = []
            signal: List[IndicatorPoint] = []
            hist: List[IndicatorPoint] = []
            for t, close in zip(times, closes):
                prev = state
                state, l_val, s_val, h_val = state.step(close)
                line.append(_point(t, l_val))
                signal.append(_point(t, s_val))
                hist.append(_histogram_point(t, h_val))
            self._macd_prev, self._macd_last = prev, state
            self._buffers[kind] = {"line": line, "signal": signal, "histogram": hist}

        elif kind is IndicatorKind.BOLLINGER:
            cfg = self._settings.bollinger
            uppers, middles, lowers = calc.bollinger_bands(closes, cfg.period, cfg.std_dev)
            self._buffers[kind] = {
                "upper": [_point(t, v) for t, v in zip(times, uppers)],
                "middle": [_point(t, v) for t, v in zip(times, middles)],
                "lower": [_point(t, v) for t, v in zip(times, lowers)],
            }

    # ════════════════════════════════════════════════════════════════
    #  CAMINO INCREMENTAL (solo el último índice)
    # ════════════════════════════════════════════════════════════════

    def _aligned_for(self, kind: UpdateKind, n: int) -> bool:
        """Los buffers están listos para actualizar solo la cola."""
        expected = n if kind is UpdateKind.REVISION else n - 1
        for enabled in self._settings.enabled_kinds():
            buffers = self._buffers.get(enabled)
            if buffers is None:
                return False
            if any(len(points) != expected for points in buffers.values()):
                return False
        return True

    def _compute_last(
        self, kind: IndicatorKind, candles: Sequence[Candle], update: UpdateKind,
    ) -> None:
        last = candles[-1]
        index = len(candles) - 1
        buffers = self._buffers[kind]
        appending = update is UpdateKind.APPEND

        def put(name: str, point: IndicatorPoint) -> None:
            if appending:
                buffers[name].append(point)
            else:
                buffers[name][-1] = point

        if kind is IndicatorKind.SMA:
            closes = [c.close for c in candles]
            value = IndicatorCalculator.sma_at(closes, index, self._settings.sma.period)
            put("points", _point(last.time, value))

        elif kind is IndicatorKind.RSI:
            if appending:
                self._rsi_prev = self._rsi_last
            self._rsi_last, value = self._rsi_prev.step(last.close)
            put("points", _point(last.time, value))

        elif kind is IndicatorKind.MACD:
            if appending:
                self._macd_prev = self._macd_last
            self._macd_last, l_val, s_val, h_val = self._macd_prev.step(last.close)
            put("line", _point(last.time, l_val))
            put("signal", _point(last.time, s_val))
            put("histogram", _histogram_point(last.time, h_val))

        elif kind is IndicatorKind.BOLLINGER:
            cfg = self._settings.bollinger
            closes = [c.close for c in candles]
            bands = IndicatorCalculator.bollinger_at(closes, index, cfg.period, cfg.std_dev)
            upper, middle, lower = bands if bands is not None else (None, None, None)
            put("upper", _point(last.time, upper))
            put("middle", _point(last.time, middle))
            put("lower", _point(last.time, lower))

    # ════════════════════════════════════════════════════════════════
    #  PUBLICACIÓN
    # ════════════════════════════════════════════════════════════════

    def _publish(self) -> IndicatorSet:
        """Congela los buffers en un IndicatorSet inmutable."""
        mapping: Dict[str, IndicatorSeries] = {}
        for kind in self._settings.enabled_kinds():
            buffers = self._buffers.get(kind)
            if buffers is None:
                continue
            if kind in (IndicatorKind.SMA, IndicatorKind.RSI):
                mapping[kind.value] = LineSeries(tuple(buffers["points"]))
            elif kind is IndicatorKind.MACD:
                mapping[kind.value] = MacdSeries(
                    tuple(buffers["line"]),
                    tuple(buffers["signal"]),
                    tuple(buffers["histogram"]),
                )
            else:
                mapping[kind.value] = BollingerSeries(
                    tuple(buffers["upper"]),
                    tuple(buffers["middle"]),
                    tuple(buffers["lower"]),
                )
        self._current = IndicatorSet.from_mapping(mapping)
        return self._current
