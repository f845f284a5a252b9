"""
ChartSage – Domain Service: Indicator Calculator
==================================================
Cálculos de indicadores técnicos puros sobre series de cierres.

Cada función de serie devuelve una lista alineada 1:1 con la entrada,
con None en los índices de warm-up. Nunca lanza por falta de datos.

RSI y MACD se expresan como ESTADOS de recurrencia inmutables
(RsiState, EmaState, MacdState) con un método `step(close)`. La serie
completa es un fold de esos pasos; el cálculo incremental de la última
vela repite exactamente el mismo paso desde el estado anterior, por lo
que ambos caminos producen resultados idénticos bit a bit.

Sin dependencias externas (solo math).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple


# ════════════════════════════════════════════════════════════════════
#  ESTADOS DE RECURRENCIA
# ════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class EmaState:
    """
    EMA con semilla = primer elemento.

    EMA_0 = x_0
    EMA_t = x_t × k + EMA_{t-1} × (1 − k),   k = 2 / (period + 1)
    """

    period: int
    value: Optional[float] = None

    def step(self, x: float) -> "EmaState":
        if self.value is None:
            return EmaState(self.period, x)
        k = 2.0 / (self.period + 1)
        return EmaState(self.period, x * k + self.value * (1 - k))


@dataclass(frozen=True, slots=True)
class RsiState:
    """
    RSI de Wilder.

    Semilla: suma de deltas positivos / negativos (en valor absoluto)
    de los índices 1..period; primer valor en el índice `period`.
    Después:
        avg_gain = (avg_gain × (period − 1) + gain) / period
        avg_loss = (avg_loss × (period − 1) + loss) / period
    avg_loss == 0 → RSI = 100.
    """

    period: int
    count: int = 0
    prev_close: float = 0.0
    gain_sum: float = 0.0
    loss_sum: float = 0.0
    avg_gain: float = 0.0
    avg_loss: float = 0.0

    def step(self, close: float) -> Tuple["RsiState", Optional[float]]:
        p = self.period
        if self.count == 0:
            return RsiState(p, 1, close), None

        change = close - self.prev_close
        gain = max(change, 0.0)
        loss = max(-change, 0.0)
        index = self.count

        if index < p:
            return RsiState(
                p, index + 1, close,
                self.gain_sum + gain, self.loss_sum + loss,
            ), None

        if index == p:
            gain_sum = self.gain_sum + gain
            loss_sum = self.loss_sum + loss
            avg_gain = gain_sum / p
            avg_loss = loss_sum / p
        else:
            gain_sum = self.gain_sum
            loss_sum = self.loss_sum
            avg_gain = (self.avg_gain * (p - 1) + gain) / p
            avg_loss = (self.avg_loss * (p - 1) + loss) / p

        state = RsiState(p, index + 1, close, gain_sum, loss_sum, avg_gain, avg_loss)
        return state, _rsi_from_averages(avg_gain, avg_loss)


@dataclass(frozen=True, slots=True)
class MacdState:
    """
    MACD(fast, slow, signal) paso a paso.

    line[i]   = EMA_fast[i] − EMA_slow[i]          para i ≥ slow − 1
    signal    = EMA(signal) de los valores de `line` (sin el prefijo vacío);
                su punto 0 se publica en el índice slow − 1 + signal − 1,
                es decir signal[i] = EMA(line[0 .. i − (slow + signal − 2)])
    histogram = line − signal

    `queued` retiene las últimas signal − 1 líneas aún no consumidas por
    la EMA de la señal (desfase de calendario de la señal).
    """

    fast: EmaState
    slow: EmaState
    signal: EmaState
    count: int = 0
    queued: Tuple[float, ...] = ()

    @classmethod
    def initial(cls, fast: int, slow: int, signal: int) -> "MacdState":
        return cls(EmaState(fast), EmaState(slow), EmaState(signal))

    def step(
        self, close: float,
    ) -> Tuple["MacdState", Optional[float], Optional[float], Optional[float]]:
        fast = self.fast.step(close)
        slow = self.slow.step(close)
        index = self.count

        if index < self.slow.period - 1:
            return MacdState(fast, slow, self.signal, index + 1), None, None, None

        line = fast.value - slow.value
        queued = self.queued + (line,)
        signal_state = self.signal
        if len(queued) >= self.signal.period:
            signal_state = signal_state.step(queued[0])
            queued = queued[1:]
        state = MacdState(fast, slow, signal_state, index + 1, queued)

        if signal_state.value is None:
            return state, line, None, None

        signal = signal_state.value
        return state, line, signal, line - signal


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


# ════════════════════════════════════════════════════════════════════
#  CALCULADORA
# ════════════════════════════════════════════════════════════════════

class IndicatorCalculator:
    """
    Calculadora de indicadores técnicos puros.

    RESPONSABILIDAD:
    Implementar las fórmulas matemáticas de indicadores.
    NO mantiene estado (stateless).

    Para el recálculo incremental con checkpoints, ver IndicatorEngine
    en la capa de application.
    """

    @staticmethod
    def sma_at(closes: Sequence[float], index: int, period: int) -> Optional[float]:
        """SMA de la ventana [index − period + 1, index], o None."""
        if index < period - 1 or index >= len(closes):
            return None
        return math.fsum(closes[index - period + 1:index + 1]) / period

    @staticmethod
    def sma(closes: Sequence[float], period: int) -> List[Optional[float]]:
        """
        Serie SMA completa.

        FÓRMULA:
        SMA_i = Σ close[i−p+1..i] / p     para i ≥ p − 1

        Cada valor depende solo de su propia ventana (localidad).
        """
        return [IndicatorCalculator.sma_at(closes, i, period) for i in range(len(closes))]

    @staticmethod
    def ema(values: Sequence[float], period: int) -> List[float]:
        """EMA con semilla = primer elemento (sin warm-up promediado)."""
        state = EmaState(period)
        out: List[float] = []
        for x in values:
            state = state.step(x)
            out.append(state.value)
        return out

    @staticmethod
    def rsi(closes: Sequence[float], period: int = 14) -> List[Optional[float]]:
        """
        Serie RSI (Wilder).

        Menos de period + 1 cierres → todo None.
        Rango garantizado [0, 100].
        """
        state = RsiState(period)
        out: List[Optional[float]] = []
        for close in closes:
            state, value = state.step(close)
            out.append(value)
        return out

    @staticmethod
    def macd(
        closes: Sequence[float],
        fast: int = 12,
        slow: int = 26,
        signal: int = 9,
    ) -> Tuple[List[Optional[float]], List[Optional[float]], List[Optional[float]]]:
        """
        Series MACD (line, signal, histogram).

        histogram[i] == line[i] − signal[i] exactamente en todo índice calculable.
        """
        state = MacdState.initial(fast, slow, signal)
        lines: List[Optional[float]] = []
        signals: List[Optional[float]] = []
        hists: List[Optional[float]] = []
        for close in closes:
            state, line, sig, hist = state.step(close)
            lines.append(line)
            signals.append(sig)
            hists.append(hist)
        return lines, signals, hists

    @staticmethod
    def population_std_dev(values: Sequence[float], mean: Optional[float] = None) -> float:
        """σ poblacional (divide por N, no N − 1)."""
        if not values:
            return 0.0
        if mean is None:
            mean = math.fsum(values) / len(values)
        variance = math.fsum((v - mean) ** 2 for v in values) / len(values)
        return math.sqrt(variance)

    @staticmethod
    def bollinger_at(
        closes: Sequence[float], index: int, period: int, std_dev: float,
    ) -> Optional[Tuple[float, float, float]]:
        """(upper, middle, lower) en `index`, o None durante el warm-up."""
        middle = IndicatorCalculator.sma_at(closes, index, period)
        if middle is None:
            return None
        window = closes[index - period + 1:index + 1]
        sd = IndicatorCalculator.population_std_dev(window, middle)
        return middle + std_dev * sd, middle, middle - std_dev * sd

    @staticmethod
    def bollinger_bands(
        closes: Sequence[float],
        period: int = 20,
        std_dev: float = 2.0,
    ) -> Tuple[List[Optional[float]], List[Optional[float]], List[Optional[float]]]:
        """
        Series de Bandas de Bollinger.

        FÓRMULA:
        Middle = SMA(period)
        Upper  = Middle + std_dev × σ
        Lower  = Middle − std_dev × σ
        """
        uppers: List[Optional[float]] = []
        middles: List[Optional[float]] = []
        lowers: List[Optional[float]] = []
        for i in range(len(closes)):
            bands = IndicatorCalculator.bollinger_at(closes, i, period, std_dev)
            if bands is None:
                uppers.append(None)
                middles.append(None)
                lowers.append(None)
            else:
                uppers.append(bands[0])
                middles.append(bands[1])
                lowers.append(bands[2])
        return uppers, middles, lowers
