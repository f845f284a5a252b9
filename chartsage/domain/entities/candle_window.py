"""
ChartSage – Domain Entity: Candle Window
=========================================
Ventana deslizante de capacidad fija sobre las velas de UNA selección
símbolo/intervalo.

INVARIANTES:
- `time` estrictamente creciente.
- len(window) <= capacity.

CLASIFICACIÓN DE UNA VELA ENTRANTE (apply):
- REVISION → mismo `time` que la última: se sustituye en sitio.
- APPEND   → `time` posterior: se añade; si la ventana está llena se
             expulsa antes la más antigua (la longitud se conserva).
- STALE    → `time` anterior a la última: se ignora.

PROTECCIÓN DE MEMORIA:
- collections.deque con maxlen → expulsión O(1).
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Iterable, Iterator, Optional, Tuple

from chartsage.domain.entities.candle import Candle
from chartsage.domain.exceptions.domain_errors import ValidationError


class UpdateKind(str, Enum):
    REVISION = "revision"
    APPEND = "append"
    STALE = "stale"


@dataclass(frozen=True, slots=True)
class WindowUpdate:
    """Efecto de aplicar una vela a la ventana."""

    kind: UpdateKind
    candle: Candle
    evicted: Optional[Candle] = None

    @property
    def changed(self) -> bool:
        return self.kind is not UpdateKind.STALE


class CandleWindow:
    """Serie ordenada y acotada de velas."""

    def __init__(self, capacity: int = 200, candles: Iterable[Candle] = ()) -> None:
        if capacity <= 0:
            raise ValidationError("capacity debe ser > 0", field="capacity", value=capacity)
        self._capacity = capacity
        self._candles: Deque[Candle] = deque(maxlen=capacity)
        for candle in candles:
            self.apply(candle)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def last(self) -> Optional[Candle]:
        return self._candles[-1] if self._candles else None

    @property
    def is_full(self) -> bool:
        return len(self._candles) == self._capacity

    def apply(self, candle: Candle) -> WindowUpdate:
        """Aplica una vela del feed y devuelve qué cambió."""
        last = self.last

        if last is not None and candle.time == last.time:
            self._candles[-1] = candle
            return WindowUpdate(UpdateKind.REVISION, candle)

        if last is not None and candle.time < last.time:
            return WindowUpdate(UpdateKind.STALE, candle)

        evicted = None
        if self.is_full:
            evicted = self._candles.popleft()
        self._candles.append(candle)
        return WindowUpdate(UpdateKind.APPEND, candle, evicted)

    def candles(self) -> Tuple[Candle, ...]:
        """Copia inmutable del contenido actual (más antigua primero)."""
        return tuple(self._candles)

    def closes(self) -> list[float]:
        return [c.close for c in self._candles]

    def __len__(self) -> int:
        return len(self._candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(tuple(self._candles))
