"""
Binance Candle Feed Adapter.

Adapta la API pública de Binance a la interfaz ICandleFeed:
- Histórico: GET /api/v3/klines?symbol=&interval=&limit= (httpx async)
- Tiempo real: wss://stream.binance.com:9443/ws/<symbol>@kline_<interval>

Ambos formatos se normalizan a Candle (time en segundos epoch).
La reconexión queda fuera de este adaptador: un cierre inesperado se
notifica una vez vía `on_drop` y la sesión decide qué hacer.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

import httpx
from websockets.asyncio.client import connect as ws_connect

from chartsage.application.ports.market_data_provider import (
    CandleCallback,
    CandleSubscription,
    DropCallback,
    ICandleFeed,
)
from chartsage.domain.entities.candle import Candle
from chartsage.domain.exceptions.domain_errors import FeedUnavailable, StreamDropped
from chartsage.shared.config.settings import Settings
from chartsage.shared.logging.logger import get_logger

logger = get_logger("binance_adapter")


# ════════════════════════════════════════════════════════════════════
#  Parsers (puros)
# ════════════════════════════════════════════════════════════════════

def parse_rest_kline(row: Sequence[Any]) -> Candle:
    """
    Fila REST posicional:
    [openTime(ms), "open", "high", "low", "close", "volume", closeTime, ...]
    """
    return Candle(
        time=int(row[0]) // 1000,
        open=float(row[1]),
        high=float(row[2]),
        low=float(row[3]),
        close=float(row[4]),
        volume=float(row[5]),
    )


def parse_stream_message(message: Union[str, bytes, dict]) -> Optional[Tuple[Candle, bool]]:
    """
    Mensaje del stream de klines → (Candle, bucket_cerrado).

    Devuelve None para mensajes sin objeto `k` (respuestas de control).
    """
    data = json.loads(message) if isinstance(message, (str, bytes)) else message
    kline = data.get("k") if isinstance(data, dict) else None
    if not kline:
        return None
    candle = Candle(
        time=int(kline["t"]) // 1000,
        open=float(kline["o"]),
        high=float(kline["h"]),
        low=float(kline["l"]),
        close=float(kline["c"]),
        volume=float(kline["v"]),
    )
    return candle, bool(kline.get("x", False))


# ════════════════════════════════════════════════════════════════════
#  Suscripción
# ════════════════════════════════════════════════════════════════════

class BinanceSubscription(CandleSubscription):
    """Task de escucha de un stream; close() la cancela."""

    def __init__(self, symbol: str, interval: str) -> None:
        self.symbol = symbol
        self.interval = interval
        self._closed = False
        self._task: Optional[asyncio.Task] = None

    def attach(self, task: asyncio.Task) -> None:
        self._task = task

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info("Stream cerrado: %s@kline_%s", self.symbol.lower(), self.interval)


# ════════════════════════════════════════════════════════════════════
#  Feed
# ════════════════════════════════════════════════════════════════════

class BinanceCandleFeed(ICandleFeed):
    """
    Implementación de ICandleFeed sobre Binance.

    `client` y `connect` son inyectables (tests con httpx.MockTransport
    y conexiones falsas).
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
        connect: Optional[Callable[[str], Any]] = None,
    ):
        self._settings = settings
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._connect = connect or ws_connect

    def stream_url(self, symbol: str, interval: str) -> str:
        base = self._settings.binance_ws_url.rstrip("/")
        return f"{base}/{symbol.lower()}@kline_{interval}"

    # ─── Histórico ──────────────────────────────────────────────────

    async def fetch_history(
        self,
        symbol: str,
        interval: str,
        limit: int = 200,
    ) -> List[Candle]:
        params = {"symbol": symbol, "interval": interval, "limit": limit}
        try:
            response = await self._client.get(self._settings.binance_rest_url, params=params)
        except httpx.HTTPError as e:
            raise FeedUnavailable(f"Error de red pidiendo klines {symbol}: {e}", symbol=symbol) from e

        if not response.is_success:
            raise FeedUnavailable(
                f"Binance respondió {response.status_code} para {symbol} {interval}",
                symbol=symbol, status_code=response.status_code,
            )

        try:
            candles = [parse_rest_kline(row) for row in response.json()]
        except (ValueError, TypeError, IndexError) as e:
            raise FeedUnavailable(f"Payload de klines inválido para {symbol}: {e}", symbol=symbol) from e

        logger.info("Histórico %s %s: %d velas", symbol, interval, len(candles))
        return candles

    # ─── Stream ─────────────────────────────────────────────────────

    def subscribe(
        self,
        symbol: str,
        interval: str,
        on_candle: CandleCallback,
        on_drop: Optional[DropCallback] = None,
    ) -> BinanceSubscription:
        subscription = BinanceSubscription(symbol, interval)
        task = asyncio.get_running_loop().create_task(
            self._listen(subscription, on_candle, on_drop),
            name=f"kline-{symbol.lower()}-{interval}",
        )
        subscription.attach(task)
        return subscription

    async def _listen(
        self,
        subscription: BinanceSubscription,
        on_candle: CandleCallback,
        on_drop: Optional[DropCallback],
    ) -> None:
        """Escucha mensajes del WebSocket hasta close() o caída."""
        url = self.stream_url(subscription.symbol, subscription.interval)
        reason = "Stream cerrado por el servidor"
        try:
            async with self._connect(url) as ws:
                logger.info("Stream abierto: %s", url)
                async for message in ws:
                    if subscription.closed:
                        return
                    try:
                        parsed = parse_stream_message(message)
                    except (ValueError, KeyError, TypeError) as e:
                        logger.warning("Mensaje de kline inválido ignorado: %s", e)
                        continue
                    if parsed is not None:
                        on_candle(parsed[0])
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"

        if subscription.closed:
            return
        logger.warning("Stream caído %s: %s", url, reason)
        if on_drop is not None:
            on_drop(StreamDropped(reason, symbol=subscription.symbol))

    async def aclose(self) -> None:
        await self._client.aclose()
