"""
ChartSage – Application Port: Candle Feed
==========================================
Interfaz para obtener velas de mercado.

Los casos de uso y la sesión de gráfico piden datos; la infraestructura
decide CÓMO obtenerlos (REST + WebSocket de Binance, fixture de tests...).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from chartsage.domain.entities.candle import Candle
from chartsage.domain.exceptions.domain_errors import StreamDropped

CandleCallback = Callable[[Candle], None]
DropCallback = Callable[[StreamDropped], None]


class CandleSubscription(ABC):
    """Conexión de streaming viva para un símbolo/intervalo."""

    @abstractmethod
    def close(self) -> None:
        """
        Libera la conexión.

        Idempotente. Tras retornar no se entrega ningún callback más:
        un mensaje que llegue después se descarta.
        """
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        pass


class ICandleFeed(ABC):
    """
    Interfaz del feed de velas.

    IMPLEMENTACIONES POSIBLES:
    - BinanceCandleFeed (REST + stream en tiempo real)
    - Feeds en memoria para tests
    """

    @abstractmethod
    async def fetch_history(
        self,
        symbol: str,
        interval: str,
        limit: int = 200,
    ) -> List[Candle]:
        """
        Obtiene velas históricas.

        Args:
            symbol: Par (e.g. "BTCUSDT")
            interval: Intervalo (e.g. "1h")
            limit: Número máximo de velas

        Returns:
            Lista de velas ordenadas por time ASC

        Raises:
            FeedUnavailable: respuesta no-2xx, error de red o payload inválido
        """
        pass

    @abstractmethod
    def subscribe(
        self,
        symbol: str,
        interval: str,
        on_candle: CandleCallback,
        on_drop: Optional[DropCallback] = None,
    ) -> CandleSubscription:
        """
        Abre el stream de klines y entrega cada vela a `on_candle`.

        Un cierre inesperado se notifica UNA vez a `on_drop`.
        Debe llamarse dentro de un event loop en marcha.
        """
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Libera los recursos compartidos del feed (cliente HTTP)."""
        pass
