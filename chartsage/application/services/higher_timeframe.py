"""
ChartSage – Higher Timeframe Context
=====================================
Determina la tendencia primaria en un marco temporal superior: el precio
actual respecto a la SMA(20) de ese marco. El prompt del análisis solo
admite señales alineadas con esa tendencia.

Si el feed falla o no hay datos suficientes, el contexto se omite
(el análisis sigue sin filtro de tendencia).
"""

from __future__ import annotations

from typing import Optional

from chartsage.application.ports.market_data_provider import ICandleFeed
from chartsage.domain.entities.analysis import HigherTimeframeContext
from chartsage.domain.exceptions.domain_errors import FeedUnavailable, ValidationError
from chartsage.domain.services.indicator_calculator import IndicatorCalculator
from chartsage.domain.value_objects.timeframe import is_higher_timeframe
from chartsage.shared.logging.logger import get_logger

logger = get_logger("higher_timeframe")


class HigherTimeframeService:

    def __init__(self, feed: ICandleFeed, sma_period: int = 20, limit: int = 200) -> None:
        self._feed = feed
        self._sma_period = sma_period
        self._limit = limit

    async def context(
        self,
        symbol: str,
        interval: str,
        timeframe: Optional[str],
    ) -> Optional[HigherTimeframeContext]:
        """
        Contexto de tendencia para `timeframe`, o None si no aplica.

        Raises:
            ValidationError: `timeframe` no es más largo que `interval`
        """
        if not timeframe:
            return None
        if not is_higher_timeframe(timeframe, interval):
            raise ValidationError(
                f"{timeframe} no es un marco temporal superior a {interval}",
                field="higher_timeframe", value=timeframe,
            )

        try:
            candles = await self._feed.fetch_history(symbol, timeframe, self._limit)
        except FeedUnavailable as e:
            logger.warning("Contexto %s omitido para %s: %s", timeframe, symbol, e.message)
            return None

        closes = [c.close for c in candles]
        sma = IndicatorCalculator.sma_at(closes, len(closes) - 1, self._sma_period)
        if sma is None:
            logger.info(
                "Contexto %s omitido para %s: %d velas < SMA(%d)",
                timeframe, symbol, len(closes), self._sma_period,
            )
            return None

        above = closes[-1] > sma
        logger.info(
            "Tendencia %s %s: close=%.8g sma%d=%.8g → %s",
            symbol, timeframe, closes[-1], self._sma_period, sma,
            "alcista" if above else "bajista",
        )
        return HigherTimeframeContext(timeframe=timeframe, price_above_sma=above)
