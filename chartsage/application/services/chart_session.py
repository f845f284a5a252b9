"""
ChartSage – Chart Session
==========================
Sesión de gráfico propietaria de UNA selección símbolo/intervalo:
ventana de velas + motor de indicadores + suscripción al stream.

CICLO DE VIDA:
    session = ChartSession(...)
    await session.start()     → histórico REST + recálculo + suscripción
    ...                       → el stream revisa/añade velas
    session.reconfigure(cfg)  → re-deriva overlays cambiados
    session.dispose()         → cierra la suscripción (idempotente)

ATOMICIDAD:
- El callback del stream es SÍNCRONO: aplica la vela, actualiza los
  indicadores y publica un ChartView nuevo sin ceder el event loop.
- Velas e indicadores se publican juntos en un único ChartView inmutable
  sustituido con una sola asignación → un lector nunca ve velas e
  indicadores desalineados.
- Tras dispose() cualquier mensaje tardío se descarta.

ERRORES:
- FeedUnavailable al arrancar → se registra, la ventana queda vacía y
  los indicadores sin datos; la sesión NO se cae.
- StreamDropped → la vista se marca `stale` hasta la próxima vela.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Tuple

from chartsage.application.ports.chart_renderer import IChartRenderer
from chartsage.application.ports.market_data_provider import CandleSubscription, ICandleFeed
from chartsage.application.services.indicator_engine import IndicatorEngine
from chartsage.domain.entities.analysis import AnalysisRequest, HigherTimeframeContext
from chartsage.domain.entities.candle import Candle
from chartsage.domain.entities.candle_window import CandleWindow
from chartsage.domain.exceptions.domain_errors import FeedUnavailable, StreamDropped
from chartsage.domain.value_objects.indicator_config import IndicatorKind, IndicatorSettings
from chartsage.domain.value_objects.indicator_series import (
    IndicatorSeries,
    IndicatorSet,
    IndicatorSnapshot,
)
from chartsage.shared.logging.logger import get_logger

logger = get_logger("chart_session")


@dataclass(frozen=True, slots=True)
class ChartView:
    """Estado publicado de la sesión (velas + indicadores alineados)."""

    symbol: str
    interval: str
    candles: Tuple[Candle, ...] = ()
    indicators: IndicatorSet = field(default_factory=IndicatorSet)
    settings: IndicatorSettings = field(default_factory=IndicatorSettings)
    stale: bool = False
    feed_error: Optional[str] = None
    version: int = 0

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "interval": self.interval,
            "version": self.version,
            "stale": self.stale,
            "feedError": self.feed_error,
            "settings": self.settings.to_dict(),
            "candles": [c.to_dict() for c in self.candles],
            "indicators": self.indicators.to_dict(),
        }


ViewListener = Callable[[ChartView], None]


class ChartSession:
    """Sesión de gráfico con create → update → dispose explícito."""

    def __init__(
        self,
        symbol: str,
        interval: str,
        feed: ICandleFeed,
        renderer: Optional[IChartRenderer] = None,
        settings: Optional[IndicatorSettings] = None,
        capacity: int = 200,
        history_limit: int = 200,
    ) -> None:
        self._symbol = symbol
        self._interval = interval
        self._feed = feed
        self._renderer = renderer
        self._history_limit = history_limit
        self._window = CandleWindow(capacity)
        self._engine = IndicatorEngine(settings)
        self._subscription: Optional[CandleSubscription] = None
        self._listeners: List[ViewListener] = []
        self._disposed = False
        self._started = False
        self._view = ChartView(symbol, interval, settings=self._engine.settings)

    # ─── Propiedades ────────────────────────────────────────────────

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def interval(self) -> str:
        return self._interval

    @property
    def view(self) -> ChartView:
        return self._view

    @property
    def is_stale(self) -> bool:
        return self._view.stale

    @property
    def feed_error(self) -> Optional[str]:
        return self._view.feed_error

    @property
    def disposed(self) -> bool:
        return self._disposed

    def add_listener(self, listener: ViewListener) -> None:
        """Registra un callback síncrono que recibe cada ChartView nuevo."""
        self._listeners.append(listener)

    # ════════════════════════════════════════════════════════════════
    #  CICLO DE VIDA
    # ════════════════════════════════════════════════════════════════

    async def start(self) -> ChartView:
        """Carga el histórico, calcula indicadores y abre el stream."""
        if self._started or self._disposed:
            return self._view
        self._started = True

        feed_error = None
        try:
            history = await self._feed.fetch_history(
                self._symbol, self._interval, self._history_limit,
            )
        except FeedUnavailable as e:
            logger.error("Histórico no disponible %s %s: %s", self._symbol, self._interval, e.message)
            history = []
            feed_error = e.message

        if self._disposed:
            return self._view

        for candle in history:
            self._window.apply(candle)
        indicators = self._engine.recompute(self._window.candles())
        self._publish(indicators, feed_error=feed_error)

        self._subscription = self._feed.subscribe(
            self._symbol, self._interval, self._on_candle, self._on_drop,
        )
        logger.info(
            "Sesión iniciada %s %s: %d velas, indicadores=%s",
            self._symbol, self._interval, len(self._window), list(indicators.kinds()),
        )
        return self._view

    def dispose(self) -> None:
        """Cierra la suscripción y descarta el estado en vuelo."""
        if self._disposed:
            return
        self._disposed = True
        if self._subscription is not None:
            self._subscription.close()
        self._listeners.clear()
        logger.info("Sesión cerrada %s %s", self._symbol, self._interval)

    # ════════════════════════════════════════════════════════════════
    #  CALLBACKS DEL STREAM (síncronos)
    # ════════════════════════════════════════════════════════════════

    def _on_candle(self, candle: Candle) -> None:
        if self._disposed:
            return
        update = self._window.apply(candle)
        if not update.changed:
            logger.debug("Vela fuera de orden ignorada t=%d", candle.time)
            return
        indicators = self._engine.update(self._window.candles(), update)
        self._publish(indicators, stale=False)

    def _on_drop(self, error: StreamDropped) -> None:
        if self._disposed:
            return
        logger.warning("Stream caído %s %s: %s", self._symbol, self._interval, error.message)
        self._view = replace(self._view, stale=True, version=self._view.version + 1)
        self._notify()

    # ════════════════════════════════════════════════════════════════
    #  CONSULTAS
    # ════════════════════════════════════════════════════════════════

    def reconfigure(self, settings: IndicatorSettings) -> ChartView:
        """Aplica una config nueva re-derivando los overlays cambiados."""
        indicators = self._engine.configure(settings, self._window.candles())
        self._publish(indicators)
        return self._view

    def latest_candles(self) -> Tuple[Candle, ...]:
        return self._view.candles

    def latest_indicator_series(self, kind: IndicatorKind) -> Optional[IndicatorSeries]:
        """Serie actual del indicador, o None si está deshabilitado."""
        return self._view.indicators.get(IndicatorKind(kind).value)

    def indicator_snapshot(self) -> IndicatorSnapshot:
        return self._view.indicators.snapshot()

    def snapshot(self, view: Optional[ChartView] = None) -> bytes:
        """Imagen PNG del gráfico (por defecto, la vista actual)."""
        if self._renderer is None:
            raise RuntimeError("ChartSession sin renderer configurado")
        view = view or self._view
        return self._renderer.render(
            view.candles, view.indicators, title=f"{view.symbol} · {view.interval}",
        )

    def build_request(
        self,
        chart_image: str,
        question: Optional[str] = None,
        prior_analysis: Optional[str] = None,
        higher_timeframe: Optional[HigherTimeframeContext] = None,
        view: Optional[ChartView] = None,
    ) -> AnalysisRequest:
        """
        Congela una vista en una AnalysisRequest.

        Pasar la misma `view` usada para `snapshot()` garantiza que imagen,
        velas e indicadores de la petición describen el mismo instante.
        """
        view = view or self._view
        return AnalysisRequest(
            chart_image=chart_image,
            symbol=view.symbol,
            interval=view.interval,
            candles=view.candles,
            indicators=view.indicators.snapshot(),
            indicator_settings=view.settings,
            higher_timeframe=higher_timeframe,
            question=question,
            prior_analysis=prior_analysis,
        )

    # ─── Publicación ────────────────────────────────────────────────

    def _publish(
        self,
        indicators: IndicatorSet,
        stale: Optional[bool] = None,
        feed_error: Optional[str] = None,
    ) -> None:
        previous = self._view
        self._view = ChartView(
            symbol=self._symbol,
            interval=self._interval,
            candles=self._window.candles(),
            indicators=indicators,
            settings=self._engine.settings,
            stale=previous.stale if stale is None else stale,
            feed_error=feed_error if feed_error is not None else previous.feed_error,
            version=previous.version + 1,
        )
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._view)
