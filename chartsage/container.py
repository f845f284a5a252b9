"""
Dependency Injection Container.

Este módulo proporciona el contenedor de inyección de dependencias
que gestiona las instancias de adaptadores, repositorios y casos de uso.

Clean Architecture: este contenedor vive en la capa más externa y es el único
lugar donde se crean dependencias concretas.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

# Domain
from chartsage.domain.repositories.analysis_history_repository import IAnalysisHistoryRepository
from chartsage.domain.value_objects.indicator_config import IndicatorSettings

# Application
from chartsage.application.ports.analysis_model import IAnalysisModel
from chartsage.application.ports.chart_renderer import IChartRenderer
from chartsage.application.ports.market_data_provider import ICandleFeed
from chartsage.application.ports.token_validator import ITokenValidator
from chartsage.application.services.chart_session import ChartSession
from chartsage.application.services.higher_timeframe import HigherTimeframeService
from chartsage.application.use_cases.request_analysis_usecase import RequestAnalysisUseCase
from chartsage.application.use_cases.review_history_usecase import ReviewHistoryUseCase

# Shared
from chartsage.shared.config.settings import Settings


@dataclass
class Container:
    """
    Contenedor de Inyección de Dependencias.

    Las propiedades crean cada dependencia de forma perezosa la primera
    vez que se piden; `override()` permite sustituirlas en tests.
    """

    # Configuración
    settings: Settings = field(default_factory=Settings)

    # Ports (implementaciones concretas)
    _candle_feed: Optional[ICandleFeed] = None
    _analysis_model: Optional[IAnalysisModel] = None
    _chart_renderer: Optional[IChartRenderer] = None
    _token_validator: Optional[ITokenValidator] = None

    # Repositorios
    _history_repository: Optional[IAnalysisHistoryRepository] = None
    _db_manager: Optional[Any] = None

    # Servicios / casos de uso con estado
    _higher_timeframe_service: Optional[HigherTimeframeService] = None
    _request_analysis_usecase: Optional[RequestAnalysisUseCase] = None

    # ==================== Ports ====================

    @property
    def candle_feed(self) -> ICandleFeed:
        """Obtiene el feed de velas."""
        if self._candle_feed is None:
            from chartsage.infrastructure.external.binance_adapter import BinanceCandleFeed
            self._candle_feed = BinanceCandleFeed(self.settings)
        return self._candle_feed

    @property
    def analysis_model(self) -> IAnalysisModel:
        """Obtiene el modelo de análisis (deshabilitado si no hay API key)."""
        if self._analysis_model is None:
            from chartsage.infrastructure.llm.openai_adapter import build_analysis_model
            self._analysis_model = build_analysis_model(self.settings)
        return self._analysis_model

    @property
    def chart_renderer(self) -> IChartRenderer:
        if self._chart_renderer is None:
            from chartsage.infrastructure.rendering.plotly_renderer import PlotlyChartRenderer
            self._chart_renderer = PlotlyChartRenderer(
                width=self.settings.chart_width, height=self.settings.chart_height,
            )
        return self._chart_renderer

    @property
    def token_validator(self) -> ITokenValidator:
        if self._token_validator is None:
            from chartsage.infrastructure.auth.jwt_validator import JwtTokenValidator
            self._token_validator = JwtTokenValidator(
                secret=self.settings.jwt_secret,
                algorithm=self.settings.jwt_algorithm,
                audience=self.settings.jwt_audience,
            )
        return self._token_validator

    # ==================== Repositories ====================

    @property
    def db_manager(self):
        """DatabaseManager (solo si db_enabled)."""
        if self._db_manager is None:
            from chartsage.infrastructure.persistence.database import DatabaseManager
            self._db_manager = DatabaseManager(self.settings)
        return self._db_manager

    @property
    def history_repository(self) -> IAnalysisHistoryRepository:
        """Historial SQL si db_enabled, en memoria si no."""
        if self._history_repository is None:
            if self.settings.db_enabled:
                from chartsage.infrastructure.persistence.repositories.analysis_history_repository_impl import (
                    SqlAnalysisHistoryRepository,
                )
                self._history_repository = SqlAnalysisHistoryRepository(self.db_manager)
            else:
                from chartsage.infrastructure.persistence.repositories.in_memory_history_repository import (
                    InMemoryAnalysisHistoryRepository,
                )
                self._history_repository = InMemoryAnalysisHistoryRepository()
        return self._history_repository

    # ==================== Services / Use Cases ====================

    @property
    def higher_timeframe_service(self) -> HigherTimeframeService:
        if self._higher_timeframe_service is None:
            self._higher_timeframe_service = HigherTimeframeService(
                self.candle_feed,
                sma_period=self.settings.htf_sma_period,
                limit=self.settings.history_limit,
            )
        return self._higher_timeframe_service

    @property
    def request_analysis_usecase(self) -> RequestAnalysisUseCase:
        """
        Singleton: lleva el registro de escrituras de historial pendientes
        que el shutdown debe esperar.
        """
        if self._request_analysis_usecase is None:
            self._request_analysis_usecase = RequestAnalysisUseCase(
                model=self.analysis_model,
                history_repository=self.history_repository,
            )
        return self._request_analysis_usecase

    def get_review_history_usecase(self) -> ReviewHistoryUseCase:
        """Factory para ReviewHistoryUseCase."""
        return ReviewHistoryUseCase(
            self.history_repository,
            default_page_size=self.settings.history_page_size,
            max_page_size=self.settings.history_max_page_size,
        )

    def create_chart_session(
        self,
        symbol: str,
        interval: str,
        indicator_settings: Optional[IndicatorSettings] = None,
    ) -> ChartSession:
        """Factory: una sesión nueva por selección símbolo/intervalo."""
        return ChartSession(
            symbol=symbol,
            interval=interval,
            feed=self.candle_feed,
            renderer=self.chart_renderer,
            settings=indicator_settings,
            capacity=self.settings.window_capacity,
            history_limit=self.settings.history_limit,
        )

    # ==================== Lifecycle ====================

    async def shutdown(self) -> None:
        """Espera escrituras pendientes y libera conexiones."""
        if self._request_analysis_usecase is not None:
            await self._request_analysis_usecase.drain()
        if self._candle_feed is not None:
            await self._candle_feed.aclose()
        if self._db_manager is not None:
            await self._db_manager.close()

    def reset(self) -> None:
        """Resetea todas las instancias (útil para tests)."""
        self._candle_feed = None
        self._analysis_model = None
        self._chart_renderer = None
        self._token_validator = None
        self._history_repository = None
        self._db_manager = None
        self._higher_timeframe_service = None
        self._request_analysis_usecase = None

    def override(self, name: str, instance: Any) -> None:
        """
        Override una dependencia (útil para tests con fakes).

        Args:
            name: Nombre de la dependencia (ej: 'candle_feed')
            instance: Instancia a usar
        """
        attr_name = f"_{name}"
        if hasattr(self, attr_name):
            setattr(self, attr_name, instance)
        else:
            raise ValueError(f"Unknown dependency: {name}")


# ==================== Global Container ====================

_container: Optional[Container] = None


def get_container() -> Container:
    """Obtiene la instancia global del contenedor."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def init_container(settings: Optional[Settings] = None) -> Container:
    """
    Inicializa el contenedor con configuración específica.

    Args:
        settings: Configuración opcional. Si es None, usa valores por defecto.
    """
    global _container
    _container = Container(settings=settings or Settings())
    return _container


def reset_container() -> None:
    """Resetea el contenedor global (tests / reinicialización)."""
    global _container
    if _container is not None:
        _container.reset()
    _container = None
