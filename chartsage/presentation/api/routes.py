"""
ChartSage – API Routes (FastAPI)
=================================
Endpoints REST y WebSocket para el frontend.

Endpoints disponibles:
  WS   /ws/chart               → sesión de gráfico en vivo
  GET  /api/health             → health check
  GET  /api/markets            → pares, intervalos y config por defecto
  GET  /api/candles/{symbol}   → velas históricas + series de indicadores
  POST /api/analysis           → análisis del modelo sobre el gráfico
  GET  /api/history            → historial paginado del usuario

ERRORES:
  Los DomainError se traducen a status HTTP con cuerpo `to_dict()`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Tuple

from fastapi import APIRouter, Header, Query, WebSocket
from fastapi.responses import JSONResponse

from chartsage.application.dto.analysis_dto import AnalysisRequestSchema
from chartsage.application.services.indicator_engine import IndicatorEngine
from chartsage.application.use_cases.request_analysis_usecase import RequestAnalysisUseCase
from chartsage.domain.entities.analysis import AnalysisRequest
from chartsage.domain.entities.candle import Candle
from chartsage.domain.exceptions.domain_errors import DomainError, Unauthenticated, ValidationError
from chartsage.domain.value_objects.indicator_config import IndicatorSettings
from chartsage.domain.value_objects.timeframe import interval_seconds
from chartsage.presentation.websocket.chart_stream import ChartStreamHandler
from chartsage.shared.logging.logger import get_logger

logger = get_logger("api.routes")

router = APIRouter()

# Contenedor inyectado desde main.py
_container = None

ERROR_STATUS = {
    "VALIDATION_ERROR": 400,
    "MISSING_CHART_IMAGE": 400,
    "UNAUTHENTICATED": 401,
    "ANALYSIS_FAILED": 502,
    "SCHEMA_MISMATCH": 502,
    "FEED_UNAVAILABLE": 503,
    "PERSISTENCE_FAILED": 503,
}


def init_routes(container) -> None:
    """Inyectar el contenedor desde main.py al arrancar."""
    global _container
    _container = container


def error_response(error: DomainError) -> JSONResponse:
    return JSONResponse(status_code=ERROR_STATUS.get(error.code, 500), content=error.to_dict())


def _not_ready() -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": "NOT_READY", "message": "Server not ready"})


def resolve_owner(token: Optional[str]) -> Optional[str]:
    """`sub` del token, o None si falta o no es válido."""
    if not token or _container is None:
        return None
    try:
        claims = _container.token_validator.validate(token)
    except Unauthenticated as e:
        logger.info("Token rechazado: %s", e.message)
        return None
    return claims.get("sub")


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


# ─── WebSocket endpoint de sesión de gráfico ──────────────────────────

@router.websocket("/ws/chart")
async def chart_stream(
    websocket: WebSocket,
    symbol: Optional[str] = None,
    interval: Optional[str] = None,
    token: Optional[str] = None,
) -> None:
    """
    Una sesión de gráfico por conexión. El ciclo de vida completo
    (select / configure / analyze) lo gestiona ChartStreamHandler.
    """
    if _container is None:
        await websocket.close(code=1011, reason="Server not ready")
        return

    settings = _container.settings
    handler = ChartStreamHandler(
        websocket,
        _container,
        owner_id=resolve_owner(token),
        symbol=symbol or settings.default_symbol,
        interval=interval or settings.default_interval,
    )
    await handler.run()


# ─── REST endpoints de estado ──────────────────────────────────────────

@router.get("/api/health")
async def health_check() -> dict:
    """Health check para monitoreo."""
    return {"status": "ok", "service": "chartsage"}


@router.get("/api/markets")
async def markets():
    """Catálogo de mercados e intervalos soportados."""
    if _container is None:
        return _not_ready()
    settings = _container.settings
    return {
        "symbols": settings.symbols,
        "intervals": settings.intervals,
        "higherTimeframes": settings.higher_timeframes,
        "defaultSymbol": settings.default_symbol,
        "defaultInterval": settings.default_interval,
        "indicatorDefaults": IndicatorSettings().to_dict(),
    }


@router.get("/api/candles/{symbol}")
async def get_candles(
    symbol: str,
    interval: Optional[str] = Query(default=None, description="Intervalo de vela (5m … 1w)"),
    limit: int = Query(default=200, ge=1, le=1000, description="Número de velas"),
):
    """Velas históricas de un símbolo con las series de indicadores por defecto."""
    if _container is None:
        return _not_ready()
    interval = interval or _container.settings.default_interval
    try:
        interval_seconds(interval)
        candles = await _container.candle_feed.fetch_history(symbol.upper(), interval, limit)
    except DomainError as e:
        return error_response(e)

    indicators = IndicatorEngine().recompute(candles)
    return {
        "symbol": symbol.upper(),
        "interval": interval,
        "count": len(candles),
        "candles": [c.to_dict() for c in candles],
        "indicators": indicators.to_dict(),
    }


# ─── Análisis ──────────────────────────────────────────────────────────

@router.post("/api/analysis")
async def request_analysis(
    body: AnalysisRequestSchema,
    authorization: Optional[str] = Header(default=None),
):
    """
    Análisis del gráfico actual.

    Las precondiciones (imagen, usuario) se comprueban antes de cualquier
    llamada de red, incluida la del marco temporal superior.
    """
    if _container is None:
        return _not_ready()

    owner_id = resolve_owner(_bearer(authorization))
    try:
        RequestAnalysisUseCase.check_preconditions(body.chartDataUri, owner_id)
        interval_seconds(body.interval)

        indicator_settings = (
            body.indicatorConfig.to_domain() if body.indicatorConfig else IndicatorSettings()
        )
        candles = _chart_candles(body)
        indicators = IndicatorEngine(indicator_settings).recompute(candles)
        higher = await _container.higher_timeframe_service.context(
            body.symbol, body.interval, body.higherTimeframe,
        )
    except DomainError as e:
        return error_response(e)

    request = AnalysisRequest(
        chart_image=body.chartDataUri,
        symbol=body.symbol,
        interval=body.interval,
        candles=candles,
        indicators=indicators.snapshot(),
        indicator_settings=indicator_settings,
        higher_timeframe=higher,
        question=body.question,
        prior_analysis=body.existingAnalysis,
    )
    outcome = await _container.request_analysis_usecase.execute(request, owner_id)
    if not outcome.success:
        return JSONResponse(
            status_code=ERROR_STATUS.get(outcome.error_code, 500), content=outcome.to_dict(),
        )
    return outcome.to_dict()


# ─── Historial ─────────────────────────────────────────────────────────

@router.get("/api/history")
async def history(
    limit: Optional[int] = Query(default=None, ge=1, description="Entradas por página"),
    cursor: Optional[str] = Query(default=None, description="nextCursor de la página anterior"),
    authorization: Optional[str] = Header(default=None),
):
    """Historial del usuario, más reciente primero."""
    if _container is None:
        return _not_ready()

    owner_id = resolve_owner(_bearer(authorization))
    try:
        before = _parse_cursor(cursor)
        page = await _container.get_review_history_usecase().execute(owner_id, limit, before)
    except DomainError as e:
        return error_response(e)
    return page.to_dict()


def _parse_cursor(cursor: Optional[str]) -> Optional[datetime]:
    if not cursor:
        return None
    # "+00:00" llega como " 00:00" si el cliente no codifica la query
    text = cursor.strip().replace(" ", "+").replace("Z", "+00:00")
    try:
        moment = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(f"Cursor inválido: {cursor!r}", field="cursor", value=cursor) from e
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _chart_candles(body: AnalysisRequestSchema) -> Tuple[Candle, ...]:
    """Velas del gráfico: no vacías y con `time` estrictamente creciente."""
    if not body.ohlcvData:
        raise ValidationError("Chart data not available", field="ohlcvData")
    candles = tuple(c.to_entity() for c in body.ohlcvData)
    for prev, candle in zip(candles, candles[1:]):
        if candle.time <= prev.time:
            raise ValidationError(
                f"ohlcvData desordenado o duplicado en time={candle.time}",
                field="ohlcvData", value=candle.time,
            )
    return candles
