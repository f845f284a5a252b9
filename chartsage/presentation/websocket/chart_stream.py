"""
ChartSage – Chart Stream Handler (WebSocket por conexión)
==========================================================
Gestiona UNA conexión WebSocket del frontend: su ChartSession, los
cambios de configuración y las peticiones de análisis.

PROTOCOLO:
  Cliente → servidor (JSON):
    {"action": "select",    "symbol": "ETHUSDT", "interval": "4h"}
    {"action": "configure", "indicators": {...IndicatorSettingsSchema...}}
    {"action": "analyze",   "higherTimeframe": "1d", "question": "...",
                            "existingAnalysis": "..."}
  Servidor → cliente:
    {"type": "view",     "data": ChartView}
    {"type": "status",   "data": {"state": "..."}}
    {"type": "analysis", "data": AnalysisOutcome}
    {"type": "error",    "data": DomainError}

NO BLOQUEA EL LOOP:
- Los callbacks del stream solo marcan "hay vista nueva"; un único task
  sender envía la vista MÁS RECIENTE (latest-only). Varias velas entre
  dos envíos se colapsan en uno.
- El snapshot PNG se renderiza en un thread (kaleido es bloqueante).
- Cada análisis corre en su propio task. Un análisis sustituido por otro
  más reciente (o por un cambio de símbolo) se ignora al llegar; al
  cerrar se cancelan TODOS los que sigan en vuelo.
- Si el sender muere (envío fallido o timeout) no se encola nada más.

Ninguna excepción cruza la frontera del WebSocket: todo se envía como
mensaje `error` o `analysis` fallido.
"""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Any, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from chartsage.application.dto.analysis_dto import IndicatorSettingsSchema
from chartsage.application.services.chart_session import ChartSession, ChartView
from chartsage.application.use_cases.request_analysis_usecase import (
    AnalysisOutcome,
    RequestAnalysisUseCase,
)
from chartsage.domain.exceptions.domain_errors import DomainError, ValidationError
from chartsage.domain.value_objects.indicator_config import IndicatorSettings
from chartsage.domain.value_objects.timeframe import interval_seconds
from chartsage.shared.logging.logger import get_logger

logger = get_logger("ws.chart_stream")

_VIEW = object()   # marcador en la cola de salida: "enviar la vista actual"
_CLOSE = object()


class ChartStreamHandler:
    """Ciclo de vida de una conexión /ws/chart."""

    def __init__(
        self,
        websocket: WebSocket,
        container: Any,
        owner_id: Optional[str],
        symbol: str,
        interval: str,
        send_timeout: float = 5.0,
    ) -> None:
        self._ws = websocket
        self._container = container
        self._owner_id = owner_id
        self._symbol = symbol.upper()
        self._interval = interval
        self._send_timeout = send_timeout

        self._settings = IndicatorSettings()
        self._session: Optional[ChartSession] = None
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._view_queued = False
        self._sender_task: Optional[asyncio.Task] = None
        self._analysis_tasks: Set[asyncio.Task] = set()
        self._sender_alive = False
        self._generation = 0
        self._closed = False

    @property
    def session(self) -> Optional[ChartSession]:
        return self._session

    # ════════════════════════════════════════════════════════════════
    #  CICLO DE VIDA
    # ════════════════════════════════════════════════════════════════

    async def run(self) -> None:
        """Acepta la conexión y procesa acciones hasta la desconexión."""
        await self._ws.accept()
        self._sender_alive = True
        self._sender_task = asyncio.create_task(self._sender(), name="ws-chart-sender")
        logger.info("Cliente WS conectado (owner=%s)", self._owner_id or "-")
        try:
            try:
                await self._select(self._symbol, self._interval)
            except DomainError as e:
                self._send_error(e)
            while True:
                try:
                    raw = await self._ws.receive_text()
                except WebSocketDisconnect:
                    break
                await self._handle(raw)
        finally:
            await self._close()

    async def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        if self._session is not None:
            self._session.dispose()
        pending = list(self._analysis_tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._outbox.put_nowait(_CLOSE)
        if self._sender_task is not None:
            await asyncio.gather(self._sender_task, return_exceptions=True)
        logger.info("Cliente WS desconectado (%s %s)", self._symbol, self._interval)

    # ════════════════════════════════════════════════════════════════
    #  ACCIONES
    # ════════════════════════════════════════════════════════════════

    async def _handle(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            self._send_error(ValidationError("Mensaje no es JSON válido"))
            return
        if not isinstance(message, dict):
            self._send_error(ValidationError("Mensaje debe ser un objeto JSON"))
            return

        action = message.get("action")
        try:
            if action == "select":
                await self._select(
                    message.get("symbol") or self._symbol,
                    message.get("interval") or self._interval,
                )
            elif action == "configure":
                self._configure(message.get("indicators") or {})
            elif action == "analyze":
                self._start_analysis(message)
            else:
                raise ValidationError(f"Acción desconocida: {action!r}", field="action", value=action)
        except DomainError as e:
            self._send_error(e)

    async def _select(self, symbol: str, interval: str) -> None:
        """Sustituye la sesión actual por una nueva símbolo/intervalo."""
        interval_seconds(interval)
        if self._session is not None:
            self._session.dispose()
        # un análisis en vuelo sobre el par anterior ya no aplica
        self._generation += 1

        self._symbol, self._interval = symbol.upper(), interval
        session = self._container.create_chart_session(self._symbol, interval, self._settings)
        self._session = session
        session.add_listener(self._on_view)
        self._send({"type": "status", "data": {"state": "loading", "symbol": self._symbol, "interval": interval}})
        await session.start()

    def _configure(self, payload: dict) -> None:
        try:
            settings = IndicatorSettingsSchema.model_validate(payload).to_domain()
        except PydanticValidationError as e:
            raise ValidationError(f"Configuración de indicadores inválida ({e.error_count()} errores)") from e
        self._settings = settings
        if self._session is not None:
            self._session.reconfigure(settings)

    def _start_analysis(self, message: dict) -> None:
        if self._session is None:
            raise ValidationError("No hay sesión de gráfico activa")
        self._generation += 1
        self._send({"type": "status", "data": {"state": "analyzing"}})
        task = asyncio.create_task(
            self._analyze(self._session, self._generation, message),
            name=f"ws-analysis-{self._generation}",
        )
        self._analysis_tasks.add(task)
        task.add_done_callback(self._analysis_tasks.discard)

    async def _analyze(self, session: ChartSession, generation: int, message: dict) -> None:
        view = session.view
        try:
            png = await asyncio.to_thread(session.snapshot, view)
            chart_image = "data:image/png;base64," + base64.b64encode(png).decode("ascii")
        except Exception as e:
            logger.error("No se pudo renderizar el snapshot %s %s: %s", view.symbol, view.interval, e)
            chart_image = ""

        try:
            RequestAnalysisUseCase.check_preconditions(chart_image, self._owner_id)
            if not view.candles:
                raise ValidationError("Chart data not available", field="ohlcvData")
            higher = await self._container.higher_timeframe_service.context(
                view.symbol, view.interval, message.get("higherTimeframe"),
            )
        except DomainError as e:
            outcome = AnalysisOutcome.failed(e)
        else:
            request = session.build_request(
                chart_image,
                question=message.get("question"),
                prior_analysis=message.get("existingAnalysis"),
                higher_timeframe=higher,
                view=view,
            )
            outcome = await self._container.request_analysis_usecase.execute(request, self._owner_id)

        if generation != self._generation:
            logger.info("Análisis descartado (sustituido) %s %s", view.symbol, view.interval)
            return
        self._send({"type": "analysis", "data": outcome.to_dict()})

    # ════════════════════════════════════════════════════════════════
    #  SALIDA
    # ════════════════════════════════════════════════════════════════

    def _on_view(self, view: ChartView) -> None:
        if self._closed or not self._sender_alive or self._view_queued:
            return
        self._view_queued = True
        self._outbox.put_nowait(_VIEW)

    def _send(self, payload: dict) -> None:
        if not self._closed and self._sender_alive:
            self._outbox.put_nowait(payload)

    def _send_error(self, error: DomainError) -> None:
        logger.info("Error enviado al cliente: %s %s", error.code, error.message)
        self._send({"type": "error", "data": error.to_dict()})

    async def _sender(self) -> None:
        """Único escritor del WebSocket."""
        while True:
            item = await self._outbox.get()
            if item is _CLOSE:
                return
            if item is _VIEW:
                self._view_queued = False
                if self._session is None:
                    continue
                payload = {"type": "view", "data": self._session.view.to_dict()}
            else:
                payload = item
            try:
                await asyncio.wait_for(self._ws.send_json(payload), timeout=self._send_timeout)
            except (WebSocketDisconnect, asyncio.TimeoutError, RuntimeError) as e:
                logger.warning("Envío WS fallido, cerrando sender: %s", e)
                # sin escritor la cola ya no se vacía
                self._sender_alive = False
                self._view_queued = False
                while not self._outbox.empty():
                    self._outbox.get_nowait()
                return
