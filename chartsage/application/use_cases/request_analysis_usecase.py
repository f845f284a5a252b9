"""
Request Analysis Use Case.

Orquesta una petición de análisis: precondiciones locales, llamada al
modelo externo, validación de esquema y persistencia del historial.

ERRORES → RESULTADO ETIQUETADO (nunca se lanza hacia la UI):
    MissingChartImage / Unauthenticated → sin llamada al modelo
    AnalysisFailed                      → fallo del modelo
    SchemaMismatch                      → respuesta fuera de esquema
    PersistenceFailed                   → solo se loguea; no afecta al resultado
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Optional, Set

from pydantic import ValidationError as PydanticValidationError

from chartsage.application.dto.analysis_dto import AnalysisResponseSchema
from chartsage.application.ports.analysis_model import IAnalysisModel
from chartsage.application.prompts import SYSTEM_PROMPT, build_user_prompt
from chartsage.domain.entities.analysis import AnalysisRequest, AnalysisResult, HistoryEntry
from chartsage.domain.exceptions.domain_errors import (
    AnalysisFailed,
    DomainError,
    MissingChartImage,
    PersistenceFailed,
    SchemaMismatch,
    Unauthenticated,
)
from chartsage.domain.repositories.analysis_history_repository import IAnalysisHistoryRepository
from chartsage.shared.logging.logger import get_logger

logger = get_logger("request_analysis")

DATA_URI_PREFIX = "data:image/"


@dataclass
class AnalysisOutcome:
    """Resultado etiquetado de una petición de análisis."""
    success: bool
    result: Optional[AnalysisResult] = None
    error_code: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, result: AnalysisResult) -> "AnalysisOutcome":
        return cls(success=True, result=result)

    @classmethod
    def failed(cls, error: DomainError) -> "AnalysisOutcome":
        return cls(success=False, error_code=error.code, message=error.message)

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "data": self.result.to_dict()}
        return {"success": False, "error": self.error_code, "message": self.message}


def parse_model_response(raw: str) -> AnalysisResult:
    """
    Valida el texto del modelo contra AnalysisResponseSchema.

    Tolera un bloque ```json ... ``` alrededor del objeto.

    Raises:
        SchemaMismatch: JSON inválido o campos que no cumplen el esquema
    """
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaMismatch(f"La respuesta del modelo no es JSON: {e.msg}", raw=raw) from e
    try:
        return AnalysisResponseSchema.model_validate(payload).to_entity()
    except PydanticValidationError as e:
        raise SchemaMismatch(
            f"La respuesta del modelo no cumple el esquema ({e.error_count()} errores)", raw=raw,
        ) from e


class RequestAnalysisUseCase:
    """
    Caso de uso: pedir un análisis de mercado al modelo.

    DEPENDE SOLO DE:
    - IAnalysisModel (puerto al LLM)
    - IAnalysisHistoryRepository (interfaz de repositorio)
    """

    def __init__(
        self,
        model: IAnalysisModel,
        history_repository: IAnalysisHistoryRepository,
    ):
        self._model = model
        self._history = history_repository
        self._pending: Set[asyncio.Task] = set()

    async def execute(
        self,
        request: AnalysisRequest,
        owner_id: Optional[str],
    ) -> AnalysisOutcome:
        """
        Ejecuta el análisis.

        Args:
            request: Bundle inmutable con imagen, velas e indicadores
            owner_id: Usuario autenticado (None/vacío → Unauthenticated)

        Returns:
            AnalysisOutcome con el resultado o el código de error
        """
        try:
            self.check_preconditions(request.chart_image, owner_id)
            result = await self._analyze(request)
        except (MissingChartImage, Unauthenticated) as e:
            logger.info("Análisis bloqueado: %s", e.code)
            return AnalysisOutcome.failed(e)
        except AnalysisFailed as e:
            logger.error("Análisis fallido %s %s: %s", request.symbol, request.interval, e.message)
            return AnalysisOutcome.failed(e)

        if not request.is_follow_up:
            self._schedule_history(request, result, owner_id)

        logger.info(
            "Análisis completado %s %s (follow_up=%s)",
            request.symbol, request.interval, request.is_follow_up,
        )
        return AnalysisOutcome.ok(result)

    async def drain(self) -> None:
        """Espera las escrituras de historial pendientes (shutdown / tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    # ════════════════════════════════════════════════════════════════
    #  Pasos
    # ════════════════════════════════════════════════════════════════

    @staticmethod
    def check_preconditions(chart_image: Optional[str], owner_id: Optional[str]) -> None:
        """
        Precondiciones locales, sin ninguna llamada de red.

        Raises:
            MissingChartImage: imagen vacía o que no es un data URI de imagen
            Unauthenticated: sin usuario
        """
        image = (chart_image or "").strip()
        if not image or not image.startswith(DATA_URI_PREFIX):
            raise MissingChartImage()
        if not owner_id or not owner_id.strip():
            raise Unauthenticated()

    async def _analyze(self, request: AnalysisRequest) -> AnalysisResult:
        user_prompt = build_user_prompt(request)
        try:
            raw = await self._model.generate(SYSTEM_PROMPT, user_prompt, request.chart_image)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise AnalysisFailed(f"El modelo no pudo procesar la petición: {e}") from e
        return parse_model_response(raw)

    def _schedule_history(
        self,
        request: AnalysisRequest,
        result: AnalysisResult,
        owner_id: str,
    ) -> None:
        entry = HistoryEntry(
            owner_id=owner_id,
            symbol=request.symbol,
            chart_image=request.chart_image,
            result=result,
        )
        task = asyncio.create_task(self._persist(entry), name=f"history-append-{entry.id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(self, entry: HistoryEntry) -> None:
        try:
            await self._history.append(entry)
            logger.debug("Historial guardado id=%s owner=%s", entry.id, entry.owner_id)
        except Exception as e:
            error = e if isinstance(e, PersistenceFailed) else PersistenceFailed(str(e), operation="append")
            logger.error("No se pudo guardar el historial id=%s: %s", entry.id, error.message)
