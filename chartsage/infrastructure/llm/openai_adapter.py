"""
Infrastructure adapter: OpenAI-compatible chat model (ChatOpenAI) → IAnalysisModel.

Todos los detalles de langchain_openai quedan aquí. La imagen del gráfico
viaja como parte `image_url` (data URI) del mensaje humano y se pide
salida en modo JSON.
"""

from __future__ import annotations

from typing import Any

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from chartsage.application.ports.analysis_model import IAnalysisModel
from chartsage.shared.config.settings import Settings
from chartsage.shared.logging.logger import get_logger

logger = get_logger("openai_adapter")


class OpenAIAnalysisModel(IAnalysisModel):
    """Envuelve ChatOpenAI y expone la interfaz IAnalysisModel."""

    def __init__(self, settings: Settings, _runnable: Any = None) -> None:
        """
        Args:
            settings: Modelo, temperatura, API key y timeout
            _runnable: Runnable preconfigurado (tests); si se pasa no se
                       construye ChatOpenAI
        """
        if _runnable is not None:
            self._llm = _runnable
        else:
            self._llm = ChatOpenAI(
                model=settings.llm_model,
                temperature=settings.llm_temperature,
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.llm_timeout_seconds,
            ).bind(response_format={"type": "json_object"})
        self._model_name = settings.llm_model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        image_data_uri: str,
    ) -> str:
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(
                content=[
                    {"type": "text", "text": user_prompt},
                    {"type": "image_url", "image_url": {"url": image_data_uri}},
                ]
            ),
        ]
        logger.debug("Llamando a %s (%d caracteres de prompt)", self._model_name, len(user_prompt))
        response = await self._llm.ainvoke(messages)
        return _content_text(response.content)


def _content_text(content: Any) -> str:
    """Normaliza el contenido de un AIMessage (str o lista de partes) a texto."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class DisabledAnalysisModel(IAnalysisModel):
    """Sustituto cuando no hay API key: toda petición falla como AnalysisFailed."""

    async def generate(self, system_prompt: str, user_prompt: str, image_data_uri: str) -> str:
        raise RuntimeError("proveedor LLM no configurado (OPENAI_API_KEY)")


def build_analysis_model(settings: Settings) -> IAnalysisModel:
    """Crea el adaptador si hay API key configurada."""
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY no configurada: el análisis IA queda deshabilitado")
        return DisabledAnalysisModel()
    return OpenAIAnalysisModel(settings)
