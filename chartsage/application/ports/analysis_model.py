"""
ChartSage – Application Port: Analysis Model
=============================================
Frontera con el modelo generativo externo.

El orquestador trata la llamada como una función opaca: recibe el texto
crudo de la respuesta y solo se encarga de validar su esquema.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IAnalysisModel(ABC):
    """Modelo multimodal que analiza la imagen del gráfico."""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        image_data_uri: str,
    ) -> str:
        """
        Ejecuta el modelo y devuelve el contenido textual (JSON esperado).

        Cualquier fallo del proveedor se propaga como excepción; el caso
        de uso la convierte en AnalysisFailed.
        """
        pass
