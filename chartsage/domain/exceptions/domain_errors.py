"""
ChartSage – Domain Exceptions
==============================
Excepciones específicas del dominio.

El motor de indicadores NUNCA lanza por falta de datos: devuelve
series con puntos pendientes. Estas excepciones cubren las fronteras
(feed, análisis, historial) y se convierten en resultados etiquetados
o respuestas HTTP en los casos de uso y las rutas.

JERARQUÍA:
    DomainError (base)
    ├── ValidationError
    ├── FeedUnavailable
    ├── StreamDropped
    ├── MissingChartImage
    ├── Unauthenticated
    ├── AnalysisFailed
    │   └── SchemaMismatch
    └── PersistenceFailed
"""

from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
        }


class ValidationError(DomainError):
    """Error de validación general de datos de dominio."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field
        self.value = value


class FeedUnavailable(DomainError):
    """La descarga de velas históricas falló (HTTP no-2xx, red o payload)."""

    def __init__(self, message: str, symbol: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, code="FEED_UNAVAILABLE")
        self.symbol = symbol
        self.status_code = status_code


class StreamDropped(DomainError):
    """La suscripción de streaming se cerró de forma inesperada."""

    def __init__(self, message: str, symbol: Optional[str] = None):
        super().__init__(message, code="STREAM_DROPPED")
        self.symbol = symbol


class MissingChartImage(DomainError):
    """El análisis se pidió sin imagen del gráfico."""

    def __init__(self, message: str = "Falta la imagen del gráfico."):
        super().__init__(message, code="MISSING_CHART_IMAGE")


class Unauthenticated(DomainError):
    """No hay identidad de usuario válida para la operación."""

    def __init__(self, message: str = "Usuario no autenticado."):
        super().__init__(message, code="UNAUTHENTICATED")


class AnalysisFailed(DomainError):
    """El modelo externo no pudo producir un análisis."""

    def __init__(self, message: str, code: str = "ANALYSIS_FAILED"):
        super().__init__(message, code=code)


class SchemaMismatch(AnalysisFailed):
    """La respuesta del modelo no cumple el esquema esperado."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message, code="SCHEMA_MISMATCH")
        self.raw = raw


class PersistenceFailed(DomainError):
    """Lectura o escritura del historial fallida."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message, code="PERSISTENCE_FAILED")
        self.operation = operation
