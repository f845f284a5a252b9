"""
Infrastructure Models Package.

Contiene los modelos ORM de SQLAlchemy para la persistencia.
Estos modelos representan la estructura de la base de datos,
NO las entidades de dominio.
"""

from chartsage.infrastructure.persistence.models.analysis_history import AnalysisHistoryModel

__all__ = ["AnalysisHistoryModel"]
