"""
ChartSage AI
=============
Gráficos de velas en vivo, indicadores técnicos y análisis de mercado
generado por LLM con historial paginado por usuario.
"""

__version__ = "0.3.0"
