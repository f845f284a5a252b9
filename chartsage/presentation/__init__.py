"""
ChartSage – Presentation Layer
===============================
API HTTP y WebSocket.

Este módulo contiene:
- api/: FastAPI routes
- websocket/: handler de la sesión de gráfico por conexión

REGLA DE DEPENDENCIA:
Esta capa llama a use cases y servicios de application/.
Las implementaciones concretas llegan a través del Container.
"""

from chartsage.presentation.api.routes import router, init_routes
from chartsage.presentation.websocket.chart_stream import ChartStreamHandler

__all__ = [
    "router",
    "init_routes",
    "ChartStreamHandler",
]
