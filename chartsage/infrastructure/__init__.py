"""
ChartSage – Infrastructure Layer
=================================
Implementaciones concretas de interfaces.

Este módulo contiene:
- external/: Feed de velas de Binance (REST + WebSocket)
- llm/: Modelo de análisis (LangChain + OpenAI)
- auth/: Validación de JWT
- rendering/: Snapshot PNG del gráfico (Plotly)
- persistence/: Historial de análisis (SQLAlchemy / memoria)

REGLA DE DEPENDENCIA:
Esta capa implementa interfaces definidas en:
- domain/repositories/
- application/ports/

Puede importar de:
- domain/ (entidades, interfaces)
- application/ (ports)
- shared/ (config, logging)
"""
