"""
ChartSage – Main Application Entry Point
==========================================
Gráficos de velas en vivo + análisis de mercado por LLM + historial.

ARQUITECTURA DE ARRANQUE:
  1. Configurar logging
  2. Crear el contenedor de dependencias (adaptadores perezosos)
  3. FastAPI lifespan startup:
     a. Inicializar base de datos (si db_enabled)
     b. Inyectar el contenedor en las rutas
  4. FastAPI lifespan shutdown:
     a. Esperar escrituras de historial pendientes
     b. Cerrar cliente HTTP del feed y pool de base de datos

FLUJO DE DATOS:
  Binance REST/WS → BinanceCandleFeed → ChartSession
       → CandleWindow (revisión / append / evicción)
       → IndicatorEngine (SMA, RSI, MACD, Bollinger)
       → ChartView → ChartStreamHandler → Frontend
  Frontend (analyze) → snapshot PNG + velas + indicadores
       → RequestAnalysisUseCase → LLM → AnalysisResult → historial
  uvicorn chartsage.main:app --reload --host 0.0.0.0 --port 8888
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chartsage.container import Container, init_container
from chartsage.presentation.api.routes import init_routes, router
from chartsage.shared.config.settings import settings
from chartsage.shared.logging.logger import get_logger, setup_logging

# ─── Logging ────────────────────────────────────────────────────────────
setup_logging(settings.log_level)
logger = get_logger("main")


def create_app(container: Optional[Container] = None) -> FastAPI:
    """Construye la app FastAPI sobre un contenedor (el global por defecto)."""
    container = container or init_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle de la aplicación."""
        cfg = container.settings
        logger.info("=" * 60)
        logger.info("  ChartSage AI v0.3")
        logger.info("  Símbolos: %s", ", ".join(cfg.symbols))
        logger.info("  Intervalos: %s  (por defecto: %s)", ", ".join(cfg.intervals), cfg.default_interval)
        logger.info("  Ventana: %d velas, histórico: %d", cfg.window_capacity, cfg.history_limit)
        logger.info("  Indicadores: SMA, RSI, MACD, Bollinger (incremental por vela)")
        logger.info("  LLM: %s (%s)", cfg.llm_model, "habilitado" if cfg.openai_api_key else "sin API key")
        logger.info("=" * 60)

        if cfg.db_enabled:
            await container.db_manager.initialize()
        else:
            logger.info("  Database: deshabilitada (historial en memoria)")

        init_routes(container)
        logger.info("✓ Todos los componentes iniciados correctamente")

        yield  # ← La app está corriendo aquí

        # ── SHUTDOWN ──
        logger.info("Iniciando shutdown...")
        await container.shutdown()
        logger.info("✓ Shutdown completo")

    app = FastAPI(
        title="ChartSage AI",
        description="Gráficos de velas en vivo con análisis de mercado y señales generadas por LLM",
        version="0.3.0",
        lifespan=lifespan,
    )

    # CORS para frontend local
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # En producción: restringir a dominios específicos
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("chartsage.main:app", host=settings.host, port=settings.port, reload=settings.debug)
