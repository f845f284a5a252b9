"""
ChartSage – Settings (Pydantic BaseSettings)
=============================================
Configuración centralizada cargada desde variables de entorno / .env.
Se usa pydantic-settings para validación estricta al arranque.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List, Optional


class Settings(BaseSettings):
    # ─── Binance (feed de velas) ────────────────────────────────────────
    binance_rest_url: str = Field(
        default="https://api.binance.com/api/v3/klines",
        description="Endpoint REST de klines históricas",
    )
    binance_ws_url: str = Field(
        default="wss://stream.binance.com:9443/ws",
        description="Base del stream de klines (se añade /<symbol>@kline_<interval>)",
    )
    http_timeout_seconds: float = Field(
        default=10.0, description="Timeout de las llamadas REST al feed",
    )

    # ─── Mercados ───────────────────────────────────────────────────────
    symbols: List[str] = Field(
        default=["BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT", "ADAUSDT"],
        description="Pares soportados",
    )
    intervals: List[str] = Field(
        default=["5m", "15m", "30m", "1h", "2h", "4h", "6h", "12h", "1d", "3d", "1w"],
        description="Intervalos de vela disponibles",
    )
    higher_timeframes: List[str] = Field(
        default=["1d", "3d", "1w", "1M"],
        description="Marcos temporales superiores para el filtro de tendencia",
    )
    default_symbol: str = Field(default="BTCUSDT")
    default_interval: str = Field(default="1h")

    # ─── Ventana de velas ───────────────────────────────────────────────
    history_limit: int = Field(
        default=200, description="Velas históricas pedidas al abrir una sesión",
    )
    window_capacity: int = Field(
        default=200, description="Máximo de velas retenidas por sesión",
    )
    htf_sma_period: int = Field(
        default=20, description="Período de la SMA del marco temporal superior",
    )

    # ─── LLM ────────────────────────────────────────────────────────────
    openai_api_key: Optional[str] = Field(default=None, description="API key del proveedor LLM")
    openai_base_url: Optional[str] = Field(
        default=None, description="Endpoint compatible OpenAI alternativo",
    )
    llm_model: str = Field(default="gpt-4o", description="Modelo multimodal a usar")
    llm_temperature: float = Field(default=0.2)
    llm_timeout_seconds: float = Field(default=90.0)

    # ─── Auth ───────────────────────────────────────────────────────────
    jwt_secret: str = Field(default="change-me", description="Secreto compartido HS256")
    jwt_algorithm: str = Field(default="HS256")
    jwt_audience: Optional[str] = Field(default=None)

    # ─── Historial ──────────────────────────────────────────────────────
    history_page_size: int = Field(default=10, description="Tamaño de página por defecto")
    history_max_page_size: int = Field(default=50)

    # ─── Snapshot del gráfico ───────────────────────────────────────────
    chart_width: int = Field(default=1200)
    chart_height: int = Field(default=700)

    # ─── Server ─────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8888)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # ─── MySQL Database ─────────────────────────────────────────────────
    db_host: str = Field(default="localhost", description="MySQL host")
    db_port: int = Field(default=3306, description="MySQL port")
    db_user: str = Field(default="chartsage", description="MySQL username")
    db_password: str = Field(default="chartsage_secret", description="MySQL password")
    db_name: str = Field(default="chartsage", description="MySQL database name")
    db_url: Optional[str] = Field(
        default=None, description="URL SQLAlchemy explícita (sobrescribe db_*)",
    )
    db_echo: bool = Field(default=False, description="Loguear queries SQL (debug)")
    db_pool_size: int = Field(default=5, description="Conexiones en el pool")
    db_max_overflow: int = Field(default=10, description="Conexiones extra en picos")
    db_enabled: bool = Field(
        default=False, description="Persistir historial en SQL (si no, en memoria)",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton global – se importa donde se necesite
settings = Settings()
