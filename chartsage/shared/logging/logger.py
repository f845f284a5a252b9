"""
ChartSage – Logging configuration
==================================
Una línea por evento, con namespace `chartsage.*`:

    2026-01-01 12:00:00 | INFO     | chartsage.chart_session          | Sesión iniciada BTCUSDT 1h ...

Las librerías de red/LLM (httpx, openai, websockets, kaleido) solo
reportan WARNING o superior; su detalle por petición no aporta.
"""

from __future__ import annotations

import logging
import sys
from typing import Union

ROOT_NAMESPACE = "chartsage"

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

_NOISY_LIBRARIES = (
    "websockets",
    "httpx",
    "httpcore",
    "openai",
    "langchain",
    "kaleido",
    "choreographer",
    "aiosqlite",
    "uvicorn.access",
)


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configura el root logger al arranque.

    Args:
        level: nivel numérico o nombre ("debug", "INFO", ...) tal cual
               llega de settings.log_level
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    # un solo handler aunque uvicorn --reload reimporte el módulo
    if not any(getattr(h, "_chartsage", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
        handler._chartsage = True
        root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Logger `chartsage.<name>`."""
    return logging.getLogger(f"{ROOT_NAMESPACE}.{name}")
