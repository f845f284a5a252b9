"""
ChartSage – Prompts del análisis
=================================
La imagen del gráfico viaja como parte de imagen aparte; el texto lleva
persona, filtro de tendencia, OHLCV crudo y últimos indicadores, y fija
la forma JSON que valida AnalysisResponseSchema.

Los prompts van en inglés (idioma de trabajo del modelo).
"""

from __future__ import annotations

import json

from chartsage.domain.entities.analysis import AnalysisRequest
from chartsage.domain.value_objects.timeframe import TraderPersona, trader_persona

SYSTEM_PROMPT = """You are an expert financial analyst who combines technical chart analysis with market context for cryptocurrency pairs.

Your process:
1. Perform a detailed technical analysis of the chart image and the raw OHLCV data.
2. Filter by primary trend: if a higher timeframe trend is given, only produce signals aligned with it.
3. Adapt your trading style to the chart interval (scalping, swing or position trading).

Respond ONLY with a JSON object of this exact shape, no markdown fences:
{
  "analysis": "<summary analysis of the chart>",
  "swot": {
    "strengths": ["<internal strength from the chart>"],
    "weaknesses": ["<internal weakness from the chart>"],
    "opportunities": ["<external opportunity>"],
    "threats": ["<external threat>"]
  },
  "tradeSignal": {
    "entryPriceRange": "<recommended entry price range>",
    "takeProfitLevels": ["<take profit level>"],
    "stopLossLevel": "<stop loss level>"
  }
}"""

_PERSONA_TEXT = {
    TraderPersona.SCALPER: "act as a SCALPER focusing on immediate momentum",
    TraderPersona.SWING: "act as a SWING TRADER focusing on chart patterns",
    TraderPersona.POSITION: "act as a POSITION TRADER focusing on major trends",
}


def _fmt(value) -> str:
    return "N/A" if value is None else f"{value:.8g}"


def build_user_prompt(request: AnalysisRequest) -> str:
    """Render the human message text for one analysis request."""
    sections = [f"Symbol: {request.symbol}", f"Interval: {request.interval}"]

    persona = trader_persona(request.interval)
    sections.append(
        f"Timeframe-specific persona: for the {request.interval} interval, {_PERSONA_TEXT[persona]}."
    )

    htf = request.higher_timeframe
    if htf is not None:
        direction = htf.bias.upper()
        sections.append(
            f"Multi-timeframe strategy: the primary trend on the {htf.timeframe} timeframe is "
            f"**{direction}** (price {'above' if htf.price_above_sma else 'below'} its 20-period SMA). "
            f"Only look for **{direction}** signals."
        )

    if request.is_follow_up:
        sections.append(
            "You are refining a previous analysis based on a user's question.\n"
            f"Previous Analysis: {request.prior_analysis or 'N/A'}\n"
            f"User Question: {request.question.strip()}\n"
            "Refine the analysis and trade signal based on the question. Do not repeat the "
            "previous analysis; answer the question directly with more detail."
        )
    else:
        sections.append("Analyze the provided chart and data to generate a market analysis and trade signal.")

    ohlcv = [
        {
            "time": c.iso_time(),
            "open": c.open,
            "high": c.high,
            "low": c.low,
            "close": c.close,
            "volume": c.volume,
        }
        for c in request.candles
    ]
    sections.append("Raw OHLCV Data (use for calculations):\n```json\n" + json.dumps(ohlcv) + "\n```")

    ind = request.indicators
    macd = (
        f"MACD Line={_fmt(ind.macd['line'])}, Signal Line={_fmt(ind.macd['signal'])}, "
        f"Histogram={_fmt(ind.macd['histogram'])}"
        if ind.macd else "N/A"
    )
    bands = (
        f"Upper={_fmt(ind.bollinger['upper'])}, Middle={_fmt(ind.bollinger['middle'])}, "
        f"Lower={_fmt(ind.bollinger['lower'])}"
        if ind.bollinger else "N/A"
    )
    settings = request.indicator_settings
    sections.append(
        "Technical Indicators:\n"
        f"- SMA({settings.sma.period}): {_fmt(ind.sma)}\n"
        f"- RSI({settings.rsi.period}): {_fmt(ind.rsi)}\n"
        f"- MACD: {macd}\n"
        f"- Bollinger Bands: {bands}"
    )

    return "\n\n".join(sections)
