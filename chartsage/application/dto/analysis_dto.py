"""
ChartSage – Application DTO: Analysis
======================================
Contratos Pydantic en la frontera del análisis:

- AnalysisResponseSchema: esquema que DEBE cumplir la respuesta del
  modelo (camelCase, tal cual la pide el prompt). Un incumplimiento
  se reporta como SchemaMismatch.
- AnalysisRequestSchema / IndicatorSettingsSchema / CandleSchema:
  cuerpo de POST /api/analysis y acciones del WebSocket.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from chartsage.domain.entities.analysis import AnalysisResult, Swot, TradeSignal
from chartsage.domain.entities.candle import Candle
from chartsage.domain.value_objects.indicator_config import (
    BollingerConfig,
    IndicatorSettings,
    MacdConfig,
    RsiConfig,
    SmaConfig,
)


# ─── Respuesta del modelo ───────────────────────────────────────────────

class SwotSchema(BaseModel):
    strengths: List[str]
    weaknesses: List[str]
    opportunities: List[str]
    threats: List[str]


class TradeSignalSchema(BaseModel):
    entryPriceRange: str
    takeProfitLevels: List[str]
    stopLossLevel: str


class AnalysisResponseSchema(BaseModel):
    analysis: str = Field(min_length=1)
    swot: SwotSchema
    tradeSignal: TradeSignalSchema

    def to_entity(self) -> AnalysisResult:
        return AnalysisResult(
            narrative=self.analysis,
            swot=Swot(
                strengths=tuple(self.swot.strengths),
                weaknesses=tuple(self.swot.weaknesses),
                opportunities=tuple(self.swot.opportunities),
                threats=tuple(self.swot.threats),
            ),
            trade_signal=TradeSignal(
                entry_range=self.tradeSignal.entryPriceRange,
                take_profit_levels=tuple(self.tradeSignal.takeProfitLevels),
                stop_loss=self.tradeSignal.stopLossLevel,
            ),
        )


# ─── Configuración de indicadores ───────────────────────────────────────

class SmaSchema(BaseModel):
    enabled: bool = True
    period: int = 20


class RsiSchema(BaseModel):
    enabled: bool = True
    period: int = 14


class MacdSchema(BaseModel):
    enabled: bool = False
    fast: int = 12
    slow: int = 26
    signal: int = 9


class BollingerSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    period: int = 20
    std_dev: float = Field(default=2.0, alias="stdDev")


class IndicatorSettingsSchema(BaseModel):
    sma: SmaSchema = Field(default_factory=SmaSchema)
    rsi: RsiSchema = Field(default_factory=RsiSchema)
    macd: MacdSchema = Field(default_factory=MacdSchema)
    bollinger: BollingerSchema = Field(default_factory=BollingerSchema)

    def to_domain(self) -> IndicatorSettings:
        """Raises ValidationError (dominio) si algún período no es positivo."""
        return IndicatorSettings(
            sma=SmaConfig(self.sma.enabled, self.sma.period),
            rsi=RsiConfig(self.rsi.enabled, self.rsi.period),
            macd=MacdConfig(self.macd.enabled, self.macd.fast, self.macd.slow, self.macd.signal),
            bollinger=BollingerConfig(
                self.bollinger.enabled, self.bollinger.period, self.bollinger.std_dev,
            ),
        )


# ─── Petición de análisis ───────────────────────────────────────────────

class CandleSchema(BaseModel):
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_entity(self) -> Candle:
        return Candle(self.time, self.open, self.high, self.low, self.close, self.volume)


class AnalysisRequestSchema(BaseModel):
    chartDataUri: str = ""
    symbol: str
    interval: str
    ohlcvData: List[CandleSchema] = Field(default_factory=list)
    indicatorConfig: Optional[IndicatorSettingsSchema] = None
    higherTimeframe: Optional[str] = None
    question: Optional[str] = None
    existingAnalysis: Optional[str] = None
