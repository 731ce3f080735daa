"""Configuration loading utilities for the signal pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import yaml
from pydantic import BaseModel, Field, field_validator


class ExchangeConfig(BaseModel):
    name: str = "binance"
    endpoints: List[str] = Field(
        default_factory=lambda: [
            "https://api.binance.com",
            "https://api1.binance.com",
            "https://api2.binance.com",
            "https://api3.binance.com",
        ]
    )
    klines_path: str = "/api/v3/klines"
    rate_limit_ms: int = 1000  # minimum gap between upstream requests
    timeout_seconds: float = 10.0

    @field_validator("endpoints")
    @classmethod
    def _require_endpoint(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one endpoint must be configured")
        return [endpoint.rstrip("/") for endpoint in value]


class DataConfig(BaseModel):
    symbols: List[str] = Field(
        default_factory=lambda: [
            "BTCUSDT",
            "ETHUSDT",
            "BNBUSDT",
            "SOLUSDT",
            "XRPUSDT",
            "ADAUSDT",
            "DOGEUSDT",
        ]
    )
    intervals: List[str] = Field(default_factory=lambda: ["15m", "1h", "4h", "1d"])
    history_limit: int = 300
    min_candles: int | None = None  # None -> largest indicator warm-up
    cache_ttl_seconds: float | None = None  # None -> cached series never expire


class IndicatorConfig(BaseModel):
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    bollinger_period: int = 20
    bollinger_std: float = 2.0
    stochastic_period: int = 14
    stochastic_signal: int = 3
    stochastic_smooth: int = 1


class AnalysisConfig(BaseModel):
    weights: Dict[str, float] = Field(
        default_factory=lambda: {
            "trend": 30,
            "rsi": 20,
            "sma_crossover": 20,
            "macd": 15,
            "volume": 15,
        }
    )
    buy_threshold: float = 0.5  # fraction of the maximum score
    sell_threshold: float = -0.5
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    volume_ratio_threshold: float = 1.5
    macd_crossover_share: float = 0.7
    macd_histogram_share: float = 0.3
    stochastic_oversold: float = 20.0
    stochastic_overbought: float = 80.0


class Config(BaseModel):
    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    data: DataConfig = Field(default_factory=DataConfig)
    indicators: IndicatorConfig = Field(default_factory=IndicatorConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)

    @staticmethod
    def load(path: str | Path | None = None) -> "Config":
        """Load config from YAML file if provided, otherwise use defaults."""
        if path is None:
            return Config()
        data = yaml.safe_load(Path(path).read_text()) or {}
        return Config(**data)
