"""Shared data models used across modules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class Interval(str, Enum):
    M1 = "1m"
    M3 = "3m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H2 = "2h"
    H4 = "4h"
    H6 = "6h"
    H8 = "8h"
    H12 = "12h"
    D1 = "1d"
    D3 = "3d"
    W1 = "1w"
    MO1 = "1M"


class Decision(str, Enum):
    BUY = "buy"
    SELL = "sell"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class Candle:
    open_time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float


CandleSeries = Tuple[Candle, ...]


@dataclass(frozen=True)
class Ready:
    """Indicator values aligned to the tail of the candle series."""

    values: Tuple[float, ...]

    @property
    def current(self) -> float:
        return self.values[-1]

    @property
    def previous(self) -> Optional[float]:
        return self.values[-2] if len(self.values) > 1 else None


@dataclass(frozen=True)
class InsufficientHistory:
    """The series is shorter than the indicator's warm-up period."""

    required: int
    available: int

    @property
    def values(self) -> Tuple[float, ...]:
        return ()

    @property
    def current(self) -> None:
        return None

    @property
    def previous(self) -> None:
        return None


IndicatorSeries = Union[Ready, InsufficientHistory]


@dataclass(frozen=True)
class MacdSeries:
    line: IndicatorSeries
    signal: IndicatorSeries
    histogram: IndicatorSeries


@dataclass(frozen=True)
class BollingerSeries:
    upper: IndicatorSeries
    middle: IndicatorSeries
    lower: IndicatorSeries


@dataclass(frozen=True)
class StochasticSeries:
    k: IndicatorSeries
    d: IndicatorSeries


@dataclass(frozen=True)
class IndicatorBundle:
    sma20: IndicatorSeries
    sma50: IndicatorSeries
    sma200: IndicatorSeries
    rsi14: IndicatorSeries
    macd: MacdSeries
    bollinger: BollingerSeries
    stochastic: StochasticSeries
    volume_sma20: IndicatorSeries
    current_volume: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        """Map canonical indicator names to their series (every key present)."""
        return {
            "sma20": self.sma20,
            "sma50": self.sma50,
            "sma200": self.sma200,
            "rsi14": self.rsi14,
            "macd": self.macd,
            "bollinger20_2": self.bollinger,
            "stochastic14_3": self.stochastic,
            "volumeSma20": self.volume_sma20,
        }


@dataclass(frozen=True)
class SignalContribution:
    indicator_name: str
    display_value: str
    direction: Decision
    weight: float  # signed, 0 when neutral


@dataclass(frozen=True)
class Signal:
    contributions: Tuple[SignalContribution, ...]
    score: float
    decision: Decision
    confidence: float
    max_score: float

    def as_dict(self) -> Dict[str, Any]:
        return {
            "decision": self.decision.value,
            "score": self.score,
            "max_score": self.max_score,
            "confidence": self.confidence,
            "contributions": [
                {
                    "name": c.indicator_name,
                    "value": c.display_value,
                    "signal": c.direction.value,
                    "weight": c.weight,
                }
                for c in self.contributions
            ],
        }


@dataclass(frozen=True)
class AnalysisResult:
    symbol: str
    interval: Interval
    candles: CandleSeries
    bundle: IndicatorBundle
    signal: Signal
    current_price: float
    previous_price: float
