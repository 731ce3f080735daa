"""Indicator calculation helpers built on top of pandas."""

from __future__ import annotations

from typing import Dict, Sequence

import pandas as pd

from market_signal.core.config import IndicatorConfig
from market_signal.core.models import (
    BollingerSeries,
    Candle,
    IndicatorBundle,
    IndicatorSeries,
    InsufficientHistory,
    MacdSeries,
    Ready,
    StochasticSeries,
)

SMA_SHORT = 20
SMA_MEDIUM = 50
SMA_LONG = 200
RSI_PERIOD = 14
VOLUME_SMA_PERIOD = 20


class IndicatorCalculator:
    """Calculate SMA/RSI/MACD/Bollinger/Stochastic and volume SMA on a candle series."""

    def __init__(self, config: IndicatorConfig | None = None) -> None:
        self._cfg = config or IndicatorConfig()

    @property
    def min_periods(self) -> Dict[str, int]:
        cfg = self._cfg
        return {
            "sma20": SMA_SHORT,
            "sma50": SMA_MEDIUM,
            "sma200": SMA_LONG,
            "rsi14": RSI_PERIOD,
            "macd": cfg.macd_slow + cfg.macd_signal - 1,
            "bollinger20_2": cfg.bollinger_period,
            "stochastic14_3": cfg.stochastic_period + cfg.stochastic_signal + cfg.stochastic_smooth - 1,
            "volumeSma20": VOLUME_SMA_PERIOD,
        }

    def required_history(self) -> int:
        """Candles needed before every indicator in the bundle is ready."""
        return max(self.min_periods.values())

    def calculate(self, candles: Sequence[Candle]) -> IndicatorBundle:
        df = pd.DataFrame(
            {
                "close": [c.close for c in candles],
                "high": [c.high for c in candles],
                "low": [c.low for c in candles],
                "volume": [c.volume for c in candles],
            },
            dtype="float64",
        )
        n = len(df)
        periods = self.min_periods

        def gated(name: str, build) -> IndicatorSeries:
            if n < periods[name]:
                return InsufficientHistory(required=periods[name], available=n)
            return _wrap(build(), periods[name], n)

        return IndicatorBundle(
            sma20=gated("sma20", lambda: sma(df["close"], SMA_SHORT)),
            sma50=gated("sma50", lambda: sma(df["close"], SMA_MEDIUM)),
            sma200=gated("sma200", lambda: sma(df["close"], SMA_LONG)),
            rsi14=gated("rsi14", lambda: rsi(df["close"], RSI_PERIOD)),
            macd=self._macd(df["close"], periods["macd"]),
            bollinger=self._bollinger(df["close"], periods["bollinger20_2"]),
            stochastic=self._stochastic(df, periods["stochastic14_3"]),
            volume_sma20=gated("volumeSma20", lambda: sma(df["volume"], VOLUME_SMA_PERIOD)),
            current_volume=float(df["volume"].iloc[-1]) if n else None,
        )

    def _macd(self, close: pd.Series, required: int) -> MacdSeries:
        n = len(close)
        if n < required:
            missing = InsufficientHistory(required=required, available=n)
            return MacdSeries(line=missing, signal=missing, histogram=missing)
        line, signal, hist = macd(close, self._cfg.macd_fast, self._cfg.macd_slow, self._cfg.macd_signal)
        return MacdSeries(
            line=_wrap(line, required, n),
            signal=_wrap(signal, required, n),
            histogram=_wrap(hist, required, n),
        )

    def _bollinger(self, close: pd.Series, required: int) -> BollingerSeries:
        n = len(close)
        if n < required:
            missing = InsufficientHistory(required=required, available=n)
            return BollingerSeries(upper=missing, middle=missing, lower=missing)
        upper, middle, lower = bollinger_bands(close, self._cfg.bollinger_period, self._cfg.bollinger_std)
        return BollingerSeries(
            upper=_wrap(upper, required, n),
            middle=_wrap(middle, required, n),
            lower=_wrap(lower, required, n),
        )

    def _stochastic(self, df: pd.DataFrame, required: int) -> StochasticSeries:
        n = len(df)
        if n < required:
            missing = InsufficientHistory(required=required, available=n)
            return StochasticSeries(k=missing, d=missing)
        k, d = stochastic(
            df["high"],
            df["low"],
            df["close"],
            self._cfg.stochastic_period,
            self._cfg.stochastic_signal,
            self._cfg.stochastic_smooth,
        )
        return StochasticSeries(k=_wrap(k, required, n), d=_wrap(d, required, n))


def _wrap(series: pd.Series, required: int, available: int) -> IndicatorSeries:
    values = tuple(float(v) for v in series.dropna())
    if not values:
        return InsufficientHistory(required=required, available=available)
    return Ready(values=values)


def sma(series: pd.Series, period: int) -> pd.Series:
    return series.rolling(period).mean()


def _seeded_ewm(series: pd.Series, period: int, alpha: float) -> pd.Series:
    """Exponential smoothing seeded with the simple mean of the first ``period`` values."""
    valid = series.dropna()
    if len(valid) < period:
        return pd.Series(float("nan"), index=series.index)
    seed = pd.Series([valid.iloc[:period].mean()], index=[valid.index[period - 1]])
    smoothed = pd.concat([seed, valid.iloc[period:]]).ewm(alpha=alpha, adjust=False).mean()
    return smoothed.reindex(series.index)


def ema(series: pd.Series, span: int) -> pd.Series:
    return _seeded_ewm(series, span, alpha=2 / (span + 1))


def rsi(series: pd.Series, period: int) -> pd.Series:
    """Wilder RSI; the first value lands on index ``period``."""
    delta = series.diff()
    avg_gain = _seeded_ewm(delta.clip(lower=0), period, alpha=1 / period)
    avg_loss = _seeded_ewm(-delta.clip(upper=0), period, alpha=1 / period)
    rs = avg_gain / avg_loss
    out = 100 - (100 / (1 + rs))
    out = out.mask(avg_loss == 0, 100.0)
    return out.mask((avg_loss == 0) & (avg_gain == 0), 50.0)


def macd(
    series: pd.Series, fast: int, slow: int, signal_period: int
) -> tuple[pd.Series, pd.Series, pd.Series]:
    line = ema(series, fast) - ema(series, slow)
    signal = ema(line, signal_period)
    return line, signal, line - signal


def bollinger_bands(
    series: pd.Series, period: int, num_std: float
) -> tuple[pd.Series, pd.Series, pd.Series]:
    middle = series.rolling(period).mean()
    std = series.rolling(period).std(ddof=0)
    return middle + num_std * std, middle, middle - num_std * std


def stochastic(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    period: int,
    signal_period: int,
    smooth: int = 1,
) -> tuple[pd.Series, pd.Series]:
    lowest = low.rolling(period).min()
    highest = high.rolling(period).max()
    span = highest - lowest
    k = (100 * (close - lowest) / span).mask(span == 0, 50.0)
    if smooth > 1:
        k = k.rolling(smooth).mean()
    d = k.rolling(signal_period).mean()
    return k, d
