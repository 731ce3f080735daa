"""Signal generation module that fuses indicator votes into one decision."""

from __future__ import annotations

from typing import Callable, Dict, List, Tuple

from market_signal.core.config import AnalysisConfig
from market_signal.core.models import (
    Decision,
    IndicatorBundle,
    InsufficientHistory,
    Signal,
    SignalContribution,
)

INSUFFICIENT = "insufficient data"

Vote = Tuple[Decision, float, str]  # direction, fraction of the rule weight, display value


class SignalEvaluator:
    """Score each rule against the bundle and map the total to buy/sell/neutral."""

    RULE_NAMES = {
        "trend": "Trend (SMA 50/200)",
        "rsi": "RSI",
        "sma_crossover": "SMA Crossover (20/50)",
        "macd": "MACD",
        "volume": "Volume",
        "bollinger": "Bollinger Bands",
        "stochastic": "Stochastic",
    }

    def __init__(self, analysis_cfg: AnalysisConfig | None = None) -> None:
        self._cfg = analysis_cfg or AnalysisConfig()
        unknown = set(self._cfg.weights) - set(self.RULE_NAMES)
        if unknown:
            raise ValueError(f"Unknown signal rules in weights: {sorted(unknown)}")
        if self.max_score <= 0:
            raise ValueError("Signal weights must sum to a positive maximum score")
        self._rules: Dict[str, Callable[[IndicatorBundle, float, float], Vote]] = {
            "trend": self._trend,
            "rsi": self._rsi,
            "sma_crossover": self._sma_crossover,
            "macd": self._macd,
            "volume": self._volume,
            "bollinger": self._bollinger,
            "stochastic": self._stochastic,
        }

    @property
    def max_score(self) -> float:
        return float(sum(self._cfg.weights.values()))

    def evaluate(
        self, bundle: IndicatorBundle, current_price: float, previous_price: float
    ) -> Signal:
        contributions: List[SignalContribution] = []
        score = 0.0
        for rule, weight in self._cfg.weights.items():
            direction, share, display = self._rules[rule](bundle, current_price, previous_price)
            applied = 0.0
            if direction == Decision.BUY:
                applied = weight * share
            elif direction == Decision.SELL:
                applied = -weight * share
            score += applied
            contributions.append(
                SignalContribution(
                    indicator_name=self.RULE_NAMES[rule],
                    display_value=display,
                    direction=direction,
                    weight=applied,
                )
            )

        decision, confidence = self._decide(score)
        return Signal(
            contributions=tuple(contributions),
            score=score,
            decision=decision,
            confidence=confidence,
            max_score=self.max_score,
        )

    def _decide(self, score: float) -> Tuple[Decision, float]:
        max_score = self.max_score
        buy_threshold = max_score * self._cfg.buy_threshold
        sell_threshold = max_score * self._cfg.sell_threshold

        if score >= buy_threshold:
            spread = max_score - buy_threshold
            confidence = min(1.0, (score - buy_threshold) / spread) if spread > 0 else 1.0
            return Decision.BUY, max(confidence, 0.0)
        if score <= sell_threshold:
            spread = max_score - abs(sell_threshold)
            confidence = (
                min(1.0, (abs(score) - abs(sell_threshold)) / spread) if spread > 0 else 1.0
            )
            return Decision.SELL, max(confidence, 0.0)
        return Decision.NEUTRAL, 0.0

    def _trend(self, bundle: IndicatorBundle, price: float, _prev: float) -> Vote:
        mid, long = bundle.sma50, bundle.sma200
        if isinstance(mid, InsufficientHistory) or isinstance(long, InsufficientHistory):
            return Decision.NEUTRAL, 0.0, INSUFFICIENT
        if mid.current > long.current and price > mid.current:
            return Decision.BUY, 1.0, "uptrend"
        if mid.current < long.current and price < mid.current:
            return Decision.SELL, 1.0, "downtrend"
        return Decision.NEUTRAL, 0.0, "sideways"

    def _rsi(self, bundle: IndicatorBundle, _price: float, _prev: float) -> Vote:
        series = bundle.rsi14
        if isinstance(series, InsufficientHistory):
            return Decision.NEUTRAL, 0.0, INSUFFICIENT
        value = series.current
        if value < self._cfg.rsi_oversold:
            return Decision.BUY, 1.0, f"{value:.2f}"
        if value > self._cfg.rsi_overbought:
            return Decision.SELL, 1.0, f"{value:.2f}"
        return Decision.NEUTRAL, 0.0, f"{value:.2f}"

    def _sma_crossover(self, bundle: IndicatorBundle, _price: float, _prev: float) -> Vote:
        fast, slow = bundle.sma20, bundle.sma50
        if fast.previous is None or slow.previous is None:
            return Decision.NEUTRAL, 0.0, INSUFFICIENT
        if fast.current > slow.current and fast.previous <= slow.previous:
            return Decision.BUY, 1.0, "bullish cross"
        if fast.current < slow.current and fast.previous >= slow.previous:
            return Decision.SELL, 1.0, "bearish cross"
        return Decision.NEUTRAL, 0.0, "no clear cross"

    def _macd(self, bundle: IndicatorBundle, _price: float, _prev: float) -> Vote:
        line, signal, hist = bundle.macd.line, bundle.macd.signal, bundle.macd.histogram
        if line.previous is None or signal.previous is None or hist.previous is None:
            return Decision.NEUTRAL, 0.0, INSUFFICIENT
        cross_share = self._cfg.macd_crossover_share
        hist_share = self._cfg.macd_histogram_share
        if line.current > signal.current and line.previous <= signal.previous:
            return Decision.BUY, cross_share, "bullish cross"
        if line.current < signal.current and line.previous >= signal.previous:
            return Decision.SELL, cross_share, "bearish cross"
        if hist.current > 0 and hist.previous <= 0:
            return Decision.BUY, hist_share, "histogram turned positive"
        if hist.current < 0 and hist.previous >= 0:
            return Decision.SELL, hist_share, "histogram turned negative"
        return Decision.NEUTRAL, 0.0, "flat"

    def _volume(self, bundle: IndicatorBundle, price: float, prev: float) -> Vote:
        avg = bundle.volume_sma20
        if isinstance(avg, InsufficientHistory) or bundle.current_volume is None:
            return Decision.NEUTRAL, 0.0, INSUFFICIENT
        ratio = bundle.current_volume / avg.current if avg.current > 0 else 0.0
        display = f"{ratio:.2f}x avg"
        if ratio > self._cfg.volume_ratio_threshold:
            if price > prev:
                return Decision.BUY, 1.0, f"high ({display}) on rising price"
            if price < prev:
                return Decision.SELL, 1.0, f"high ({display}) on falling price"
        return Decision.NEUTRAL, 0.0, f"normal ({display})"

    def _bollinger(self, bundle: IndicatorBundle, price: float, _prev: float) -> Vote:
        upper, lower = bundle.bollinger.upper, bundle.bollinger.lower
        if isinstance(upper, InsufficientHistory) or isinstance(lower, InsufficientHistory):
            return Decision.NEUTRAL, 0.0, INSUFFICIENT
        if price <= lower.current:
            return Decision.BUY, 1.0, "at or below lower band"
        if price >= upper.current:
            return Decision.SELL, 1.0, "at or above upper band"
        return Decision.NEUTRAL, 0.0, "inside bands"

    def _stochastic(self, bundle: IndicatorBundle, _price: float, _prev: float) -> Vote:
        k, d = bundle.stochastic.k, bundle.stochastic.d
        if isinstance(k, InsufficientHistory) or isinstance(d, InsufficientHistory):
            return Decision.NEUTRAL, 0.0, INSUFFICIENT
        display = f"%K {k.current:.2f} / %D {d.current:.2f}"
        if k.current < self._cfg.stochastic_oversold and k.current > d.current:
            return Decision.BUY, 1.0, display
        if k.current > self._cfg.stochastic_overbought and k.current < d.current:
            return Decision.SELL, 1.0, display
        return Decision.NEUTRAL, 0.0, display
