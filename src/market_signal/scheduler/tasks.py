"""High-level analysis tasks: fetch, compute indicators, decide."""

from __future__ import annotations

import logging
from typing import List

from market_signal.core.config import Config
from market_signal.core.errors import AnalysisError, InsufficientData
from market_signal.core.models import AnalysisResult, Interval
from market_signal.data.cache import FetchContext
from market_signal.data.fetcher import DataFetcher
from market_signal.indicators.calculator import IndicatorCalculator
from market_signal.monitoring.logger import StrategyLogger
from market_signal.signals.evaluator import SignalEvaluator

logger = logging.getLogger(__name__)


class AnalysisTasks:
    """Run one analysis per (symbol, interval) request, sharing a fetch context."""

    def __init__(
        self,
        config: Config,
        fetcher: DataFetcher | None = None,
        context: FetchContext | None = None,
        strategy_logger: StrategyLogger | None = None,
    ) -> None:
        self._config = config
        self._fetcher = fetcher or DataFetcher(config, context=context)
        self._indicator_calc = IndicatorCalculator(config.indicators)
        self._signal_eval = SignalEvaluator(config.analysis)
        self._logger = strategy_logger or StrategyLogger()

    def required_candles(self) -> int:
        required = self._config.data.min_candles
        if required is None:
            required = self._indicator_calc.required_history()
        return max(required, 2)

    def run_analysis(self, symbol: str, interval: Interval | str) -> AnalysisResult:
        """Fetch -> compute -> decide. Raises one classified ``AnalysisError`` on failure."""
        interval = Interval(interval)
        required = self.required_candles()
        candles = self._fetcher.fetch_klines(
            symbol, interval, limit=self._config.data.history_limit
        )
        if len(candles) < required:
            raise InsufficientData(
                required=required,
                available=len(candles),
                message=(
                    f"Insufficient data for {symbol} {interval.value}: fetched {len(candles)} "
                    f"candles, at least {required} required"
                ),
            )

        current_price = candles[-1].close
        previous_price = candles[-2].close
        bundle = self._indicator_calc.calculate(candles)
        signal = self._signal_eval.evaluate(bundle, current_price, previous_price)
        logger.info(
            "%s %s -> %s (score %.1f, confidence %.2f)",
            symbol,
            interval.value,
            signal.decision.value,
            signal.score,
            signal.confidence,
        )
        return AnalysisResult(
            symbol=symbol,
            interval=interval,
            candles=candles,
            bundle=bundle,
            signal=signal,
            current_price=current_price,
            previous_price=previous_price,
        )

    def run_watchlist(self) -> List[AnalysisResult]:
        """Analyse every configured symbol/interval pair; failures are logged and skipped."""
        results: List[AnalysisResult] = []
        for symbol in self._config.data.symbols:
            for interval in self._config.data.intervals:
                try:
                    result = self.run_analysis(symbol, interval)
                except AnalysisError as exc:
                    self._logger.log_failure(f"Analysis failed for {symbol} {interval}", exc)
                    continue
                self._logger.log_signal(result)
                results.append(result)
        return results

    def shutdown(self) -> None:
        self._fetcher.close()
