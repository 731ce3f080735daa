"""Market data fetching layer with endpoint failover, caching and throttling."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from market_signal.core.config import Config
from market_signal.core.errors import DataUnavailable, InsufficientData, MalformedResponse
from market_signal.core.models import Candle, CandleSeries, Interval
from market_signal.data.cache import CacheKey, FetchContext

logger = logging.getLogger(__name__)

_HEADERS = {"Accept": "application/json"}


class EndpointError(Exception):
    """A single endpoint failed; the failover loop moves to the next one."""

    def __init__(self, endpoint: str, reason: str, malformed: bool = False) -> None:
        super().__init__(f"{endpoint}: {reason}")
        self.endpoint = endpoint
        self.malformed = malformed


class DataFetcher:
    """Retrieve OHLCV candles from an ordered list of mirror endpoints."""

    def __init__(
        self,
        config: Config,
        context: FetchContext | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._endpoints = list(config.exchange.endpoints)
        if context is None:
            context = FetchContext(
                min_interval_seconds=config.exchange.rate_limit_ms / 1000,
                ttl_seconds=config.data.cache_ttl_seconds,
            )
        self._context = context
        self._client = client or httpx.Client(timeout=config.exchange.timeout_seconds)

    @property
    def context(self) -> FetchContext:
        return self._context

    def _failover(self) -> Retrying:
        # one attempt per endpoint, never the same endpoint twice
        return Retrying(
            stop=stop_after_attempt(len(self._endpoints)),
            retry=retry_if_exception_type(EndpointError),
            reraise=True,
        )

    def fetch_klines(
        self,
        symbol: str,
        interval: Interval | str,
        limit: Optional[int] = None,
        min_length: Optional[int] = None,
    ) -> CandleSeries:
        """Return candles for ``(symbol, interval, limit)``, cached after the first hit.

        An under-length payload is cached like any other response, but the
        immediate caller gets ``InsufficientData`` when it asked for
        ``min_length`` candles. Under-length never triggers failover.
        """
        interval = Interval(interval)
        if limit is None:
            limit = self._config.data.history_limit
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        key: CacheKey = (symbol, interval.value, limit)

        candles = self._context.lookup(key)
        if candles is not None:
            logger.debug("Cache hit for %s", key)
        else:
            self._context.throttle()
            candles = self._download(symbol, interval, limit)
            self._context.record_response(key, candles)

        if min_length is not None and len(candles) < min_length:
            raise InsufficientData(required=min_length, available=len(candles))
        return candles

    def _download(self, symbol: str, interval: Interval, limit: int) -> CandleSeries:
        params = {"symbol": symbol, "interval": interval.value, "limit": limit}
        failures: List[EndpointError] = []
        try:
            for attempt in self._failover():
                with attempt:
                    endpoint = self._endpoints[attempt.retry_state.attempt_number - 1]
                    try:
                        return self._request(endpoint, params)
                    except EndpointError as exc:
                        failures.append(exc)
                        logger.warning("Endpoint failed (%s), trying next", exc)
                        raise
        except EndpointError:
            pass

        if failures and all(f.malformed for f in failures):
            raise MalformedResponse(
                f"Every endpoint returned an unreadable kline payload for {symbol} {interval.value}"
            )
        raise DataUnavailable(
            f"All {len(self._endpoints)} endpoints are unavailable for {symbol} {interval.value}; "
            "the service may be blocked in your region"
        )

    def _request(self, endpoint: str, params: dict) -> CandleSeries:
        url = f"{endpoint}{self._config.exchange.klines_path}"
        try:
            response = self._client.get(url, params=params, headers=_HEADERS)
        except httpx.TransportError as exc:
            raise EndpointError(endpoint, f"transport error: {exc}") from exc
        if not response.is_success:
            raise EndpointError(endpoint, f"HTTP {response.status_code}")
        try:
            raw = response.json()
        except ValueError as exc:
            raise EndpointError(endpoint, "body is not JSON", malformed=True) from exc
        try:
            return self._parse_klines(raw)
        except MalformedResponse as exc:
            raise EndpointError(endpoint, exc.message, malformed=True) from exc

    @staticmethod
    def _parse_klines(raw: Any) -> CandleSeries:
        if not isinstance(raw, list):
            raise MalformedResponse(f"expected a list of klines, got {type(raw).__name__}")
        candles = tuple(DataFetcher._parse_kline(row) for row in raw)
        for prev, cur in zip(candles, candles[1:]):
            if cur.open_time <= prev.open_time:
                raise MalformedResponse("kline open times are not strictly increasing")
        return candles

    @staticmethod
    def _parse_kline(row: Any) -> Candle:
        if not isinstance(row, (list, tuple)) or len(row) < 6:
            raise MalformedResponse(f"unexpected kline row: {row!r}")
        try:
            open_time = datetime.fromtimestamp(int(row[0]) / 1000, tz=timezone.utc)
            return Candle(
                open_time=open_time,
                open=float(row[1]),
                high=float(row[2]),
                low=float(row[3]),
                close=float(row[4]),
                volume=float(row[5]),
            )
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise MalformedResponse(f"unexpected kline row: {row!r}") from exc

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "DataFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
