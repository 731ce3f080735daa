"""Shared fixtures: synthetic klines, a fake clock and mock endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Sequence

import httpx
import pytest

from market_signal.core.config import Config, ExchangeConfig
from market_signal.core.models import Candle
from market_signal.data.cache import FetchContext
from market_signal.data.fetcher import DataFetcher

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)
HOUR_MS = 3_600_000

ENDPOINTS = [
    "https://api.binance.com",
    "https://api1.binance.com",
    "https://api2.binance.com",
    "https://api3.binance.com",
]


def make_rows(closes: Sequence[float], volumes: Sequence[float] | None = None) -> List[list]:
    """Binance-shaped kline rows (strings for prices, like the real API)."""
    start_ms = int(BASE_TIME.timestamp() * 1000)
    rows = []
    for i, close in enumerate(closes):
        volume = volumes[i] if volumes is not None else 100.0
        open_time = start_ms + i * HOUR_MS
        rows.append(
            [
                open_time,
                f"{close:.8f}",
                f"{close * 1.001:.8f}",
                f"{close * 0.999:.8f}",
                f"{close:.8f}",
                f"{volume:.8f}",
                open_time + HOUR_MS - 1,
                "0",
                10,
                "0",
                "0",
                "0",
            ]
        )
    return rows


def make_candles(closes: Sequence[float], volumes: Sequence[float] | None = None) -> tuple:
    return tuple(
        Candle(
            open_time=BASE_TIME + timedelta(hours=i),
            open=close,
            high=close * 1.001,
            low=close * 0.999,
            close=close,
            volume=volumes[i] if volumes is not None else 100.0,
        )
        for i, close in enumerate(closes)
    )


def rising(n: int, start: float = 100.0, rate: float = 0.01) -> List[float]:
    return [start * (1 + rate) ** i for i in range(n)]


def falling(n: int, start: float = 100.0, rate: float = 0.01) -> List[float]:
    return [start * (1 - rate) ** i for i in range(n)]


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MockExchange:
    """Routes requests by host; records every call for assertions."""

    def __init__(self) -> None:
        self.calls: List[httpx.Request] = []
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def serve(self, host: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[host] = handler

    def serve_rows(self, host: str, rows: list) -> None:
        self.serve(host, lambda request: httpx.Response(200, json=rows))

    def fail(self, host: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.serve(host, handler)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get(request.url.host)
        if handler is None:
            raise httpx.ConnectError("no route", request=request)
        return handler(request)

    def hosts_called(self) -> List[str]:
        return [request.url.host for request in self.calls]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def exchange() -> MockExchange:
    return MockExchange()


@pytest.fixture
def config() -> Config:
    return Config(exchange=ExchangeConfig(endpoints=list(ENDPOINTS)))


@pytest.fixture
def context(clock: FakeClock) -> FetchContext:
    return FetchContext(min_interval_seconds=1.0, clock=clock, sleep=clock.sleep)


@pytest.fixture
def fetcher(config: Config, context: FetchContext, exchange: MockExchange) -> DataFetcher:
    with DataFetcher(config, context=context, client=exchange.client()) as instance:
        yield instance
