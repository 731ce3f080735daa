"""Classified failures surfaced by an analysis run."""

from __future__ import annotations


class AnalysisError(Exception):
    """Base class for failures that abort an analysis run."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DataUnavailable(AnalysisError):
    """Every configured endpoint failed or is blocked from this location."""


class MalformedResponse(AnalysisError):
    """The upstream body does not decode into kline rows."""


class InsufficientData(AnalysisError):
    """Fewer candles than the caller (or the indicator set) requires."""

    def __init__(self, required: int, available: int, message: str | None = None) -> None:
        self.required = required
        self.available = available
        super().__init__(
            message
            or f"Insufficient data: got {available} candles, at least {required} required"
        )
