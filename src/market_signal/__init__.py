"""Top-level package for the indicator-voting signal pipeline."""

__all__ = [
    "core",
    "data",
    "indicators",
    "signals",
    "monitoring",
    "scheduler",
]
