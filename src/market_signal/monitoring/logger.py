"""Structured logging helpers using Rich."""

from __future__ import annotations

from typing import Any, Mapping

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from market_signal.core.errors import AnalysisError
from market_signal.core.models import AnalysisResult, Decision, Signal


class StrategyLogger:
    _LEVEL_STYLES = {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red",
    }
    _DECISION_STYLES = {
        Decision.BUY: "green",
        Decision.SELL: "red",
        Decision.NEUTRAL: "white",
    }

    def __init__(self, console: Console | None = None) -> None:
        self._console = console if console is not None else Console()

    def log_event(
        self,
        message: str,
        *,
        level: str = "info",
        details: Mapping[str, Any] | None = None,
    ) -> None:
        """Print a one-line status, or a bordered key/value panel when details are given."""
        style = self._LEVEL_STYLES.get(level, "white")
        if not details:
            self._console.print(f"[bold {style}]{message}[/bold {style}]")
            return
        grid = Table.grid(expand=True, padding=(0, 2))
        grid.add_column(justify="right", style="bold")
        grid.add_column(ratio=1)
        for key, value in details.items():
            grid.add_row(str(key), str(value))
        self._console.print(Panel(grid, title=f"[bold]{message}", border_style=style))

    def info(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        self.log_event(message, level="info", details=details)

    def success(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        self.log_event(message, level="success", details=details)

    def warning(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        self.log_event(message, level="warning", details=details)

    def error(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        self.log_event(message, level="error", details=details)

    def log_failure(self, message: str, exc: AnalysisError, *, fatal: bool = False) -> None:
        """Report a classified analysis failure; ``fatal`` ends the run."""
        details = {"error": type(exc).__name__, "reason": exc.message}
        if fatal:
            self.error(message, details=details)
        else:
            self.warning(message, details=details)

    def log_signal(self, result: AnalysisResult) -> None:
        signal = result.signal
        self._console.print(self._contributions_table(result))

        # directional calls are highlighted, neutral ones stay informational
        report = self.info if signal.decision == Decision.NEUTRAL else self.success
        style = self._DECISION_STYLES[signal.decision]
        report(
            f"Decision: {signal.decision.value.upper()}",
            details={
                "Price": f"{result.current_price:.2f}",
                "Score": f"[{style}]{signal.score:.1f}[/{style}] / {signal.max_score:.0f}",
                "Confidence": f"{signal.confidence:.0%}",
                "Candles": len(result.candles),
            },
        )

    def _contributions_table(self, result: AnalysisResult) -> Table:
        signal: Signal = result.signal
        table = Table(
            title=f"Signal {result.symbol} {result.interval.value}", show_lines=True
        )
        table.add_column("Indicator")
        table.add_column("Value")
        table.add_column("Signal")
        table.add_column("Weight", justify="right")
        for contribution in signal.contributions:
            style = self._DECISION_STYLES[contribution.direction]
            table.add_row(
                contribution.indicator_name,
                contribution.display_value,
                f"[{style}]{contribution.direction.value}[/{style}]",
                f"{contribution.weight:+.1f}",
            )
        return table
