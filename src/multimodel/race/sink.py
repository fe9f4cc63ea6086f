"""
Presentation sink for race output.

The race core only talks to the UISink protocol; ConsoleSink renders it on a
terminal with rich.
"""

from typing import Protocol

from rich.console import Console
from rich.status import Status
from rich.text import Text

from multimodel.models.internal import ModelResult, ProviderModel
from multimodel.utils.logging import get_logger

logger = get_logger(__name__)

CHECK = "✓"
CROSS = "☓"


class UISink(Protocol):
    """Everything the race core may ask the presentation layer to show."""

    def start_initial_spinner(self) -> None: ...

    def show_remaining_spinner(self, remaining_count: int) -> None: ...

    def display_winner_header(self, model: ProviderModel) -> None: ...

    def write_stream(self, content: str) -> None: ...

    def display_winner_timing(self, timing: float) -> None: ...

    def display_model_result(self, result: ModelResult) -> None: ...

    def display_summary(self, successful_count: int, total_count: int) -> None: ...

    def cleanup(self) -> None: ...


class ConsoleSink:
    """
    Terminal renderer for one batch.

    The winner streams character by character under its header; every other
    model is printed as one block once it finishes. A spinner runs whenever
    nothing is streaming.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)
        self._status: Status | None = None

    def _start_spinner(self, label: str) -> None:
        self._stop_spinner()
        self._status = self.console.status(label, spinner="dots")
        self._status.start()

    def _stop_spinner(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def _write_header(self, model: ProviderModel) -> None:
        self.console.print(Text(model.key, style="bold cyan"))

    def start_initial_spinner(self) -> None:
        self._start_spinner("Thinking...")

    def show_remaining_spinner(self, remaining_count: int) -> None:
        plural = "s" if remaining_count > 1 else ""
        self.console.print()
        self._start_spinner(f"Waiting for {remaining_count} more model{plural}...")

    def display_winner_header(self, model: ProviderModel) -> None:
        self._stop_spinner()
        self.console.print()
        self._write_header(model)

    def write_stream(self, content: str) -> None:
        self.console.out(content, end="", highlight=False)

    def display_winner_timing(self, timing: float) -> None:
        self.console.print()
        self.console.print(Text(f"finished: {timing:.1f}s", style="dim"))

    def display_model_result(self, result: ModelResult) -> None:
        self._stop_spinner()
        self.console.print()
        self._write_header(result.model)

        if result.success:
            self.console.out(result.response or "", highlight=False)
            self.console.print(Text(f"finished: {result.timing:.1f}s", style="dim"))
        else:
            self.console.print(Text(result.error or "Model request failed", style="red"))
            self.console.print(Text(f"{CROSS} failed: {result.timing:.1f}s", style="red"))

        logger.debug(
            "Model result displayed",
            extra={"provider_model": result.model.key, "success": result.success},
        )

    def display_summary(self, successful_count: int, total_count: int) -> None:
        self._stop_spinner()
        if successful_count == 0:
            self.console.print()
            noun = "model" if total_count == 1 else f"all {total_count} models"
            self.console.print(Text(f"{CROSS} Request failed for {noun}", style="bold red"))
            return

        if total_count <= 1:
            return

        self.console.print()
        summary = f"({successful_count}/{total_count} models responded)"
        if successful_count == total_count:
            self.console.print(Text(f"{CHECK} {summary}", style="green"))
        else:
            self.console.print(Text(summary, style="yellow"))

    def cleanup(self) -> None:
        self._stop_spinner()
