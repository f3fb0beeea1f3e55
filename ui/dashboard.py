"""
Rich-based terminal dashboard for speed-test results.

All formatting helpers live in ``speedcore.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

import statistics
from typing import Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from speedcore.clock import Sample
from speedcore.grading import NetworkGrade
from speedcore.latency import LatencyResult
from speedcore.sampler import ThroughputResult
from speedcore.stats import format_latency, format_speed

console = Console()


# ---------------------------------------------------------------------------
# Sparkline helper
# ---------------------------------------------------------------------------

_BARS = "▁▂▃▄▅▆▇█"


def create_sparkline(values: Sequence[float], width: int = 40) -> str:
    """Return a single-line Unicode bar-chart of at most *width* bars."""
    if not values:
        return "No data"

    if len(values) > width:
        step = len(values) / width
        values = [values[int(i * step)] for i in range(width)]

    lo, hi = min(values), max(values)
    span = hi - lo if hi > lo else 1.0
    top = len(_BARS) - 1
    return "".join(_BARS[min(int((v - lo) / span * top), top)] for v in values)


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header(server_name: str) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Internet Speed Test[/bold cyan]\n"
            f"[dim]Latency, jitter and throughput against {server_name}[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_latency_details(result: LatencyResult) -> None:
    """Print latency statistics and a sparkline of the trips."""
    table = Table(title="Latency Details", box=box.ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    pings = result.samples
    if pings:
        table.add_row("Min", format_latency(result.min_latency_ms))
        table.add_row("Max", format_latency(max(pings)))
        table.add_row("Mean", format_latency(statistics.mean(pings)))
        table.add_row("Median", format_latency(statistics.median(pings)))
    table.add_row("Jitter", f"{result.jitter_ms:.2f} ms")
    table.add_row("Trips", f"{len(pings)}/{result.attempts}")
    console.print(table)

    if pings:
        console.print(
            Panel(
                f"[cyan]{create_sparkline(pings, width=len(pings))}[/cyan]",
                title="Ping Trips",
            )
        )


def print_speed_result(result: ThroughputResult, title: str, color: str = "green") -> None:
    """Print a download or upload result panel."""
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Speed", f"[bold {color}]{format_speed(result.mbps)}[/bold {color}]")
    table.add_row("Data Transferred", f"{result.bytes_total / 1_000_000:.1f} MB")
    table.add_row("Duration", f"{result.duration_ms / 1000:.1f} s")
    console.print(table)

    rates = [s.rate_mbps for s in result.samples]
    if rates:
        console.print(
            Panel(
                f"[{color}]{create_sparkline(rates)}[/{color}]\n"
                f"[dim]Peak: {max(rates):.1f} Mbps[/dim]",
                title="Speed Over Time",
            )
        )


def print_final_results(
    ping_ms: float,
    jitter_ms: float,
    download_mbps: float,
    upload_mbps: float,
    grade: NetworkGrade,
) -> None:
    console.print()
    console.print(
        Panel.fit(
            f"[bold {grade.color}]Grade {grade.grade}[/bold {grade.color}] "
            f"[dim]({grade.label})[/dim]\n\n"
            f"[bold white]   Ping:[/bold white]  [bold yellow]{ping_ms:.1f} ms[/bold yellow]  "
            f"[dim](jitter: {jitter_ms:.2f} ms)[/dim]\n"
            f"[bold white]   Download:[/bold white]  [bold green]{format_speed(download_mbps)}[/bold green]\n"
            f"[bold white]   Upload:[/bold white]  [bold blue]{format_speed(upload_mbps)}[/bold blue]\n\n"
            f"[dim]Streaming: {grade.streaming}  Gaming: {grade.gaming}[/dim]",
            title="[bold]Results[/bold]",
            border_style="cyan",
        )
    )
    console.print()


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """Manages a ``rich`` progress bar during a measurement phase."""

    def __init__(self) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=30),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("[bold cyan]{task.fields[speed]}[/bold cyan]"),
            TextColumn("[cyan]{task.fields[curve]}[/cyan]"),
            TimeElapsedColumn(),
            console=console,
        )
        self._task_id = None
        self._last_speed = 0.0
        self._last_percent = 0.0

    def start(self, description: str) -> None:
        self.progress.start()
        self._task_id = self.progress.add_task(description, total=100, speed="", curve="")
        self._last_speed = 0.0
        self._last_percent = 0.0

    def update(self, speed_mbps: float, percent: float, samples: Sequence[Sample] = ()) -> None:
        """Progress-callback compatible: ``(rate, percent, samples)``."""
        if self._task_id is None:
            return
        # Debounce: only redraw when values change noticeably
        if abs(percent - self._last_percent) < 1.0 and abs(speed_mbps - self._last_speed) < 1.0:
            return
        speed_str = format_speed(speed_mbps) if speed_mbps > 0 else "..."
        curve = create_sparkline([s.rate_mbps for s in samples], width=20) if samples else ""
        self.progress.update(self._task_id, completed=percent, speed=speed_str, curve=curve)
        self._last_percent = percent
        self._last_speed = speed_mbps

    def stop(self) -> None:
        if self._task_id is not None:
            self.progress.update(self._task_id, completed=100)
        self.progress.stop()
