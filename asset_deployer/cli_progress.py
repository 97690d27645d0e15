"""Console rendering and progress helpers for the asset-deploy CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from .utils import events as deploy_events

console = Console()


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]asset-deploy[/bold green]",
        subtitle="[dim]S3 + CloudFront[/dim]",
        border_style="blue",
    )
    console.print(panel)


class DeployProgressDisplay:
    """Event-based console display for a deploy session."""

    def __init__(self, show_progress: bool = True):
        self._stats: Dict[str, int] = {"total": 0, "uploaded": 0, "failed": 0}
        self._failures: List[str] = []
        self._task_id: Optional[TaskID] = None
        self._progress: Optional[Progress] = None
        if show_progress:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
                BarColumn(bar_width=36),
                TextColumn("{task.completed}/{task.total}"),
                expand=False,
                console=console,
            )

    def attach(self, events) -> None:
        events.on(deploy_events.PHASE, self.on_phase)
        events.on(deploy_events.FILE_COMPLETE, self.on_file_complete)
        events.on(deploy_events.FILE_FAIL, self.on_file_fail)
        events.on(deploy_events.INVALIDATED, self.on_invalidated)

    def on_phase(self, phase: str, total: int = 0) -> None:
        if phase == "uploading":
            self._stats["total"] = total
            if self._progress is not None and total:
                self._progress.start()
                self._task_id = self._progress.add_task("upload", label="Uploading", total=total)
            else:
                console.print(f"[cyan]Uploading[/cyan] {total} file(s)")
            return
        self._stop()
        console.print(f"[dim]{time.strftime('%H:%M:%S')}[/dim] [blue]{phase}[/blue]")

    def on_file_complete(self, name: str) -> None:
        self._stats["uploaded"] += 1
        self._advance()

    def on_file_fail(self, name: str, error: Exception) -> None:
        self._stats["failed"] += 1
        self._failures.append(f"{name}: {error}")
        self._advance()

    def on_invalidated(self, invalidation_ids: List[str]) -> None:
        console.print(f"[green]Invalidated[/green] {', '.join(invalidation_ids)}")

    def _advance(self) -> None:
        if self._progress is not None and self._task_id is not None:
            self._progress.advance(self._task_id)

    def _stop(self) -> None:
        if self._progress is not None and self._task_id is not None:
            self._progress.stop()
            self._task_id = None

    def finish(self, success: bool, elapsed: float, error: Optional[str] = None) -> None:
        self._stop()
        for failure in self._failures:
            console.print(f"[red]Failed:[/red] {failure}")
        if success:
            console.print(
                f"[bold green]Deployed {self._stats['uploaded']} file(s) in {elapsed:.2f}s.[/bold green]"
            )
            return
        suffix = f" - {error}" if error else ""
        console.print(f"[bold red]Deploy failed after {elapsed:.2f}s{suffix}[/bold red]")

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)
