from __future__ import annotations

import threading
from typing import Dict, Iterable, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import MarkerItem, Priority
from .text_utils import trim_snippet

PRIORITY_STYLES = {
    Priority.HIGH: "bold red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "green",
}


class RichLogger:
    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console(stderr=True)
        self.verbose = verbose
        self._lock = threading.Lock()

    def _emit(self, level: str, msg: str, style: str) -> None:
        with self._lock:
            tag = Text(level.ljust(5), style=style)
            self.console.log(tag, msg)

    def info(self, msg: str) -> None:
        self._emit("INFO", msg, "bold green")

    def warn(self, msg: str) -> None:
        self._emit("WARN", msg, "bold yellow")

    def error(self, msg: str) -> None:
        self._emit("ERROR", msg, "bold red")

    def debug(self, msg: str) -> None:
        if not self.verbose:
            return
        self._emit("DEBUG", msg, "bold blue")

    def done(self, msg: str) -> None:
        self._emit("DONE", msg, "bold cyan")


def priority_text(priority: Priority) -> Text:
    return Text(priority.display_name, style=PRIORITY_STYLES.get(priority, ""))


def build_marker_table(items: Iterable[MarkerItem], title: str = "Markers") -> Table:
    table = Table(title=title, header_style="bold")
    table.add_column("File", style="cyan", overflow="fold")
    table.add_column("Line", justify="right")
    table.add_column("Marker")
    table.add_column("Priority")
    for item in items:
        table.add_row(
            Text(item.file_id),
            str(item.line_number),
            Text(trim_snippet(item.text, 120)),
            priority_text(item.priority),
        )
    return table


def build_summary_table(summary: Dict[str, object]) -> Table:
    table = Table(title="Marker Summary", header_style="bold")
    table.add_column("Priority")
    table.add_column("Count", justify="right")
    counts = summary.get("priorities", {}) or {}
    for priority in Priority:
        table.add_row(priority_text(priority), str(counts.get(priority.name, 0)))
    table.add_row(Text("Total", style="bold"), str(summary.get("total", 0)))
    return table
