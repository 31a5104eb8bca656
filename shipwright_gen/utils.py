"""Shared console helpers for the Shipwright generator.

Provides Rich-based progress reporting and tables for the engine and CLI.
Every helper prints to the module-level :data:`console` unless another
``Console`` is passed as ``out`` (tests pass a recording or quiet one).
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from shipwright_gen.workspace.models import WorkspaceGraph

console = Console()


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(0.042)  -> "42ms"
        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0ms"
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


def display_path(path: Path, root: Path | None = None) -> str:
    """Return *path* relative to *root* when it lies inside it."""
    if root is not None:
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            pass
    return str(path)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


STEP_NAMES: dict[int, str] = {
    1: "WORKSPACE",
    2: "RESOURCE",
    3: "RENDER",
    4: "WRITE",
}

STEP_COLORS: dict[int, str] = {
    1: "bright_cyan",
    2: "bright_green",
    3: "bright_yellow",
    4: "bright_magenta",
}


def print_step_header(step: int, name: str, out: Console | None = None) -> None:
    """Print a full-width rule naming one generation step."""
    out = out or console
    color = STEP_COLORS.get(step, "white")
    out.print(Rule(f"[bold {color}] Step {step}: {name.upper()} [/bold {color}]", style=color))


def print_summary_table(
    data: dict[str, str], title: str = "Summary", out: Console | None = None
) -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
        out: Console to print to.
    """
    out = out or console
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    out.print(table)
    out.print()


def print_artifact_table(
    rows: Iterable[tuple[str, str, Path]],
    root: Path | None = None,
    title: str = "Artifacts",
    out: Console | None = None,
) -> None:
    """Print ``(kind, package, path)`` rows, paths relative to *root*."""
    out = out or console
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Kind", style="bold")
    table.add_column("Package")
    table.add_column("Path")

    for kind, package, path in rows:
        table.add_row(kind, package, display_path(path, root))

    out.print(table)


def print_workspace_table(graph: WorkspaceGraph, out: Console | None = None) -> None:
    """Print every package of *graph* in topological order."""
    out = out or console
    table = Table(title=f"Workspace {graph.root}", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Package", style="bold")
    table.add_column("Kind")
    table.add_column("Roles")
    table.add_column("Depends on")

    for index, node in enumerate(graph.nodes(), start=1):
        table.add_row(
            str(index),
            node.name,
            node.kind.value,
            ", ".join(sorted(r.value for r in node.roles)) or "-",
            ", ".join(sorted(node.dependencies)) or "-",
        )

    out.print(table)


def print_success(message: str, out: Console | None = None) -> None:
    """Print a green success message."""
    (out or console).print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str, out: Console | None = None) -> None:
    """Print a red error message."""
    (out or console).print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str, out: Console | None = None) -> None:
    """Print a yellow warning message."""
    (out or console).print(f"[bold yellow]{escape(message)}[/bold yellow]")
