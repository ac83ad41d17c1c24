"""Task run result formatting and display."""

from __future__ import annotations

from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from .changes import Action, changed_fields
from .runner import RunResult
from .task import Task

ACTION_STYLES = {
    Action.CREATE: "green",
    Action.UPDATE: "yellow",
    Action.NONE: "dim",
    Action.WARN: "bold yellow",
}


def format_changes(changes: Any) -> str:
    """Render the populated fields of a changes value as "field=value" lines."""
    if changes is None:
        return ""
    lines = []
    for name in changed_fields(changes):
        value = getattr(changes, name)
        if isinstance(value, Task):
            value = value.task_id or value.name
        elif isinstance(value, list):
            value = ", ".join(str(item.task_id or item.name) if isinstance(item, Task) else str(item) for item in value)
        lines.append(f"{name}={value}")
    return "\n".join(lines)


class RunReporter:
    """Display the outcome of a task runner pass."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display(self, result: RunResult, dry_run: bool = False) -> None:
        table = Table(title="Network Tasks (dry run)" if dry_run else "Network Tasks", show_header=True)
        table.add_column("Task", style="cyan")
        table.add_column("Action")
        table.add_column("Changes")

        for key in sorted(result.outcomes):
            outcome = result.outcomes[key]
            style = ACTION_STYLES[outcome.action]
            detail = format_changes(outcome.changes)
            if outcome.message:
                detail = f"{detail}\n{outcome.message}" if detail else outcome.message
            table.add_row(key, f"[{style}]{outcome.action.value}[/{style}]", detail)

        for key in sorted(result.failures):
            error = result.failures[key]
            detail = format_changes(error.changes)
            message = str(error)
            table.add_row(key, "[bold red]failed[/bold red]", f"{detail}\n{message}" if detail else message)

        for key in sorted(result.skipped):
            table.add_row(key, "[red]skipped[/red]", f"waiting on {', '.join(result.skipped[key])}")

        self.console.print(table)

        unconverged = len(result.failures) + len(result.skipped)
        if unconverged:
            self.console.print(f"[bold red]✗ {unconverged} task(s) did not converge[/bold red]")
        elif dry_run:
            self.console.print(f"{len(result.pending)} task(s) would change")
        else:
            self.console.print(f"[green]✓ Converged ({len(result.applied)} task(s) changed)[/green]")
