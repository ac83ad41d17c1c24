"""Teardown report formatting and display."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional

import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.deletion_operation import OperationMode
from ..models.deletion_record import DeletionStatus
from ..models.resource_tracker import Dump, ResourceTracker
from .planner import TeardownReport

STATUS_STYLES = {
    DeletionStatus.PLANNED: "cyan",
    DeletionStatus.SUCCEEDED: "green",
    DeletionStatus.FAILED: "bold red",
    DeletionStatus.SKIPPED: "yellow",
    DeletionStatus.BLOCKED: "red",
}


class TeardownReporter:
    """Format and display teardown reports and resource listings."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize teardown reporter.

        Args:
            console: Rich console instance (creates new one if not provided)
        """
        self.console = console or Console()

    def display_resources(self, trackers: Dict[str, ResourceTracker]) -> None:
        """Display discovered resources as a table."""
        table = Table(title="Cluster Resources", show_header=True, header_style="bold magenta")
        table.add_column("Type", style="cyan")
        table.add_column("ID")
        table.add_column("Name")
        table.add_column("Ownership")
        table.add_column("Blocks", style="dim")

        for key in sorted(trackers):
            tracker = trackers[key]
            ownership = tracker.ownership or ("shared" if tracker.shared else "owned")
            style = "yellow" if tracker.shared else "green"
            table.add_row(
                tracker.type,
                tracker.id,
                tracker.name,
                f"[{style}]{ownership}[/{style}]",
                ", ".join(sorted(tracker.blocks)),
            )

        self.console.print(table)
        self.console.print(f"Total resources: {len(trackers)}")

    def display(self, report: TeardownReport) -> None:
        """Display a teardown report.

        Every resource left undeleted is listed with its reason.
        """
        operation = report.operation
        title = "Teardown Preview" if operation.mode == OperationMode.DRY_RUN else "Teardown Result"

        self.console.print()
        self.console.print(
            Panel(
                f"[bold]{title}[/bold]\n"
                f"Cluster: {operation.cluster_name}\n"
                f"Operation: {operation.operation_id}\n"
                f"Status: {operation.status.value}",
                style="cyan",
            )
        )

        summary = Table(title="Summary", show_header=True, header_style="bold magenta")
        summary.add_column("Outcome", style="cyan", width=12)
        summary.add_column("Count", justify="right", style="yellow", width=8)
        for status in DeletionStatus:
            count = len(report.by_status(status))
            if count:
                summary.add_row(status.value, str(count))
        self.console.print(summary)

        details = Table(show_header=True, header_style="bold")
        details.add_column("Wave", justify="right")
        details.add_column("Resource")
        details.add_column("Name")
        details.add_column("Outcome")
        details.add_column("Reason")

        ordered = sorted(report.records, key=lambda r: (r.deletion_wave or 0, r.resource_key))
        for record in ordered:
            style = STATUS_STYLES[record.status]
            reason = record.protection_reason or record.error_message or ""
            if record.blocked_by:
                reason = f"{reason} (waiting on {', '.join(record.blocked_by)})"
            details.add_row(
                str(record.deletion_wave or ""),
                record.resource_key,
                record.resource_name,
                f"[{style}]{record.status.value}[/{style}]",
                reason,
            )
        self.console.print(details)

        remaining = report.remaining()
        if remaining and operation.mode == OperationMode.EXECUTE:
            self.console.print(f"[bold red]✗ {len(remaining)} resource(s) were not deleted[/bold red]")
        elif operation.mode == OperationMode.EXECUTE:
            self.console.print("[green]✓ All cluster-owned resources deleted[/green]")

    def export_dump(self, dump: Dump, filepath: str) -> None:
        """Export a resource dump to JSON or YAML (by extension)."""
        path = Path(filepath)
        data = dump.to_dict()
        with open(path, "w") as f:
            if path.suffix in (".yaml", ".yml"):
                yaml.safe_dump(json.loads(json.dumps(data, default=str)), f, default_flow_style=False)
            else:
                json.dump(data, f, indent=2, default=str)
        self.console.print(f"✓ Exported {len(dump.resources)} resources to {filepath}", style="green")
