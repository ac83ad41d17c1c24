"""Main CLI entry point using Typer."""

import logging
import sys
from datetime import datetime
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..aws.client import AWSCloud
from ..errors import ClusterInfraError, DeadlineExceededError, ManifestError, TaskRunError
from ..utils.logging import setup_logging
from .config import Config

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="clusterinfra",
    help="Cluster infrastructure lifecycle - network convergence and safe teardown on AWS",
    add_completion=False,
)

console = Console()

# Global config
config: Optional[Config] = None


def build_cloud() -> AWSCloud:
    """Create the provider object from the resolved configuration."""
    return AWSCloud(region=config.region, profile_name=config.aws_profile)


@app.callback()
def main(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="AWS region"),
    storage_path: Optional[str] = typer.Option(
        None,
        "--storage-path",
        help="Custom path for audit logs (default: ~/.clusterinfra or $CLUSTERINFRA_STORAGE_PATH)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Cluster infrastructure lifecycle - network convergence and safe teardown on AWS."""
    global config

    try:
        config = Config.load()
    except (OSError, ValueError) as e:
        console.print(f"✗ Invalid configuration: {e}", style="bold red")
        raise typer.Exit(code=2)

    # Override with CLI options
    if profile:
        config.aws_profile = profile
    if region:
        config.region = region
    if storage_path:
        config.storage_path = storage_path

    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)

    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"clusterinfra version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


def _audit_dir() -> Optional[str]:
    if config.storage_path:
        return f"{config.storage_path.rstrip('/')}/audit-logs"
    return None


def _collect(cloud: AWSCloud, cluster_name: str, vpc_id: Optional[str]):
    from ..discovery.collector import ResourceCollector

    collector = ResourceCollector(
        cloud,
        cluster_name=cluster_name,
        vpc_id=vpc_id,
        max_workers=config.max_workers,
    )
    return collector.collect(timeout=config.timeout_seconds)


# Resource commands group
resources_app = typer.Typer(help="Cluster resource discovery commands")
app.add_typer(resources_app, name="resources")


@resources_app.command("list")
def resources_list(
    cluster_name: str = typer.Argument(..., help="Cluster name"),
    vpc_id: Optional[str] = typer.Option(None, "--vpc-id", help="Restrict VPC-scoped resources to this VPC"),
    export: Optional[str] = typer.Option(None, "--export", help="Export resource dump (JSON or YAML by extension)"),
):
    """List the cloud resources that belong to a cluster.

    Examples:
        clusterinfra resources list example.k8s.local
        clusterinfra resources list example.k8s.local --export resources.yaml
    """
    try:
        from ..models.resource_tracker import dump_resources
        from ..teardown.reporter import TeardownReporter

        trackers = _collect(build_cloud(), cluster_name, vpc_id)
        reporter = TeardownReporter(console)

        if not trackers:
            console.print(f"No resources found for cluster [bold]{cluster_name}[/bold]", style="yellow")
        else:
            reporter.display_resources(trackers)

        if export:
            if not export.endswith((".json", ".yaml", ".yml")):
                console.print("✗ Unsupported export format. Use .json, .yaml or .yml", style="bold red")
                raise typer.Exit(code=1)
            reporter.export_dump(dump_resources(trackers), export)

    except typer.Exit:
        raise
    except ClusterInfraError as e:
        console.print(f"✗ Error listing resources: {e}", style="bold red")
        raise typer.Exit(code=2)
    except Exception as e:
        console.print(f"✗ Error listing resources: {e}", style="bold red")
        logger.exception("Error in resources list command")
        raise typer.Exit(code=2)


@app.command()
def delete(
    cluster_name: str = typer.Argument(..., help="Cluster name"),
    vpc_id: Optional[str] = typer.Option(None, "--vpc-id", help="Restrict VPC-scoped resources to this VPC"),
    execute: bool = typer.Option(False, "--execute", help="Delete resources (default is a preview)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Deadline in seconds for all deletions"),
    export: Optional[str] = typer.Option(None, "--export", help="Export resource dump before deleting"),
):
    """Delete a cluster's resources in dependency order.

    Resources shared with other consumers are never deleted. Without
    --execute only the deletion plan is shown.

    Examples:
        # Preview
        clusterinfra delete example.k8s.local

        # Delete without prompting
        clusterinfra delete example.k8s.local --execute --yes
    """
    try:
        from ..models.deletion_operation import OperationMode
        from ..models.resource_tracker import dump_resources
        from ..teardown.audit import AuditStorage
        from ..teardown.planner import TeardownPlanner
        from ..teardown.reporter import TeardownReporter

        cloud = build_cloud()
        trackers = _collect(cloud, cluster_name, vpc_id)
        reporter = TeardownReporter(console)

        if not trackers:
            console.print(f"✓ No resources found for cluster [bold]{cluster_name}[/bold]", style="green")
            raise typer.Exit(code=0)

        if export:
            reporter.export_dump(dump_resources(trackers), export)

        planner = TeardownPlanner(
            cloud,
            cluster_name=cluster_name,
            max_workers=config.max_workers,
            retry_budget=config.retry_budget,
            wave_backoff_seconds=config.wave_backoff_seconds,
            audit_storage=AuditStorage(_audit_dir()) if execute else None,
        )
        plan = planner.plan(trackers)

        if not execute:
            reporter.display(planner.execute(plan, dry_run=True))
            console.print("\nRun with --execute to delete these resources", style="yellow")
            raise typer.Exit(code=0)

        if not plan.deletable:
            reporter.display(planner.execute(plan, dry_run=True))
            console.print("Nothing to delete: all remaining resources are shared or blocked", style="yellow")
            raise typer.Exit(code=1 if plan.blocked else 0)

        if not yes:
            typer.confirm(
                f"Delete {len(plan.deletable)} resources of cluster {cluster_name}?",
                abort=True,
            )

        report = planner.execute(plan, timeout=timeout if timeout is not None else config.timeout_seconds)
        reporter.display(report)

        if report.operation.mode == OperationMode.EXECUTE and report.remaining():
            raise typer.Exit(code=1)

    except typer.Exit:
        raise
    except typer.Abort:
        console.print("Aborted", style="yellow")
        raise typer.Exit(code=1)
    except DeadlineExceededError as e:
        if e.report is not None:
            from ..teardown.reporter import TeardownReporter

            TeardownReporter(console).display(e.report)
        console.print(f"✗ Deadline exceeded: {e}", style="bold red")
        raise typer.Exit(code=1)
    except ClusterInfraError as e:
        console.print(f"✗ Error deleting cluster resources: {e}", style="bold red")
        raise typer.Exit(code=2)
    except Exception as e:
        console.print(f"✗ Error deleting cluster resources: {e}", style="bold red")
        logger.exception("Error in delete command")
        raise typer.Exit(code=2)


# Network commands group
network_app = typer.Typer(help="Network convergence commands")
app.add_typer(network_app, name="network")


@network_app.command("apply")
def network_apply(
    manifest: str = typer.Argument(..., help="Network manifest (YAML)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show changes without applying them"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Deadline in seconds for the whole run"),
):
    """Converge the network described by a manifest.

    Only fields that differ from the actual state are changed. Re-running
    against a converged network changes nothing.
    """
    try:
        from ..tasks.manifest import load_network_manifest
        from ..tasks.reporter import RunReporter
        from ..tasks.runner import TaskRunner

        tasks = load_network_manifest(manifest)
        runner = TaskRunner(build_cloud(), max_workers=config.max_workers)
        reporter = RunReporter(console)

        try:
            deadline = timeout if timeout is not None else config.timeout_seconds
            result = runner.run(tasks, dry_run=dry_run, timeout=deadline)
        except TaskRunError as e:
            if e.result is not None:
                reporter.display(e.result, dry_run=dry_run)
            console.print(f"✗ {e}", style="bold red")
            raise typer.Exit(code=1)

        reporter.display(result, dry_run=dry_run)

    except typer.Exit:
        raise
    except ManifestError as e:
        console.print(f"✗ Invalid manifest: {e}", style="bold red")
        raise typer.Exit(code=1)
    except DeadlineExceededError as e:
        console.print(f"✗ Deadline exceeded: {e}", style="bold red")
        raise typer.Exit(code=1)
    except ClusterInfraError as e:
        console.print(f"✗ Error converging network: {e}", style="bold red")
        raise typer.Exit(code=2)
    except Exception as e:
        console.print(f"✗ Error converging network: {e}", style="bold red")
        logger.exception("Error in network apply command")
        raise typer.Exit(code=2)


# Audit commands group
audit_app = typer.Typer(help="Teardown audit log commands")
app.add_typer(audit_app, name="audit")


@audit_app.command("list")
def audit_list(
    cluster_name: Optional[str] = typer.Option(None, "--cluster", "-c", help="Only operations for this cluster"),
    since: Optional[str] = typer.Option(None, "--since", help="Start date (YYYY-MM-DD)"),
    until: Optional[str] = typer.Option(None, "--until", help="End date (YYYY-MM-DD)"),
):
    """List recorded teardown operations."""
    from ..teardown.audit import AuditStorage

    try:
        since_dt = datetime.strptime(since, "%Y-%m-%d") if since else None
        until_dt = datetime.strptime(until, "%Y-%m-%d") if until else None
    except ValueError:
        console.print("✗ Invalid date format. Use YYYY-MM-DD", style="bold red")
        raise typer.Exit(code=1)

    try:
        operations = AuditStorage(_audit_dir()).query_operations(
            since=since_dt, until=until_dt, cluster_name=cluster_name
        )
    except Exception as e:
        console.print(f"✗ Error reading audit logs: {e}", style="bold red")
        logger.exception("Error in audit list command")
        raise typer.Exit(code=2)

    if not operations:
        console.print("No teardown operations recorded", style="yellow")
        return

    table = Table(title="Teardown Operations", show_header=True, header_style="bold magenta")
    table.add_column("Operation", style="cyan")
    table.add_column("Cluster")
    table.add_column("Timestamp")
    table.add_column("Status")
    table.add_column("Deleted", justify="right")
    table.add_column("Left", justify="right")

    for data in operations:
        op = data["operation"]
        table.add_row(
            op["operation_id"],
            op["cluster_name"],
            op["timestamp"],
            op["status"],
            str(op["succeeded_count"]),
            str(op["failed_count"] + op["blocked_count"]),
        )
    console.print(table)


@audit_app.command("show")
def audit_show(operation_id: str = typer.Argument(..., help="Operation ID")):
    """Show the records of a teardown operation."""
    from ..teardown.audit import AuditStorage

    data = AuditStorage(_audit_dir()).get_operation(operation_id)
    if data is None:
        console.print(f"✗ Operation '{operation_id}' not found", style="bold red")
        raise typer.Exit(code=1)

    op = data["operation"]
    console.print(f"[bold]Operation:[/bold] {op['operation_id']}")
    console.print(f"[bold]Cluster:[/bold] {op['cluster_name']}")
    console.print(f"[bold]Status:[/bold] {op['status']} ({op['waves']} waves)")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Resource", style="cyan")
    table.add_column("Status")
    table.add_column("Wave", justify="right")
    table.add_column("Reason")
    for record in data.get("records", []):
        reason = record.get("protection_reason") or record.get("error_message") or ""
        if record.get("blocked_by"):
            reason = f"{reason} (waiting on {', '.join(record['blocked_by'])})"
        table.add_row(
            record["resource_key"],
            record["status"],
            str(record.get("deletion_wave") or ""),
            reason,
        )
    console.print(table)


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
