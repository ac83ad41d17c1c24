"""Convergence of declared network state.

Classes:
    Task: Base class of declarative desired-state units
    VPC, Subnet, RouteTable: EC2 network tasks
    TaskRunner: Runs a task map in dependency order
"""

from __future__ import annotations

from .changes import Action, TaskOutcome, build_changes, diff, run_task
from .manifest import load_network_manifest
from .route_table import RouteTable
from .runner import RunResult, TaskRunner
from .subnet import Subnet
from .task import Lifecycle, Task
from .vpc import VPC

__all__ = [
    "Action",
    "Lifecycle",
    "RouteTable",
    "RunResult",
    "Subnet",
    "Task",
    "TaskOutcome",
    "TaskRunner",
    "VPC",
    "build_changes",
    "diff",
    "load_network_manifest",
    "run_task",
]
