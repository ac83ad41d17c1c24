"""Cluster teardown module.

This module deletes a cluster's discovered resources in dependency order
without touching resources shared with other clusters.

Classes:
    TeardownPlanner: Plans and executes deletion waves
    DependencyResolver: Dependency graph construction and deletion ordering
    AuditStorage: Audit log storage and retrieval
"""

from __future__ import annotations

from .audit import AuditStorage
from .dependency import DependencyResolver
from .planner import DeletionPlan, TeardownPlanner, TeardownReport

__all__ = [
    "AuditStorage",
    "DeletionPlan",
    "DependencyResolver",
    "TeardownPlanner",
    "TeardownReport",
]
