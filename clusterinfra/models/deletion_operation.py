"""Teardown operation model.

One DeletionOperation summarises a single preview or execution of a cluster
teardown; its DeletionRecords hold the per-resource detail.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class OperationMode(Enum):
    """Whether resources were actually deleted."""

    DRY_RUN = "dry-run"
    EXECUTE = "execute"


class OperationStatus(Enum):
    """Final status of a teardown operation."""

    PLANNED = "planned"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"

    @classmethod
    def for_outcome(cls, dry_run: bool, succeeded: int, left_behind: int) -> "OperationStatus":
        """Derive the status from deletion counts.

        A dry run is always planned. Otherwise the teardown completed when
        nothing deletable is left behind, failed when nothing at all was
        deleted, and is partial in between.
        """
        if dry_run:
            return cls.PLANNED
        if left_behind == 0:
            return cls.COMPLETED
        if succeeded == 0:
            return cls.FAILED
        return cls.PARTIAL


@dataclass
class DeletionOperation:
    """Summary of one cluster teardown.

    Attributes:
        operation_id: Unique identifier for the operation
        cluster_name: Cluster whose resources are torn down
        timestamp: When the operation was initiated (UTC)
        mode: dry-run or execute
        status: Final status
        total_resources: Trackers considered by the operation
        succeeded_count: Resources deleted
        failed_count: Resources whose own deletion kept failing
        skipped_count: Shared or ambiguous resources left alone
        blocked_count: Resources left waiting on undeleted dependencies
        planned_count: Resources scheduled by a dry run
        region: AWS region (optional)
        aws_profile: AWS profile used for credentials (optional)
        waves: Deletion waves run
        started_at: Execution start (execute mode only)
        completed_at: Execution end (execute mode only)
        duration_seconds: Execution time (execute mode only)
    """

    operation_id: str
    cluster_name: str
    timestamp: datetime
    mode: OperationMode
    status: OperationStatus
    total_resources: int
    succeeded_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    blocked_count: int = 0
    planned_count: int = 0
    region: Optional[str] = None
    aws_profile: Optional[str] = None
    waves: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None

    @property
    def left_behind(self) -> int:
        """Resources that should have been deleted but were not."""
        return self.failed_count + self.blocked_count

    def validate(self) -> bool:
        """Check that counts, timings and mode agree.

        Returns:
            True if the operation is consistent

        Raises:
            ValueError: If outcome counts do not add up to total_resources,
                execution ends before it starts, or a dry run is not planned
        """
        outcomes = (
            self.succeeded_count, self.failed_count, self.skipped_count, self.blocked_count, self.planned_count
        )
        if sum(outcomes) != self.total_resources:
            raise ValueError(f"Outcome counts add up to {sum(outcomes)}, expected {self.total_resources}")

        if self.started_at and self.completed_at and self.completed_at < self.started_at:
            raise ValueError("Completion time before start time")

        if self.mode == OperationMode.DRY_RUN and self.status != OperationStatus.PLANNED:
            raise ValueError(f"Dry-run operation has status {self.status.value}, expected planned")

        return True

    def to_dict(self) -> dict:
        def stamp(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() + "Z" if value else None

        return {
            "operation_id": self.operation_id,
            "cluster_name": self.cluster_name,
            "timestamp": stamp(self.timestamp),
            "region": self.region,
            "aws_profile": self.aws_profile,
            "mode": self.mode.value,
            "status": self.status.value,
            "total_resources": self.total_resources,
            "succeeded_count": self.succeeded_count,
            "failed_count": self.failed_count,
            "skipped_count": self.skipped_count,
            "blocked_count": self.blocked_count,
            "planned_count": self.planned_count,
            "waves": self.waves,
            "started_at": stamp(self.started_at),
            "completed_at": stamp(self.completed_at),
            "duration_seconds": self.duration_seconds,
        }
