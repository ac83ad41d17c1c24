"""Deletion record model.

Individual resource deletion attempt with result and metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class DeletionStatus(Enum):
    """Individual resource deletion status."""

    PLANNED = "planned"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    BLOCKED = "blocked"


@dataclass
class DeletionRecord:
    """Deletion record entity.

    Represents the teardown outcome for a single resource tracker. Each record
    belongs to a DeletionOperation.

    Validation rules:
        - status=succeeded: no error_code or protection_reason
        - status=failed: requires error_code
        - status=blocked: requires error_code and at least one blocking key
        - status=skipped: requires protection_reason
        - resource_key must be "<type>:<id>"

    Attributes:
        record_id: Unique identifier for this record
        operation_id: Parent operation identifier
        resource_key: Tracker key ("<type>:<id>")
        resource_id: Provider identifier
        resource_type: Tracker type (e.g. "vpc")
        resource_name: Display name from the Name tag
        timestamp: When the outcome was recorded (UTC)
        status: Deletion outcome
        error_code: Error code if failed or blocked (optional)
        error_message: Human-readable error (optional)
        protection_reason: Why the resource was skipped (optional)
        deletion_wave: Wave (1-based) the resource was attempted in (optional)
        blocked_by: Keys still blocking this resource (optional)
    """

    record_id: str
    operation_id: str
    resource_key: str
    resource_id: str
    resource_type: str
    timestamp: datetime
    status: DeletionStatus
    resource_name: str = ""
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    protection_reason: Optional[str] = None
    deletion_wave: Optional[int] = None
    blocked_by: list[str] = field(default_factory=list)

    def validate(self) -> bool:
        """Validate record invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.status == DeletionStatus.FAILED:
            if not self.error_code:
                raise ValueError("Failed status requires error_code")
        elif self.status == DeletionStatus.BLOCKED:
            if not self.error_code:
                raise ValueError("Blocked status requires error_code")
            if not self.blocked_by:
                raise ValueError("Blocked status requires blocked_by keys")
        elif self.status == DeletionStatus.SKIPPED:
            if not self.protection_reason:
                raise ValueError("Skipped status requires protection_reason")
        elif self.status == DeletionStatus.SUCCEEDED:
            if self.error_code or self.protection_reason:
                raise ValueError("Succeeded status cannot have error or protection reason")

        if self.resource_key != f"{self.resource_type}:{self.resource_id}":
            raise ValueError(f"Invalid resource key: {self.resource_key}")

        return True

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "operation_id": self.operation_id,
            "resource_key": self.resource_key,
            "resource_id": self.resource_id,
            "resource_type": self.resource_type,
            "resource_name": self.resource_name,
            "timestamp": self.timestamp.isoformat() + "Z",
            "status": self.status.value,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "protection_reason": self.protection_reason,
            "deletion_wave": self.deletion_wave,
            "blocked_by": list(self.blocked_by),
        }
