"""Audit storage for teardown operations.

Every executed teardown is written as one YAML file holding the operation
summary and a record per resource tracker, so left-behind resources can be
inspected after the fact.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from ..models.deletion_operation import DeletionOperation
from ..models.deletion_record import DeletionRecord


class AuditStorage:
    """Audit log storage and retrieval.

    Stores teardown audit logs as YAML files organized by year/month.

    Storage structure:
        ~/.clusterinfra/audit-logs/
            2026/
                10/
                    operation-op_123.yaml

    Attributes:
        storage_dir: Base directory for audit logs
    """

    def __init__(self, storage_dir: Optional[str] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for audit logs (default: ~/.clusterinfra/audit-logs)
        """
        if storage_dir is None:
            storage_dir = str(Path.home() / ".clusterinfra" / "audit-logs")

        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def log_operation(self, operation: DeletionOperation, records: list[DeletionRecord]) -> Path:
        """Log a teardown operation with all its deletion records.

        Overwrites an existing log with the same operation ID.

        Args:
            operation: Deletion operation to log
            records: Deletion records for this operation

        Returns:
            Path of the written audit file
        """
        year_month_dir = self.storage_dir / str(operation.timestamp.year) / f"{operation.timestamp.month:02d}"
        year_month_dir.mkdir(parents=True, exist_ok=True)

        audit_data = {
            "metadata": {
                "version": "1.0",
                "log_type": "cluster_teardown",
                "created_at": datetime.utcnow().isoformat() + "Z",
            },
            "operation": operation.to_dict(),
            "records": [record.to_dict() for record in records],
        }

        audit_file = year_month_dir / f"operation-{operation.operation_id}.yaml"
        with open(audit_file, "w") as f:
            yaml.safe_dump(audit_data, f, default_flow_style=False, sort_keys=False)
        return audit_file

    def get_operation(self, operation_id: str) -> Optional[dict]:
        """Retrieve an operation audit log by ID.

        Args:
            operation_id: Operation ID to retrieve

        Returns:
            Audit log dictionary if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/operation-{operation_id}.yaml"):
            with open(audit_file, "r") as f:
                return yaml.safe_load(f)
        return None

    def query_operations(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        cluster_name: Optional[str] = None,
    ) -> list[dict]:
        """Query operations within a date range.

        Args:
            since: Start date (inclusive), None for all
            until: End date (inclusive), None for all
            cluster_name: Only operations for this cluster (optional)

        Returns:
            List of operation audit logs matching criteria, oldest first
        """
        results = []

        for audit_file in sorted(self.storage_dir.glob("*/*/operation-*.yaml")):
            with open(audit_file, "r") as f:
                audit_data = yaml.safe_load(f)

            operation = audit_data["operation"]
            timestamp = datetime.fromisoformat(operation["timestamp"].rstrip("Z"))

            if since and timestamp < since:
                continue
            if until and timestamp > until:
                continue
            if cluster_name and operation.get("cluster_name") != cluster_name:
                continue

            results.append(audit_data)

        results.sort(key=lambda data: data["operation"]["timestamp"])
        return results
