"""Tests for AuditStorage class.

Test coverage for audit log storage and retrieval with YAML format.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
import yaml

from clusterinfra.models.deletion_operation import DeletionOperation, OperationMode, OperationStatus
from clusterinfra.models.deletion_record import DeletionRecord, DeletionStatus
from clusterinfra.teardown.audit import AuditStorage


def make_operation(operation_id: str, timestamp: datetime, cluster_name: str = "me.example.com") -> DeletionOperation:
    return DeletionOperation(
        operation_id=operation_id,
        cluster_name=cluster_name,
        timestamp=timestamp,
        mode=OperationMode.EXECUTE,
        status=OperationStatus.PARTIAL,
        total_resources=2,
        succeeded_count=1,
        failed_count=1,
        region="us-east-1",
        waves=3,
    )


class TestAuditStorage:
    """Test suite for AuditStorage class."""

    @pytest.fixture
    def temp_storage_dir(self, tmp_path: Path) -> Path:
        """Create temporary storage directory for tests."""
        storage_dir = tmp_path / ".clusterinfra" / "audit-logs"
        storage_dir.mkdir(parents=True)
        return storage_dir

    @pytest.fixture
    def audit_storage(self, temp_storage_dir: Path) -> AuditStorage:
        """Create AuditStorage instance with temp directory."""
        return AuditStorage(storage_dir=str(temp_storage_dir))

    def test_init_creates_storage_directory(self, tmp_path: Path) -> None:
        """Test initialization creates audit-logs directory if missing."""
        storage_dir = tmp_path / "fresh" / "audit-logs"
        assert not storage_dir.exists()

        AuditStorage(storage_dir=str(storage_dir))

        assert storage_dir.is_dir()

    def test_log_operation_creates_yaml_file(self, audit_storage: AuditStorage, temp_storage_dir: Path) -> None:
        """Test logging operation creates YAML file with correct structure."""
        operation = make_operation("op_123", datetime(2026, 10, 11, 15, 30, 0))
        records = [
            DeletionRecord(
                record_id="rec_001",
                operation_id="op_123",
                resource_key="subnet:subnet-1",
                resource_id="subnet-1",
                resource_type="subnet",
                timestamp=datetime(2026, 10, 11, 15, 31, 0),
                status=DeletionStatus.SUCCEEDED,
                deletion_wave=1,
            ),
            DeletionRecord(
                record_id="rec_002",
                operation_id="op_123",
                resource_key="vpc:vpc-1",
                resource_id="vpc-1",
                resource_type="vpc",
                timestamp=datetime(2026, 10, 11, 15, 31, 5),
                status=DeletionStatus.FAILED,
                error_code="DependencyViolation",
                error_message="vpc-1 has dependencies",
                deletion_wave=2,
            ),
        ]

        path = audit_storage.log_operation(operation, records)

        assert path == temp_storage_dir / "2026" / "10" / "operation-op_123.yaml"
        with open(path) as f:
            data = yaml.safe_load(f)
        assert data["metadata"]["log_type"] == "cluster_teardown"
        assert data["operation"]["cluster_name"] == "me.example.com"
        assert data["operation"]["status"] == "partial"
        assert data["operation"]["waves"] == 3
        assert [r["resource_key"] for r in data["records"]] == ["subnet:subnet-1", "vpc:vpc-1"]
        assert data["records"][1]["error_code"] == "DependencyViolation"

    def test_get_operation(self, audit_storage: AuditStorage) -> None:
        """Test retrieval by operation ID."""
        audit_storage.log_operation(make_operation("op_abc", datetime(2026, 9, 1, 8, 0, 0)), [])

        data = audit_storage.get_operation("op_abc")

        assert data is not None
        assert data["operation"]["operation_id"] == "op_abc"
        assert audit_storage.get_operation("op_missing") is None

    def test_query_operations_by_date_and_cluster(self, audit_storage: AuditStorage) -> None:
        """Test query filters by date range and cluster name, oldest first."""
        audit_storage.log_operation(make_operation("op_1", datetime(2026, 8, 1)), [])
        audit_storage.log_operation(make_operation("op_2", datetime(2026, 9, 15)), [])
        audit_storage.log_operation(make_operation("op_3", datetime(2026, 10, 1), cluster_name="other"), [])

        all_ops = audit_storage.query_operations()
        since = audit_storage.query_operations(since=datetime(2026, 9, 1))
        until = audit_storage.query_operations(until=datetime(2026, 8, 31))
        by_cluster = audit_storage.query_operations(cluster_name="other")

        assert [d["operation"]["operation_id"] for d in all_ops] == ["op_1", "op_2", "op_3"]
        assert [d["operation"]["operation_id"] for d in since] == ["op_2", "op_3"]
        assert [d["operation"]["operation_id"] for d in until] == ["op_1"]
        assert [d["operation"]["operation_id"] for d in by_cluster] == ["op_3"]
