"""Data models for discovered resources and teardown outcomes."""

from __future__ import annotations

from .deletion_operation import DeletionOperation, OperationMode, OperationStatus
from .deletion_record import DeletionRecord, DeletionStatus
from .resource_tracker import Dump, DumpOperation, ResourceTracker, dump_resources

__all__ = [
    "DeletionOperation",
    "DeletionRecord",
    "DeletionStatus",
    "Dump",
    "DumpOperation",
    "OperationMode",
    "OperationStatus",
    "ResourceTracker",
    "dump_resources",
]
