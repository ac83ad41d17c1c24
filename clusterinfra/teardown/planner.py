"""Teardown planner for cluster deletion.

Orders a cluster's resource trackers by their dependency edges and deletes
them in waves with preview and execution modes.
"""

from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..errors import DeadlineExceededError, ProviderError
from ..models.deletion_operation import DeletionOperation, OperationMode, OperationStatus
from ..models.deletion_record import DeletionRecord, DeletionStatus
from ..models.resource_tracker import ResourceTracker
from .audit import AuditStorage
from .deleter import delete_tracker
from .dependency import DependencyResolver

logger = logging.getLogger(__name__)

DEPENDENCY_UNRESOLVED = "DependencyUnresolved"
AMBIGUOUS_OWNERSHIP = "AmbiguousOwnership"
DEADLINE_EXCEEDED = "DeadlineExceeded"


@dataclass
class DeletionPlan:
    """Static deletion order for a set of trackers.

    Attributes:
        trackers: All trackers considered, keyed by tracker key
        waves: Deletable keys grouped into waves; a key only waits on keys in
            earlier waves
        shared: Keys never scheduled for deletion
        blocked: Keys that can never be deleted in this run, mapped to the
            keys blocking them (shared resources, cycles, or other blocked keys)
        children: For each deletable key, the deletable keys that must go first
    """

    trackers: Dict[str, ResourceTracker]
    waves: List[List[str]] = field(default_factory=list)
    shared: List[str] = field(default_factory=list)
    blocked: Dict[str, List[str]] = field(default_factory=dict)
    children: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def deletable(self) -> List[str]:
        return [key for wave in self.waves for key in wave]


@dataclass
class TeardownReport:
    """Outcome of a teardown operation."""

    operation: DeletionOperation
    records: List[DeletionRecord] = field(default_factory=list)

    def remaining(self) -> List[DeletionRecord]:
        """Records of resources left undeleted (failed or blocked)."""
        return [r for r in self.records if r.status in (DeletionStatus.FAILED, DeletionStatus.BLOCKED)]

    def by_status(self, status: DeletionStatus) -> List[DeletionRecord]:
        return [r for r in self.records if r.status == status]


class TeardownPlanner:
    """Teardown planner and executor.

    Plans a deletion order from tracker dependency edges, then deletes wave
    by wave. Each wave's members are deleted concurrently and the next wave
    is computed only after the whole wave finished. A failed deletion does
    not stop unrelated resources; it is retried in later waves. After
    ``retry_budget`` consecutive waves without progress the remaining
    resources are reported as failed or blocked.

    Attributes:
        cloud: Provider object passed to deleters
        cluster_name: Cluster being torn down
        max_workers: Concurrent deletions per wave
        retry_budget: Consecutive no-progress waves tolerated
        wave_backoff_seconds: Pause after a wave without progress
        audit_storage: Audit storage for executed operations (optional)
    """

    def __init__(
        self,
        cloud: Any,
        cluster_name: str,
        max_workers: int = 8,
        retry_budget: int = 2,
        wave_backoff_seconds: float = 5.0,
        audit_storage: Optional[AuditStorage] = None,
    ) -> None:
        self.cloud = cloud
        self.cluster_name = cluster_name
        self.max_workers = max_workers
        self.retry_budget = retry_budget
        self.wave_backoff_seconds = wave_backoff_seconds
        self.audit_storage = audit_storage

    def plan(self, trackers: Mapping[str, ResourceTracker]) -> DeletionPlan:
        """Build the deletion plan for a set of trackers.

        Args:
            trackers: Trackers keyed by tracker key

        Returns:
            DeletionPlan with waves, shared keys and permanently blocked keys
        """
        resolver = DependencyResolver()
        resolver.build_graph_from_trackers(trackers)

        plan = DeletionPlan(trackers=dict(trackers))
        plan.shared = sorted(key for key, t in trackers.items() if t.shared)

        children = {key: [c for c in resolver.children_of(key) if c in trackers] for key in trackers}
        undeletable = set(plan.shared)
        candidates = set(trackers) - undeletable

        # Anything waiting on an undeletable key is itself undeletable.
        changed = True
        while changed:
            changed = False
            for key in sorted(candidates):
                blockers = [c for c in children[key] if c in undeletable]
                if blockers:
                    plan.blocked[key] = blockers
                    undeletable.add(key)
                    candidates.discard(key)
                    changed = True

        try:
            tiers = resolver.get_deletion_tiers(candidates)
        except ValueError as e:
            logger.warning(f"{e}; resources in the cycle will not be deleted")
            cyclic = self._unorderable(candidates, children)
            for key in sorted(cyclic):
                plan.blocked[key] = [c for c in children[key] if c in cyclic]
            candidates -= cyclic
            tiers = resolver.get_deletion_tiers(candidates)

        plan.waves = [tiers[tier] for tier in sorted(tiers)]
        plan.children = {key: [c for c in children[key] if c in candidates] for key in candidates}
        for key, blockers in sorted(plan.blocked.items()):
            logger.info(f"{key} cannot be deleted while {', '.join(blockers)} remains")
        return plan

    @staticmethod
    def _unorderable(candidates: set[str], children: Mapping[str, List[str]]) -> set[str]:
        """Return keys that cannot be ordered (cycles and keys waiting on them)."""
        remaining = set(candidates)
        progress = True
        while progress:
            progress = False
            for key in sorted(remaining):
                if not any(c in remaining for c in children[key]):
                    remaining.discard(key)
                    progress = True
        return remaining

    def preview(self, trackers: Mapping[str, ResourceTracker]) -> TeardownReport:
        """Plan and report what a teardown would do, without deleting anything."""
        return self.execute(self.plan(trackers), dry_run=True)

    def execute(self, plan: DeletionPlan, dry_run: bool = False, timeout: Optional[float] = None) -> TeardownReport:
        """Execute a deletion plan.

        Args:
            plan: Plan from plan()
            dry_run: Only report what would be deleted
            timeout: Seconds before pending deletions are abandoned (optional)

        Returns:
            TeardownReport with one record per tracker

        Raises:
            DeadlineExceededError: If the timeout expires while deletions are
                pending. The audit log is still written and the partial
                report is attached as ``report``.
        """
        operation_id = f"op_{uuid.uuid4()}"
        started_at = datetime.utcnow()
        records: List[DeletionRecord] = []

        for key in plan.shared:
            records.append(self._skipped_record(operation_id, plan.trackers[key]))
        for key, blockers in sorted(plan.blocked.items()):
            records.append(
                self._record(
                    operation_id,
                    plan.trackers[key],
                    DeletionStatus.BLOCKED,
                    error_code=DEPENDENCY_UNRESOLVED,
                    error_message="Blocked by resources that will not be deleted",
                    blocked_by=blockers,
                )
            )

        if dry_run:
            for wave_number, wave in enumerate(plan.waves, start=1):
                for key in wave:
                    records.append(
                        self._record(operation_id, plan.trackers[key], DeletionStatus.PLANNED, wave=wave_number)
                    )
            waves_run = 0
            timed_out: List[str] = []
        else:
            wave_records, waves_run, timed_out = self._run_waves(operation_id, plan, timeout)
            records.extend(wave_records)

        operation = self._build_operation(operation_id, started_at, plan, records, dry_run, waves_run)
        report = TeardownReport(operation=operation, records=records)

        if not dry_run and self.audit_storage is not None:
            self.audit_storage.log_operation(operation, records)

        if timed_out:
            raise DeadlineExceededError(f"Timed out deleting: {', '.join(timed_out)}", report=report)
        return report

    def _run_waves(
        self, operation_id: str, plan: DeletionPlan, timeout: Optional[float]
    ) -> tuple[List[DeletionRecord], int, List[str]]:
        deadline = time.monotonic() + timeout if timeout is not None else None
        pending = set(plan.deletable)
        deleted: Dict[str, int] = {}
        errors: Dict[str, Exception] = {}
        timed_out: List[str] = []
        wave_number = 0
        no_progress = 0

        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="teardown")
        try:
            while pending:
                eligible = sorted(k for k in pending if all(c in deleted for c in plan.children[k]))
                if not eligible:
                    break

                wave_number += 1
                logger.info(f"Wave {wave_number}: deleting {len(eligible)} resources")
                futures = {executor.submit(delete_tracker, self.cloud, plan.trackers[k]): k for k in eligible}
                _, not_done = wait(futures, timeout=self._remaining(deadline))
                if not_done:
                    timed_out = sorted(futures[f] for f in not_done)
                    logger.error(f"Deadline expired with deletions still running: {', '.join(timed_out)}")

                progress = False
                for future, key in futures.items():
                    if future in not_done:
                        continue
                    try:
                        future.result()
                    except Exception as e:
                        logger.warning(f"Failed to delete {key}: {e}")
                        errors[key] = e
                        continue
                    deleted[key] = wave_number
                    pending.discard(key)
                    errors.pop(key, None)
                    progress = True

                if timed_out:
                    break
                if progress:
                    no_progress = 0
                    continue

                no_progress += 1
                if no_progress > self.retry_budget:
                    logger.warning(f"No progress after {no_progress} waves; giving up on {len(pending)} resources")
                    break
                self._backoff(deadline)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        records = []
        for key in plan.deletable:
            tracker = plan.trackers[key]
            if key in deleted:
                records.append(self._record(operation_id, tracker, DeletionStatus.SUCCEEDED, wave=deleted[key]))
                continue
            if key in timed_out:
                records.append(
                    self._record(
                        operation_id,
                        tracker,
                        DeletionStatus.FAILED,
                        error_code=DEADLINE_EXCEEDED,
                        error_message="Deletion still running when the deadline expired",
                        wave=wave_number,
                    )
                )
                continue
            waiting_on = [c for c in plan.children[key] if c not in deleted]
            if waiting_on:
                records.append(
                    self._record(
                        operation_id,
                        tracker,
                        DeletionStatus.BLOCKED,
                        error_code=DEPENDENCY_UNRESOLVED,
                        error_message="Blocked by resources that could not be deleted",
                        blocked_by=waiting_on,
                    )
                )
                continue
            error = errors.get(key)
            records.append(
                self._record(
                    operation_id,
                    tracker,
                    DeletionStatus.FAILED,
                    error_code=self._error_code(error),
                    error_message=str(error) if error else "Deletion was not attempted",
                )
            )
        return records, wave_number, timed_out

    def _backoff(self, deadline: Optional[float]) -> None:
        delay = self.wave_backoff_seconds
        if deadline is not None:
            delay = min(delay, max(deadline - time.monotonic(), 0.0))
        if delay > 0:
            time.sleep(delay)

    @staticmethod
    def _remaining(deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        return max(deadline - time.monotonic(), 0.0)

    @staticmethod
    def _error_code(error: Optional[Exception]) -> str:
        if isinstance(error, ProviderError) and error.code:
            return error.code
        if error is None:
            return "NotAttempted"
        return type(error).__name__

    def _skipped_record(self, operation_id: str, tracker: ResourceTracker) -> DeletionRecord:
        if tracker.ownership == "ambiguous":
            return self._record(
                operation_id,
                tracker,
                DeletionStatus.SKIPPED,
                error_code=AMBIGUOUS_OWNERSHIP,
                protection_reason="Ambiguous ownership tags; treated as shared",
            )
        return self._record(
            operation_id,
            tracker,
            DeletionStatus.SKIPPED,
            protection_reason=f"Shared with other consumers of cluster {self.cluster_name}",
        )

    @staticmethod
    def _record(
        operation_id: str,
        tracker: ResourceTracker,
        status: DeletionStatus,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        protection_reason: Optional[str] = None,
        wave: Optional[int] = None,
        blocked_by: Optional[List[str]] = None,
    ) -> DeletionRecord:
        return DeletionRecord(
            record_id=f"rec_{uuid.uuid4()}",
            operation_id=operation_id,
            resource_key=tracker.key,
            resource_id=tracker.id,
            resource_type=tracker.type,
            resource_name=tracker.name,
            timestamp=datetime.utcnow(),
            status=status,
            error_code=error_code,
            error_message=error_message,
            protection_reason=protection_reason,
            deletion_wave=wave,
            blocked_by=list(blocked_by or []),
        )

    def _build_operation(
        self,
        operation_id: str,
        started_at: datetime,
        plan: DeletionPlan,
        records: List[DeletionRecord],
        dry_run: bool,
        waves_run: int,
    ) -> DeletionOperation:
        counts = {status: 0 for status in DeletionStatus}
        for record in records:
            counts[record.status] += 1

        status = OperationStatus.for_outcome(
            dry_run,
            succeeded=counts[DeletionStatus.SUCCEEDED],
            left_behind=counts[DeletionStatus.FAILED] + counts[DeletionStatus.BLOCKED],
        )

        completed_at = datetime.utcnow()
        return DeletionOperation(
            operation_id=operation_id,
            cluster_name=self.cluster_name,
            timestamp=started_at,
            mode=OperationMode.DRY_RUN if dry_run else OperationMode.EXECUTE,
            status=status,
            total_resources=len(plan.trackers),
            succeeded_count=counts[DeletionStatus.SUCCEEDED],
            failed_count=counts[DeletionStatus.FAILED],
            skipped_count=counts[DeletionStatus.SKIPPED],
            blocked_count=counts[DeletionStatus.BLOCKED],
            planned_count=counts[DeletionStatus.PLANNED],
            region=getattr(self.cloud, "region", None),
            aws_profile=getattr(self.cloud, "profile_name", None),
            waves=waves_run,
            started_at=None if dry_run else started_at,
            completed_at=None if dry_run else completed_at,
            duration_seconds=None if dry_run else (completed_at - started_at).total_seconds(),
        )
