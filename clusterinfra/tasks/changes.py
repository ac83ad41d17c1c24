"""Diff engine: compares actual and expected tasks and applies the result."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, List, Optional, Tuple

from ..errors import PermissionDeniedError, TaskError
from .task import Lifecycle, Task

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """What running a task did (or would do, in a dry run)."""

    CREATE = "create"
    UPDATE = "update"
    NONE = "none"
    WARN = "warn"


@dataclass
class TaskOutcome:
    """Result of running one task.

    Attributes:
        key: Task key in the task map
        action: What was done
        changes: Fields that differed (None when nothing was compared)
        message: Warning text for WARN outcomes
        dry_run: True if the action was computed but not applied
    """

    key: str
    action: Action
    changes: Optional[Task] = None
    message: Optional[str] = None
    dry_run: bool = False

    @property
    def mutated(self) -> bool:
        return self.action in (Action.CREATE, Action.UPDATE) and not self.dry_run


def _reference_id(task: Task) -> Any:
    if task.task_id is not None:
        return task.task_id
    return (task.kind, task.name)


def _values_equal(actual: Any, expected: Any) -> bool:
    if isinstance(expected, Task):
        return isinstance(actual, Task) and _reference_id(actual) == _reference_id(expected)
    if isinstance(expected, list) and any(isinstance(item, Task) for item in expected):
        if not isinstance(actual, list):
            return False
        return sorted(map(str, map(_reference_id, actual))) == sorted(map(str, map(_reference_id, expected)))
    return actual == expected


def build_changes(actual: Optional[Task], expected: Task, changes: Task) -> bool:
    """Populate ``changes`` with the expected fields that differ from actual.

    Expected fields left at None are not compared. Task references compare
    by provider ID. Fields whose metadata has ``compare=False`` are skipped.
    ``expected`` is never modified.

    Args:
        actual: Actual state, or None if the resource does not exist
        expected: Desired state
        changes: Empty task of the same class, filled in place

    Returns:
        True if at least one field differs
    """
    changed = False
    for f in fields(expected):
        if not f.metadata.get("compare", True):
            continue
        expected_value = getattr(expected, f.name)
        if expected_value is None:
            continue
        actual_value = getattr(actual, f.name) if actual is not None else None
        if _values_equal(actual_value, expected_value):
            continue
        setattr(changes, f.name, expected_value)
        changed = True
    return changed


def diff(actual: Optional[Task], expected: Task) -> Tuple[Task, bool]:
    """Compute the changes needed to turn actual into expected.

    Returns:
        Tuple of (changes, changed). ``changes`` equals a default instance of
        the task class when nothing differs.
    """
    changes = type(expected)()
    changed = build_changes(actual, expected, changes)
    return changes, changed


def changed_fields(changes: Task) -> List[str]:
    """Names of the fields populated in a changes value."""
    return [
        f.name for f in fields(changes) if f.metadata.get("compare", True) and getattr(changes, f.name) is not None
    ]


def run_task(cloud: Any, key: str, expected: Task, dry_run: bool = False) -> TaskOutcome:
    """Converge a single task according to its lifecycle.

    Args:
        cloud: Provider object
        key: Task key, attached to every error
        expected: Desired state
        dry_run: Compute the action without rendering it

    Returns:
        TaskOutcome describing what was done

    Raises:
        TaskError: If the lifecycle forbids the required action or the
            changes are rejected
        ProviderError: If a provider call fails
    """
    lifecycle = expected.lifecycle
    try:
        actual = expected.find(cloud)
    except PermissionDeniedError as e:
        if lifecycle == Lifecycle.WARN_IF_INSUFFICIENT_ACCESS:
            logger.warning(f"Insufficient access to inspect {expected.describe()}: {e}")
            return TaskOutcome(key=key, action=Action.WARN, message=str(e), dry_run=dry_run)
        raise

    if actual is None:
        if lifecycle.must_exist:
            raise TaskError(key, f"{expected.describe()} does not exist; lifecycle {lifecycle.value} requires it to")
        changes = type(expected)()
        build_changes(None, expected, changes)
        action = Action.CREATE
    else:
        changes, changed = diff(actual, expected)
        if not changed:
            logger.debug(f"{key}: no changes")
            return TaskOutcome(key=key, action=Action.NONE, changes=changes, dry_run=dry_run)
        action = Action.UPDATE

        if lifecycle == Lifecycle.EXISTS_AND_VALIDATES:
            raise TaskError(
                key,
                f"{expected.describe()} differs from the desired state in: {', '.join(changed_fields(changes))}",
                changes=changes,
            )
        if lifecycle == Lifecycle.EXISTS_AND_WARN_IF_CHANGES:
            message = f"{expected.describe()} would change: {', '.join(changed_fields(changes))}"
            logger.warning(message)
            return TaskOutcome(key=key, action=Action.WARN, changes=changes, message=message, dry_run=dry_run)

    try:
        expected.check_changes(actual, expected, changes)
    except ValueError as e:
        raise TaskError(key, str(e), changes=changes) from e

    if dry_run:
        logger.info(f"{key}: would {action.value} ({', '.join(changed_fields(changes)) or 'no fields'})")
        return TaskOutcome(key=key, action=action, changes=changes, dry_run=True)

    logger.info(f"{key}: {action.value} ({', '.join(changed_fields(changes)) or 'no fields'})")
    try:
        expected.render(cloud, actual, expected, changes)
    except PermissionDeniedError as e:
        if lifecycle == Lifecycle.WARN_IF_INSUFFICIENT_ACCESS:
            logger.warning(f"Insufficient access to {action.value} {expected.describe()}: {e}")
            return TaskOutcome(key=key, action=Action.WARN, changes=changes, message=str(e))
        raise
    return TaskOutcome(key=key, action=action, changes=changes)
