"""Task model: declarative units of desired cloud state."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

# Fields carrying this metadata are identity or lifecycle plumbing and are
# never compared by the diff engine.
IDENTITY: Dict[str, Any] = {"compare": False}


class Lifecycle(str, Enum):
    """How far the runner may go to converge a task."""

    SYNC = "Sync"
    EXISTS_AND_VALIDATES = "ExistsAndValidates"
    EXISTS_AND_WARN_IF_CHANGES = "ExistsAndWarnIfChanges"
    WARN_IF_INSUFFICIENT_ACCESS = "WarnIfInsufficientAccess"

    @property
    def must_exist(self) -> bool:
        return self in (Lifecycle.EXISTS_AND_VALIDATES, Lifecycle.EXISTS_AND_WARN_IF_CHANGES)


@dataclass
class Task:
    """Base class for tasks.

    Every field except ``lifecycle`` defaults to None, which means "don't
    care" when diffing. Fields holding another Task are dependency edges and
    are compared by the referenced task's provider ID.

    Subclasses implement find() and render(), and may override
    check_changes() to reject changes the provider cannot apply.

    Attributes:
        name: Logical name, unique within the task kind
        lifecycle: Convergence policy
    """

    kind: ClassVar[str] = "task"

    name: Optional[str] = field(default=None, metadata=IDENTITY)
    lifecycle: Lifecycle = field(default=Lifecycle.SYNC, metadata=IDENTITY)

    @property
    def task_id(self) -> Optional[str]:
        """Provider-assigned ID, when the task kind has one."""
        return getattr(self, "id", None)

    def find(self, cloud: Any) -> Optional["Task"]:
        """Look up the actual state of this task.

        Args:
            cloud: Provider object

        Returns:
            A task of the same class describing the actual resource, or None
            if it does not exist
        """
        raise NotImplementedError(f"{type(self).__name__} does not implement find()")

    def check_changes(self, actual: Optional["Task"], expected: "Task", changes: "Task") -> None:
        """Validate pending changes before they are rendered.

        Raises:
            ValueError: If the changes cannot be applied
        """

    def render(self, cloud: Any, actual: Optional["Task"], expected: "Task", changes: "Task") -> None:
        """Apply changes to the provider.

        ``actual`` is None when the resource has to be created. Implementations
        store the provider-assigned ID on ``expected``.
        """
        raise NotImplementedError(f"{type(self).__name__} does not implement render()")

    def dependencies(self) -> List["Task"]:
        """Tasks referenced by this task's fields."""
        deps: List[Task] = []
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Task):
                deps.append(value)
            elif isinstance(value, list):
                deps.extend(item for item in value if isinstance(item, Task))
        return deps

    def describe(self) -> str:
        return f"{self.kind} {self.name or self.task_id or '<unnamed>'}"
