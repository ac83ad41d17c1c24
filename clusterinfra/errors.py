"""Error taxonomy shared by discovery, teardown and convergence."""

from __future__ import annotations

from typing import Any, Optional


class ClusterInfraError(Exception):
    """Base class for all errors raised by clusterinfra."""


class ProviderError(ClusterInfraError):
    """Provider API call failed with an error we do not handle specially.

    Attributes:
        code: Provider error code (e.g. "InvalidParameterValue")
        operation: Provider operation that failed (e.g. "DescribeVpcs")
    """

    def __init__(self, message: str, code: Optional[str] = None, operation: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.operation = operation


class NotFoundError(ProviderError):
    """Resource does not exist (idempotent success on delete)."""


class PermissionDeniedError(ProviderError):
    """Caller lacks permission for the provider operation."""


class TransientProviderError(ProviderError):
    """Throttling, rate-limit or service-side error; eligible for caller-level retry."""


class DeadlineExceededError(ClusterInfraError, TimeoutError):
    """A caller-supplied deadline expired before pending provider calls finished.

    Attributes:
        report: Partial outcome recorded up to the deadline, when the caller
            produces one (e.g. a teardown report)
    """

    def __init__(self, message: str, report: Any = None) -> None:
        super().__init__(message)
        self.report = report


class TaskError(ClusterInfraError):
    """A single task failed to converge.

    Attributes:
        task_key: Key of the task in the task map
        changes: Pending changes of the task when the failure was detected
    """

    def __init__(self, task_key: str, message: str, changes: Any = None) -> None:
        super().__init__(f"{task_key}: {message}")
        self.task_key = task_key
        self.changes = changes


class ManifestError(ClusterInfraError):
    """A network manifest is malformed."""


class TaskRunError(ClusterInfraError):
    """One or more tasks failed; carries the full run result."""

    def __init__(self, message: str, result: Any = None) -> None:
        super().__init__(message)
        self.result = result
