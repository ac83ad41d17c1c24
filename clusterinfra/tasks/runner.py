"""Task graph runner.

Runs tasks in dependency order, concurrently where the graph allows, and
converges each one through the diff engine.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..aws.errors import BOTO_ERRORS, translate_boto_error
from ..errors import ClusterInfraError, DeadlineExceededError, TaskError, TaskRunError
from .changes import Action, TaskOutcome, run_task
from .task import Task

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of a runner pass.

    Attributes:
        outcomes: Outcome of every task that ran, by key
        failures: Error of every task that failed, by key
        skipped: Tasks not run because a prerequisite failed, mapped to
            those prerequisites
    """

    outcomes: Dict[str, TaskOutcome] = field(default_factory=dict)
    failures: Dict[str, TaskError] = field(default_factory=dict)
    skipped: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def applied(self) -> List[str]:
        """Keys of tasks whose changes were rendered."""
        return sorted(key for key, outcome in self.outcomes.items() if outcome.mutated)

    @property
    def pending(self) -> List[str]:
        """Keys of tasks with changes computed but not rendered (dry run)."""
        return sorted(
            key
            for key, outcome in self.outcomes.items()
            if outcome.dry_run and outcome.action in (Action.CREATE, Action.UPDATE)
        )

    @property
    def warnings(self) -> List[str]:
        return sorted(key for key, outcome in self.outcomes.items() if outcome.action == Action.WARN)

    @property
    def succeeded(self) -> bool:
        return not self.failures and not self.skipped


def build_task_graph(tasks: Mapping[str, Task]) -> Dict[str, List[str]]:
    """Map each task key to the keys of the tasks it references.

    References to tasks outside the map are not edges; such tasks are
    expected to carry their provider ID already.
    """
    key_by_identity = {id(task): key for key, task in tasks.items()}
    graph: Dict[str, List[str]] = {}
    for key in sorted(tasks):
        deps = {key_by_identity[id(dep)] for dep in tasks[key].dependencies() if id(dep) in key_by_identity}
        deps.discard(key)
        graph[key] = sorted(deps)
    return graph


def find_cycle(graph: Mapping[str, List[str]]) -> List[str]:
    """Return the keys that cannot be ordered, or an empty list."""
    remaining = set(graph)
    progress = True
    while progress:
        progress = False
        for key in sorted(remaining):
            if not any(dep in remaining for dep in graph[key]):
                remaining.discard(key)
                progress = True
    return sorted(remaining)


class TaskRunner:
    """Converges a map of tasks.

    Attributes:
        cloud: Provider object passed to tasks
        max_workers: Tasks run concurrently
    """

    def __init__(self, cloud: Any, max_workers: int = 8) -> None:
        self.cloud = cloud
        self.max_workers = max_workers

    def run(self, tasks: Mapping[str, Task], dry_run: bool = False, timeout: Optional[float] = None) -> RunResult:
        """Run all tasks in dependency order.

        Tasks are mutated in place: provider-assigned IDs are stored on them.
        A failed task skips everything that depends on it; independent tasks
        still run.

        Args:
            tasks: Tasks keyed by a stable, unique key
            dry_run: Compute changes without rendering them
            timeout: Seconds before waiting on pending tasks is abandoned

        Returns:
            RunResult when every task converged

        Raises:
            TaskRunError: If the graph has a cycle (before any provider call)
                or any task failed; carries the RunResult
            DeadlineExceededError: If the timeout expired
        """
        graph = build_task_graph(tasks)
        cycle = find_cycle(graph)
        if cycle:
            raise TaskRunError(f"Circular task dependency among: {', '.join(cycle)}", result=RunResult())

        deadline = time.monotonic() + timeout if timeout is not None else None
        result = RunResult()
        pending = set(tasks)
        done: set[str] = set()
        running: Dict[Future, str] = {}

        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="task")
        try:
            while pending or running:
                ready = sorted(key for key in pending if all(dep in done for dep in graph[key]))
                for key in ready:
                    pending.discard(key)
                    running[executor.submit(run_task, self.cloud, key, tasks[key], dry_run)] = key

                if not running:
                    break

                remaining = None if deadline is None else max(deadline - time.monotonic(), 0.0)
                finished, _ = wait(running, timeout=remaining, return_when=FIRST_COMPLETED)
                if not finished:
                    raise DeadlineExceededError(
                        f"Timed out waiting for tasks: {', '.join(sorted(running.values()))}"
                    )

                for future in finished:
                    key = running.pop(future)
                    try:
                        result.outcomes[key] = future.result()
                        done.add(key)
                    except TaskError as e:
                        logger.error(str(e))
                        result.failures[key] = e
                    except Exception as e:
                        cause = translate_boto_error(e) if isinstance(e, BOTO_ERRORS) else e
                        if isinstance(cause, ClusterInfraError):
                            message = str(cause)
                        else:
                            message = f"{type(e).__name__}: {e}"
                        logger.error(f"{key}: {message}")
                        error = TaskError(key, message)
                        error.__cause__ = e
                        result.failures[key] = error

                self._skip_dependents(graph, pending, result)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if result.failures:
            raise TaskRunError(
                f"{len(result.failures)} task(s) failed, {len(result.skipped)} skipped: "
                f"{', '.join(sorted(result.failures))}",
                result=result,
            )
        return result

    @staticmethod
    def _skip_dependents(graph: Mapping[str, List[str]], pending: set[str], result: RunResult) -> None:
        changed = True
        while changed:
            changed = False
            for key in sorted(pending):
                blockers = [dep for dep in graph[key] if dep in result.failures or dep in result.skipped]
                if blockers:
                    logger.warning(f"Skipping {key}: prerequisite {', '.join(blockers)} did not converge")
                    result.skipped[key] = blockers
                    pending.discard(key)
                    changed = True
