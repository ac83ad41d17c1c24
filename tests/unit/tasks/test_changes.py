"""Tests for the diff engine and single-task convergence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, List, Optional

import pytest

from clusterinfra.errors import PermissionDeniedError, TaskError
from clusterinfra.tasks.changes import Action, build_changes, changed_fields, diff, run_task
from clusterinfra.tasks.subnet import Subnet
from clusterinfra.tasks.task import IDENTITY, Lifecycle, Task
from clusterinfra.tasks.vpc import VPC


@dataclass
class Widget(Task):
    """Task double whose actual state and render are scripted."""

    kind: ClassVar[str] = "widget"

    id: Optional[str] = field(default=None, metadata=IDENTITY)
    size: Optional[int] = None
    color: Optional[str] = None
    parts: Optional[List[Task]] = None

    actual: Any = field(default=None, metadata=IDENTITY, repr=False)
    find_error: Any = field(default=None, metadata=IDENTITY, repr=False)
    render_error: Any = field(default=None, metadata=IDENTITY, repr=False)
    rendered: list = field(default_factory=list, metadata=IDENTITY, repr=False)

    def find(self, cloud: Any) -> Optional["Widget"]:
        if self.find_error:
            raise self.find_error
        return self.actual

    def check_changes(self, actual, expected, changes) -> None:
        if actual is not None and changes.size is not None and changes.size < actual.size:
            raise ValueError("widgets cannot shrink")

    def render(self, cloud, actual, expected, changes) -> None:
        if self.render_error:
            raise self.render_error
        self.rendered.append(changes)
        if actual is None:
            self.id = "w-1"


class TestBuildChanges:
    """Test suite for build_changes() and diff()."""

    def test_empty_tags_have_no_changes(self) -> None:
        """Test identical empty tag maps produce no changes."""
        actual = VPC(name="cluster2.example.com", tags={})
        expected = VPC(name="cluster2.example.com", tags={})

        changes = VPC()
        changed = build_changes(actual, expected, changes)

        assert changed is False
        assert changes == VPC()

    def test_none_fields_are_not_compared(self) -> None:
        """Test expected fields left unset are "don't care"."""
        actual = VPC(cidr="10.0.0.0/16", enable_dns_support=True, tags={"Name": "x"})
        expected = VPC(cidr="10.0.0.0/16")

        changes, changed = diff(actual, expected)

        assert changed is False
        assert changes == VPC()

    def test_differing_fields_populated(self) -> None:
        """Test only differing fields are set on changes."""
        actual = VPC(cidr="10.0.0.0/16", enable_dns_hostnames=False, tags={"Name": "a"})
        expected = VPC(cidr="10.0.0.0/16", enable_dns_hostnames=True, tags={"Name": "b"})

        changes, changed = diff(actual, expected)

        assert changed is True
        assert changed_fields(changes) == ["enable_dns_hostnames", "tags"]
        assert changes.cidr is None

    def test_identity_fields_are_skipped(self) -> None:
        """Test IDs, names and lifecycle never count as changes."""
        actual = VPC(name="a", id="vpc-1", lifecycle=Lifecycle.SYNC)
        expected = VPC(name="b", id="vpc-2", lifecycle=Lifecycle.EXISTS_AND_VALIDATES)

        _, changed = diff(actual, expected)

        assert changed is False

    def test_references_compare_by_provider_id(self) -> None:
        """Test a referenced task matches the actual reference by ID only."""
        expected = Subnet(vpc=VPC(name="main", id="vpc-1", cidr="10.0.0.0/16"))

        _, changed = diff(Subnet(vpc=VPC(id="vpc-1")), expected)
        changes, moved = diff(Subnet(vpc=VPC(id="vpc-2")), expected)

        assert changed is False
        assert moved is True
        assert changes.vpc is expected.vpc

    def test_reference_lists_compare_as_id_sets(self) -> None:
        """Test lists of references compare regardless of order."""
        a, b = Subnet(id="subnet-a"), Subnet(id="subnet-b")
        expected = Widget(parts=[a, b])

        _, changed = diff(Widget(parts=[Subnet(id="subnet-b"), Subnet(id="subnet-a")]), expected)
        _, missing = diff(Widget(parts=[Subnet(id="subnet-a")]), expected)

        assert changed is False
        assert missing is True

    def test_expected_is_not_modified(self) -> None:
        """Test diffing leaves the expected task untouched."""
        expected = VPC(name="main", cidr="10.0.0.0/16", tags={"Name": "main"})
        snapshot = VPC(name="main", cidr="10.0.0.0/16", tags={"Name": "main"})

        diff(VPC(cidr="10.1.0.0/16", tags={}), expected)

        assert expected == snapshot

    def test_nothing_to_compare_against(self) -> None:
        """Test every set field is a change when the resource does not exist."""
        changes, changed = diff(None, VPC(name="main", cidr="10.0.0.0/16", tags={"Name": "main"}))

        assert changed is True
        assert changed_fields(changes) == ["cidr", "tags"]


class TestRunTask:
    """Test suite for run_task() lifecycles."""

    def test_create_when_missing(self) -> None:
        """Test a missing resource is created with all set fields."""
        expected = Widget(name="w", size=3)

        outcome = run_task(None, "widget/w", expected)

        assert outcome.action == Action.CREATE
        assert outcome.mutated is True
        assert expected.id == "w-1"
        assert expected.rendered[0].size == 3

    def test_no_changes(self) -> None:
        """Test an up-to-date resource is left alone."""
        expected = Widget(name="w", size=3, actual=Widget(id="w-1", size=3))

        outcome = run_task(None, "widget/w", expected)

        assert outcome.action == Action.NONE
        assert outcome.changes == Widget()
        assert expected.rendered == []

    def test_update(self) -> None:
        """Test differing fields are rendered as an update."""
        expected = Widget(name="w", size=5, actual=Widget(id="w-1", size=3))

        outcome = run_task(None, "widget/w", expected)

        assert outcome.action == Action.UPDATE
        assert expected.rendered[0].size == 5

    def test_dry_run_does_not_render(self) -> None:
        """Test dry runs compute the action without applying it."""
        expected = Widget(name="w", size=5, actual=Widget(id="w-1", size=3))

        outcome = run_task(None, "widget/w", expected, dry_run=True)

        assert outcome.action == Action.UPDATE
        assert outcome.dry_run is True
        assert outcome.mutated is False
        assert expected.rendered == []

    def test_rejected_change_raises_task_error(self) -> None:
        """Test check_changes failures become TaskError with the changes attached."""
        expected = Widget(name="w", size=1, actual=Widget(id="w-1", size=3))

        with pytest.raises(TaskError, match="widgets cannot shrink") as exc_info:
            run_task(None, "widget/w", expected)

        assert exc_info.value.task_key == "widget/w"
        assert exc_info.value.changes.size == 1
        assert expected.rendered == []

    @pytest.mark.parametrize("lifecycle", [Lifecycle.EXISTS_AND_VALIDATES, Lifecycle.EXISTS_AND_WARN_IF_CHANGES])
    def test_must_exist_lifecycles_fail_when_missing(self, lifecycle: Lifecycle) -> None:
        """Test lifecycles requiring existence never create."""
        expected = Widget(name="w", size=1, lifecycle=lifecycle)

        with pytest.raises(TaskError, match="does not exist"):
            run_task(None, "widget/w", expected)

        assert expected.rendered == []

    def test_exists_and_validates_fails_on_diff(self) -> None:
        """Test ExistsAndValidates reports differences as an error."""
        expected = Widget(
            name="w", size=5, lifecycle=Lifecycle.EXISTS_AND_VALIDATES, actual=Widget(id="w-1", size=3)
        )

        with pytest.raises(TaskError, match="size") as exc_info:
            run_task(None, "widget/w", expected)

        assert exc_info.value.changes == Widget(size=5)

    def test_exists_and_warn_if_changes_warns(self) -> None:
        """Test ExistsAndWarnIfChanges reports differences without applying them."""
        expected = Widget(
            name="w", size=5, lifecycle=Lifecycle.EXISTS_AND_WARN_IF_CHANGES, actual=Widget(id="w-1", size=3)
        )

        outcome = run_task(None, "widget/w", expected)

        assert outcome.action == Action.WARN
        assert "size" in outcome.message
        assert expected.rendered == []

    def test_insufficient_access_warns(self) -> None:
        """Test WarnIfInsufficientAccess turns permission errors into warnings."""
        denied = PermissionDeniedError("denied", code="UnauthorizedOperation")
        on_find = Widget(name="w", size=1, lifecycle=Lifecycle.WARN_IF_INSUFFICIENT_ACCESS, find_error=denied)
        on_render = Widget(name="w", size=1, lifecycle=Lifecycle.WARN_IF_INSUFFICIENT_ACCESS, render_error=denied)

        assert run_task(None, "widget/w", on_find).action == Action.WARN
        assert run_task(None, "widget/w", on_render).action == Action.WARN

    def test_permission_error_propagates_under_sync(self) -> None:
        """Test permission errors are fatal for ordinary tasks."""
        expected = Widget(name="w", find_error=PermissionDeniedError("denied"))

        with pytest.raises(PermissionDeniedError):
            run_task(None, "widget/w", expected)
