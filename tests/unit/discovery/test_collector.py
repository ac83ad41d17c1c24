"""Tests for the resource collector."""

from __future__ import annotations

from typing import List

import pytest

from clusterinfra.discovery.collector import ResourceCollector, load_lister_classes
from clusterinfra.discovery.listers.base import BaseResourceLister
from clusterinfra.errors import PermissionDeniedError
from clusterinfra.models.resource_tracker import ResourceTracker
from tests.fixtures.cloud import FakeEC2, FakeELB, FakeIAM, build_fake_cloud

CLUSTER = "me.example.com"
OWNED = {f"kubernetes.io/cluster/{CLUSTER}": "owned"}
SHARED = {f"kubernetes.io/cluster/{CLUSTER}": "shared"}


class StaticLister(BaseResourceLister):
    """Lister returning fixed trackers, for merge tests."""

    trackers: List[ResourceTracker] = []

    @property
    def resource_type(self) -> str:
        return "vpc"

    def list(self) -> List[ResourceTracker]:
        return [ResourceTracker(**vars(t)) for t in self.trackers]


class TestLoadListerClasses:
    """Test suite for lister discovery."""

    def test_discovers_all_listers(self) -> None:
        """Test every concrete lister in the package is found once."""
        names = [cls.__name__ for cls in load_lister_classes()]

        assert names == [
            "IAMInstanceProfileLister",
            "IAMRoleLister",
            "LoadBalancerLister",
            "LoadBalancerV2Lister",
            "RouteTableLister",
            "SubnetLister",
            "VPCLister",
            "VolumeLister",
        ]


class TestResourceCollector:
    """Test suite for ResourceCollector."""

    def test_collects_all_kinds(self) -> None:
        """Test trackers from every lister are merged by key."""
        ec2 = FakeEC2()
        ec2.add_vpc("vpc-1", tags=OWNED)
        ec2.add_subnet("subnet-1", "vpc-1", tags=OWNED)
        ec2.add_volume("vol-1", tags=SHARED)
        iam = FakeIAM()
        iam.add_role("nodes.me.example.com", tags=OWNED)
        elb = FakeELB()
        elb.add_load_balancer("api", "vpc-1", ["subnet-1"], tags=OWNED)

        trackers = ResourceCollector(build_fake_cloud(ec2=ec2, iam=iam, elb=elb), CLUSTER).collect()

        assert sorted(trackers) == [
            "iam-role:nodes.me.example.com",
            "load-balancer:api",
            "subnet:subnet-1",
            "volume:vol-1",
            "vpc:vpc-1",
        ]
        assert trackers["volume:vol-1"].shared is True

    def test_includes_untagged_route_tables(self) -> None:
        """Test untagged route tables in owned VPCs are added after listing."""
        ec2 = FakeEC2()
        ec2.add_vpc("vpc-1234", tags={"KubernetesCluster": CLUSTER})
        ec2.add_route_table("rtb-1234", "vpc-1234")

        trackers = ResourceCollector(build_fake_cloud(ec2=ec2), CLUSTER).collect()

        assert "route-table:rtb-1234" in trackers

    def test_duplicate_keys_are_merged(self) -> None:
        """Test duplicates merge edges and keep shared if any copy is shared."""

        class First(StaticLister):
            trackers = [ResourceTracker(id="vpc-1", type="vpc", blocks=["a:1"])]

        class Second(StaticLister):
            trackers = [ResourceTracker(id="vpc-1", type="vpc", shared=True, blocks=["b:2"], blocked=["c:3"])]

        collector = ResourceCollector(build_fake_cloud(), CLUSTER, lister_classes=[First, Second])
        trackers = collector.collect()

        assert list(trackers) == ["vpc:vpc-1"]
        merged = trackers["vpc:vpc-1"]
        assert sorted(merged.blocks) == ["a:1", "b:2"]
        assert merged.blocked == ["c:3"]
        assert merged.shared is True

    def test_lister_error_propagates(self) -> None:
        """Test a failing lister fails the collection."""
        ec2 = FakeEC2()
        ec2.errors["describe_volumes"] = ["UnauthorizedOperation"]

        with pytest.raises(PermissionDeniedError):
            ResourceCollector(build_fake_cloud(ec2=ec2), CLUSTER).collect()
