"""Tests for discovery of untagged route tables in cluster VPCs."""

from __future__ import annotations

from clusterinfra.discovery.listers.route_table import add_untagged_route_tables
from clusterinfra.models.resource_tracker import ResourceTracker
from tests.fixtures.cloud import FakeEC2, build_fake_cloud

CLUSTER = "me.example.com"


def vpc_tracker(vpc_id: str, shared: bool = False) -> ResourceTracker:
    return ResourceTracker(id=vpc_id, type="vpc", shared=shared)


class TestAddUntaggedRouteTables:
    """Test suite for add_untagged_route_tables()."""

    def test_finds_untagged_route_table_in_owned_vpc(self) -> None:
        """Test untagged tables are added; main, foreign and other-VPC tables are not."""
        ec2 = FakeEC2()
        ec2.add_vpc("vpc-1234", tags={"KubernetesCluster": CLUSTER})
        ec2.add_route_table("rtb-1234", "vpc-1234")
        ec2.add_route_table("rtb-main", "vpc-1234", main=True)
        ec2.add_route_table("rtb-other-cluster", "vpc-1234", tags={"KubernetesCluster": "other.example.com"})
        ec2.add_route_table(
            "rtb-other-cluster-new", "vpc-1234", tags={"kubernetes.io/cluster/other.example.com": "owned"}
        )
        ec2.add_route_table("rtb-5555", "vpc-5555")

        trackers = {"vpc:vpc-1234": vpc_tracker("vpc-1234")}
        add_untagged_route_tables(build_fake_cloud(ec2=ec2), CLUSTER, trackers)

        assert sorted(trackers) == ["route-table:rtb-1234", "vpc:vpc-1234"]
        added = trackers["route-table:rtb-1234"]
        assert added.shared is False
        assert added.ownership == "owned"
        assert added.blocks == ["vpc:vpc-1234"]
        assert added.deleter is not None

    def test_shared_vpc_is_not_scanned(self) -> None:
        """Test route tables of shared VPCs are never added."""
        ec2 = FakeEC2()
        ec2.add_route_table("rtb-1", "vpc-1")

        trackers = {"vpc:vpc-1": vpc_tracker("vpc-1", shared=True)}
        add_untagged_route_tables(build_fake_cloud(ec2=ec2), CLUSTER, trackers)

        assert list(trackers) == ["vpc:vpc-1"]
        assert "describe_route_tables" not in ec2.calls

    def test_already_tracked_route_table_kept(self) -> None:
        """Test an already tracked table is not replaced."""
        ec2 = FakeEC2()
        ec2.add_route_table("rtb-1", "vpc-1")
        existing = ResourceTracker(id="rtb-1", type="route-table", shared=True)

        trackers = {"vpc:vpc-1": vpc_tracker("vpc-1"), "route-table:rtb-1": existing}
        add_untagged_route_tables(build_fake_cloud(ec2=ec2), CLUSTER, trackers)

        assert trackers["route-table:rtb-1"] is existing

    def test_association_edges(self) -> None:
        """Test associated subnets must be deleted before the route table."""
        ec2 = FakeEC2()
        ec2.add_route_table("rtb-1", "vpc-1", subnet_ids=["subnet-1"])

        trackers = {"vpc:vpc-1": vpc_tracker("vpc-1")}
        add_untagged_route_tables(build_fake_cloud(ec2=ec2), CLUSTER, trackers)

        assert trackers["route-table:rtb-1"].blocked == ["subnet:subnet-1"]
