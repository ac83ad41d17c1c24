"""Tests for the subnet and route table tasks."""

from __future__ import annotations

from typing import Dict

import pytest

from clusterinfra.errors import TaskRunError
from clusterinfra.tasks.changes import Action
from clusterinfra.tasks.route_table import RouteTable
from clusterinfra.tasks.runner import TaskRunner
from clusterinfra.tasks.subnet import Subnet, subnet_ids
from clusterinfra.tasks.task import Task
from clusterinfra.tasks.vpc import VPC
from tests.fixtures.cloud import FakeEC2, build_fake_cloud, tags_of


def build_network() -> Dict[str, Task]:
    vpc = VPC(name="main", cidr="172.21.0.0/16", tags={"Name": "main"})
    subnet_a = Subnet(
        name="a", vpc=vpc, cidr="172.21.0.0/22", availability_zone="us-east-1a", tags={"Name": "a"}
    )
    subnet_b = Subnet(
        name="b", vpc=vpc, cidr="172.21.4.0/22", availability_zone="us-east-1b", tags={"Name": "b"}
    )
    route_table = RouteTable(name="main", vpc=vpc, subnets=[subnet_a, subnet_b], tags={"Name": "main"})
    return {"vpc/main": vpc, "subnet/a": subnet_a, "subnet/b": subnet_b, "route-table/main": route_table}


def run(ec2: FakeEC2, tasks: Dict[str, Task]):
    return TaskRunner(build_fake_cloud(ec2=ec2), max_workers=4).run(tasks)


class TestSubnet:
    """Test suite for the Subnet task."""

    def test_subnet_created_in_vpc(self) -> None:
        """Test subnets are created in the VPC created in the same run."""
        ec2 = FakeEC2()
        tasks = build_network()

        run(ec2, tasks)

        vpc_id = tasks["vpc/main"].id
        subnet = ec2.subnets[tasks["subnet/a"].id]
        assert subnet["VpcId"] == vpc_id
        assert subnet["CidrBlock"] == "172.21.0.0/22"
        assert subnet["AvailabilityZone"] == "us-east-1a"
        assert tags_of(subnet) == {"Name": "a"}

    def test_existing_subnet_found_by_name_in_vpc(self) -> None:
        """Test a subnet is located by Name tag scoped to its VPC."""
        ec2 = FakeEC2()
        ec2.add_vpc("vpc-1", cidr="172.21.0.0/16", tags={"Name": "main"})
        ec2.add_vpc("vpc-2", cidr="172.21.0.0/16", tags={"Name": "other"})
        ec2.add_subnet("subnet-other", "vpc-2", cidr="172.21.0.0/22", tags={"Name": "a"})
        ec2.add_subnet("subnet-1", "vpc-1", cidr="172.21.0.0/22", tags={"Name": "a"})
        vpc = VPC(name="main", cidr="172.21.0.0/16", tags={"Name": "main"})
        subnet = Subnet(name="a", vpc=vpc, cidr="172.21.0.0/22", tags={"Name": "a"})

        result = run(ec2, {"vpc/main": vpc, "subnet/a": subnet})

        assert subnet.id == "subnet-1"
        assert result.outcomes["subnet/a"].action == Action.NONE

    def test_immutable_fields_rejected(self) -> None:
        """Test changing the CIDR of an existing subnet fails."""
        ec2 = FakeEC2()
        ec2.add_vpc("vpc-1", tags={"Name": "main"})
        ec2.add_subnet("subnet-1", "vpc-1", cidr="10.0.0.0/24", tags={"Name": "a"})
        vpc = VPC(name="main", tags={"Name": "main"})
        subnet = Subnet(name="a", vpc=vpc, cidr="10.0.1.0/24", tags={"Name": "a"})

        with pytest.raises(TaskRunError) as exc_info:
            run(ec2, {"vpc/main": vpc, "subnet/a": subnet})

        assert "cannot change cidr" in str(exc_info.value.result.failures["subnet/a"])
        assert ec2.mutations == []

    def test_shared_subnet_not_modified(self) -> None:
        """Test a shared subnet is accepted as-is, tags included."""
        ec2 = FakeEC2()
        ec2.add_vpc("vpc-1", tags={"Name": "main"})
        ec2.add_subnet("subnet-1", "vpc-1", cidr="10.0.0.0/24", tags={"Name": "a"})
        vpc = VPC(name="main", id="vpc-1", shared=True)
        subnet = Subnet(name="a", id="subnet-1", vpc=vpc, shared=True, tags={"Name": "a", "role": "x"})

        result = run(ec2, {"vpc/main": vpc, "subnet/a": subnet})

        assert result.outcomes["subnet/a"].action == Action.NONE
        assert ec2.mutations == []

    def test_subnet_ids_helper(self) -> None:
        """Test subnet_ids skips subnets without IDs and sorts."""
        assert subnet_ids([Subnet(id="b"), Subnet(), Subnet(id="a")]) == ["a", "b"]
        assert subnet_ids(None) == []


class TestRouteTable:
    """Test suite for the RouteTable task."""

    def test_full_network_converges(self) -> None:
        """Test the whole network is created then reaches a fixed point."""
        ec2 = FakeEC2()
        tasks = build_network()

        result = run(ec2, tasks)

        assert result.applied == ["route-table/main", "subnet/a", "subnet/b", "vpc/main"]
        rt = ec2.route_tables[tasks["route-table/main"].id]
        assert sorted(a["SubnetId"] for a in rt["Associations"]) == sorted(
            [tasks["subnet/a"].id, tasks["subnet/b"].id]
        )

        mutations = len(ec2.mutations)
        second = run(ec2, build_network())

        assert second.applied == []
        assert {o.action for o in second.outcomes.values()} == {Action.NONE}
        assert len(ec2.mutations) == mutations

    def test_missing_association_added(self) -> None:
        """Test only the missing association is created."""
        ec2 = FakeEC2()
        ec2.add_vpc("vpc-1", tags={"Name": "main"})
        ec2.add_subnet("subnet-a", "vpc-1", tags={"Name": "a"})
        ec2.add_subnet("subnet-b", "vpc-1", tags={"Name": "b"})
        ec2.add_route_table("rtb-1", "vpc-1", tags={"Name": "main"}, subnet_ids=["subnet-a"])
        vpc = VPC(name="main", id="vpc-1")
        route_table = RouteTable(
            name="main",
            vpc=vpc,
            subnets=[Subnet(id="subnet-a"), Subnet(id="subnet-b")],
            tags={"Name": "main"},
        )

        result = run(ec2, {"vpc/main": vpc, "route-table/main": route_table})

        assert result.outcomes["route-table/main"].action == Action.UPDATE
        assert ec2.mutations == [("associate_route_table", "rtb-1", {"SubnetId": "subnet-b"})]

    def test_undeclared_associations_left_alone(self) -> None:
        """Test associations made by others are not removed or diffed."""
        ec2 = FakeEC2()
        ec2.add_vpc("vpc-1", tags={"Name": "main"})
        ec2.add_route_table("rtb-1", "vpc-1", tags={"Name": "main"}, subnet_ids=["subnet-a", "subnet-x"])
        vpc = VPC(name="main", id="vpc-1")
        route_table = RouteTable(name="main", vpc=vpc, subnets=[Subnet(id="subnet-a")], tags={"Name": "main"})

        result = run(ec2, {"vpc/main": vpc, "route-table/main": route_table})

        assert result.outcomes["route-table/main"].action == Action.NONE
        assert ec2.mutations == []

    def test_shared_route_table_not_found(self) -> None:
        """Test a shared route table must already exist."""
        ec2 = FakeEC2()
        ec2.add_vpc("vpc-1", tags={"Name": "main"})
        vpc = VPC(name="main", id="vpc-1")
        route_table = RouteTable(name="main", vpc=vpc, shared=True, tags={"Name": "main"})

        with pytest.raises(TaskRunError) as exc_info:
            run(ec2, {"vpc/main": vpc, "route-table/main": route_table})

        assert "shared route table" in str(exc_info.value.result.failures["route-table/main"])
        assert ec2.route_tables == {}
