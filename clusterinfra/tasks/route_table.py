"""Route table task."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional

from ..aws.errors import BOTO_ERRORS, translate_boto_error
from .changes import changed_fields
from .ec2 import apply_tags, describe_one, name_filters, tag_specifications, visible_tags
from .subnet import Subnet, subnet_ids
from .task import IDENTITY, Task
from .vpc import VPC

logger = logging.getLogger(__name__)


@dataclass
class RouteTable(Task):
    """A route table and the subnets associated with it.

    Associations are additive: subnets associated by someone else are left
    alone.
    """

    kind: ClassVar[str] = "route-table"

    id: Optional[str] = field(default=None, metadata=IDENTITY)
    vpc: Optional[VPC] = None
    subnets: Optional[List[Subnet]] = None
    shared: Optional[bool] = field(default=None, metadata=IDENTITY)
    tags: Optional[Dict[str, str]] = None

    def find(self, cloud: Any) -> Optional["RouteTable"]:
        if self.id:
            rt = describe_one(
                cloud.ec2.describe_route_tables, "RouteTables", f"route table {self.id}", RouteTableIds=[self.id]
            )
        else:
            filters = name_filters(self.name, self.tags)
            if not filters or self.vpc is None or self.vpc.id is None:
                return None
            filters.append({"Name": "vpc-id", "Values": [self.vpc.id]})
            rt = describe_one(
                cloud.ec2.describe_route_tables, "RouteTables", f"route table {self.name}", Filters=filters
            )

        if rt is None:
            return None

        associated = [a["SubnetId"] for a in rt.get("Associations", []) if a.get("SubnetId")]
        actual = RouteTable(
            name=self.name,
            lifecycle=self.lifecycle,
            id=rt["RouteTableId"],
            vpc=VPC(id=rt["VpcId"]),
            shared=self.shared,
            tags=visible_tags(rt.get("Tags"), self.tags),
        )
        if self.subnets is not None:
            # Only the associations we declare are compared.
            wanted = set(subnet_ids(self.subnets))
            actual.subnets = [Subnet(id=subnet_id) for subnet_id in sorted(associated) if subnet_id in wanted]
        if self.shared:
            actual.tags = self.tags

        self.id = actual.id
        return actual

    def check_changes(self, actual: Optional[Task], expected: Task, changes: Task) -> None:
        if actual is None:
            if self.shared:
                raise ValueError(f"shared route table {self.id or self.name} was not found")
            if self.vpc is None:
                raise ValueError("vpc is required to create a route table")
            return
        if changes.vpc is not None:
            raise ValueError(f"cannot move route table {actual.id} to another VPC")
        if self.shared and changed_fields(changes):
            raise ValueError(f"shared route table {actual.id} does not match the desired state")

    def render(self, cloud: Any, actual: Optional[Task], expected: Task, changes: Task) -> None:
        ec2 = cloud.ec2
        if actual is None:
            try:
                response = ec2.create_route_table(
                    VpcId=self.vpc.id, TagSpecifications=tag_specifications("route-table", self.tags)
                )
            except BOTO_ERRORS as e:
                raise translate_boto_error(e, f"creating route table {self.name}") from e
            self.id = response["RouteTable"]["RouteTableId"]
            logger.info(f"Created route table {self.id} in {self.vpc.id}")
            already = set()
        else:
            apply_tags(ec2, self.id, changes.tags)
            already = set(subnet_ids(actual.subnets))

        if changes.subnets is None:
            return
        for subnet_id in subnet_ids(changes.subnets):
            if subnet_id in already:
                continue
            try:
                ec2.associate_route_table(RouteTableId=self.id, SubnetId=subnet_id)
            except BOTO_ERRORS as e:
                raise translate_boto_error(e, f"associating {subnet_id} with {self.id}") from e
