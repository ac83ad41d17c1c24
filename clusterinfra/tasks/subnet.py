"""Subnet task."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional

from ..aws.errors import BOTO_ERRORS, translate_boto_error
from .changes import changed_fields
from .ec2 import apply_tags, describe_one, name_filters, tag_specifications, visible_tags
from .task import IDENTITY, Task
from .vpc import VPC

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = ("vpc", "cidr", "availability_zone")


@dataclass
class Subnet(Task):
    kind: ClassVar[str] = "subnet"

    id: Optional[str] = field(default=None, metadata=IDENTITY)
    vpc: Optional[VPC] = None
    cidr: Optional[str] = None
    availability_zone: Optional[str] = None
    shared: Optional[bool] = field(default=None, metadata=IDENTITY)
    tags: Optional[Dict[str, str]] = None

    def find(self, cloud: Any) -> Optional["Subnet"]:
        if self.id:
            subnet = describe_one(cloud.ec2.describe_subnets, "Subnets", f"subnet {self.id}", SubnetIds=[self.id])
        else:
            filters = name_filters(self.name, self.tags)
            if not filters or self.vpc is None or self.vpc.id is None:
                # The VPC does not exist yet, so neither can the subnet.
                return None
            filters.append({"Name": "vpc-id", "Values": [self.vpc.id]})
            subnet = describe_one(cloud.ec2.describe_subnets, "Subnets", f"subnet {self.name}", Filters=filters)

        if subnet is None:
            return None

        actual = Subnet(
            name=self.name,
            lifecycle=self.lifecycle,
            id=subnet["SubnetId"],
            vpc=VPC(id=subnet["VpcId"]),
            cidr=subnet.get("CidrBlock"),
            availability_zone=subnet.get("AvailabilityZone"),
            shared=self.shared,
            tags=visible_tags(subnet.get("Tags"), self.tags),
        )
        if self.shared:
            actual.tags = self.tags

        self.id = actual.id
        return actual

    def check_changes(self, actual: Optional[Task], expected: Task, changes: Task) -> None:
        if actual is None:
            if self.shared:
                raise ValueError(f"shared subnet {self.id or self.name} was not found")
            missing = [name for name in ("vpc", "cidr") if getattr(self, name) is None]
            if missing:
                raise ValueError(f"{', '.join(missing)} required to create a subnet")
            return

        immutable = [name for name in IMMUTABLE_FIELDS if getattr(changes, name) is not None]
        if immutable:
            raise ValueError(f"cannot change {', '.join(immutable)} of existing subnet {actual.id}")
        if self.shared and changed_fields(changes):
            raise ValueError(f"shared subnet {actual.id} does not match the desired state")

    def render(self, cloud: Any, actual: Optional[Task], expected: Task, changes: Task) -> None:
        ec2 = cloud.ec2
        if actual is not None:
            apply_tags(ec2, self.id, changes.tags)
            return

        request: Dict[str, Any] = {
            "VpcId": self.vpc.id,
            "CidrBlock": self.cidr,
            "TagSpecifications": tag_specifications("subnet", self.tags),
        }
        if self.availability_zone:
            request["AvailabilityZone"] = self.availability_zone
        try:
            response = ec2.create_subnet(**request)
        except BOTO_ERRORS as e:
            raise translate_boto_error(e, f"creating subnet {self.name}") from e
        self.id = response["Subnet"]["SubnetId"]
        logger.info(f"Created subnet {self.id} in {self.vpc.id}")


def subnet_ids(subnets: Optional[List[Subnet]]) -> List[str]:
    return sorted(s.id for s in subnets or [] if s.id)
