"""VPC task."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional

from ..aws.errors import BOTO_ERRORS, translate_boto_error
from ..errors import ProviderError
from .changes import changed_fields
from .ec2 import apply_tags, describe_one, name_filters, tag_specifications, visible_tags
from .task import IDENTITY, Task

logger = logging.getLogger(__name__)


@dataclass
class VPC(Task):
    """A VPC the cluster runs in.

    A shared VPC is owned by someone else: it must already exist and is
    never created, modified or re-tagged.
    """

    kind: ClassVar[str] = "vpc"

    id: Optional[str] = field(default=None, metadata=IDENTITY)
    cidr: Optional[str] = None
    enable_dns_hostnames: Optional[bool] = None
    enable_dns_support: Optional[bool] = None
    shared: Optional[bool] = field(default=None, metadata=IDENTITY)
    tags: Optional[Dict[str, str]] = None

    def find(self, cloud: Any) -> Optional["VPC"]:
        if self.id:
            vpc = describe_one(cloud.ec2.describe_vpcs, "Vpcs", f"VPC {self.id}", VpcIds=[self.id])
        else:
            filters = name_filters(self.name, self.tags)
            if not filters:
                return None
            vpc = describe_one(cloud.ec2.describe_vpcs, "Vpcs", f"VPC {self.name}", Filters=filters)

        if vpc is None:
            return None

        actual = VPC(
            name=self.name,
            lifecycle=self.lifecycle,
            id=vpc["VpcId"],
            cidr=vpc.get("CidrBlock"),
            shared=self.shared,
            tags=visible_tags(vpc.get("Tags"), self.tags),
        )
        actual.enable_dns_support = self._attribute(cloud, actual.id, "enableDnsSupport")
        actual.enable_dns_hostnames = self._attribute(cloud, actual.id, "enableDnsHostnames")

        if self.shared:
            # Tags on a shared VPC are managed by its owner.
            actual.tags = self.tags

        self.id = actual.id
        return actual

    @staticmethod
    def _attribute(cloud: Any, vpc_id: str, attribute: str) -> Optional[bool]:
        try:
            response = cloud.ec2.describe_vpc_attribute(VpcId=vpc_id, Attribute=attribute)
        except BOTO_ERRORS as e:
            raise translate_boto_error(e, f"describing {attribute} of {vpc_id}") from e
        key = attribute[0].upper() + attribute[1:]
        return response.get(key, {}).get("Value")

    def check_changes(self, actual: Optional[Task], expected: Task, changes: Task) -> None:
        if actual is None:
            if self.shared:
                raise ValueError(f"shared VPC {self.id or self.name} was not found")
            if self.cidr is None:
                raise ValueError("cidr is required to create a VPC")
        elif changes.cidr is not None:
            raise ValueError(f"cannot change VPC CIDR from {actual.cidr} to {changes.cidr}")
        elif self.shared:
            differing = changed_fields(changes)
            if differing:
                raise ValueError(f"shared VPC {actual.id} does not match the desired {', '.join(differing)}")

    def render(self, cloud: Any, actual: Optional[Task], expected: Task, changes: Task) -> None:
        ec2 = cloud.ec2
        if actual is None:
            try:
                response = ec2.create_vpc(CidrBlock=self.cidr, TagSpecifications=tag_specifications("vpc", self.tags))
            except BOTO_ERRORS as e:
                raise translate_boto_error(e, f"creating VPC {self.name}") from e
            self.id = response["Vpc"]["VpcId"]
            logger.info(f"Created VPC {self.id}")
        elif changes.tags is not None:
            apply_tags(ec2, self.id, changes.tags)

        for attribute, value in (
            ("EnableDnsSupport", changes.enable_dns_support),
            ("EnableDnsHostnames", changes.enable_dns_hostnames),
        ):
            if value is None:
                continue
            try:
                ec2.modify_vpc_attribute(VpcId=self.id, **{attribute: {"Value": value}})
            except BOTO_ERRORS as e:
                raise translate_boto_error(e, f"setting {attribute} on {self.id}") from e

        if self.id is None:
            raise ProviderError(f"VPC {self.name} has no ID after render")
