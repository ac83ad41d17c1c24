"""VPC and subnet listers."""

from __future__ import annotations

from typing import List

from ...models.resource_tracker import ResourceTracker
from .base import BaseResourceLister


class VPCLister(BaseResourceLister):
    """Lister for VPCs tagged for the cluster."""

    @property
    def resource_type(self) -> str:
        return "vpc"

    def list(self) -> List[ResourceTracker]:
        trackers = []
        for vpc_id, vpc in self.describe_for_cluster("describe_vpcs", "Vpcs", "VpcId").items():
            ownership = self.classify(vpc_id, vpc.get("Tags"))
            if ownership is None:
                continue
            trackers.append(self.build_tracker(vpc_id, vpc, vpc.get("Tags"), ownership))

        self.logger.debug(f"Found {len(trackers)} VPCs for {self.cluster_name}")
        return trackers


class SubnetLister(BaseResourceLister):
    """Lister for subnets tagged for the cluster.

    A subnet blocks deletion of its VPC.
    """

    @property
    def resource_type(self) -> str:
        return "subnet"

    def list(self) -> List[ResourceTracker]:
        trackers = []
        for subnet_id, subnet in self.describe_for_cluster("describe_subnets", "Subnets", "SubnetId").items():
            ownership = self.classify(subnet_id, subnet.get("Tags"))
            if ownership is None:
                continue
            tracker = self.build_tracker(
                subnet_id,
                subnet,
                subnet.get("Tags"),
                ownership,
                blocks=[f"vpc:{subnet['VpcId']}"],
            )
            trackers.append(tracker)

        self.logger.debug(f"Found {len(trackers)} subnets for {self.cluster_name}")
        return trackers
