"""Route table lister and discovery of untagged route tables."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from ...aws.client import AWSCloud
from ...aws.errors import BOTO_ERRORS, translate_boto_error
from ...models.resource_tracker import ResourceTracker
from ...teardown.deleter import deleter_for
from ..ownership import Ownership, find_name, tagged_for_other_cluster
from .base import BaseResourceLister

logger = logging.getLogger(__name__)


def is_main_route_table(rt: Mapping[str, Any]) -> bool:
    """True if any association marks the table as its VPC's main table."""
    return any(a.get("Main") for a in rt.get("Associations", []))


def route_table_edges(rt: Mapping[str, Any]) -> tuple[list[str], list[str]]:
    """Return (blocks, blocked) keys for a route table.

    The table blocks its VPC; associated subnets must go before the table.
    """
    blocks = [f"vpc:{rt['VpcId']}"]
    blocked = [f"subnet:{a['SubnetId']}" for a in rt.get("Associations", []) if a.get("SubnetId")]
    return blocks, blocked


class RouteTableLister(BaseResourceLister):
    """Lister for route tables tagged for the cluster.

    Main route tables are never returned: they go away with their VPC and
    cannot be deleted explicitly.
    """

    @property
    def resource_type(self) -> str:
        return "route-table"

    def list(self) -> List[ResourceTracker]:
        trackers = []
        records = self.describe_for_cluster("describe_route_tables", "RouteTables", "RouteTableId")
        for rt_id, rt in records.items():
            if is_main_route_table(rt):
                self.logger.debug(f"Skipping main route table {rt_id}")
                continue
            ownership = self.classify(rt_id, rt.get("Tags"))
            if ownership is None:
                continue
            blocks, blocked = route_table_edges(rt)
            trackers.append(self.build_tracker(rt_id, rt, rt.get("Tags"), ownership, blocks, blocked))

        self.logger.debug(f"Found {len(trackers)} route tables for {self.cluster_name}")
        return trackers


def add_untagged_route_tables(cloud: AWSCloud, cluster_name: str, trackers: Dict[str, ResourceTracker]) -> None:
    """Add route tables of owned VPCs that carry no cluster tag.

    The provider creates some route tables on the cluster's behalf without
    tagging them. They are found through their VPC instead of their tags.

    Args:
        cloud: Provider object
        cluster_name: Cluster being torn down
        trackers: Trackers found so far, keyed by tracker key (mutated in place)

    Raises:
        ProviderError: If the route tables cannot be described
    """
    vpc_ids = sorted(
        key[len("vpc:"):] for key, tracker in trackers.items() if key.startswith("vpc:") and not tracker.shared
    )
    if not vpc_ids:
        return

    found: List[Dict[str, Any]] = []
    try:
        paginator = cloud.ec2.get_paginator("describe_route_tables")
        for page in paginator.paginate(Filters=[{"Name": "vpc-id", "Values": vpc_ids}]):
            found.extend(page.get("RouteTables", []))
    except BOTO_ERRORS as e:
        raise translate_boto_error(e, "listing route tables by VPC") from e

    for rt in found:
        rt_id = rt["RouteTableId"]
        key = f"route-table:{rt_id}"
        if key in trackers:
            continue
        if rt.get("VpcId") not in vpc_ids:
            continue
        if is_main_route_table(rt):
            logger.debug(f"Skipping main route table {rt_id}")
            continue
        if tagged_for_other_cluster(rt.get("Tags"), cluster_name):
            logger.debug(f"Skipping route table {rt_id} tagged for another cluster")
            continue

        blocks, blocked = route_table_edges(rt)
        trackers[key] = ResourceTracker(
            id=rt_id,
            type="route-table",
            name=find_name(rt.get("Tags")) or rt_id,
            obj=rt,
            shared=False,
            blocks=blocks,
            blocked=blocked,
            deleter=deleter_for("route-table"),
            ownership=Ownership.OWNED.value,
        )
        logger.info(f"Found untagged route table {rt_id} in cluster VPC {rt['VpcId']}")
