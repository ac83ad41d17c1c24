"""Classic and v2 (NLB/ALB) load balancer listers.

Load balancer APIs cannot filter by tag server-side, so every load balancer
in the region is listed, its tags fetched in batches, and ownership decided
client-side.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Sequence

from ...aws.errors import BOTO_ERRORS, is_not_found, translate_boto_error
from ...models.resource_tracker import ResourceTracker
from .base import BaseResourceLister

# describe_tags accepts at most 20 names/ARNs per call
TAG_BATCH_SIZE = 20


def _chunks(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


class _LoadBalancerTagsMixin:
    """Batched describe_tags that tolerates load balancers deleted mid-listing.

    Subclasses provide ``_fetch_tags`` (one describe_tags call returning
    ``{identifier: tags}``) and ``label`` for messages.
    """

    label = "load balancer"

    def _fetch_tags(self, batch: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        raise NotImplementedError

    def _describe_tags(self, identifiers: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        """Fetch tags by identifier; load balancers deleted since listing are left out."""
        tags: Dict[str, List[Dict[str, Any]]] = {}
        for batch in _chunks(identifiers, TAG_BATCH_SIZE):
            try:
                tags.update(self._fetch_tags(batch))
            except BOTO_ERRORS as e:
                if not is_not_found(e):
                    raise translate_boto_error(e, f"describing {self.label} tags") from e
                if len(batch) == 1:
                    self.logger.warning(f"{self.label.capitalize()} {batch[0]} disappeared while listing")
                    continue
                # One of the batch vanished; retry one at a time to find it.
                tags.update(self._describe_tags_individually(batch))
        return tags

    def _describe_tags_individually(self, identifiers: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        tags: Dict[str, List[Dict[str, Any]]] = {}
        for identifier in identifiers:
            tags.update(self._describe_tags([identifier]))
        return tags


class LoadBalancerLister(_LoadBalancerTagsMixin, BaseResourceLister):
    """Lister for classic ELBs.

    A load balancer blocks deletion of its subnets and VPC.
    """

    @property
    def resource_type(self) -> str:
        return "load-balancer"

    def list(self) -> List[ResourceTracker]:
        elb = self.cloud.elb
        try:
            lbs = {
                lb["LoadBalancerName"]: lb
                for page in elb.get_paginator("describe_load_balancers").paginate()
                for lb in page.get("LoadBalancerDescriptions", [])
                if not self.vpc_id or lb.get("VPCId") == self.vpc_id
            }
        except BOTO_ERRORS as e:
            raise translate_boto_error(e, "listing load balancers") from e

        tags = self._describe_tags(sorted(lbs))

        trackers = []
        for name, lb in lbs.items():
            if name not in tags:
                continue
            ownership = self.classify(name, tags[name])
            if ownership is None:
                continue
            blocks = [f"subnet:{subnet_id}" for subnet_id in lb.get("Subnets", [])]
            if lb.get("VPCId"):
                blocks.append(f"vpc:{lb['VPCId']}")
            tracker = self.build_tracker(name, lb, tags[name], ownership, blocks=blocks)
            tracker.name = name
            trackers.append(tracker)

        self.logger.debug(f"Found {len(trackers)} load balancers for {self.cluster_name}")
        return trackers

    def _fetch_tags(self, batch: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        response = self.cloud.elb.describe_tags(LoadBalancerNames=list(batch))
        return {d["LoadBalancerName"]: d.get("Tags", []) for d in response.get("TagDescriptions", [])}


class LoadBalancerV2Lister(_LoadBalancerTagsMixin, BaseResourceLister):
    """Lister for network and application load balancers."""

    label = "v2 load balancer"

    @property
    def resource_type(self) -> str:
        return "elbv2"

    def list(self) -> List[ResourceTracker]:
        elbv2 = self.cloud.elbv2
        try:
            lbs = {
                lb["LoadBalancerArn"]: lb
                for page in elbv2.get_paginator("describe_load_balancers").paginate()
                for lb in page.get("LoadBalancers", [])
                if not self.vpc_id or lb.get("VpcId") == self.vpc_id
            }
        except BOTO_ERRORS as e:
            raise translate_boto_error(e, "listing v2 load balancers") from e

        tags = self._describe_tags(sorted(lbs))

        trackers = []
        for arn, lb in lbs.items():
            if arn not in tags:
                continue
            ownership = self.classify(arn, tags[arn])
            if ownership is None:
                continue
            blocks = [f"subnet:{az['SubnetId']}" for az in lb.get("AvailabilityZones", []) if az.get("SubnetId")]
            if lb.get("VpcId"):
                blocks.append(f"vpc:{lb['VpcId']}")
            tracker = self.build_tracker(arn, lb, tags[arn], ownership, blocks=blocks)
            tracker.name = lb.get("LoadBalancerName", arn)
            trackers.append(tracker)

        self.logger.debug(f"Found {len(trackers)} v2 load balancers for {self.cluster_name}")
        return trackers

    def _fetch_tags(self, batch: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        response = self.cloud.elbv2.describe_tags(ResourceArns=list(batch))
        return {d["ResourceArn"]: d.get("Tags", []) for d in response.get("TagDescriptions", [])}
