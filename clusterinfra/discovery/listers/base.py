"""Base class for resource listers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ...aws.client import AWSCloud
from ...aws.errors import BOTO_ERRORS, translate_boto_error
from ...models.resource_tracker import ResourceTracker
from ...teardown.deleter import deleter_for
from ..ownership import Ownership, build_ec2_filters_for_cluster, classify, find_name, is_shared


class BaseResourceLister(ABC):
    """Abstract base class for all resource listers.

    Each lister:
    1. Has a unique resource_type used as the tracker key prefix
    2. Queries the provider for resources belonging to the cluster
    3. Returns ResourceTracker objects with dependency edges filled in

    Attributes:
        cloud: Provider object
        cluster_name: Cluster whose resources are listed
        vpc_id: Restrict VPC-scoped kinds to this VPC (optional)
    """

    def __init__(self, cloud: AWSCloud, cluster_name: str, vpc_id: Optional[str] = None) -> None:
        self.cloud = cloud
        self.cluster_name = cluster_name
        self.vpc_id = vpc_id
        self.logger = logging.getLogger(self.__class__.__module__)

    @property
    @abstractmethod
    def resource_type(self) -> str:
        """Tracker type produced by this lister (e.g., "vpc")."""

    @abstractmethod
    def list(self) -> List[ResourceTracker]:
        """List the cluster's resources of this kind.

        Returns:
            List of trackers (order unspecified, no duplicate keys)
        """

    def build_tracker(
        self,
        resource_id: str,
        obj: Any,
        tags: Any,
        ownership: Ownership,
        blocks: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> ResourceTracker:
        """Build a tracker with this kind's deleter."""
        return ResourceTracker(
            id=resource_id,
            type=self.resource_type,
            name=find_name(tags) or resource_id,
            obj=obj,
            shared=is_shared(ownership),
            blocks=list(blocks or []),
            blocked=list(blocked or []),
            deleter=deleter_for(self.resource_type),
            ownership=ownership.value,
        )

    def classify(self, resource_id: str, tags: Any) -> Optional[Ownership]:
        return classify(f"{self.resource_type}:{resource_id}", tags, self.cluster_name)

    def describe_for_cluster(
        self,
        method: str,
        result_key: str,
        id_field: str,
        vpc_scoped: bool = True,
    ) -> Dict[str, Dict[str, Any]]:
        """Describe EC2 records once per cluster filter set, merged by ID.

        Args:
            method: EC2 describe method (e.g., "describe_vpcs")
            result_key: Response key holding the records (e.g., "Vpcs")
            id_field: Record field holding the ID (e.g., "VpcId")
            vpc_scoped: Whether the kind supports the "vpc-id" filter

        Returns:
            Dict mapping ID to raw record
        """
        records: Dict[str, Dict[str, Any]] = {}
        paginator = self.cloud.ec2.get_paginator(method)
        for filters in build_ec2_filters_for_cluster(self.cluster_name):
            if self.vpc_id and vpc_scoped:
                filters = filters + [{"Name": "vpc-id", "Values": [self.vpc_id]}]
            try:
                for page in paginator.paginate(Filters=filters):
                    for record in page.get(result_key, []):
                        records[record[id_field]] = record
            except BOTO_ERRORS as e:
                raise translate_boto_error(e, f"listing {self.resource_type}") from e
        return records
