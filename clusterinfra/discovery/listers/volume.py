"""EBS volume lister."""

from __future__ import annotations

from typing import List

from ...models.resource_tracker import ResourceTracker
from .base import BaseResourceLister


class VolumeLister(BaseResourceLister):
    """Lister for EBS volumes tagged for the cluster (etcd and persistent volumes)."""

    @property
    def resource_type(self) -> str:
        return "volume"

    def list(self) -> List[ResourceTracker]:
        trackers = []
        volumes = self.describe_for_cluster("describe_volumes", "Volumes", "VolumeId", vpc_scoped=False)
        for volume_id, volume in volumes.items():
            ownership = self.classify(volume_id, volume.get("Tags"))
            if ownership is None:
                continue
            trackers.append(self.build_tracker(volume_id, volume, volume.get("Tags"), ownership))

        self.logger.debug(f"Found {len(trackers)} volumes for {self.cluster_name}")
        return trackers
