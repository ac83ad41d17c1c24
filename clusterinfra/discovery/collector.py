"""Resource collector running every lister for a cluster."""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence, Type

from ..aws.client import AWSCloud
from ..errors import DeadlineExceededError
from ..models.resource_tracker import ResourceTracker
from .listers.base import BaseResourceLister
from .listers.route_table import add_untagged_route_tables

logger = logging.getLogger(__name__)


def load_lister_classes() -> List[Type[BaseResourceLister]]:
    """Discover all concrete BaseResourceLister subclasses in the listers package."""
    from . import listers

    classes: List[Type[BaseResourceLister]] = []
    for _, modname, _ in pkgutil.iter_modules(listers.__path__):
        if modname == "base":
            continue

        module = importlib.import_module(f".listers.{modname}", package=__package__)
        for _, obj in inspect.getmembers(module, inspect.isclass):
            if (
                issubclass(obj, BaseResourceLister)
                and obj is not BaseResourceLister
                and not inspect.isabstract(obj)
                and obj.__module__ == module.__name__
            ):
                classes.append(obj)

    return sorted(classes, key=lambda cls: cls.__name__)


class ResourceCollector:
    """Collects a cluster's resource trackers across all resource kinds.

    Listers are read-only and share no state, so they run concurrently; their
    results are merged only after every lister has finished.

    Attributes:
        cloud: Provider object
        cluster_name: Cluster whose resources are collected
        listers: Lister instances to run
        max_workers: Thread pool size
    """

    def __init__(
        self,
        cloud: AWSCloud,
        cluster_name: str,
        vpc_id: Optional[str] = None,
        max_workers: int = 8,
        lister_classes: Optional[Sequence[Type[BaseResourceLister]]] = None,
    ) -> None:
        self.cloud = cloud
        self.cluster_name = cluster_name
        self.max_workers = max_workers
        classes = lister_classes if lister_classes is not None else load_lister_classes()
        self.listers = [cls(cloud, cluster_name, vpc_id) for cls in classes]

    def collect(self, timeout: Optional[float] = None) -> Dict[str, ResourceTracker]:
        """Run all listers and merge their output.

        Args:
            timeout: Seconds to wait for all listers (optional)

        Returns:
            Trackers keyed by tracker key, including untagged route tables

        Raises:
            DeadlineExceededError: If listers did not finish within timeout
            ClusterInfraError: If any lister failed
        """
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="lister")
        try:
            futures = {executor.submit(lister.list): lister for lister in self.listers}
            _, not_done = wait(futures, timeout=timeout)
            if not_done:
                pending = sorted(futures[f].resource_type for f in not_done)
                raise DeadlineExceededError(f"Timed out listing resources: {', '.join(pending)}")

            trackers: Dict[str, ResourceTracker] = {}
            for future, lister in sorted(futures.items(), key=lambda item: item[1].resource_type):
                for tracker in future.result():
                    existing = trackers.get(tracker.key)
                    if existing is None:
                        trackers[tracker.key] = tracker
                    else:
                        existing.merge(tracker)
                logger.debug(f"{lister.resource_type}: done")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        add_untagged_route_tables(self.cloud, self.cluster_name, trackers)

        logger.info(f"Found {len(trackers)} resources for cluster {self.cluster_name}")
        return trackers
