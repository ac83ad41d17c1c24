"""Dependency graph construction and deletion ordering.

Terminology follows deletion order: a *child* must be deleted before its
*parent* (a subnet is the child of its VPC). A tracker's ``blocks`` lists its
parents and its ``blocked`` lists its children.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from ..models.resource_tracker import ResourceTracker

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Dependency graph for ordering resource deletions.

    Attributes:
        graph: Maps each child key to the parent keys it must be deleted before
    """

    def __init__(self) -> None:
        self.graph: dict[str, list[str]] = {}

    def add_dependency(self, parent: str, child: str) -> None:
        """Record that child must be deleted before parent.

        Args:
            parent: Key deleted later (e.g., a VPC)
            child: Key deleted first (e.g., a subnet in that VPC)
        """
        parents = self.graph.setdefault(child, [])
        if parent not in parents:
            parents.append(parent)
        self.graph.setdefault(parent, [])

    def build_graph_from_trackers(self, trackers: Mapping[str, ResourceTracker]) -> None:
        """Add edges from the trackers' blocks/blocked sets.

        Both directions are honoured, so a blocks edge without its blocked
        inverse (or vice versa) still orders the pair. Edges to keys that are
        not among the trackers are ignored.

        Args:
            trackers: Trackers keyed by tracker key
        """
        for key in sorted(trackers):
            tracker = trackers[key]
            for parent in tracker.blocks:
                if parent not in trackers:
                    continue
                if key not in trackers[parent].blocked:
                    logger.debug(f"{key} blocks {parent} without the inverse blocked edge")
                self.add_dependency(parent=parent, child=key)
            for child in tracker.blocked:
                if child not in trackers:
                    continue
                if key not in trackers[child].blocks:
                    logger.debug(f"{key} is blocked by {child} without the inverse blocks edge")
                self.add_dependency(parent=key, child=child)

    def children_of(self, key: str) -> list[str]:
        """Keys that must be deleted before key."""
        return sorted(child for child, parents in self.graph.items() if key in parents)

    def has_cycle(self) -> bool:
        """Detect circular dependencies.

        Returns:
            True if the graph contains a cycle
        """
        visiting: set[str] = set()
        visited: set[str] = set()

        def visit(node: str) -> bool:
            visiting.add(node)
            for parent in self.graph.get(node, []):
                if parent in visiting:
                    return True
                if parent not in visited and visit(parent):
                    return True
            visiting.discard(node)
            visited.add(node)
            return False

        return any(node not in visited and visit(node) for node in sorted(self.graph))

    def get_deletion_tiers(self, resources: Iterable[str]) -> dict[int, list[str]]:
        """Group resources into tiers using Kahn's algorithm.

        Tier 1 holds resources nothing else has to wait for; every resource in
        tier N+1 only waits on resources in tiers 1..N. Edges to keys outside
        ``resources`` are ignored.

        Args:
            resources: Keys to order

        Returns:
            Mapping of tier number (1-based) to sorted keys

        Raises:
            ValueError: If the resources contain a circular dependency
        """
        remaining = set(resources)
        pending_children = {key: 0 for key in remaining}
        for child in remaining:
            for parent in self.graph.get(child, []):
                if parent in remaining:
                    pending_children[parent] += 1

        tiers: dict[int, list[str]] = {}
        current = sorted(key for key, count in pending_children.items() if count == 0)
        tier = 1
        while current:
            tiers[tier] = current
            remaining.difference_update(current)
            ready = set()
            for child in current:
                for parent in self.graph.get(child, []):
                    if parent in remaining:
                        pending_children[parent] -= 1
                        if pending_children[parent] == 0:
                            ready.add(parent)
            current = sorted(ready)
            tier += 1

        if remaining:
            raise ValueError(f"Circular dependency detected among: {', '.join(sorted(remaining))}")

        return tiers

    def compute_deletion_order(self, resources: Iterable[str]) -> list[str]:
        """Compute a total deletion order (children before parents).

        Args:
            resources: Keys to order

        Returns:
            Keys in a valid deletion order

        Raises:
            ValueError: If the resources contain a circular dependency
        """
        tiers = self.get_deletion_tiers(resources)
        return [key for tier in sorted(tiers) for key in tiers[tier]]
