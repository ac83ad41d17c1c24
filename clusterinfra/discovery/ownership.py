"""Tag-based ownership classification.

Decides from a resource's tags whether it belongs to a cluster, and if so
whether the cluster owns it (deletable) or merely shares it (protected).

Tag schema:
    kubernetes.io/cluster/<clusterName> = owned | shared
    KubernetesCluster = <clusterName>          (legacy, implies owned)
    Name = <display name>
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

TAG_CLUSTER_NAME = "KubernetesCluster"
TAG_NAME = "Name"
OWNERSHIP_TAG_PREFIX = "kubernetes.io/cluster/"
OWNED = "owned"
SHARED = "shared"

TagsLike = Union[Mapping[str, str], Iterable[Mapping[str, Any]], None]


class Ownership(str, Enum):
    """Classifier verdict for a resource that belongs to the cluster."""

    OWNED = "owned"
    SHARED = "shared"
    AMBIGUOUS = "ambiguous"


def ownership_tag_key(cluster_name: str) -> str:
    """Return the ownership tag key for a cluster."""
    return OWNERSHIP_TAG_PREFIX + cluster_name


def tags_to_dict(tags: TagsLike) -> Dict[str, str]:
    """Normalize provider tags ([{"Key": .., "Value": ..}] or a dict) to a dict."""
    if not tags:
        return {}
    if isinstance(tags, Mapping):
        return dict(tags)
    result: Dict[str, str] = {}
    for tag in tags:
        key = tag.get("Key")
        if key is not None:
            result[key] = tag.get("Value", "")
    return result


def find_name(tags: TagsLike) -> str:
    """Return the Name tag value, or "" when absent."""
    return tags_to_dict(tags).get(TAG_NAME, "")


def matches_tags(required: Mapping[str, str], actual: TagsLike) -> bool:
    """Check that every required key/value pair is present in actual.

    Args:
        required: Tags that must all be present with the given values
        actual: Tags carried by the resource

    Returns:
        True if all required pairs match (an empty requirement always matches)
    """
    actual_tags = tags_to_dict(actual)
    for key, value in required.items():
        if actual_tags.get(key) != value:
            return False
    return True


def classify(resource_key: str, tags: TagsLike, cluster_name: str) -> Optional[Ownership]:
    """Classify a resource's relationship to a cluster.

    The current ownership tag takes precedence over the legacy tag. A value
    other than "owned"/"shared", or a legacy tag naming a different cluster
    next to our ownership tag, is ambiguous and treated as shared.

    Args:
        resource_key: Tracker key, used for log messages only
        tags: Resource tags
        cluster_name: Cluster whose resources are being classified

    Returns:
        Ownership verdict, or None if the resource does not belong to the cluster
    """
    tag_map = tags_to_dict(tags)
    legacy = tag_map.get(TAG_CLUSTER_NAME)
    owner_key = ownership_tag_key(cluster_name)

    if owner_key in tag_map:
        value = tag_map[owner_key]
        if legacy is not None and legacy != cluster_name:
            logger.warning(
                f"{resource_key} has {owner_key}={value} but {TAG_CLUSTER_NAME}={legacy}; treating as shared"
            )
            return Ownership.AMBIGUOUS
        if value == OWNED:
            return Ownership.OWNED
        if value == SHARED:
            return Ownership.SHARED
        logger.warning(f"{resource_key} has unknown value for tag {owner_key}: {value!r}; treating as shared")
        return Ownership.AMBIGUOUS

    if legacy is not None and matches_tags({TAG_CLUSTER_NAME: cluster_name}, tag_map):
        return Ownership.OWNED

    return None


def is_shared(ownership: Optional[Ownership]) -> bool:
    """Only an explicit OWNED verdict makes a resource deletable."""
    return ownership != Ownership.OWNED


def tagged_for_other_cluster(tags: TagsLike, cluster_name: str) -> bool:
    """True when tags name a cluster other than cluster_name (either scheme)."""
    tag_map = tags_to_dict(tags)
    legacy = tag_map.get(TAG_CLUSTER_NAME)
    if legacy is not None and legacy != cluster_name:
        return True
    own_key = ownership_tag_key(cluster_name)
    return any(k.startswith(OWNERSHIP_TAG_PREFIX) and k != own_key for k in tag_map)


def build_ec2_filters_for_cluster(cluster_name: str) -> List[List[Dict[str, Any]]]:
    """Build the server-side filter sets that find a cluster's EC2 resources.

    One pass per tagging scheme; callers merge the results by resource ID.
    """
    return [
        [{"Name": f"tag:{TAG_CLUSTER_NAME}", "Values": [cluster_name]}],
        [{"Name": "tag-key", "Values": [ownership_tag_key(cluster_name)]}],
    ]
