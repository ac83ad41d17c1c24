"""Helpers shared by the EC2-backed tasks."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from ..aws.errors import BOTO_ERRORS, is_not_found, translate_boto_error
from ..discovery.ownership import TAG_NAME, tags_to_dict
from ..errors import ProviderError


def tag_list(tags: Mapping[str, str]) -> List[Dict[str, str]]:
    """Convert a tag map to the EC2 Key/Value list form, sorted by key."""
    return [{"Key": key, "Value": tags[key]} for key in sorted(tags)]


def tag_specifications(resource_type: str, tags: Optional[Mapping[str, str]]) -> List[Dict[str, Any]]:
    if not tags:
        return []
    return [{"ResourceType": resource_type, "Tags": tag_list(tags)}]


def visible_tags(actual_tags: Any, expected_tags: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Restrict actual tags to the keys the expected task declares.

    Tags added by other tools or consumers are not ours to diff.
    """
    actual = tags_to_dict(actual_tags)
    if expected_tags is None:
        return actual
    return {key: value for key, value in actual.items() if key in expected_tags}


def name_filters(name: Optional[str], tags: Optional[Mapping[str, str]]) -> List[Dict[str, Any]]:
    """Filters locating a resource by its Name tag."""
    display_name = (tags or {}).get(TAG_NAME) or name
    if not display_name:
        return []
    return [{"Name": f"tag:{TAG_NAME}", "Values": [display_name]}]


def describe_one(
    method: Callable[..., Dict[str, Any]],
    result_key: str,
    what: str,
    **kwargs: Any,
) -> Optional[Dict[str, Any]]:
    """Call an EC2 describe method expected to match at most one resource.

    Returns:
        The matching record, or None if nothing matched

    Raises:
        ProviderError: If more than one resource matched or the call failed
    """
    try:
        items = method(**kwargs).get(result_key, [])
    except BOTO_ERRORS as e:
        if is_not_found(e):
            return None
        raise translate_boto_error(e, f"describing {what}") from e
    if len(items) > 1:
        raise ProviderError(f"found {len(items)} resources matching {what}")
    return items[0] if items else None


def apply_tags(ec2: Any, resource_id: str, tags: Optional[Mapping[str, str]]) -> None:
    if not tags:
        return
    try:
        ec2.create_tags(Resources=[resource_id], Tags=tag_list(tags))
    except BOTO_ERRORS as e:
        raise translate_boto_error(e, f"tagging {resource_id}") from e
