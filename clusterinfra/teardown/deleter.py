"""AWS resource deletion strategies.

Maps tracker types to their deletion calls. Listers attach the resulting
callables to each tracker, so teardown never switches on resource type.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from ..aws.client import AWSCloud
from ..aws.errors import BOTO_ERRORS, error_code, is_not_found, translate_boto_error
from ..models.resource_tracker import Deleter, ResourceTracker

logger = logging.getLogger(__name__)

# Deletion method mapping: tracker type -> (service, method, id_field)
DELETION_METHODS = {
    "vpc": ("ec2", "delete_vpc", "VpcId"),
    "subnet": ("ec2", "delete_subnet", "SubnetId"),
    "route-table": ("ec2", "delete_route_table", "RouteTableId"),
    "volume": ("ec2", "delete_volume", "VolumeId"),
    "load-balancer": ("elb", "delete_load_balancer", "LoadBalancerName"),
    "elbv2": ("elbv2", "delete_load_balancer", "LoadBalancerArn"),
    "iam-role": ("iam", "delete_role", "RoleName"),
    "iam-instance-profile": ("iam", "delete_instance_profile", "InstanceProfileName"),
}


def _detach_role(cloud: AWSCloud, tracker: ResourceTracker) -> None:
    """Remove inline policies, managed policies and profile links from a role."""
    iam = cloud.iam
    role_name = tracker.id

    for policy_name in iam.list_role_policies(RoleName=role_name).get("PolicyNames", []):
        logger.debug(f"Deleting inline policy {policy_name} from role {role_name}")
        iam.delete_role_policy(RoleName=role_name, PolicyName=policy_name)

    for policy in iam.list_attached_role_policies(RoleName=role_name).get("AttachedPolicies", []):
        logger.debug(f"Detaching policy {policy['PolicyArn']} from role {role_name}")
        iam.detach_role_policy(RoleName=role_name, PolicyArn=policy["PolicyArn"])

    profiles = iam.list_instance_profiles_for_role(RoleName=role_name).get("InstanceProfiles", [])
    for profile in profiles:
        iam.remove_role_from_instance_profile(
            InstanceProfileName=profile["InstanceProfileName"],
            RoleName=role_name,
        )


def _empty_instance_profile(cloud: AWSCloud, tracker: ResourceTracker) -> None:
    """Remove roles from an instance profile before deleting it."""
    for role in (tracker.obj or {}).get("Roles", []):
        logger.debug(f"Removing role {role['RoleName']} from instance profile {tracker.id}")
        cloud.iam.remove_role_from_instance_profile(
            InstanceProfileName=tracker.id,
            RoleName=role["RoleName"],
        )


PRE_DELETE_HOOKS: dict[str, Callable[[AWSCloud, ResourceTracker], None]] = {
    "iam-role": _detach_role,
    "iam-instance-profile": _empty_instance_profile,
}


def deleter_for(resource_type: str) -> Deleter:
    """Build the deleter callable for a tracker type.

    The returned callable raises a ProviderError subclass on failure. A
    resource that is already gone counts as deleted.

    Args:
        resource_type: Tracker type (e.g. "vpc")

    Returns:
        Callable taking (cloud, tracker)

    Raises:
        ValueError: If the type has no deletion method
    """
    if resource_type not in DELETION_METHODS:
        raise ValueError(f"Unsupported resource type: {resource_type}")

    service, method, id_field = DELETION_METHODS[resource_type]
    pre_delete: Optional[Callable[[AWSCloud, ResourceTracker], None]] = PRE_DELETE_HOOKS.get(resource_type)

    def delete(cloud: AWSCloud, tracker: ResourceTracker) -> None:
        try:
            if pre_delete is not None:
                pre_delete(cloud, tracker)
            client = cloud.client(service)
            getattr(client, method)(**{id_field: tracker.id})
        except BOTO_ERRORS as e:
            if is_not_found(e):
                logger.info(f"{tracker.key} already deleted")
                return
            logger.debug(f"Failed to delete {tracker.key}: {error_code(e)}")
            raise translate_boto_error(e, f"deleting {tracker.key}") from e
        logger.info(f"Deleted {tracker.key}")

    return delete


def delete_tracker(cloud: Any, tracker: ResourceTracker) -> None:
    """Delete a tracker through its own deleter, refusing shared resources."""
    if tracker.shared:
        raise ValueError(f"Refusing to delete shared resource {tracker.key}")
    if tracker.deleter is None:
        raise ValueError(f"No deleter for {tracker.key}")
    tracker.deleter(cloud, tracker)
