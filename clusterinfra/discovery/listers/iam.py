"""IAM role and instance profile listers.

IAM list calls do not return tags, so each entity found while listing is
fetched again to read its tags. An entity can disappear between the two
calls; such entities are skipped rather than failing the listing.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...aws.errors import BOTO_ERRORS, is_not_found, translate_boto_error
from ...models.resource_tracker import ResourceTracker
from .base import BaseResourceLister


class IAMRoleLister(BaseResourceLister):
    """Lister for IAM roles carrying the cluster's ownership tag."""

    @property
    def resource_type(self) -> str:
        return "iam-role"

    def list(self) -> List[ResourceTracker]:
        iam = self.cloud.iam
        trackers = []

        try:
            names = [
                role["RoleName"]
                for page in iam.get_paginator("list_roles").paginate()
                for role in page.get("Roles", [])
            ]
        except BOTO_ERRORS as e:
            raise translate_boto_error(e, "listing IAM roles") from e

        for name in names:
            role = self._get_role(name)
            if role is None:
                continue
            ownership = self.classify(name, role.get("Tags"))
            if ownership is None:
                continue
            tracker = self.build_tracker(name, role, role.get("Tags"), ownership)
            tracker.name = name
            trackers.append(tracker)

        self.logger.debug(f"Found {len(trackers)} IAM roles for {self.cluster_name}")
        return trackers

    def _get_role(self, name: str) -> Optional[Dict[str, Any]]:
        try:
            return self.cloud.iam.get_role(RoleName=name)["Role"]
        except BOTO_ERRORS as e:
            if is_not_found(e):
                self.logger.warning(f"Could not find IAM role {name}; it may already have been deleted")
                return None
            raise translate_boto_error(e, f"getting IAM role {name}") from e


class IAMInstanceProfileLister(BaseResourceLister):
    """Lister for IAM instance profiles carrying the cluster's ownership tag.

    An instance profile blocks deletion of the roles it contains.
    """

    @property
    def resource_type(self) -> str:
        return "iam-instance-profile"

    def list(self) -> List[ResourceTracker]:
        iam = self.cloud.iam
        trackers = []

        try:
            names = [
                profile["InstanceProfileName"]
                for page in iam.get_paginator("list_instance_profiles").paginate()
                for profile in page.get("InstanceProfiles", [])
            ]
        except BOTO_ERRORS as e:
            raise translate_boto_error(e, "listing IAM instance profiles") from e

        for name in names:
            profile = self._get_instance_profile(name)
            if profile is None:
                continue
            ownership = self.classify(name, profile.get("Tags"))
            if ownership is None:
                continue
            blocks = [f"iam-role:{role['RoleName']}" for role in profile.get("Roles", [])]
            tracker = self.build_tracker(name, profile, profile.get("Tags"), ownership, blocks=blocks)
            tracker.name = name
            trackers.append(tracker)

        self.logger.debug(f"Found {len(trackers)} IAM instance profiles for {self.cluster_name}")
        return trackers

    def _get_instance_profile(self, name: str) -> Optional[Dict[str, Any]]:
        try:
            return self.cloud.iam.get_instance_profile(InstanceProfileName=name)["InstanceProfile"]
        except BOTO_ERRORS as e:
            if is_not_found(e):
                self.logger.warning(f"Could not find IAM instance profile {name}; it may already have been deleted")
                return None
            raise translate_boto_error(e, f"getting IAM instance profile {name}") from e
