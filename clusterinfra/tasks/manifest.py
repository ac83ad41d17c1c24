"""Network manifest loading.

A network manifest is a small YAML document with a fixed shape:

    cluster_name: example.k8s.local     # optional, adds ownership tags
    vpc:
      name: main
      cidr: 172.21.0.0/16
      id: vpc-0123                      # optional, locate by ID
      shared: false
      lifecycle: Sync
      enable_dns_hostnames: true
      enable_dns_support: true
      tags: {Name: main}
    subnets:
      - name: utility-a
        cidr: 172.21.0.0/22
        availability_zone: us-east-1a
    route_tables:
      - name: main
        subnets: [utility-a]

Task keys are "<kind>/<name>".
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from ..discovery.ownership import OWNED, TAG_NAME, ownership_tag_key
from ..errors import ManifestError
from .route_table import RouteTable
from .subnet import Subnet
from .task import Lifecycle, Task
from .vpc import VPC

VPC_FIELDS = {"name", "id", "cidr", "shared", "lifecycle", "enable_dns_hostnames", "enable_dns_support", "tags"}
SUBNET_FIELDS = {"name", "id", "cidr", "availability_zone", "shared", "lifecycle", "tags"}
ROUTE_TABLE_FIELDS = {"name", "id", "subnets", "shared", "lifecycle", "tags"}


def task_key(task: Task) -> str:
    return f"{task.kind}/{task.name}"


def _lifecycle(value: Any, where: str) -> Lifecycle:
    if value is None:
        return Lifecycle.SYNC
    try:
        return Lifecycle(value)
    except ValueError:
        choices = ", ".join(lc.value for lc in Lifecycle)
        raise ManifestError(f"{where}: unknown lifecycle {value!r} (expected one of {choices})")


def _check_entry(entry: Any, allowed: set, where: str) -> Dict[str, Any]:
    if not isinstance(entry, dict):
        raise ManifestError(f"{where}: expected a mapping")
    unknown = sorted(set(entry) - allowed)
    if unknown:
        raise ManifestError(f"{where}: unknown field(s) {', '.join(unknown)}")
    if not entry.get("name"):
        raise ManifestError(f"{where}: name is required")
    tags = entry.get("tags")
    if tags is not None and not isinstance(tags, dict):
        raise ManifestError(f"{where}: tags must be a mapping")
    return entry


def _tags(entry: Mapping[str, Any], cluster_name: Optional[str]) -> Dict[str, str]:
    tags = {str(k): str(v) for k, v in (entry.get("tags") or {}).items()}
    tags.setdefault(TAG_NAME, entry["name"])
    if cluster_name and not entry.get("shared"):
        tags.setdefault(ownership_tag_key(cluster_name), OWNED)
    return tags


def build_network_tasks(data: Mapping[str, Any]) -> Dict[str, Task]:
    """Build the network tasks described by a parsed manifest.

    Args:
        data: Parsed manifest document

    Returns:
        Tasks keyed by "<kind>/<name>"

    Raises:
        ManifestError: If the document is malformed
    """
    if not isinstance(data, dict):
        raise ManifestError("manifest must be a mapping")
    unknown = sorted(set(data) - {"cluster_name", "vpc", "subnets", "route_tables"})
    if unknown:
        raise ManifestError(f"unknown top-level field(s) {', '.join(unknown)}")
    if "vpc" not in data:
        raise ManifestError("vpc is required")

    cluster_name = data.get("cluster_name")
    entry = _check_entry(data["vpc"], VPC_FIELDS, "vpc")
    vpc = VPC(
        name=entry["name"],
        lifecycle=_lifecycle(entry.get("lifecycle"), "vpc"),
        id=entry.get("id"),
        cidr=entry.get("cidr"),
        enable_dns_hostnames=entry.get("enable_dns_hostnames"),
        enable_dns_support=entry.get("enable_dns_support"),
        shared=entry.get("shared"),
        tags=_tags(entry, cluster_name),
    )
    tasks: Dict[str, Task] = {task_key(vpc): vpc}

    subnets: Dict[str, Subnet] = {}
    for index, raw in enumerate(data.get("subnets") or []):
        where = f"subnets[{index}]"
        entry = _check_entry(raw, SUBNET_FIELDS, where)
        if entry["name"] in subnets:
            raise ManifestError(f"{where}: duplicate subnet {entry['name']}")
        subnet = Subnet(
            name=entry["name"],
            lifecycle=_lifecycle(entry.get("lifecycle"), where),
            id=entry.get("id"),
            vpc=vpc,
            cidr=entry.get("cidr"),
            availability_zone=entry.get("availability_zone"),
            shared=entry.get("shared"),
            tags=_tags(entry, cluster_name),
        )
        subnets[subnet.name] = subnet
        tasks[task_key(subnet)] = subnet

    seen: set = set()
    for index, raw in enumerate(data.get("route_tables") or []):
        where = f"route_tables[{index}]"
        entry = _check_entry(raw, ROUTE_TABLE_FIELDS, where)
        if entry["name"] in seen:
            raise ManifestError(f"{where}: duplicate route table {entry['name']}")
        seen.add(entry["name"])
        associated: Optional[List[Subnet]] = None
        if entry.get("subnets") is not None:
            missing = [name for name in entry["subnets"] if name not in subnets]
            if missing:
                raise ManifestError(f"{where}: unknown subnet(s) {', '.join(missing)}")
            associated = [subnets[name] for name in entry["subnets"]]
        route_table = RouteTable(
            name=entry["name"],
            lifecycle=_lifecycle(entry.get("lifecycle"), where),
            id=entry.get("id"),
            vpc=vpc,
            subnets=associated,
            shared=entry.get("shared"),
            tags=_tags(entry, cluster_name),
        )
        tasks[task_key(route_table)] = route_table

    return tasks


def load_network_manifest(path: str) -> Dict[str, Task]:
    """Load network tasks from a YAML manifest file.

    Raises:
        ManifestError: If the file cannot be parsed or is malformed
    """
    manifest_path = Path(path)
    try:
        with open(manifest_path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ManifestError(f"manifest not found: {manifest_path}")
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid YAML in {manifest_path}: {e}")
    return build_network_tasks(data)
