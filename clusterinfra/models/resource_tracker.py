"""Resource tracker model for discovered cloud objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

Dumper = Callable[["DumpOperation", "ResourceTracker"], None]
Deleter = Callable[[Any, "ResourceTracker"], None]

# Ownership verdicts ranked from least to most protective
OWNERSHIP_RANK = {"owned": 0, "shared": 1, "ambiguous": 2}


@dataclass
class Dump:
    """Collection of dumped resource records ({id, type, raw})."""

    resources: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"resources": list(self.resources)}


@dataclass
class DumpOperation:
    """State handed to each tracker's dumper."""

    dump: Dump = field(default_factory=Dump)


def dump_raw(op: DumpOperation, tracker: "ResourceTracker") -> None:
    """Default dumper: append the tracker's raw provider record."""
    op.dump.resources.append({"id": tracker.id, "type": tracker.type, "raw": tracker.obj})


@dataclass
class ResourceTracker:
    """A discovered cloud object considered for teardown.

    Trackers reference each other only by key, so a set of trackers forms a
    flat arena that can be serialized as-is.

    Attributes:
        id: Provider-assigned identifier (e.g. "vpc-1234", role name)
        type: Resource kind (e.g. "vpc", "route-table")
        name: Human-readable label, usually the Name tag
        obj: Raw provider record
        shared: True when the resource must never be deleted
        blocks: Keys that cannot be deleted until this one is deleted
        blocked: Keys that must be deleted before this one
        dumper: Callable exporting a descriptive record
        deleter: Callable performing provider-side deletion
        ownership: Classifier verdict ("owned", "shared", "ambiguous")
    """

    id: str
    type: str
    name: str = ""
    obj: Any = None
    shared: bool = False
    blocks: List[str] = field(default_factory=list)
    blocked: List[str] = field(default_factory=list)
    dumper: Optional[Dumper] = dump_raw
    deleter: Optional[Deleter] = None
    ownership: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.type}:{self.id}"

    def merge(self, other: "ResourceTracker") -> None:
        """Merge edges from a duplicate tracker with the same key.

        The merged tracker keeps the most protective verdict of the two:
        shared wins over not shared, and ownership ranks ambiguous over
        shared over owned.
        """
        for k in other.blocks:
            if k not in self.blocks:
                self.blocks.append(k)
        for k in other.blocked:
            if k not in self.blocked:
                self.blocked.append(k)
        self.shared = self.shared or other.shared
        verdicts = [o for o in (self.ownership, other.ownership) if o is not None]
        self.ownership = max(verdicts, key=lambda o: OWNERSHIP_RANK.get(o, 0), default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "shared": self.shared,
            "ownership": self.ownership,
            "blocks": sorted(self.blocks),
            "blocked": sorted(self.blocked),
        }


def dump_resources(trackers: Dict[str, ResourceTracker]) -> Dump:
    """Run every tracker's dumper into a shared Dump collection."""
    op = DumpOperation()
    for key in sorted(trackers):
        tracker = trackers[key]
        if tracker.dumper is not None:
            tracker.dumper(op, tracker)
    return op.dump
