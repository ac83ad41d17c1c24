"""Discovery of a cluster's cloud resources for teardown.

Classes:
    ResourceCollector: Runs every lister and merges the results
    BaseResourceLister: Base class for per-kind listers
"""

from __future__ import annotations

from .collector import ResourceCollector, load_lister_classes
from .listers.base import BaseResourceLister

__all__ = [
    "BaseResourceLister",
    "ResourceCollector",
    "load_lister_classes",
]
