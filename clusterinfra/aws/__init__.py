"""AWS provider access: boto3 client construction and error classification."""

from __future__ import annotations

from .client import AWSCloud, create_boto_client

__all__ = [
    "AWSCloud",
    "create_boto_client",
]
