"""boto3 client construction and the provider object used by all engines."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)

# Standard retry mode handles throttling inside a single call; anything that
# still fails surfaces to the caller.
DEFAULT_CLIENT_CONFIG = Config(
    retries={"max_attempts": 5, "mode": "standard"},
    connect_timeout=10,
    read_timeout=60,
)


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
    config: Optional[Config] = None,
) -> Any:
    """Create a boto3 client for a service.

    Args:
        service_name: AWS service name (e.g., "ec2", "iam")
        region_name: AWS region (optional, falls back to the profile default)
        profile_name: AWS profile name (optional)
        config: botocore Config (default: standard retries with timeouts)

    Returns:
        boto3 client
    """
    session = boto3.Session(profile_name=profile_name, region_name=region_name)
    return session.client(service_name, config=config or DEFAULT_CLIENT_CONFIG)


class AWSCloud:
    """Provider object handing out per-service boto3 clients.

    Clients are created lazily and cached. Pre-built clients (for example
    in-memory doubles) can be injected through ``clients``.

    Attributes:
        region: AWS region
        profile_name: AWS profile name (optional)
    """

    SERVICES = ("ec2", "iam", "elb", "elbv2")

    def __init__(
        self,
        region: str,
        profile_name: Optional[str] = None,
        clients: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.region = region
        self.profile_name = profile_name
        self._clients: Dict[str, Any] = dict(clients or {})
        self._lock = threading.Lock()

    def client(self, service_name: str) -> Any:
        """Return the (cached) client for a service."""
        with self._lock:
            if service_name not in self._clients:
                logger.debug(f"Creating {service_name} client in {self.region}")
                self._clients[service_name] = create_boto_client(
                    service_name=service_name,
                    region_name=self.region,
                    profile_name=self.profile_name,
                )
            return self._clients[service_name]

    @property
    def ec2(self) -> Any:
        return self.client("ec2")

    @property
    def iam(self) -> Any:
        return self.client("iam")

    @property
    def elb(self) -> Any:
        return self.client("elb")

    @property
    def elbv2(self) -> Any:
        return self.client("elbv2")
