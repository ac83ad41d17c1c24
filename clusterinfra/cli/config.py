"""CLI configuration.

Settings are read from a YAML file (``$CLUSTERINFRA_CONFIG`` or
``~/.clusterinfra/config.yaml``), then overridden by environment variables,
then by command line options.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".clusterinfra" / "config.yaml"

ENV_OVERRIDES = {
    "AWS_PROFILE": "aws_profile",
    "AWS_REGION": "region",
    "CLUSTERINFRA_LOG_LEVEL": "log_level",
    "CLUSTERINFRA_STORAGE_PATH": "storage_path",
}


@dataclass
class Config:
    """Resolved CLI settings.

    Attributes:
        aws_profile: AWS profile name
        region: AWS region
        log_level: Default log level
        storage_path: Base directory for audit logs
        max_workers: Concurrent provider calls for listing, deleting and converging
        retry_budget: Consecutive teardown waves without progress before giving up
        wave_backoff_seconds: Pause after a teardown wave without progress
        timeout_seconds: Deadline for a whole command (None for no deadline)
    """

    aws_profile: Optional[str] = None
    region: Optional[str] = None
    log_level: str = "INFO"
    storage_path: Optional[str] = None
    max_workers: int = 8
    retry_budget: int = 2
    wave_backoff_seconds: float = 5.0
    timeout_seconds: Optional[float] = None

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load configuration from file and environment.

        Args:
            path: Config file (default: $CLUSTERINFRA_CONFIG or ~/.clusterinfra/config.yaml)

        Returns:
            Config instance; defaults when no file exists

        Raises:
            ValueError: If the file is not a YAML mapping or has unknown keys
        """
        config_path = Path(path or os.environ.get("CLUSTERINFRA_CONFIG") or DEFAULT_CONFIG_PATH)
        values: Dict[str, Any] = {}

        if config_path.exists():
            logger.debug(f"Loading configuration from {config_path}")
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Configuration file {config_path} must contain a mapping")
            known = {f.name for f in fields(cls)}
            unknown = sorted(set(data) - known)
            if unknown:
                raise ValueError(f"Unknown configuration keys in {config_path}: {', '.join(unknown)}")
            values.update(data)

        for env_var, name in ENV_OVERRIDES.items():
            if os.environ.get(env_var):
                values[name] = os.environ[env_var]

        return cls(**values)
