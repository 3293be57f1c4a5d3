"""Default settings for Scylla containers and their environment overrides."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Optional, Tuple

DEFAULT_IMAGE_NAME = "scylladb/scylla"
DEFAULT_TAG = "4.1.8"

CQL_PORT = 9042
THRIFT_PORT = 9160
JMX_PORT = 7199
SCYLLA_API_PORT = 10000

CONTAINER_CONFIG_LOCATION = "/etc/scylla"
# Scylla ships with ``AllowAllAuthenticator``; these only matter once the
# configuration switches to ``PasswordAuthenticator``.
USERNAME = "scylla"
PASSWORD = "scylla"

DEFAULT_STARTUP_TIMEOUT_SECONDS = 120
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_STARTUP_ATTEMPTS = 3


def _get_env_value(*keys: str) -> Optional[str]:
    """Return the first non-empty environment variable among ``keys``, else ``None``."""

    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


def _parse_number(key: str, raw: str, kind: type):
    try:
        value = kind(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {key}: {raw!r}") from None
    if value < 0:
        raise ValueError(f"Invalid value for {key}: {raw!r} must not be negative")
    return value


@dataclasses.dataclass(frozen=True)
class ScyllaContainerSettings:
    """Every default a :class:`~scylla_testcontainer.container.ScyllaContainer` starts from."""

    image: str = f"{DEFAULT_IMAGE_NAME}:{DEFAULT_TAG}"
    compatible_image: str = DEFAULT_IMAGE_NAME
    exposed_ports: Tuple[int, ...] = (CQL_PORT, THRIFT_PORT, JMX_PORT, SCYLLA_API_PORT)
    command: Tuple[str, ...] = ("--disable-version-check", "--api-address", "0.0.0.0")
    container_config_location: str = CONTAINER_CONFIG_LOCATION
    username: str = USERNAME
    password: str = PASSWORD
    startup_attempts: int = DEFAULT_STARTUP_ATTEMPTS
    startup_timeout: int = DEFAULT_STARTUP_TIMEOUT_SECONDS
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    resource_paths: Tuple[Path, ...] = (Path("."),)

    @classmethod
    def from_env(cls, **overrides) -> "ScyllaContainerSettings":
        """Build settings from ``SCYLLA_*`` environment variables.

        Explicit keyword ``overrides`` win over the environment.
        """

        values = {}

        image = _get_env_value("SCYLLA_IMAGE")
        if image:
            values["image"] = image

        timeout = _get_env_value("SCYLLA_STARTUP_TIMEOUT")
        if timeout:
            values["startup_timeout"] = _parse_number("SCYLLA_STARTUP_TIMEOUT", timeout, int)

        interval = _get_env_value("SCYLLA_POLL_INTERVAL")
        if interval:
            values["poll_interval"] = _parse_number("SCYLLA_POLL_INTERVAL", interval, float)

        attempts = _get_env_value("SCYLLA_STARTUP_ATTEMPTS")
        if attempts:
            parsed = _parse_number("SCYLLA_STARTUP_ATTEMPTS", attempts, int)
            if parsed < 1:
                raise ValueError(f"Invalid value for SCYLLA_STARTUP_ATTEMPTS: {attempts!r} must be at least 1")
            values["startup_attempts"] = parsed

        resource_path = _get_env_value("SCYLLA_RESOURCE_PATH")
        if resource_path:
            values["resource_paths"] = tuple(
                Path(entry) for entry in resource_path.split(os.pathsep) if entry
            )

        values.update(overrides)
        return cls(**values)
