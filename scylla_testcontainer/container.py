"""Scylla container for testcontainers.

Supports the 3.x and 4.x ``scylladb/scylla`` images::

    with ScyllaContainer().with_init_script("initial.cql") as scylla:
        cluster = scylla.get_cluster()
        session = cluster.connect()
        ...
"""

from __future__ import annotations

import enum
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import requests
from cassandra.cluster import Cluster
from docker.errors import DockerException
from testcontainers.core.container import DockerContainer
from testcontainers.core.wait_strategies import LogMessageWaitStrategy

from .config import CQL_PORT, JMX_PORT, SCYLLA_API_PORT, THRIFT_PORT, ScyllaContainerSettings
from .cql_script import execute_cql_script
from .delegate import ScyllaDatabaseDelegate, build_cluster
from .errors import (
    ContainerLaunchError,
    ContainerStateError,
    IncompatibleImageError,
    ScriptError,
    ScriptExecutionError,
    ScyllaContainerError,
    StartupTimeoutError,
)
from .resources import read_script_resource, resolve_resource

__all__ = [
    "CQL_PORT",
    "JMX_PORT",
    "SCYLLA_API_PORT",
    "THRIFT_PORT",
    "LifecycleState",
    "ScyllaContainer",
]

LOGGER = logging.getLogger(__name__)

CQL_READY_LOG_MESSAGE = "Starting listening for CQL clients"
RELEASE_VERSION_PATH = "/storage_service/scylla_release_version"
REST_API_TIMEOUT_SECONDS = 10
# The container may run Scylla under a different uid than the host user, so the
# staged configuration copy is left writable for everyone.
_STAGED_DIR_MODE = 0o777
_STAGED_FILE_MODE = 0o666


class LifecycleState(enum.Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    STARTED = "started"
    READY = "ready"
    INITIALIZED = "initialized"
    STOPPED = "stopped"


def image_repository(image: str) -> str:
    """Return the repository of ``image`` without registry, tag or digest."""

    name = image.split("@", 1)[0]
    head, _, last = name.rpartition("/")
    if ":" in last:
        last = last.rsplit(":", 1)[0]
    parts = (head.split("/") if head else []) + [last]
    if len(parts) > 1 and ("." in parts[0] or ":" in parts[0] or parts[0] == "localhost"):
        parts = parts[1:]
    return "/".join(parts)


def _make_world_accessible(root: Path) -> None:
    os.chmod(root, _STAGED_DIR_MODE)
    for current, directories, files in os.walk(root):
        for directory in directories:
            os.chmod(os.path.join(current, directory), _STAGED_DIR_MODE)
        for filename in files:
            os.chmod(os.path.join(current, filename), _STAGED_FILE_MODE)


class ScyllaContainer(DockerContainer):
    """Scylla database container.

    Defaults come from :class:`ScyllaContainerSettings` (``SCYLLA_*``
    environment variables apply when no settings are passed). Configuration
    setters return the container and are only accepted before :meth:`start`.
    """

    CQL_PORT = CQL_PORT
    THRIFT_PORT = THRIFT_PORT
    JMX_PORT = JMX_PORT
    SCYLLA_API_PORT = SCYLLA_API_PORT

    def __init__(
        self,
        image: Optional[str] = None,
        settings: Optional[ScyllaContainerSettings] = None,
        **kwargs,
    ) -> None:
        self._state = LifecycleState.UNCONFIGURED
        self.settings = settings or ScyllaContainerSettings.from_env()
        image = image or self.settings.image

        if image_repository(image) != self.settings.compatible_image:
            raise IncompatibleImageError(image, self.settings.compatible_image)

        super().__init__(image, **kwargs)

        self.with_exposed_ports(*self.settings.exposed_ports)
        self.with_command(list(self.settings.command))

        self._config_location: Optional[str] = None
        self._init_script_path: Optional[str] = None
        self._enable_jmx_reporting = False
        self._readiness_strategy = None
        self._staging_directory: Optional[Path] = None
        self._init_script_executed = False
        self._state = LifecycleState.CONFIGURED

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def jmx_reporting_enabled(self) -> bool:
        return self._enable_jmx_reporting

    def _ensure_configurable(self) -> None:
        if self._state is not LifecycleState.CONFIGURED:
            raise ContainerStateError(
                f"Container configuration cannot change once {self._state.value}"
            )

    def with_configuration_override(self, config_location: str) -> "ScyllaContainer":
        """Replace everything under ``/etc/scylla`` with the directory ``config_location``.

        Nothing is merged: if ``scylla.yaml`` is missing or broken in the
        override, Scylla will not launch and :meth:`start` fails with a
        startup timeout.
        """

        self._ensure_configurable()
        self._config_location = config_location
        return self

    def with_init_script(self, init_script_path: str) -> "ScyllaContainer":
        """Run the CQL script ``init_script_path`` once Scylla is ready."""

        self._ensure_configurable()
        self._init_script_path = init_script_path
        return self

    def with_jmx_reporting(self, enable_jmx_reporting: bool) -> "ScyllaContainer":
        """Enable or disable driver metrics on clusters built by :meth:`get_cluster`."""

        self._ensure_configurable()
        self._enable_jmx_reporting = enable_jmx_reporting
        return self

    def waiting_for(self, strategy) -> "ScyllaContainer":
        self._ensure_configurable()
        self._readiness_strategy = strategy
        return self

    def _stage_configuration_override(self) -> None:
        if self._config_location is None:
            return

        source = resolve_resource(self._config_location, self.settings.resource_paths)
        if not source.is_dir():
            raise ScyllaContainerError(
                f"Configuration override {self._config_location!r} is not a directory"
            )

        staging = Path(tempfile.mkdtemp(prefix="scylla-config-"))
        shutil.copytree(source, staging, dirs_exist_ok=True)
        _make_world_accessible(staging)
        self._staging_directory = staging
        self.with_volume_mapping(str(staging), self.settings.container_config_location, "rw")
        LOGGER.info(
            "Mounting configuration override %s over %s",
            source,
            self.settings.container_config_location,
        )

    def _discard_container(self) -> None:
        wrapped = self._container
        if wrapped is None:
            return
        try:
            wrapped.remove(force=True, v=True)
        except DockerException as exc:
            LOGGER.warning("Could not remove failed container %s: %s", wrapped.short_id, exc)
        self._container = None

    def _launch(self) -> None:
        attempts = self.settings.startup_attempts
        last_error: Optional[DockerException] = None
        for attempt in range(1, attempts + 1):
            try:
                super().start()
            except DockerException as exc:
                last_error = exc
                LOGGER.warning(
                    "Launch attempt %d/%d for %s failed: %s", attempt, attempts, self.image, exc
                )
                self._discard_container()
            else:
                return
        raise ContainerLaunchError(
            f"Could not launch {self.image} after {attempts} attempt(s)"
        ) from last_error

    def _default_wait_strategy(self):
        return LogMessageWaitStrategy(CQL_READY_LOG_MESSAGE).with_startup_timeout(
            self.settings.startup_timeout
        )

    def _wait_until_ready(self) -> None:
        strategy = self._readiness_strategy or self._default_wait_strategy()
        try:
            strategy.wait_until_ready(self)
        except ScyllaContainerError:
            raise
        except TimeoutError as exc:
            raise StartupTimeoutError(f"Timed out waiting for {self.image} to start: {exc}") from exc
        except RuntimeError as exc:
            # Generic strategies report a container that exited while waiting this way.
            raise ContainerLaunchError(f"{self.image} stopped before it became ready: {exc}") from exc

    def _database_delegate(self) -> ScyllaDatabaseDelegate:
        return ScyllaDatabaseDelegate(self, self._enable_jmx_reporting)

    def _run_init_script_if_required(self) -> None:
        if self._init_script_path is None or self._init_script_executed:
            return

        cql = read_script_resource(self._init_script_path, self.settings.resource_paths)
        self._init_script_executed = True
        try:
            execute_cql_script(self._database_delegate(), self._init_script_path, cql)
        except ScriptError as exc:
            LOGGER.error("Error while executing init script: %s", self._init_script_path, exc_info=True)
            raise ScriptExecutionError(
                f"Error while executing init script: {self._init_script_path}"
            ) from exc
        self._state = LifecycleState.INITIALIZED

    def start(self) -> "ScyllaContainer":
        if self._state is not LifecycleState.CONFIGURED:
            raise ContainerStateError(f"Cannot start a container that is {self._state.value}")

        try:
            self._stage_configuration_override()
            self._launch()
            self._state = LifecycleState.STARTED
            self._wait_until_ready()
            self._state = LifecycleState.READY
            self._run_init_script_if_required()
        except Exception:
            self.stop()
            raise
        LOGGER.info("Scylla is ready on %s:%s", self.get_container_host_ip(), self.get_mapped_port(CQL_PORT))
        return self

    def _remove_staging_directory(self) -> None:
        staging, self._staging_directory = self._staging_directory, None
        if staging is None:
            return
        try:
            shutil.rmtree(staging)
        except OSError as exc:
            LOGGER.warning("Could not remove staged configuration %s: %s", staging, exc)

    def stop(self, force: bool = True, delete_volume: bool = True) -> None:
        """Remove the container and staged files. Safe to call repeatedly."""

        if self._state is LifecycleState.STOPPED:
            return
        self._state = LifecycleState.STOPPED
        if self._container is not None:
            try:
                super().stop(force=force, delete_volume=delete_volume)
            except DockerException as exc:
                LOGGER.warning("Could not stop container %s: %s", self.image, exc)
        self._remove_staging_directory()

    def get_mapped_port(self, port: int) -> int:
        """Return the host port mapped to the declared container ``port``."""

        if port not in self.settings.exposed_ports:
            raise ValueError(f"Port {port} is not exposed by this container")
        return int(self.get_exposed_port(port))

    def get_username(self) -> str:
        """Return the default superuser name.

        Scylla runs with ``AllowAllAuthenticator`` by default. The credentials
        only take effect once a configuration override switches to
        ``PasswordAuthenticator``.
        """

        return self.settings.username

    def get_password(self) -> str:
        """Return the default superuser password; see :meth:`get_username`."""

        return self.settings.password

    def get_cluster(self, **cluster_kwargs) -> Cluster:
        """Return a cluster pointed at the mapped CQL port. The caller owns its shutdown."""

        return build_cluster(
            self.get_container_host_ip(),
            self.get_mapped_port(CQL_PORT),
            self._enable_jmx_reporting,
            **cluster_kwargs,
        )

    def get_scylla_version(self) -> str:
        """Return the Scylla release version reported by the REST API."""

        url = (
            f"http://{self.get_container_host_ip()}:{self.get_mapped_port(SCYLLA_API_PORT)}"
            f"{RELEASE_VERSION_PATH}"
        )
        response = requests.get(url, timeout=REST_API_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.text.strip().replace('"', "")
