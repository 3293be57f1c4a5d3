"""ScyllaDB support for testcontainers."""

from .config import ScyllaContainerSettings
from .container import CQL_PORT, JMX_PORT, SCYLLA_API_PORT, THRIFT_PORT, LifecycleState, ScyllaContainer
from .delegate import ScyllaDatabaseDelegate, build_cluster
from .errors import (
    ConnectionCreationError,
    ContainerLaunchError,
    ContainerStateError,
    IncompatibleImageError,
    ResourceNotFoundError,
    ScriptError,
    ScriptExecutionError,
    ScriptLoadError,
    ScriptParseError,
    ScriptStatementFailedError,
    ScyllaContainerError,
    StartupTimeoutError,
)
from .wait import ScyllaQueryWaitStrategy

__version__ = "0.1.0"

__all__ = [
    "CQL_PORT",
    "JMX_PORT",
    "SCYLLA_API_PORT",
    "THRIFT_PORT",
    "ConnectionCreationError",
    "ContainerLaunchError",
    "ContainerStateError",
    "IncompatibleImageError",
    "LifecycleState",
    "ResourceNotFoundError",
    "ScriptError",
    "ScriptExecutionError",
    "ScriptLoadError",
    "ScriptParseError",
    "ScriptStatementFailedError",
    "ScyllaContainer",
    "ScyllaContainerError",
    "ScyllaContainerSettings",
    "ScyllaDatabaseDelegate",
    "ScyllaQueryWaitStrategy",
    "StartupTimeoutError",
    "build_cluster",
]
