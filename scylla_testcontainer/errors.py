"""Exceptions raised while launching, probing and seeding a Scylla container."""

from __future__ import annotations

from typing import Optional


class ScyllaContainerError(Exception):
    """Base class for every error raised by this package."""


class IncompatibleImageError(ScyllaContainerError, ValueError):
    """Raised when the requested image is not a Scylla image."""

    def __init__(self, image: str, expected: str) -> None:
        self.image = image
        self.expected = expected
        super().__init__(
            f"Image {image!r} is not compatible with {expected!r}"
        )


class ContainerStateError(ScyllaContainerError, RuntimeError):
    """Raised when an operation is not allowed in the current lifecycle state."""


class ContainerLaunchError(ScyllaContainerError):
    """Raised when the container could not be brought to a usable state."""


class StartupTimeoutError(ContainerLaunchError, TimeoutError):
    """Raised when Scylla did not become ready before the startup timeout."""


class ConnectionCreationError(ScyllaContainerError):
    """Raised when the driver could not open a session."""


class ResourceNotFoundError(ScyllaContainerError, FileNotFoundError):
    """Raised when a named resource cannot be resolved."""

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(f"Resource not found: {location}")


class ScriptError(ScyllaContainerError):
    """Base class for errors raised while loading or running a CQL script."""


class ScriptLoadError(ScriptError):
    """Raised when a script resource cannot be found or read."""


class ScriptParseError(ScriptError):
    """Raised when a script cannot be split into statements."""

    def __init__(self, message: str, script_path: str) -> None:
        self.script_path = script_path
        super().__init__(f"{message} in script {script_path!r}")


class ScriptStatementFailedError(ScriptError):
    """Raised when a single statement was not applied."""

    def __init__(
        self,
        statement: str,
        line_number: int,
        script_path: str,
        reason: Optional[str] = None,
    ) -> None:
        self.statement = statement
        self.line_number = line_number
        self.script_path = script_path
        message = f"Script execution failed ({script_path}:{line_number}): {statement}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ScriptExecutionError(ScriptError):
    """Raised when a script could not be executed as a whole."""
