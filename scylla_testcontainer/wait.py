"""Readiness strategy that waits until Scylla answers a CQL query."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Optional, Union

from testcontainers.core.exceptions import ContainerStartException
from testcontainers.core.waiting_utils import WaitStrategy

from .config import DEFAULT_POLL_INTERVAL_SECONDS, DEFAULT_STARTUP_TIMEOUT_SECONDS
from .delegate import ScyllaDatabaseDelegate
from .errors import (
    ConnectionCreationError,
    ContainerLaunchError,
    ScriptStatementFailedError,
    StartupTimeoutError,
)

LOGGER = logging.getLogger(__name__)

SELECT_VERSION_QUERY = "SELECT release_version FROM system.local"
TIMEOUT_ERROR = "Timed out waiting for Scylla to be accessible for query execution"


def _seconds(value: Union[int, float, timedelta]) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def _is_launched(container) -> bool:
    try:
        return container.get_wrapped_container() is not None
    except ContainerStartException:
        return False


class ScyllaQueryWaitStrategy(WaitStrategy):
    """Polls ``system.local`` for the release version until Scylla serves queries.

    A container reports itself running well before the CQL port accepts
    clients, so only a successful query counts as ready. Every attempt uses a
    fresh connection that is closed before the outcome is evaluated, and
    attempts start at most once per poll interval however fast they fail.
    """

    def __init__(
        self,
        startup_timeout: Union[int, timedelta] = DEFAULT_STARTUP_TIMEOUT_SECONDS,
        poll_interval: Union[float, timedelta] = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        super().__init__()
        self._startup_timeout = int(_seconds(startup_timeout))
        self._poll_interval = _seconds(poll_interval)

    @property
    def startup_timeout(self) -> int:
        return self._startup_timeout

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    def with_startup_timeout(self, timeout: Union[int, timedelta]) -> "ScyllaQueryWaitStrategy":
        self._startup_timeout = int(_seconds(timeout))
        return self

    def with_poll_interval(self, interval: Union[float, timedelta]) -> "ScyllaQueryWaitStrategy":
        self._poll_interval = _seconds(interval)
        return self

    def _attempt(self, container) -> None:
        with ScyllaDatabaseDelegate(container) as delegate:
            delegate.execute(SELECT_VERSION_QUERY, "", 1, False, False)

    def wait_until_ready(self, container) -> None:
        if not _is_launched(container):
            raise ContainerLaunchError("Container has not been launched; refusing to poll Scylla")

        started = time.time()
        deadline = started + self._startup_timeout
        next_attempt_at = started
        attempts = 0
        last_error: Optional[Exception] = None

        while True:
            now = time.time()
            if now < next_attempt_at:
                time.sleep(next_attempt_at - now)
            next_attempt_at = time.time() + self._poll_interval
            attempts += 1
            try:
                self._attempt(container)
            except (ConnectionCreationError, ScriptStatementFailedError) as exc:
                last_error = exc
                LOGGER.debug("Scylla not ready (attempt %d): %s", attempts, exc)
            else:
                LOGGER.info(
                    "Scylla answered queries after %d attempt(s) in %.1fs",
                    attempts,
                    time.time() - started,
                )
                return

            if time.time() >= deadline:
                LOGGER.error("%s after %d attempt(s)", TIMEOUT_ERROR, attempts)
                raise StartupTimeoutError(TIMEOUT_ERROR) from last_error
