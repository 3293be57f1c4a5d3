"""Command delegate: the only place that opens, uses and closes a raw CQL session."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from cassandra import DriverException
from cassandra.cluster import Cluster, NoHostAvailable, Session

from .config import CQL_PORT
from .cql_script import ScriptStatement
from .errors import ConnectionCreationError, ScriptStatementFailedError

LOGGER = logging.getLogger(__name__)

APPLIED_COLUMN = "[applied]"
DRIVER_ERRORS = (DriverException, NoHostAvailable, OSError)


def build_cluster(host: str, port: int, enable_jmx_reporting: bool = False, **cluster_kwargs) -> Cluster:
    """Return a cluster whose only contact point is ``host:port``.

    ``enable_jmx_reporting`` maps onto the driver's ``metrics_enabled`` flag,
    the Python driver's counterpart of JMX reporting.
    """

    return Cluster(
        contact_points=[host],
        port=port,
        metrics_enabled=enable_jmx_reporting,
        **cluster_kwargs,
    )


def _was_applied(result) -> bool:
    # Only lightweight transactions report ``[applied]``; anything else that
    # came back without an error was applied.
    column_names = getattr(result, "column_names", None) or []
    if not column_names or column_names[0] != APPLIED_COLUMN:
        return True
    rows = result.current_rows
    if not rows:
        return False
    row = rows[0]
    if isinstance(row, dict):
        return bool(row[APPLIED_COLUMN])
    return bool(row[0])


class ScyllaDatabaseDelegate:
    """Executes statements against the CQL port of a running container.

    The session is opened on first use and kept until :meth:`close`. Use the
    delegate as a context manager so the session is released on every path.
    """

    def __init__(self, container, enable_jmx_reporting: bool = False) -> None:
        self.container = container
        self.enable_jmx_reporting = enable_jmx_reporting
        self._connection: Optional[Session] = None
        self._closed = False

    def __enter__(self) -> "ScyllaDatabaseDelegate":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_connection_started(self) -> bool:
        return self._connection is not None

    def _create_new_connection(self) -> Session:
        try:
            host = self.container.get_container_host_ip()
            port = int(self.container.get_exposed_port(CQL_PORT))
            return build_cluster(host, port, self.enable_jmx_reporting).connect()
        except DRIVER_ERRORS as exc:
            LOGGER.error("Could not obtain Scylla connection")
            raise ConnectionCreationError("Could not obtain Scylla connection") from exc

    def get_connection(self) -> Session:
        if self._closed:
            raise ConnectionCreationError("Delegate is closed; refusing to reopen a Scylla connection")
        if self._connection is None:
            self._connection = self._create_new_connection()
        return self._connection

    def execute(
        self,
        statement: str,
        script_path: str = "",
        line_number: int = 1,
        continue_on_error: bool = False,
        ignore_failed_drops: bool = False,
    ) -> None:
        """Run one statement; raise :class:`ScriptStatementFailedError` unless it was applied."""

        session = self.get_connection()
        try:
            result = session.execute(statement)
        except DRIVER_ERRORS as exc:
            raise ScriptStatementFailedError(statement, line_number, script_path, str(exc)) from exc

        if not _was_applied(result):
            raise ScriptStatementFailedError(statement, line_number, script_path, "statement was not applied")
        LOGGER.debug("Statement %s was applied", statement)

    def execute_statements(
        self,
        statements: Iterable[ScriptStatement],
        script_path: str = "",
        continue_on_error: bool = False,
        ignore_failed_drops: bool = False,
    ) -> None:
        """Run ``statements`` in order, stopping at the first failure unless told otherwise."""

        for statement in statements:
            try:
                self.execute(
                    statement.text,
                    script_path,
                    statement.line_number,
                    continue_on_error,
                    ignore_failed_drops,
                )
            except ScriptStatementFailedError as exc:
                is_drop = statement.text.lstrip()[:4].upper() == "DROP"
                if continue_on_error:
                    LOGGER.debug("Failed to execute statement, continuing: %s", exc)
                elif ignore_failed_drops and is_drop:
                    LOGGER.debug("Failed to execute DROP statement, ignoring: %s", exc)
                else:
                    raise

    def close(self) -> None:
        """Shut down the session and its cluster. Never raises."""

        self._closed = True
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            connection.cluster.shutdown()
        except Exception:
            LOGGER.exception("Could not close Scylla connection")
