#!/usr/bin/env python3
"""Start a throwaway Scylla container, query it and print its connection details."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from scylla_testcontainer import (
    CQL_PORT,
    SCYLLA_API_PORT,
    ScyllaContainer,
    ScyllaContainerError,
    ScyllaContainerSettings,
    ScyllaQueryWaitStrategy,
)
from scylla_testcontainer.wait import SELECT_VERSION_QUERY

LOGGER = logging.getLogger(__name__)


def _query_release_version(container: ScyllaContainer) -> Optional[str]:
    cluster = container.get_cluster()
    try:
        session = cluster.connect()
        row = session.execute(SELECT_VERSION_QUERY).one()
    finally:
        cluster.shutdown()
    if row is None:
        return None
    return row[0]


def _connection_details(container: ScyllaContainer, release_version: Optional[str]) -> Dict[str, str]:
    return {
        "host": container.get_container_host_ip(),
        "cql_port": str(container.get_mapped_port(CQL_PORT)),
        "api_port": str(container.get_mapped_port(SCYLLA_API_PORT)),
        "username": container.get_username(),
        "password": container.get_password(),
        "release_version": release_version or "",
    }


def _build_container(args: argparse.Namespace) -> ScyllaContainer:
    overrides = {}
    if args.timeout is not None:
        overrides["startup_timeout"] = args.timeout
    settings = ScyllaContainerSettings.from_env(**overrides)

    container = ScyllaContainer(args.image, settings=settings)
    if args.config_override:
        container.with_configuration_override(args.config_override)
    if args.init_script:
        container.with_init_script(args.init_script)
    if args.wait_strategy == "query":
        container.waiting_for(
            ScyllaQueryWaitStrategy(settings.startup_timeout, settings.poll_interval)
        )
    return container


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--image", default=None, help="Scylla image, e.g. scylladb/scylla:4.2.1")
    parser.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="Seconds to wait for Scylla to accept queries",
    )
    parser.add_argument("--init-script", default=None, help="CQL script resource to run after startup")
    parser.add_argument(
        "--config-override",
        default=None,
        help="Directory resource that replaces /etc/scylla",
    )
    parser.add_argument(
        "--wait-strategy",
        choices=("query", "log"),
        default="query",
        help="Wait for a successful query or for the CQL listener log line",
    )
    parser.add_argument("--json", action="store_true", help="Print connection details as JSON")
    parser.add_argument("--log-level", default="INFO", help="Logging level (INFO, DEBUG, ...)")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        container = _build_container(args)
        container.start()
    except ScyllaContainerError as exc:
        print(f"Scylla container failed to start: {exc}", file=sys.stderr)
        return 1

    try:
        details = _connection_details(container, _query_release_version(container))
    finally:
        container.stop()

    if args.json:
        print(json.dumps(details, indent=2, sort_keys=True))
    else:
        for key, value in details.items():
            print(f"{key}: {value}")
    print("Scylla connectivity checks succeeded.", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
