"""Resolution of named resources such as init scripts and configuration directories.

A location is either ``package.name:relative/path``, looked up inside an
importable package, or a plain path. Plain paths are tried as given and then
relative to each entry of the search path.
"""

from __future__ import annotations

import importlib.resources
import logging
from pathlib import Path
from typing import Iterable

from .errors import ResourceNotFoundError, ScriptLoadError

LOGGER = logging.getLogger(__name__)


def _split_package_location(location: str):
    package, sep, relative = location.partition(":")
    # Windows drive letters ("C:\\...") are paths, not packages.
    if not sep or not relative or len(package) == 1 or "/" in package or "\\" in package:
        return None, location
    return package, relative


def resolve_resource(location: str, search_paths: Iterable[Path] = ()) -> Path:
    """Return the filesystem path of the resource named by ``location``."""

    package, relative = _split_package_location(location)
    if package is not None:
        try:
            candidate = Path(str(importlib.resources.files(package).joinpath(relative)))
        except ModuleNotFoundError:
            raise ResourceNotFoundError(location) from None
        if candidate.exists():
            return candidate
        raise ResourceNotFoundError(location)

    direct = Path(relative)
    if direct.exists():
        return direct

    if not direct.is_absolute():
        for root in search_paths:
            candidate = Path(root) / direct
            if candidate.exists():
                LOGGER.debug("Resolved resource %s to %s", location, candidate)
                return candidate

    raise ResourceNotFoundError(location)


def read_script_resource(location: str, search_paths: Iterable[Path] = ()) -> str:
    """Return the UTF-8 content of a script resource."""

    try:
        path = resolve_resource(location, search_paths)
    except ResourceNotFoundError as exc:
        LOGGER.warning("Could not load script: %s", location)
        raise ScriptLoadError(
            f"Could not load script: {location}. Resource not found."
        ) from exc

    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.warning("Could not load script: %s", location)
        raise ScriptLoadError(f"Could not load script: {location}") from exc
