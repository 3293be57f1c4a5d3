from pathlib import Path

import pytest

from scylla_testcontainer.errors import ResourceNotFoundError, ScriptLoadError
from scylla_testcontainer.resources import read_script_resource, resolve_resource

RESOURCES = Path(__file__).resolve().parent / "resources"


def test_resolves_relative_names_against_search_paths(tmp_path):
    resolved = resolve_resource("initial.cql", [tmp_path, RESOURCES])

    assert resolved == RESOURCES / "initial.cql"


def test_first_search_path_wins(tmp_path):
    (tmp_path / "initial.cql").write_text("SELECT 1 FROM system.local;")

    assert resolve_resource("initial.cql", [tmp_path, RESOURCES]) == tmp_path / "initial.cql"


def test_absolute_paths_are_used_as_given(tmp_path):
    script = tmp_path / "seed.cql"
    script.write_text("SELECT 1 FROM system.local;")

    assert resolve_resource(str(script)) == script


def test_package_resources():
    resolved = resolve_resource("scylla_testcontainer:config.py")

    assert resolved.name == "config.py"
    assert resolved.exists()


@pytest.mark.parametrize(
    "location",
    ["missing.cql", "scylla_testcontainer:missing.cql", "no_such_package_xyz:seed.cql"],
)
def test_missing_resources(location):
    with pytest.raises(ResourceNotFoundError) as excinfo:
        resolve_resource(location, [RESOURCES])

    assert isinstance(excinfo.value, FileNotFoundError)
    assert excinfo.value.location == location


def test_read_script_resource_returns_text():
    assert "catalog_category" in read_script_resource("initial.cql", [RESOURCES])


def test_read_script_resource_wraps_missing_resource():
    with pytest.raises(ScriptLoadError, match="missing.cql") as excinfo:
        read_script_resource("missing.cql", [RESOURCES])

    assert isinstance(excinfo.value.__cause__, ResourceNotFoundError)


def test_read_script_resource_wraps_unreadable_content(tmp_path):
    script = tmp_path / "binary.cql"
    script.write_bytes(b"\xff\xfe\x00invalid")

    with pytest.raises(ScriptLoadError):
        read_script_resource(str(script))
