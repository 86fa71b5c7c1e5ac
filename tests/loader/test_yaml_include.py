"""Tests for YAML include: directive."""

import shutil
from pathlib import Path

import pytest

from jsupdate.core.config import State
from jsupdate.core.yaml_settings import YamlWithIncludesSettingsSource


@pytest.fixture
def fixtures_dir():
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


def test_minimal_config_loads(fixtures_dir):
    """Minimal config with no includes loads on top of the defaults."""
    source = YamlWithIncludesSettingsSource(
        State, yaml_file=str(fixtures_dir / "minimal.yaml")
    )
    data = source()

    assert data["config"]["project"]["root_dir"] == "/tmp/sample-app"
    assert data["config"]["check"]["test_command"] == "yarn test --ci"
    # Untouched defaults survive
    assert data["config"]["project"]["manifest_file"] == "package.json"


def test_yaml_include_directive(fixtures_dir):
    """YAML include: directive loads and merges the other file."""
    source = YamlWithIncludesSettingsSource(
        State, yaml_file=str(fixtures_dir / "with_include.yaml")
    )
    data = source()

    commands = data["config"]["commands"]
    assert commands["custom"]["audit"] == "npm audit --json"
    assert commands["package"]["install"] == "yarn install"


def test_nested_includes(fixtures_dir):
    """nested_include -> with_include -> extra_commands all load."""
    source = YamlWithIncludesSettingsSource(
        State, yaml_file=str(fixtures_dir / "nested_include.yaml")
    )
    data = source()

    assert "custom" in data["config"]["commands"]
    # The including file wins over what it includes
    assert data["config"]["project"]["root_dir"] == "/tmp/nested"


def test_include_with_relative_path(fixtures_dir, tmp_path):
    """Include paths are resolved relative to the including file."""
    subdir = tmp_path / "subdir"
    subdir.mkdir()
    shutil.copytree(fixtures_dir, tmp_path / "fixtures")

    config_file = subdir / "jsupdate.yaml"
    config_file.write_text("""
include: ../fixtures/extra_commands.yaml

config:
  check:
    test_command: "make check"
""")

    source = YamlWithIncludesSettingsSource(State, yaml_file=str(config_file))
    data = source()

    assert "custom" in data["config"]["commands"]
    assert data["config"]["check"]["test_command"] == "make check"


def test_include_removes_directive(fixtures_dir):
    """Include directive does not leak into the final data."""
    source = YamlWithIncludesSettingsSource(
        State, yaml_file=str(fixtures_dir / "with_include.yaml")
    )

    assert "include" not in source()


def test_multiple_includes_in_yaml(fixtures_dir, tmp_path):
    """A list under include: loads every file."""
    config_file = tmp_path / "multi.yaml"
    config_file.write_text(f"""
include:
  - {fixtures_dir / 'extra_commands.yaml'}
  - {fixtures_dir / 'override.yaml'}

config:
  commit: true
""")

    source = YamlWithIncludesSettingsSource(State, yaml_file=str(config_file))
    data = source()

    assert "custom" in data["config"]["commands"]
    assert data["config"]["check"]["test_command"] == "npm test"
    assert data["config"]["commands"]["package"]["install"] == "npm ci"
    assert data["config"]["commit"] is True
