"""Pytest configuration and fixtures for jsupdate tests."""

import json
import sys
import tempfile
from pathlib import Path

import pytest

from jsupdate.core.log import ConsoleSink, setup_logger
from jsupdate.manifest.update import CandidateUpdate


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only debug logging; nothing leaves the machine."""
    test_log_root = Path(tempfile.gettempdir()) / "jsupdate-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def mock_argv():
    """Save and restore sys.argv."""
    original = sys.argv.copy()
    sys.argv = ["jsupdate"]
    yield
    sys.argv = original


@pytest.fixture
def make_state(mock_argv, tmp_path):
    """Build a State from package defaults, with CLI parsing disabled
    by a minimal argv and logs kept under tmp_path."""
    from jsupdate.core.config import State

    def _make(**config):
        config.setdefault("log_root", str(tmp_path / "logs"))
        return State(config=config)

    return _make


@pytest.fixture
def test_config(make_state):
    """Configuration loaded from package defaults."""
    return make_state().config


@pytest.fixture
def make_update():
    """Factory for CandidateUpdate with short defaults."""
    def _make(name, current="1.0.0", wanted=None, latest="2.0.0"):
        return CandidateUpdate(
            name=name,
            current=current,
            wanted=wanted or latest,
            latest=latest,
        )
    return _make


SAMPLE_MANIFEST = {
    "name": "sample-app",
    "version": "1.0.0",
    "scripts": {"test": "node test.js"},
    "dependencies": {
        "left-pad": "^1.0.0",
        "lodash": "^4.17.0",
    },
    "devDependencies": {
        "mocha": "^9.0.0",
    },
    "private": True,
}


@pytest.fixture
def project(tmp_path):
    """A project directory with a tab-indented package.json."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "package.json").write_text(
        json.dumps(SAMPLE_MANIFEST, indent="\t") + "\n"
    )
    return root
