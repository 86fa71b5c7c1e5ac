"""Tests for UpdateTrial, the applier the engine drives."""

import json

import pytest

from jsupdate.core.errors import MaterializationFailed
from jsupdate.manifest.package_json import ManifestFile
from jsupdate.runner.check import Validator
from jsupdate.runner.install import Installer
from jsupdate.strategy.bisect import resolve
from jsupdate.strategy.trial import UpdateTrial

# Fails whenever lodash 5.x is in package.json
TEST_COMMAND = "! grep -q '\"lodash\": \"5' package.json"


@pytest.fixture
def make_trial(project, tmp_path):
    def _make(install="echo install >> installs.log", test=TEST_COMMAND):
        manifest_file = ManifestFile(project / "package.json")
        return UpdateTrial(
            baseline=manifest_file.load(),
            manifest_file=manifest_file,
            installer=Installer(project, install),
            validator=Validator(project, test, tmp_path / "checks"),
        )
    return _make


def read(project):
    return json.loads((project / "package.json").read_text())


def test_trial_writes_installs_and_validates(project, make_trial, make_update):
    trial = make_trial()

    assert trial([make_update("left-pad")]) is True

    assert read(project)["dependencies"]["left-pad"] == "2.0.0"
    assert (project / "installs.log").read_text() == "install\n"
    assert trial.attempts == 1


def test_trial_starts_from_baseline_each_time(project, make_trial, make_update):
    trial = make_trial()

    trial([make_update("left-pad")])
    trial([make_update("mocha", latest="10.0.0")])

    document = read(project)
    assert document["dependencies"]["left-pad"] == "^1.0.0"
    assert document["devDependencies"]["mocha"] == "10.0.0"


def test_trial_reports_failure(make_trial, make_update):
    trial = make_trial()

    assert trial([make_update("lodash", latest="5.0.0")]) is False


def test_install_failure_propagates(make_trial, make_update):
    trial = make_trial(install="exit 1")

    with pytest.raises(MaterializationFailed):
        trial([make_update("left-pad")])


def test_resolve_with_real_commands(project, make_trial, make_update):
    lodash = make_update("lodash", current="4.17.0", latest="5.0.0")
    left_pad = make_update("left-pad", current="1.0.0", latest="1.3.0")
    mocha = make_update("mocha", current="9.0.0", latest="10.0.0")
    trial = make_trial()

    accepted = resolve([lodash, left_pad, mocha], trial)

    assert accepted == [mocha, left_pad]
    # full set, [lodash, mocha], [lodash], [mocha], [left-pad]
    assert trial.attempts == 5
