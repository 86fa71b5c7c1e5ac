"""End-to-end tests of the update workflow with shell stand-ins for
yarn, npm and the project's tests."""

import asyncio
import json

import pytest

from jsupdate.command.outdated import OutdatedCommand
from jsupdate.command.update import UpdateCommand
from jsupdate.core.errors import (
    CommitFailed,
    DiscoveryFailed,
    MaterializationFailed,
)
from jsupdate.workflow.status import EXIT_OK

OUTDATED = {
    "left-pad": {"current": "1.0.0", "wanted": "1.3.0", "latest": "2.0.0"},
    "lodash": {"current": "4.17.0", "wanted": "4.17.21", "latest": "5.0.0"},
    "mocha": {"current": "9.0.0", "wanted": "9.2.2", "latest": "10.2.0"},
}

# The project's "tests" break on lodash 5
BREAKS_ON_LODASH_5 = "! grep -q '\"lodash\": \"5' package.json"

# Passes only while package.json matches the copy saved by the test
UNCHANGED = "cmp -s package.json pristine.json"


@pytest.fixture
def run_update(project, make_state):
    """Run the update command against ``project``.

    Returns (exit_code, state). Every install appends to installs.log
    so tests can count materializations.
    """
    (project / "outdated.json").write_text(json.dumps(OUTDATED))

    def _run(
        test=BREAKS_ON_LODASH_5,
        install="echo install >> installs.log",
        outdated="cat outdated.json; exit 1",
        commit=False,
        commit_command="printf '%s' {message} > commit-message.txt",
    ):
        state = make_state(
            project={"root_dir": str(project)},
            commands={
                "package": {"install": install, "outdated": outdated},
                "git": {"add": "true", "commit": commit_command},
            },
        )
        command = UpdateCommand(test=test, commit=commit)
        return asyncio.run(command.run_workflow(state)), state

    return _run


def manifest(project):
    return json.loads((project / "package.json").read_text())


def installs(project):
    return (project / "installs.log").read_text().count("install")


def test_keeps_good_updates_and_drops_bad(project, run_update):
    exit_code, state = run_update()

    assert exit_code == EXIT_OK
    document = manifest(project)
    assert document["dependencies"]["left-pad"] == "2.0.0"
    assert document["dependencies"]["lodash"] == "^4.17.0"
    assert document["devDependencies"]["mocha"] == "10.2.0"
    assert document["scripts"] == {"test": "node test.js"}

    update = state.runtime.update
    assert [u.name for u in update.accepted] == ["left-pad", "mocha"]
    assert update.final_passed is True
    assert update.status == "complete"


def test_everything_passes_in_one_trial(project, run_update):
    exit_code, state = run_update(test="true")

    assert exit_code == EXIT_OK
    assert state.runtime.update.attempts == 1
    assert manifest(project)["dependencies"]["lodash"] == "5.0.0"
    # baseline install, one trial, final
    assert installs(project) == 3


def test_no_updates_available(project, run_update):
    original = (project / "package.json").read_bytes()

    exit_code, state = run_update(outdated="true")

    assert exit_code == EXIT_OK
    assert state.runtime.update.status == "no-updates"
    assert (project / "package.json").read_bytes() == original


def test_baseline_failure_touches_nothing(project, run_update):
    original = (project / "package.json").read_bytes()

    exit_code, state = run_update(test="false")

    assert exit_code == EXIT_OK
    assert state.runtime.update.status == "baseline-failed"
    assert state.runtime.update.attempts == 0
    assert (project / "package.json").read_bytes() == original
    assert installs(project) == 1


def test_all_rejected_restores_original_bytes(project, run_update):
    original = (project / "package.json").read_bytes()
    (project / "pristine.json").write_bytes(original)

    # Passes only when nothing was upgraded
    exit_code, state = run_update(test=UNCHANGED)

    assert exit_code == EXIT_OK
    assert state.runtime.update.accepted == []
    assert (project / "package.json").read_bytes() == original


def test_final_failure_is_reported_not_reverted(project, run_update):
    # Fails on the final check only: the third test run after
    # baseline and one trial
    flaky = (
        "echo run >> runs.log; "
        "test $(wc -l < runs.log) -lt 3"
    )

    exit_code, state = run_update(test=flaky, commit=True)

    assert exit_code == EXIT_OK
    assert state.runtime.update.status == "final-failed"
    assert state.runtime.update.final_passed is False
    assert state.runtime.update.committed is False
    # Accepted updates stay written
    assert manifest(project)["dependencies"]["lodash"] == "5.0.0"
    assert not (project / "commit-message.txt").exists()


def test_commit_when_opted_in(project, run_update):
    exit_code, state = run_update(commit=True)

    assert exit_code == EXIT_OK
    assert state.runtime.update.committed is True
    message = (project / "commit-message.txt").read_text()
    assert message.startswith("Update package.json\n\n")
    assert "* upgrade left-pad from 1.0.0 to 2.0.0" in message
    assert "lodash" not in message


def test_no_commit_without_accepted_updates(project, run_update):
    (project / "pristine.json").write_bytes(
        (project / "package.json").read_bytes()
    )

    run_update(test=UNCHANGED, commit=True)

    assert not (project / "commit-message.txt").exists()


def test_install_failure_restores_baseline(project, run_update):
    original = (project / "package.json").read_bytes()
    # First install (baseline) succeeds, the next one fails
    install = (
        "echo install >> installs.log; "
        "test $(wc -l < installs.log) -lt 2"
    )

    with pytest.raises(MaterializationFailed):
        run_update(install=install)

    assert (project / "package.json").read_bytes() == original


def test_discovery_failure_aborts(project, run_update):
    with pytest.raises(DiscoveryFailed):
        run_update(outdated="exit 2")


def test_commit_failure_restores_baseline(project, run_update):
    original = (project / "package.json").read_bytes()

    with pytest.raises(CommitFailed, match="git commit failed"):
        run_update(commit=True, commit_command="exit 1")

    assert (project / "package.json").read_bytes() == original


def test_outdated_command_changes_nothing(project, make_state):
    (project / "outdated.json").write_text(json.dumps(OUTDATED))
    original = (project / "package.json").read_bytes()
    state = make_state(
        commands={"package": {"outdated": "cat outdated.json; exit 1"}},
    )

    exit_code = asyncio.run(
        OutdatedCommand(root=project).run_workflow(state)
    )

    assert exit_code == EXIT_OK
    assert [u.name for u in state.runtime.update.candidates] == [
        "left-pad", "lodash", "mocha",
    ]
    assert (project / "package.json").read_bytes() == original
