"""Commit the updated manifest."""

import shlex
from collections.abc import Sequence
from pathlib import Path

from jsupdate.core.errors import CommitFailed
from jsupdate.core.log import logger
from jsupdate.core.runner import Runner
from jsupdate.manifest.update import CandidateUpdate


def commit_message(
    accepted: Sequence[CandidateUpdate], manifest_name: str = "package.json"
) -> list[str]:
    """Summary line, blank line, then one bullet per applied update."""
    lines = [f"Update {manifest_name}", ""]
    for update in accepted:
        lines.append(
            f"* upgrade {update.name} from {update.current} to {update.latest}"
        )
    return lines


def commit_updates(
    workdir: Path,
    lines: Sequence[str],
    add_command: str,
    commit_command: str,
    runner: Runner | None = None,
) -> None:
    """Stage everything in ``workdir`` and commit with ``lines``.

    ``commit_command`` is a template with a ``{message}`` field, which
    receives the shell-quoted message.

    Raises:
        CommitFailed: If staging or committing fails
    """
    runner = runner or Runner()
    message = "\n".join(lines)
    steps = (
        ("git add", add_command),
        ("git commit", commit_command.format(message=shlex.quote(message))),
    )

    for label, command in steps:
        logger.debug(f"Running {label}", command=command)
        try:
            result = runner.execute(
                command, cwd=workdir, log_level="debug", check=False
            )
        except OSError as e:
            raise CommitFailed(f"{label} failed: {e}") from e
        if result.exited != 0:
            raise CommitFailed(
                f"{label} failed with exit code {result.exited}: "
                f"{(result.stderr or result.stdout).strip()}"
            )

    logger.info(f"Committed: {lines[0]}")
