"""Update discovery from the package manager's outdated report."""

from __future__ import annotations

import json
from pathlib import Path

from jsupdate.core.errors import DiscoveryFailed
from jsupdate.core.log import logger
from jsupdate.core.runner import Runner
from jsupdate.manifest.update import CandidateUpdate

# npm outdated exits 1 when it found something to report
SUCCESS_EXIT_CODES = (0, 1)


def parse_outdated(output: str) -> list[CandidateUpdate]:
    """Parse ``npm outdated`` output, JSON or table form.

    The JSON form maps package names to objects with ``current``,
    ``wanted`` and ``latest``; workspaces can report a list of such
    objects, of which the first is used. The table form has a header
    line followed by ``Package Current Wanted Latest ...`` columns.
    Packages without a latest version are skipped.

    Raises:
        DiscoveryFailed: If the output matches neither form
    """
    text = output.strip()
    if not text:
        return []
    if text.startswith("{"):
        return _parse_json(text)
    return _parse_table(text)


def _parse_json(text: str) -> list[CandidateUpdate]:
    try:
        report = json.loads(text)
    except ValueError as e:
        raise DiscoveryFailed(f"cannot parse outdated report: {e}") from e

    if not isinstance(report, dict):
        raise DiscoveryFailed("outdated report must be a JSON object")

    updates = []
    for name, info in report.items():
        if isinstance(info, list):
            info = info[0] if info else {}
        if not isinstance(info, dict):
            raise DiscoveryFailed(f"malformed outdated entry for {name}")
        if not info.get("latest"):
            logger.debug("No latest version reported", package=name)
            continue
        updates.append(CandidateUpdate(
            name=name,
            current=str(info.get("current") or "MISSING"),
            wanted=str(info.get("wanted") or info["latest"]),
            latest=str(info["latest"]),
        ))
    return updates


def _parse_table(text: str) -> list[CandidateUpdate]:
    lines = text.splitlines()
    updates = []
    # First line is the header
    for line in lines[1:]:
        parts = line.split()
        if not parts:
            continue
        if len(parts) < 4:
            raise DiscoveryFailed(f"cannot parse outdated line: {line!r}")
        name, current, wanted, latest = parts[:4]
        updates.append(CandidateUpdate(
            name=name, current=current, wanted=wanted, latest=latest
        ))
    return updates


def discover_updates(
    workdir: Path, command: str, runner: Runner | None = None
) -> list[CandidateUpdate]:
    """Run the outdated command in ``workdir`` and parse its report.

    Raises:
        DiscoveryFailed: If the command cannot run, exits with an
            unexpected code, or prints an unparseable report
    """
    runner = runner or Runner()
    logger.info(f"Running {command}")
    try:
        result = runner.execute(
            command, cwd=workdir, log_level="spew", check=False
        )
    except OSError as e:
        raise DiscoveryFailed(f"{command} failed: {e}") from e

    if result.exited not in SUCCESS_EXIT_CODES:
        raise DiscoveryFailed(
            f"{command} failed with exit code {result.exited}: "
            f"{result.stderr.strip()}"
        )

    updates = parse_outdated(result.stdout)
    for update in updates:
        logger.info(
            f"  {update.name}: {update.current} -> {update.latest}",
            wanted=update.wanted,
        )
    return updates
