"""Initialize node - install, read the baseline, discover updates."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from jsupdate.core.config import State
from jsupdate.core.log import logger
from jsupdate.discovery.outdated import discover_updates
from jsupdate.manifest.package_json import ManifestFile
from jsupdate.runner.check import Validator
from jsupdate.runner.install import Installer
from jsupdate.workflow.status import EXIT_OK


@dataclass
class Initialize(BaseNode[State, None, int]):
    """Prepare the run: collaborators, baseline manifest, candidates."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> "Baseline | End[int]":
        """Materialize the current manifest and collect candidates.

        Returns:
            Baseline: Candidates were found
            End[int]: Nothing to update
        """
        config = ctx.state.config
        update = ctx.state.runtime.update
        root = config.project.root_dir

        update.status = "running"
        update.manifest_file = ManifestFile(config.project.manifest_path)
        update.installer = Installer(
            root,
            config.command("package", "install"),
            verbose=config.check.verbose,
        )
        update.validator = Validator(
            root,
            config.check.test_command,
            config.check.output_dir,
            verbose=config.check.verbose,
            timeout=config.check.timeout,
        )

        update.installer.install()
        update.baseline = update.manifest_file.load()
        update.candidates = discover_updates(
            root, config.command("package", "outdated")
        )

        if not update.candidates:
            logger.info("No updates available")
            update.status = "no-updates"
            return End(EXIT_OK)

        logger.info(f"Found {len(update.candidates)} candidate updates")

        from jsupdate.workflow.nodes.baseline import Baseline
        return Baseline()
