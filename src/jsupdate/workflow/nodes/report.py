"""Report node - per-candidate outcome and optional commit."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from jsupdate.core.config import State
from jsupdate.core.log import logger
from jsupdate.git.commit import commit_message, commit_updates
from jsupdate.manifest.update import names
from jsupdate.workflow.status import EXIT_OK


@dataclass
class Report(BaseNode[State, None, int]):
    """Report accepted and rejected candidates, then commit."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> End[int]:
        config = ctx.state.config
        update = ctx.state.runtime.update
        accepted = set(names(update.accepted))

        for candidate in update.accepted:
            logger.info(
                f"package upgraded: {candidate.name} "
                f"{candidate.current} -> {candidate.latest}"
            )
        for candidate in update.candidates:
            if candidate.name not in accepted:
                logger.warn(
                    f"package upgrade failed: {candidate.name} "
                    f"{candidate.current} -> {candidate.latest}"
                )

        # Reported by Finalize; nothing to commit
        if not update.final_passed:
            return End(EXIT_OK)

        if config.commit and update.accepted:
            commit_updates(
                config.project.root_dir,
                commit_message(update.accepted, config.project.manifest_file),
                config.command("git", "add"),
                config.command("git", "commit"),
            )
            update.committed = True

        update.status = "complete"
        return End(EXIT_OK)
