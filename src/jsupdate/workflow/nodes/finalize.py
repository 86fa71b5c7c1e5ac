"""Finalize node - write the accepted updates and re-validate."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from jsupdate.core.config import State
from jsupdate.core.log import logger
from jsupdate.manifest.package_json import with_updates


@dataclass
class Finalize(BaseNode[State, None, int]):
    """Persist baseline + accepted updates and run the final check."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> "Report":
        """Write the final manifest, install it and test it once more.

        A failing final check is reported, not reverted: the accepted
        set passed on its own during bisection, so a failure here
        points at the environment and is left for the operator.

        Returns:
            Report: Always, with the final verdict in runtime state
        """
        update = ctx.state.runtime.update
        manifest_file = update.manifest_file

        if update.accepted:
            manifest_file.persist(
                with_updates(update.baseline, update.accepted)
            )
        else:
            # Nothing to apply: put the original bytes back untouched
            manifest_file.restore(update.baseline)

        update.installer.install()
        update.final_passed = update.validator.test(check_name="final")

        if not update.final_passed:
            logger.error("test failed after applying upgrades, aborting.")
            update.status = "final-failed"

        from jsupdate.workflow.nodes.report import Report
        return Report()
