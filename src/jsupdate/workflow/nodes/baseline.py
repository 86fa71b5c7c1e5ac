"""Baseline node - the project must pass before anything changes."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from jsupdate.core.config import State
from jsupdate.core.log import logger
from jsupdate.workflow.status import EXIT_OK


@dataclass
class Baseline(BaseNode[State, None, int]):
    """Run the test command against the untouched project."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> "Bisect | End[int]":
        """Validate the baseline.

        Returns:
            Bisect: Baseline passes, go look for good updates
            End[int]: EXIT_OK when the baseline fails; nothing was
                modified
        """
        update = ctx.state.runtime.update

        if not update.validator.test(check_name="baseline"):
            logger.error(
                "test failed before upgrading anything, aborting."
            )
            update.status = "baseline-failed"
            return End(EXIT_OK)

        from jsupdate.workflow.nodes.bisect import Bisect
        return Bisect()
