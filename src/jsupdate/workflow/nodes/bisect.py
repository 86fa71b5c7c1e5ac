"""Bisect node - classify every candidate as accepted or rejected."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from jsupdate.core.config import State
from jsupdate.core.log import logger
from jsupdate.strategy.bisect import resolve
from jsupdate.strategy.trial import UpdateTrial


@dataclass
class Bisect(BaseNode[State, None, int]):
    """Run the bisection engine over all candidates."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> "Finalize":
        update = ctx.state.runtime.update

        trial = UpdateTrial(
            baseline=update.baseline,
            manifest_file=update.manifest_file,
            installer=update.installer,
            validator=update.validator,
        )

        # From here on the manifest on disk may differ from baseline
        update.manifest_dirty = True
        update.accepted = resolve(update.candidates, trial)
        update.attempts = trial.attempts

        logger.info(
            f"Accepted {len(update.accepted)} of "
            f"{len(update.candidates)} updates "
            f"after {trial.attempts} trials"
        )

        from jsupdate.workflow.nodes.finalize import Finalize
        return Finalize()
