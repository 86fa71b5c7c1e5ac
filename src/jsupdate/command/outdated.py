"""Outdated command - list candidate updates without touching anything."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from jsupdate.core.log import logger
from jsupdate.discovery.outdated import discover_updates
from jsupdate.workflow.status import EXIT_OK

if TYPE_CHECKING:
    from jsupdate.core.config import State


class OutdatedCommand(BaseModel):
    """Show the updates an update run would try.

    Runs only the discovery step; package.json, installed
    dependencies and the git tree are left alone.
    """

    root: Path | None = Field(
        default=None,
        alias="c",
        description="The root directory of the module to inspect",
    )

    model_config = ConfigDict(populate_by_name=True)

    async def run_workflow(self, state: State) -> int:
        """Discover candidates and record them in runtime state.

        Returns:
            Exit code (0 whether or not updates exist)
        """
        if self.root is not None:
            state.config.project.root_dir = self.root

        update = state.runtime.update
        update.candidates = discover_updates(
            state.config.project.root_dir,
            state.config.command("package", "outdated"),
        )

        if update.candidates:
            logger.info(f"{len(update.candidates)} updates available")
        else:
            logger.info("No updates available")
        update.status = "complete"
        return EXIT_OK
