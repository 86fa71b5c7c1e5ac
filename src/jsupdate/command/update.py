"""Update command - runs the update workflow."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from jsupdate.core.log import logger
from jsupdate.workflow.status import EXIT_ERROR

if TYPE_CHECKING:
    from jsupdate.core.config import State


class UpdateCommand(BaseModel):
    """Upgrade as many outdated packages as the tests allow.

    Installs dependencies, checks that the test command passes, then
    tries all outdated packages at their latest version. When the tests
    fail the candidates are split in two and each half is retried,
    until every package is classified. The packages that pass are
    written to package.json and, with --commit, committed.

    On any error after package.json was modified, the original file is
    put back byte-for-byte.
    """

    test: str | None = Field(
        default=None,
        description="The command that evaluates if an update works",
    )
    root: Path | None = Field(
        default=None,
        alias="c",
        description="The root directory of the module to update",
    )
    commit: bool | None = Field(
        default=None,
        description="Commit changes",
    )
    verbose: bool | None = Field(
        default=None,
        alias="v",
        description="Show output of test runs",
    )

    model_config = ConfigDict(populate_by_name=True)

    def apply_overrides(self, state: State) -> None:
        """Copy explicitly given flags onto the loaded config."""
        config = state.config
        if self.test is not None:
            config.check.test_command = self.test
        if self.root is not None:
            config.project.root_dir = self.root
        if self.commit is not None:
            config.commit = self.commit
        if self.verbose is not None:
            config.check.verbose = self.verbose

    async def run_workflow(self, state: State) -> int:
        """Run the update workflow.

        Args:
            state: State instance with config loaded

        Returns:
            Exit code (see jsupdate.workflow.status)

        Raises:
            JsupdateError: Any unrecoverable error, after restoring
                the original package.json if it had been modified
        """
        self.apply_overrides(state)
        update = state.runtime.update

        logger.info(
            f"Updating {state.config.project.manifest_path}",
            test_command=state.config.check.test_command,
        )

        from jsupdate.workflow.graph import create_workflow
        from jsupdate.workflow.nodes.initialize import Initialize

        workflow = create_workflow()

        try:
            async with workflow.iter(Initialize(), state=state) as run:
                async for node in run:
                    if hasattr(node, 'data'):
                        return node.data
        except Exception:
            update.status = "failed"
            if update.manifest_dirty:
                update.manifest_file.restore(update.baseline)
                update.manifest_dirty = False
            raise

        logger.error("Update failed - workflow ended unexpectedly")
        return EXIT_ERROR
