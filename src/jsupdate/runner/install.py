"""Materialization: install the dependencies a manifest describes."""

from pathlib import Path

from jsupdate.core.errors import MaterializationFailed
from jsupdate.core.log import logger
from jsupdate.core.runner import Runner


class Installer:
    """Run the package manager's install command in the project root."""

    def __init__(
        self,
        workdir: Path,
        command: str,
        verbose: bool = False,
        runner: Runner | None = None,
    ):
        self.workdir = Path(workdir)
        self.command = command
        self.verbose = verbose
        self.runner = runner or Runner()
        self.installs = 0

    def install(self) -> None:
        """Install dependencies for the manifest currently on disk.

        Raises:
            MaterializationFailed: If the command fails or cannot run
        """
        logger.info(self.command)
        try:
            result = self.runner.execute(
                self.command,
                cwd=self.workdir,
                log_level="spew",
                check=False,
                stream=self.verbose,
            )
        except OSError as e:
            raise MaterializationFailed(
                f"{self.command} failed: {e}"
            ) from e

        self.installs += 1
        if result.exited != 0:
            tail = (result.stderr or result.stdout).strip().splitlines()[-5:]
            raise MaterializationFailed(
                f"{self.command} failed with exit code {result.exited}"
                + (":\n" + "\n".join(tail) if tail else "")
            )
