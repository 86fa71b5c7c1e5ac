"""Validator: run the user's test command against the project."""

import time
from datetime import datetime
from pathlib import Path

from jsupdate.core.errors import ValidatorUnrunnable
from jsupdate.core.log import logger
from jsupdate.core.result import CheckResult
from jsupdate.core.runner import Runner


class Validator:
    """Execute the test command and keep a log file per run.

    A command that starts and exits non-zero is a failed check, not an
    error. Only a project root that does not exist, or a shell that
    cannot be started, raises ValidatorUnrunnable.
    """

    def __init__(
        self,
        workdir: Path,
        command: str,
        output_dir: Path,
        verbose: bool = False,
        timeout: int | None = None,
        runner: Runner | None = None,
    ):
        """Initialize the validator.

        Args:
            workdir: Project root; the command runs there
            command: Shell-evaluated test command
            output_dir: Directory for per-run log files
            verbose: Stream the command's output to the terminal
            timeout: Optional limit in seconds; None runs unbounded
            runner: Command runner (a fresh Runner by default)
        """
        self.workdir = Path(workdir)
        self.command = command
        self.output_dir = Path(output_dir)
        self.verbose = verbose
        self.timeout = timeout
        self.runner = runner or Runner()
        self.history: list[CheckResult] = []

    def run(self, check_name: str = "test") -> CheckResult:
        """Run the test command once.

        Args:
            check_name: Label used in the log filename and messages

        Returns:
            CheckResult with success status, log file and returncode

        Raises:
            ValidatorUnrunnable: If the command cannot be started
        """
        if not self.workdir.is_dir():
            raise ValidatorUnrunnable(
                f"cannot run test program: {self.workdir} is not a directory"
            )

        timestamp = datetime.now()
        # Microseconds: bisection can run several checks per second
        log_file = self.output_dir / (
            f"{check_name}-{timestamp.strftime('%Y%m%d-%H%M%S-%f')}.log"
        )
        self.output_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Running {check_name}: {self.command}")
        started = time.monotonic()
        try:
            result = self.runner.execute(
                self.command,
                cwd=self.workdir,
                timeout=self.timeout,
                log_file=log_file,
                log_level="debug",
                check=False,
                stream=self.verbose,
            )
        except OSError as e:
            raise ValidatorUnrunnable(f"cannot run test program: {e}") from e

        check = CheckResult(
            check_name=check_name,
            command=self.command,
            success=(result.exited == 0),
            returncode=result.exited,
            log_file=log_file,
            timestamp=timestamp,
            duration=time.monotonic() - started,
        )
        self.history.append(check)

        logger.debug(
            f"Check {check_name} {check.verdict()}",
            returncode=check.returncode,
            log_file=str(log_file),
        )
        return check

    def test(self, check_name: str = "test") -> bool:
        """Run the test command and return whether it passed."""
        return self.run(check_name).success
