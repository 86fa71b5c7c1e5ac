"""Shell command execution on top of invoke."""

import contextlib
import os
import platform
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from jsupdate.core.log import logger

# Exit status reported for a command that ran out of time
TIMED_OUT = -1


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    Every external step of a run (install, outdated report, test
    command, git) goes through execute(), so they all share the same
    cwd handling, log capture and timeout semantics.
    """

    def kill(self) -> None:
        # invoke sends SIGKILL, which Windows lacks; os.kill() with a
        # plain number ends up in TerminateProcess() there
        if platform.system() != "Windows":
            super().kill()
            return

        pid = self.pid if self.using_pty else self.process.pid
        with contextlib.suppress(ProcessLookupError):
            os.kill(pid, 9)

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        log_file: Path | None = None,
        log_level: str | None = None,
        check: bool = True,
        stream: bool = False,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Run ``command`` through the shell and capture its output.

        Args:
            command: Command line, evaluated by the shell
            cwd: Directory to run in
            timeout: Seconds before the command is killed; None waits
            log_file: Where to save stdout followed by stderr
            log_level: Level at which to log each output line
            check: Raise invoke.UnexpectedExit on a non-zero exit
            stream: Also echo output to the terminal as it arrives
            env: Variables added to the inherited environment

        Returns:
            invoke.Result; ``exited`` is TIMED_OUT after a timeout

        Raises:
            invoke.UnexpectedExit: Non-zero exit with check=True
            OSError: If the shell itself cannot be started
        """
        options = {
            "hide": not stream,
            "warn": not check,
            "in_stream": False,
        }
        if timeout:
            options["timeout"] = timeout
        if env:
            options["env"] = env

        logger.spew("Executing command", command=command, cwd=str(cwd))

        with self.cd(str(cwd)) if cwd else contextlib.nullcontext():
            try:
                result = self.run(command, **options)
            except CommandTimedOut as e:
                result = e.result
                result.exited = TIMED_OUT

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            log_file.write_text(result.stdout + result.stderr)

        if log_level:
            for output in (result.stdout, result.stderr):
                for line in output.splitlines():
                    # As an attribute: output may contain {braces}
                    logger.log(log_level, "{line}", line=line.rstrip())

        return result
