#!/usr/bin/env python3
"""jsupdate CLI - upgrade npm dependencies as far as the tests allow."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from jsupdate.command.outdated import OutdatedCommand
from jsupdate.command.update import UpdateCommand
from jsupdate.core.config import State
from jsupdate.core.errors import JsupdateError
from jsupdate.core.log import logger
from jsupdate.workflow.status import EXIT_ERROR


class CliState(State):
    """Upgrade the dependencies of a JavaScript project, keeping only
    the upgrades that pass its tests.

    jsupdate applies every outdated package at its latest version and
    runs the test command. When the tests fail it splits the set of
    updates in half and tries again, until each update is known to be
    good or bad.

    Configuration sources (in priority order):
    1. Command-line arguments (update --test "npm test" --commit)
    2. jsupdate.yaml in the current directory, then the user
       config directory, then package defaults
    3. .env file
    4. Environment variables
       (JSUPDATE_CONFIG__CHECK__TEST_COMMAND=value)
    """

    update: CliSubCommand[UpdateCommand]
    outdated: CliSubCommand[OutdatedCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(EXIT_ERROR)

        # Closing the logger on the way out flushes file sinks
        with logger:
            try:
                exit_code = asyncio.run(subcommand.run_workflow(self))
            except JsupdateError as e:
                logger.error(str(e))
                print(str(e), file=sys.stderr)
                exit_code = EXIT_ERROR
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
