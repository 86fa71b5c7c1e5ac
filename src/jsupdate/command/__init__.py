"""CLI command modules for jsupdate."""

from jsupdate.command.outdated import OutdatedCommand
from jsupdate.command.update import UpdateCommand

__all__ = ["OutdatedCommand", "UpdateCommand"]
