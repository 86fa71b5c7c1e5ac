"""Runners for the project's own tooling (install, test)."""

from jsupdate.runner.check import Validator
from jsupdate.runner.install import Installer

__all__ = ["Installer", "Validator"]
