"""Outcome of a single test command run."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class CheckResult(BaseModel):
    """One validator verdict plus where its output went.

    ``returncode`` is -1 when a configured timeout cut the run short.
    """

    check_name: str
    command: str
    success: bool
    returncode: int
    log_file: Path
    timestamp: datetime
    duration: float

    def verdict(self) -> str:
        return "passed" if self.success else "failed"
