"""Trial interface used by the bisection engine."""

from collections.abc import Sequence
from typing import Protocol

from jsupdate.manifest.update import CandidateUpdate


class Trial(Protocol):
    """Decides whether a set of updates works when applied together.

    Implementations apply the updates, make them effective and run
    the project's validation. Returning False is the normal negative
    verdict; exceptions abort the whole run.
    """

    def __call__(self, updates: Sequence[CandidateUpdate]) -> bool:
        ...
