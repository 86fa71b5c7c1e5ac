"""Bisection engine and the trial it drives."""

from jsupdate.strategy.base import Trial
from jsupdate.strategy.bisect import resolve, split
from jsupdate.strategy.trial import UpdateTrial

__all__ = [
    "Trial",
    "UpdateTrial",
    "resolve",
    "split",
]
