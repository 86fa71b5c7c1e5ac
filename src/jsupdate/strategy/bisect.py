"""Bisection: find the updates that pass validation together."""

from collections.abc import Sequence

from jsupdate.core.log import logger
from jsupdate.manifest.update import CandidateUpdate
from jsupdate.strategy.base import Trial


def split(
    updates: Sequence[CandidateUpdate],
) -> tuple[list[CandidateUpdate], list[CandidateUpdate]]:
    """Split into even-position and odd-position halves.

    Interleaving instead of cutting in the middle keeps failures that
    correlate with report order from landing in the same half.
    Relative order is kept in both halves:
    ``[A, B, C, D, E] -> ([A, C, E], [B, D])``.
    """
    return list(updates[0::2]), list(updates[1::2])


def resolve(
    updates: Sequence[CandidateUpdate],
    trial: Trial,
    depth: int = 0,
) -> list[CandidateUpdate]:
    """Return the subset of ``updates`` accepted by bisection.

    Algorithm:
    1. No updates: nothing to try, nothing accepted
    2. Try all of them together
    3. Pass: accept them all, without looking any closer
    4. Fail with a single update: reject it
    5. Fail with several: split, resolve each half, concatenate

    Every accepted update passed in some tested combination and every
    rejected one failed on its own. Two updates that only break each
    other can end up accepted together after landing in different
    halves; the combined result is never re-tested here.

    Args:
        updates: Candidate updates, in report order
        trial: Applies and validates a subset (see Trial)
        depth: Recursion depth, for log context

    Returns:
        Accepted updates: all of ``updates`` when they pass together,
        otherwise the even half's accepted updates followed by the odd
        half's
    """
    if not updates:
        return []

    with logger.span(
        f"trying {len(updates)} updates",
        depth=depth,
        updates=[update.summary() for update in updates],
    ):
        if trial(updates):
            logger.info("test passed", depth=depth)
            return list(updates)

        logger.info("test failed", depth=depth)

        if len(updates) == 1:
            logger.warn(f"rejecting {updates[0].summary()}")
            return []

        first, second = split(updates)
        accepted = resolve(first, trial, depth + 1)
        accepted += resolve(second, trial, depth + 1)

        logger.info(
            f"keeping {len(accepted)} of {len(updates)} updates",
            depth=depth,
            kept=[update.summary() for update in accepted],
        )
        return accepted
