"""Milestone resolution for a cumulative farming score."""

from __future__ import annotations

from collections.abc import Sequence

from farmledger.engine.scoring_rules import DEFAULT_MILESTONES, Milestone
from farmledger.errors import ValidationError


def _check_score(score: int) -> None:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError(f"score must be an integer, got {score!r}")
    if score < 0:
        raise ValidationError(f"score must be non-negative, got {score}")


def unlocked_rewards(
    score: int,
    milestones: Sequence[Milestone] = DEFAULT_MILESTONES,
) -> list[str]:
    """Return every reward whose threshold is at or below *score*.

    Args:
        score: Current farming score.
        milestones: Ladder sorted ascending by threshold.

    Returns:
        Reward labels in ascending threshold order.
    """
    _check_score(score)
    return [m.reward for m in milestones if m.threshold <= score]


def next_milestone(
    score: int,
    milestones: Sequence[Milestone] = DEFAULT_MILESTONES,
) -> Milestone | None:
    """Return the first milestone still locked at *score*, or ``None`` at the top."""
    _check_score(score)
    for milestone in milestones:
        if milestone.threshold > score:
            return milestone
    return None
