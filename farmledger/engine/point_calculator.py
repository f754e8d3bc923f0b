"""Points calculation for a single validated farming action.

Turns an action label and the validator's confidence (0-100) into an integer
award:

    1. Pick the base rule: the highest-priority keyword contained in the
       lower-cased label, or the table's default.
    2. Confidence < 70  -> halve the base points, flooring to an integer.
    3. Confidence > 90  -> add a flat +1 bonus.

The adjustments always run in that order (halve, then bonus).
"""

from __future__ import annotations

import logging

from farmledger.engine.scoring_rules import DEFAULT_SCORING_RULES, ScoringRule, ScoringRules
from farmledger.errors import ValidationError

logger = logging.getLogger(__name__)

LOW_CONFIDENCE_BELOW = 70
HIGH_CONFIDENCE_ABOVE = 90
HIGH_CONFIDENCE_BONUS = 1


def match_rule(action_label: str, rules: ScoringRules = DEFAULT_SCORING_RULES) -> ScoringRule | None:
    """Return the rule selected for *action_label*, or ``None`` for the default.

    Args:
        action_label: Free-text action description, e.g. ``"Sowing seeds"``.
        rules: Rule table to search.

    Returns:
        The matched ``ScoringRule`` or ``None`` when no keyword is present.
    """
    label = action_label.lower()
    for rule in rules.by_priority:
        if rule.pattern in label:
            return rule
    return None


def calculate_points(
    action_label: str,
    confidence: int,
    rules: ScoringRules = DEFAULT_SCORING_RULES,
) -> int:
    """Compute the points awarded for one action.

    Args:
        action_label: Free-text action description.
        confidence: Validation confidence in the range [0, 100].
        rules: Rule table; defaults to ``DEFAULT_SCORING_RULES``.

    Returns:
        A non-negative integer point award.

    Raises:
        ValidationError: If the label is not a string or the confidence is
            not an integer in [0, 100].
    """
    if not isinstance(action_label, str):
        raise ValidationError(f"action label must be a string, got {type(action_label).__name__}")
    if isinstance(confidence, bool) or not isinstance(confidence, int):
        raise ValidationError(f"confidence must be an integer, got {confidence!r}")
    if not 0 <= confidence <= 100:
        raise ValidationError(f"confidence {confidence} outside [0, 100]")

    rule = match_rule(action_label, rules)
    points = rule.points if rule is not None else rules.default_points

    if confidence < LOW_CONFIDENCE_BELOW:
        points = points // 2
    if confidence > HIGH_CONFIDENCE_ABOVE:
        points += HIGH_CONFIDENCE_BONUS

    logger.debug(
        "Points for %r (confidence=%d): rule=%s -> %d",
        action_label,
        confidence,
        rule.pattern if rule is not None else "default",
        points,
    )
    return max(points, 0)
