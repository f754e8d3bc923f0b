"""Government scheme eligibility matching.

Each scheme carries a JSON ``criteria`` object.  The keys evaluated here are:

    minScore -- farming score the farmer must have reached.
    location -- district names; one must appear in the farmer's place.
    crops    -- crop names; one must appear on the farmer's ledger.

Location and crop criteria are only evaluated when the farmer's place or
crops are known.  Unknown keys (e.g. ``maxAcreage``) are carried through
untouched and do not affect eligibility.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field

from farmledger.models.database import Scheme

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SchemeMatch:
    """Eligibility verdict for one scheme.

    Attributes:
        scheme: The evaluated catalogue row.
        is_eligible: ``True`` when no criterion failed.
        match_reason: Human-readable criteria the farmer satisfies.
        missing_criteria: Human-readable criteria the farmer fails.
        has_applied: ``True`` when the farmer already applied.
    """

    scheme: Scheme
    is_eligible: bool
    match_reason: list[str] = field(default_factory=list)
    missing_criteria: list[str] = field(default_factory=list)
    has_applied: bool = False


def match_scheme(
    scheme: Scheme,
    *,
    score: int,
    place: str | None,
    crops: Collection[str],
    applied_ids: Collection[int] = (),
) -> SchemeMatch:
    """Evaluate a single scheme for one farmer."""
    criteria = scheme.criteria or {}
    reasons: list[str] = []
    missing: list[str] = []

    min_score = criteria.get("minScore")
    if min_score:
        if score < min_score:
            missing.append(f"Min Score: {min_score}")
        else:
            reasons.append("Good Credit Score")

    locations = criteria.get("location") or []
    if locations and place:
        lowered = place.lower()
        if any(loc.lower() in lowered for loc in locations):
            reasons.append("Location Match")
        else:
            missing.append(f"Valid Districts: {', '.join(locations)}")

    eligible_crops = criteria.get("crops") or []
    if eligible_crops and crops:
        if set(eligible_crops) & set(crops):
            reasons.append("Crop Match")
        else:
            missing.append(f"Eligible Crops: {', '.join(eligible_crops)}")

    return SchemeMatch(
        scheme=scheme,
        is_eligible=not missing,
        match_reason=reasons,
        missing_criteria=missing,
        has_applied=scheme.id in applied_ids,
    )


def match_schemes(
    schemes: Sequence[Scheme],
    *,
    score: int,
    place: str | None,
    crops: Collection[str],
    applied_ids: Collection[int] = (),
) -> list[SchemeMatch]:
    """Evaluate every scheme in catalogue order.

    Args:
        schemes: Catalogue rows.
        score: The farmer's current farming score.
        place: The farmer's place, or ``None`` when not yet set.
        crops: Distinct crop names from the farmer's expense/income ledgers.
        applied_ids: Scheme ids the farmer has already applied to.

    Returns:
        One ``SchemeMatch`` per scheme.
    """
    matches = [
        match_scheme(s, score=score, place=place, crops=crops, applied_ids=applied_ids)
        for s in schemes
    ]
    logger.debug(
        "Matched %d scheme(s) at score %d: %d eligible",
        len(matches),
        score,
        sum(1 for m in matches if m.is_eligible),
    )
    return matches
