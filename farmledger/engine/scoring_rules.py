"""Static rule tables for the farming score and the economics dashboard.

The tables are immutable values built once at import time and passed
explicitly into the calculator, rewards resolver and aggregator, so tests can
substitute their own tables.

Tables:
    DEFAULT_SCORING_RULES -- activity keyword -> base points, plus a default.
    DEFAULT_MILESTONES    -- ascending score thresholds that unlock rewards.
    DEFAULT_SELL_WINDOWS  -- crop -> best months to sell.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final


@dataclass(frozen=True, slots=True)
class ScoringRule:
    """A single keyword rule.

    Attributes:
        pattern: Lower-case keyword searched for inside the action label.
        points: Base points awarded when the pattern matches.
    """

    pattern: str
    points: int


@dataclass(frozen=True, slots=True)
class ScoringRules:
    """Ordered keyword rules plus the fallback award.

    ``rules`` keeps declaration order.  ``by_priority`` is the lookup order:
    longest pattern first, ties broken by declaration order, so a label such
    as ``"drip irrigation watering"`` always resolves the same way.
    """

    rules: tuple[ScoringRule, ...]
    default_points: int

    @property
    def by_priority(self) -> tuple[ScoringRule, ...]:
        indexed = sorted(
            enumerate(self.rules), key=lambda pair: (-len(pair[1].pattern), pair[0]),
        )
        return tuple(rule for _, rule in indexed)

    @classmethod
    def from_pairs(
        cls, pairs: Iterable[tuple[str, int]], default_points: int,
    ) -> ScoringRules:
        return cls(
            rules=tuple(ScoringRule(pattern.lower(), points) for pattern, points in pairs),
            default_points=default_points,
        )


@dataclass(frozen=True, slots=True)
class Milestone:
    """A score threshold that unlocks a named, non-monetary reward."""

    threshold: int
    reward: str


DEFAULT_SCORING_RULES: Final[ScoringRules] = ScoringRules.from_pairs(
    [
        ("watering", 5),
        ("irrigation", 8),
        ("fertilizer", 10),
        ("sowing", 10),
        ("harvesting", 15),
        ("pest_control", 7),
        ("soil_care", 6),
        ("proof_upload", 3),  # generic photo/voice proof
    ],
    default_points=5,
)

DEFAULT_MILESTONES: Final[tuple[Milestone, ...]] = (
    Milestone(50, "Basic Loan Eligibility"),
    Milestone(100, "Sustainable Farming Badge"),
    Milestone(150, "Input Store Discount (10%)"),
    Milestone(200, "Premium Buyer Access"),
)

DEFAULT_SELL_WINDOWS: Final[Mapping[str, str]] = MappingProxyType({
    "Tomato": "May-June",
    "Onion": "Dec-Jan",
    "Potato": "Feb-March",
    "Rice": "Nov-Dec",
    "Wheat": "April-May",
    "Ragi": "Jan-Feb",
    "Chilli": "March-April",
    "Sugarcane": "Oct-March",
})

FALLBACK_SELL_WINDOW: Final[str] = "Post-Harvest"
