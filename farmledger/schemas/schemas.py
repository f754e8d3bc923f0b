"""Pydantic v2 schemas for request validation and response serialization.

This module defines all data transfer objects (DTOs) used by the Farm Ledger
API:

- ``FarmerCreate`` / ``FarmerUpdate`` / ``FarmerResponse`` — farmer profile.
- ``AwardRequest`` / ``AwardResponse``                    — POST /score/award.
- ``ScoreResponse``                                       — GET /score/me.
- ``ExpenseCreate`` / ``ExpenseResponse``                 — expense ledger rows.
- ``IncomeCreate`` / ``IncomeResponse``                   — income ledger rows.
- ``DashboardResponse``                                   — economics dashboard.
- ``SchemeMatchResponse`` / ``SchemeApplyRequest``        — scheme matching.
- ``ErrorResponse``                                       — generic failure body.
- ``ERROR_RESPONSES``                                     — OpenAPI ``responses`` for the routers.

JSON field names are camelCase (``pointsAdded``); request bodies also accept
the snake_case field names.  Request models reject unknown fields.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for response models: camelCase aliases, ORM/dataclass input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class RequestModel(CamelModel):
    """Base for request bodies: same aliases, unknown fields rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# ---------------------------------------------------------------------------
# Farmers
# ---------------------------------------------------------------------------


class FarmerCreate(RequestModel):
    """Schema for registering a farmer.

    Attributes:
        name: Display name.  Required.
        email: Optional unique email address.
        phone_number: Optional mobile number.
        place: Village or district, used for scheme location matching.
        preferred_language: UI language preference.  Defaults to ``english``.
        data_sharing_consent: Whether the farmer agrees to share data with
            scheme partners.  Defaults to ``False``.
    """

    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone_number: str | None = Field(default=None, max_length=20)
    place: str | None = Field(default=None, max_length=255)
    preferred_language: str = Field(default="english", max_length=50)
    data_sharing_consent: bool = False


class FarmerUpdate(RequestModel):
    """Partial profile update; only the fields sent are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    phone_number: str | None = Field(default=None, max_length=20)
    place: str | None = Field(default=None, max_length=255)
    preferred_language: str | None = Field(default=None, max_length=50)
    data_sharing_consent: bool | None = None

    @field_validator("name", "preferred_language", "data_sharing_consent")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        # Omit a field to keep it; null would clear a required column.
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class FarmerResponse(CamelModel):
    id: int
    name: str
    email: str | None = None
    phone_number: str | None = None
    place: str | None = None
    preferred_language: str
    data_sharing_consent: bool
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


# ---------------------------------------------------------------------------
# Score
# ---------------------------------------------------------------------------


class AwardRequest(RequestModel):
    """Request body for ``POST /api/v1/score/award``.

    Attributes:
        action_label: Free-text description of the validated farming action,
            e.g. ``"Drip irrigation optimization"``.
        confidence: Validator confidence in the range [0, 100].
    """

    action_label: str = Field(..., min_length=1, max_length=100)
    confidence: int = Field(..., ge=0, le=100)


class AwardResponse(CamelModel):
    success: bool = True
    points_added: int
    new_score: int
    new_lifetime_points: int
    unlocked_rewards: list[str] = Field(default_factory=list)


class ScoreHistoryEntryResponse(CamelModel):
    id: int
    action_type: str
    points_awarded: int
    validation_confidence: int
    timestamp: dt.datetime


class MilestoneResponse(CamelModel):
    """Next locked milestone.  ``points`` is the threshold to reach."""

    points: int
    reward: str


class ScoreResponse(CamelModel):
    """A farmer's score, recent history and milestone position.

    Attributes:
        farmer_id: Owner of the score.
        current_score: Running score used for rewards and scheme matching.
        lifetime_points: Total points ever awarded.
        last_updated: Timestamp of the most recent award.
        history: Most recent awards, newest first.
        rewards: Unlocked reward labels, ascending by threshold.
        next_milestone: Next locked milestone, ``null`` at the top of the ladder.
    """

    farmer_id: int
    current_score: int
    lifetime_points: int
    last_updated: dt.datetime | None = None
    history: list[ScoreHistoryEntryResponse] = Field(default_factory=list)
    rewards: list[str] = Field(default_factory=list)
    next_milestone: MilestoneResponse | None = None


# ---------------------------------------------------------------------------
# Economics
# ---------------------------------------------------------------------------


class ExpenseCreate(RequestModel):
    """Request body for ``POST /api/v1/economics/expense``."""

    date: dt.date
    category: str = Field(..., min_length=1, max_length=50)
    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    crop: str = Field(..., min_length=1, max_length=50)
    season: str = Field(..., min_length=1, max_length=50)
    notes: str | None = None


class IncomeCreate(RequestModel):
    """Request body for ``POST /api/v1/economics/income``.

    ``quantity`` defaults to 0 and ``unit`` to ``kg``.
    """

    date: dt.date
    source: str = Field(..., min_length=1, max_length=50)
    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    quantity: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    unit: str = Field(default="kg", min_length=1, max_length=20)
    crop: str = Field(..., min_length=1, max_length=50)
    season: str = Field(..., min_length=1, max_length=50)
    notes: str | None = None


class ExpenseResponse(CamelModel):
    id: int
    farmer_id: int
    date: dt.date
    category: str
    amount: float
    crop: str
    season: str
    notes: str | None = None
    created_at: dt.datetime | None = None


class IncomeResponse(CamelModel):
    id: int
    farmer_id: int
    date: dt.date
    source: str
    amount: float
    quantity: float
    unit: str
    crop: str
    season: str
    notes: str | None = None
    created_at: dt.datetime | None = None


class CashflowBucketResponse(CamelModel):
    period: str
    month: str
    income: float
    expense: float


class CropPerformanceResponse(CamelModel):
    crop: str
    total_cost: float
    total_revenue: float
    sold_quantity: float
    unit: str
    break_even_price: float
    avg_sell_price: float
    profit_margin: float
    best_sell_month: str


class CategoryTotalResponse(CamelModel):
    category: str
    amount: float


class LedgerTransactionResponse(CamelModel):
    """One row of the recent-activity feed.

    ``category`` is set for expenses; ``source``, ``quantity`` and ``unit``
    for incomes.
    """

    transaction_type: str
    id: int | None = None
    date: dt.date
    amount: float
    crop: str
    season: str
    notes: str | None = None
    category: str | None = None
    source: str | None = None
    quantity: float | None = None
    unit: str | None = None


class DashboardResponse(CamelModel):
    """Economics dashboard for the authenticated farmer.

    Attributes:
        total_revenue: Sum of income amounts.
        total_expenses: Sum of expense amounts.
        net_profit: ``total_revenue - total_expenses``.
        cashflow: Monthly income/expense buckets, oldest first.
        crop_performance: Break-even and margin figures per crop.
        expenses_by_category: Expense totals per category, first-seen order.
        recent_transactions: Newest expenses and incomes, tagged by kind.
    """

    total_revenue: float
    total_expenses: float
    net_profit: float
    cashflow: list[CashflowBucketResponse] = Field(default_factory=list)
    crop_performance: list[CropPerformanceResponse] = Field(default_factory=list)
    expenses_by_category: list[CategoryTotalResponse] = Field(default_factory=list)
    recent_transactions: list[LedgerTransactionResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Schemes
# ---------------------------------------------------------------------------


class SchemeMatchResponse(CamelModel):
    id: int
    name: str
    type: str
    provider: str
    description: str | None = None
    benefits: str | None = None
    criteria: dict[str, Any] = Field(default_factory=dict)
    link: str | None = None
    deadline: dt.date | None = None
    is_eligible: bool
    match_reason: list[str] = Field(default_factory=list)
    missing_criteria: list[str] = Field(default_factory=list)
    has_applied: bool = False


class SchemeApplyRequest(RequestModel):
    scheme_id: int = Field(..., ge=1)


class SchemeApplyResponse(CamelModel):
    success: bool = True
    application_id: int
    message: str


class ErrorResponse(BaseModel):
    """Generic failure body.  Never carries internal error detail."""

    error: str
    fields: list[str] | None = None


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: {"model": ErrorResponse, "description": "Missing or malformed X-Farmer-Id"},
    404: {"model": ErrorResponse, "description": "Farmer or resource not found"},
    422: {"model": ErrorResponse, "description": "Invalid request"},
    503: {"model": ErrorResponse, "description": "Storage temporarily unavailable"},
}
