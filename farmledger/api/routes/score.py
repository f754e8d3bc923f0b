"""Farming score award and lookup endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from farmledger.api.auth import get_current_farmer_id
from farmledger.engine.score_ledger import ScoreLedger
from farmledger.models.database import async_session
from farmledger.schemas.schemas import (
    ERROR_RESPONSES,
    AwardRequest,
    AwardResponse,
    MilestoneResponse,
    ScoreHistoryEntryResponse,
    ScoreResponse,
)

logger = logging.getLogger(__name__)

score_router = APIRouter(
    prefix="/api/v1/score",
    tags=["score"],
    responses=ERROR_RESPONSES,
)


def get_score_ledger() -> ScoreLedger:
    """Ledger bound to the shared session factory and default rule tables."""
    return ScoreLedger(async_session)


@score_router.post("/award", response_model=AwardResponse)
async def award_points(
    body: AwardRequest,
    farmer_id: int = Depends(get_current_farmer_id),
    ledger: ScoreLedger = Depends(get_score_ledger),
) -> AwardResponse:
    """Award points for a validated farming action.

    Args:
        body: Action label and validation confidence.
        farmer_id: Authenticated farmer.
        ledger: Score ledger dependency.

    Returns:
        Points added, the new totals and the rewards unlocked at the new score.
    """
    result = await ledger.award_points(farmer_id, body.action_label, body.confidence)
    return AwardResponse(
        points_added=result.points_added,
        new_score=result.new_score,
        new_lifetime_points=result.new_lifetime_points,
        unlocked_rewards=result.unlocked_rewards,
    )


@score_router.get("/me", response_model=ScoreResponse)
async def get_my_score(
    farmer_id: int = Depends(get_current_farmer_id),
    ledger: ScoreLedger = Depends(get_score_ledger),
) -> ScoreResponse:
    """Return the farmer's score, recent history, rewards and next milestone."""
    snapshot = await ledger.get_score(farmer_id)
    milestone = snapshot.next_milestone
    return ScoreResponse(
        farmer_id=snapshot.farmer_id,
        current_score=snapshot.current_score,
        lifetime_points=snapshot.lifetime_points,
        last_updated=snapshot.last_updated,
        history=[ScoreHistoryEntryResponse.model_validate(h) for h in snapshot.history],
        rewards=snapshot.rewards,
        next_milestone=(
            MilestoneResponse(points=milestone.threshold, reward=milestone.reward)
            if milestone is not None
            else None
        ),
    )
