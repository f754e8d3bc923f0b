import asyncio

import pytest
from sqlalchemy import func, select

from farmledger.engine.score_ledger import ScoreLedger
from farmledger.engine.scoring_rules import ScoringRules
from farmledger.errors import NotFoundError, ValidationError
from farmledger.models.database import FarmingScore, ScoreHistory


async def test_award_updates_totals_and_history(ledger, session_factory, make_farmer):
    farmer_id = await make_farmer(score=45)

    result = await ledger.award_points(farmer_id, "Drip irrigation optimization", 95)

    assert result.points_added == 9
    assert result.new_score == 54
    assert result.new_lifetime_points == 54
    assert result.unlocked_rewards == ["Basic Loan Eligibility"]

    async with session_factory() as session:
        history = (await session.scalars(select(ScoreHistory))).all()
    assert len(history) == 1
    assert history[0].action_type == "Drip irrigation optimization"
    assert history[0].points_awarded == 9
    assert history[0].validation_confidence == 95


async def test_first_award_creates_score_row(ledger, session_factory, make_farmer):
    farmer_id = await make_farmer()

    result = await ledger.award_points(farmer_id, "Sowing seeds", 65)

    assert (result.points_added, result.new_score) == (5, 5)
    async with session_factory() as session:
        record = await session.get(FarmingScore, farmer_id)
    assert record.current_score == 5
    assert record.lifetime_points == 5


async def test_zero_point_award_still_logged(session_factory, make_farmer):
    ledger = ScoreLedger(session_factory, ScoringRules.from_pairs([], default_points=1))
    farmer_id = await make_farmer(score=3)

    result = await ledger.award_points(farmer_id, "anything", 10)

    assert result.points_added == 0
    assert result.new_score == 3
    snapshot = await ledger.get_score(farmer_id)
    assert [h.points_awarded for h in snapshot.history] == [0]


async def test_unknown_farmer_is_rejected(ledger, session_factory):
    with pytest.raises(NotFoundError):
        await ledger.award_points(999, "watering", 80)

    async with session_factory() as session:
        count = await session.scalar(select(func.count()).select_from(ScoreHistory))
    assert count == 0


async def test_invalid_confidence_writes_nothing(ledger, session_factory, make_farmer):
    farmer_id = await make_farmer(score=0)

    with pytest.raises(ValidationError):
        await ledger.award_points(farmer_id, "watering", 150)

    snapshot = await ledger.get_score(farmer_id)
    assert snapshot.current_score == 0
    assert snapshot.history == []


async def test_concurrent_awards_are_not_lost(ledger, make_farmer):
    farmer_id = await make_farmer(score=0)

    results = await asyncio.gather(
        *(ledger.award_points(farmer_id, "watering", 80) for _ in range(10))
    )

    assert sorted(r.new_score for r in results) == list(range(5, 55, 5))
    snapshot = await ledger.get_score(farmer_id)
    assert snapshot.current_score == 50
    assert snapshot.lifetime_points == 50
    assert len(snapshot.history) == 10


async def test_get_score_initialises_missing_row(ledger, make_farmer):
    farmer_id = await make_farmer()

    snapshot = await ledger.get_score(farmer_id)

    assert snapshot.current_score == 0
    assert snapshot.rewards == []
    assert snapshot.next_milestone.threshold == 50


async def test_get_score_unknown_farmer(ledger):
    with pytest.raises(NotFoundError):
        await ledger.get_score(12345)


async def test_history_is_newest_first_and_limited(session_factory, make_farmer):
    ledger = ScoreLedger(session_factory, history_limit=3)
    farmer_id = await make_farmer(score=0)
    for label in ("watering", "sowing", "harvesting", "soil_care"):
        await ledger.award_points(farmer_id, label, 80)

    snapshot = await ledger.get_score(farmer_id)

    assert [h.action_type for h in snapshot.history] == ["soil_care", "harvesting", "sowing"]
    assert snapshot.current_score == 5 + 10 + 15 + 6
    assert snapshot.rewards == []
    assert snapshot.next_milestone.reward == "Basic Loan Eligibility"


class _RowAppearsMidAward(ScoreLedger):
    """Ledger whose first increment misses the row, as if another award
    inserted it between this award's UPDATE and its INSERT."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.increments = 0

    async def _increment(self, session, farmer_id, points):
        self.increments += 1
        if self.increments == 1:
            return await ScoreLedger._increment(session, -1, points)
        return await ScoreLedger._increment(session, farmer_id, points)


async def test_award_survives_score_row_created_concurrently(session_factory, make_farmer):
    ledger = _RowAppearsMidAward(session_factory)
    farmer_id = await make_farmer(score=20)

    result = await ledger.award_points(farmer_id, "watering", 80)

    assert ledger.increments == 2
    assert (result.points_added, result.new_score) == (5, 25)
    snapshot = await ledger.get_score(farmer_id)
    assert snapshot.current_score == 25
    assert [h.points_awarded for h in snapshot.history] == [5]
