"""Durable farming score ledger.

This module provides the ``ScoreLedger`` class that owns the write path of a
points award and the read path of a farmer's score:

    award_points -- calculate the award, atomically increment the running
                    totals and append the history row, then resolve the
                    rewards unlocked by the new score.
    get_score    -- read (lazily creating) the score row, the most recent
                    history and the milestone position.

Each call opens its own session from the injected ``async_sessionmaker`` and
fails as a whole: nothing from a failed award is ever committed.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import Row, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farmledger.config import settings
from farmledger.engine.point_calculator import calculate_points
from farmledger.engine.rewards import next_milestone, unlocked_rewards
from farmledger.engine.scoring_rules import (
    DEFAULT_MILESTONES,
    DEFAULT_SCORING_RULES,
    Milestone,
    ScoringRules,
)
from farmledger.errors import NotFoundError, PersistenceError
from farmledger.models.database import Farmer, FarmingScore, ScoreHistory

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AwardResult:
    """Outcome of a committed award.

    Attributes:
        farmer_id: Farmer that received the points.
        points_added: Points computed for the action (may be 0).
        new_score: ``current_score`` after the increment.
        new_lifetime_points: ``lifetime_points`` after the increment.
        unlocked_rewards: Rewards unlocked at ``new_score``, ascending.
    """

    farmer_id: int
    points_added: int
    new_score: int
    new_lifetime_points: int
    unlocked_rewards: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ScoreSnapshot:
    """A farmer's score with recent history and milestone position."""

    farmer_id: int
    current_score: int
    lifetime_points: int
    last_updated: dt.datetime | None
    history: list[ScoreHistory] = field(default_factory=list)
    rewards: list[str] = field(default_factory=list)
    next_milestone: Milestone | None = None


class ScoreLedger:
    """Transactional store of farming scores and their award history.

    Args:
        session_factory: Factory producing ``AsyncSession`` objects.  Every
            public call runs in its own session.
        scoring_rules: Keyword table handed to the points calculator.
        milestones: Reward ladder handed to the rewards resolver.
        history_limit: Number of history rows returned by ``get_score``.

    Usage::

        ledger = ScoreLedger(async_session)
        result = await ledger.award_points(7, "sowing seeds", 85)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        scoring_rules: ScoringRules = DEFAULT_SCORING_RULES,
        milestones: Sequence[Milestone] = DEFAULT_MILESTONES,
        history_limit: int = settings.SCORE_HISTORY_LIMIT,
    ) -> None:
        self.session_factory = session_factory
        self.scoring_rules = scoring_rules
        self.milestones = milestones
        self.history_limit = history_limit

    async def award_points(
        self,
        farmer_id: int,
        action_label: str,
        confidence: int,
    ) -> AwardResult:
        """Award points for one validated action.

        Steps (one transaction):
            1. Atomically add the points to ``current_score`` and
               ``lifetime_points`` with a single ``UPDATE ... RETURNING``.
            2. Create the zero score row first if the farmer has none yet,
               tolerating a concurrent award that created it meanwhile.
            3. Append the ``ScoreHistory`` row.

        Args:
            farmer_id: Identity supplied by the auth collaborator.
            action_label: Free-text action description.
            confidence: Validation confidence in [0, 100].

        Returns:
            The committed ``AwardResult``.

        Raises:
            ValidationError: For a malformed label or confidence.
            NotFoundError: If the farmer does not exist.
            PersistenceError: If the database write failed; the transaction
                is rolled back.
        """
        points = calculate_points(action_label, confidence, self.scoring_rules)

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    totals = await self._increment(session, farmer_id, points)
                    if totals is None:
                        await self._ensure_score_row(session, farmer_id)
                        totals = await self._increment(session, farmer_id, points)

                    session.add(
                        ScoreHistory(
                            farmer_id=farmer_id,
                            action_type=action_label,
                            points_awarded=points,
                            validation_confidence=confidence,
                            timestamp=dt.datetime.now(dt.timezone.utc),
                        )
                    )
        except SQLAlchemyError as exc:
            logger.exception("Score award rolled back for farmer %s", farmer_id)
            raise PersistenceError(f"score award failed for farmer {farmer_id}") from exc

        new_score, new_lifetime = totals.current_score, totals.lifetime_points
        logger.info(
            "Awarded %d point(s) to farmer %s for %r -- score %d, lifetime %d",
            points,
            farmer_id,
            action_label,
            new_score,
            new_lifetime,
        )
        return AwardResult(
            farmer_id=farmer_id,
            points_added=points,
            new_score=new_score,
            new_lifetime_points=new_lifetime,
            unlocked_rewards=unlocked_rewards(new_score, self.milestones),
        )

    async def get_score(self, farmer_id: int) -> ScoreSnapshot:
        """Read a farmer's score, creating a zero row on first access.

        Args:
            farmer_id: Identity supplied by the auth collaborator.

        Returns:
            A ``ScoreSnapshot`` with up to ``history_limit`` history rows,
            newest first.

        Raises:
            NotFoundError: If the farmer does not exist.
            PersistenceError: If the database could not be read.
        """
        try:
            async with self.session_factory() as session:
                record = await session.get(FarmingScore, farmer_id)
                if record is None:
                    record = await self._initialize(session, farmer_id)

                history_stmt = (
                    select(ScoreHistory)
                    .where(ScoreHistory.farmer_id == farmer_id)
                    .order_by(ScoreHistory.timestamp.desc(), ScoreHistory.id.desc())
                    .limit(self.history_limit)
                )
                history = list((await session.scalars(history_stmt)).all())
        except SQLAlchemyError as exc:
            logger.exception("Score lookup failed for farmer %s", farmer_id)
            raise PersistenceError(f"score lookup failed for farmer {farmer_id}") from exc

        return ScoreSnapshot(
            farmer_id=farmer_id,
            current_score=record.current_score,
            lifetime_points=record.lifetime_points,
            last_updated=record.last_updated,
            history=history,
            rewards=unlocked_rewards(record.current_score, self.milestones),
            next_milestone=next_milestone(record.current_score, self.milestones),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _increment(
        session: AsyncSession,
        farmer_id: int,
        points: int,
    ) -> Row | None:
        """Add *points* to both counters in one statement.

        Returns:
            The row ``(current_score, lifetime_points)`` after the update, or
            ``None`` when the farmer has no score row.
        """
        stmt = (
            update(FarmingScore)
            .where(FarmingScore.farmer_id == farmer_id)
            .values(
                current_score=FarmingScore.current_score + points,
                lifetime_points=FarmingScore.lifetime_points + points,
                last_updated=dt.datetime.now(dt.timezone.utc),
            )
            .returning(FarmingScore.current_score, FarmingScore.lifetime_points)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.one_or_none()

    @staticmethod
    async def _create_score_row(session: AsyncSession, farmer_id: int) -> FarmingScore:
        farmer = await session.get(Farmer, farmer_id)
        if farmer is None:
            raise NotFoundError(f"farmer {farmer_id} does not exist")
        record = FarmingScore(farmer_id=farmer_id, current_score=0, lifetime_points=0)
        session.add(record)
        await session.flush()
        return record

    async def _ensure_score_row(self, session: AsyncSession, farmer_id: int) -> None:
        """Create the zero score row inside the award transaction.

        Runs in a SAVEPOINT: if a concurrent award inserted the row first, the
        primary key rejects this insert, only the savepoint is rolled back and
        the caller's retried increment lands on the existing row.
        """
        try:
            async with session.begin_nested():
                await self._create_score_row(session, farmer_id)
        except IntegrityError:
            logger.info("Score row for farmer %s created concurrently", farmer_id)

    async def _initialize(self, session: AsyncSession, farmer_id: int) -> FarmingScore:
        """Create and commit the zero score row outside any award.

        A concurrent request may create the row first; the primary key then
        rejects this insert and the existing row is read back instead.
        """
        try:
            record = await self._create_score_row(session, farmer_id)
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.info("Score row for farmer %s created concurrently", farmer_id)
            record = await session.get(FarmingScore, farmer_id)
            if record is None:
                raise PersistenceError(
                    f"score row for farmer {farmer_id} missing after conflict",
                ) from None
            return record

        logger.info("Initialised score row for farmer %s", farmer_id)
        return record
