"""Shared fixtures: a throwaway SQLite database per test and an API client."""

from __future__ import annotations

from collections.abc import AsyncIterator
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from farmledger.api.main import app
from farmledger.api.routes.score import get_score_ledger
from farmledger.engine.score_ledger import ScoreLedger
from farmledger.models.database import (
    FarmExpense,
    Farmer,
    FarmIncome,
    FarmingScore,
    build_engine,
    build_session_factory,
    create_tables,
    get_db,
    seed_schemes,
)


@pytest.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'farmledger-test.db'}")
    await create_tables(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def ledger(session_factory: async_sessionmaker[AsyncSession]) -> ScoreLedger:
    return ScoreLedger(session_factory)


@pytest.fixture
def make_farmer(session_factory: async_sessionmaker[AsyncSession]):
    """Insert a farmer, optionally with a score row, and return its id."""

    async def _make(
        name: str = "Ravi Kumar",
        *,
        place: str | None = "Mandya",
        consent: bool = False,
        score: int | None = None,
    ) -> int:
        async with session_factory() as session:
            farmer = Farmer(name=name, place=place, data_sharing_consent=consent)
            session.add(farmer)
            await session.flush()
            if score is not None:
                session.add(
                    FarmingScore(farmer_id=farmer.id, current_score=score, lifetime_points=score)
                )
            await session.commit()
            return farmer.id

    return _make


@pytest.fixture
def add_ledger_rows(session_factory: async_sessionmaker[AsyncSession]):
    """Insert expense/income rows directly, bypassing the API."""

    async def _add(farmer_id: int, *, expenses=(), incomes=()) -> None:
        async with session_factory() as session:
            for date, category, amount, crop, season in expenses:
                session.add(
                    FarmExpense(
                        farmer_id=farmer_id,
                        date=date,
                        category=category,
                        amount=Decimal(amount),
                        crop=crop,
                        season=season,
                    )
                )
            for date, source, amount, quantity, crop, season in incomes:
                session.add(
                    FarmIncome(
                        farmer_id=farmer_id,
                        date=date,
                        source=source,
                        amount=Decimal(amount),
                        quantity=Decimal(quantity),
                        unit="kg",
                        crop=crop,
                        season=season,
                    )
                )
            await session.commit()

    return _add


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncClient]:
    await seed_schemes(session_factory)

    async def _get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_score_ledger] = lambda: ScoreLedger(session_factory)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

