"""SQLAlchemy 2.0 async database layer.

This module provides:

- ``Base``              — declarative base class shared by all ORM models.
- ``Farmer``            — ORM model for the owning farmer identity.
- ``FarmingScore``      — one running score row per farmer.
- ``ScoreHistory``      — append-only log of every points award.
- ``FarmExpense``       — append-only expense ledger rows.
- ``FarmIncome``        — append-only income ledger rows.
- ``Scheme``            — government scheme catalogue with JSON eligibility criteria.
- ``SchemeApplication`` — a farmer's application to a scheme.
- ``build_engine``      — create an ``AsyncEngine`` (WAL mode on SQLite).
- ``engine``            — shared ``AsyncEngine`` instance.
- ``async_session``     — ``async_sessionmaker`` factory bound to ``engine``.
- ``get_db``            — async generator for use with FastAPI ``Depends``.
- ``create_tables``     — coroutine that issues ``CREATE TABLE IF NOT EXISTS`` for all models.
- ``seed_schemes``      — coroutine that loads the default scheme catalogue once.

SQLite is configured to run in WAL (Write-Ahead Logging) mode so that dashboard
reads are never blocked by an in-flight score award.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import AsyncGenerator
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
    func,
    select,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from farmledger.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Engine & session factory
# ---------------------------------------------------------------------------


def _set_sqlite_wal(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ANN401
    """Enable WAL mode immediately after each new SQLite connection is created.

    WAL mode allows concurrent readers alongside a single writer, so the
    economics dashboard can read while a score award is committing.

    Args:
        dbapi_connection: The raw DBAPI connection handed to the listener by
            SQLAlchemy's ``connect`` event.
        connection_record: Internal SQLAlchemy connection pool record
            (not used here but required by the event signature).
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine for *database_url*.

    The WAL listener is registered only when the backend is SQLite.

    Args:
        database_url: SQLAlchemy async connection string.

    Returns:
        A configured ``AsyncEngine``.
    """
    new_engine = create_async_engine(database_url, echo=False, future=True)
    if "sqlite" in database_url:
        event.listen(new_engine.sync_engine, "connect", _set_sqlite_wal)
    return new_engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory with the project's session defaults."""
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


engine: AsyncEngine = build_engine(settings.DATABASE_URL)

async_session: async_sessionmaker[AsyncSession] = build_session_factory(engine)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models.

    All subclasses inherit from this base so that ``create_tables`` can
    iterate ``Base.metadata`` to issue ``CREATE TABLE`` statements.
    """


# ---------------------------------------------------------------------------
# ORM Models
# ---------------------------------------------------------------------------


class Farmer(Base):
    """ORM model for the ``farmers`` table.

    The farmer is the single identity that owns score, history, expense,
    income and scheme application rows.  Authentication happens outside this
    service; only the integer ``id`` crosses that boundary.
    """

    __tablename__ = "farmers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    place: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Village or district name, matched against scheme location criteria.",
    )
    preferred_language: Mapped[str] = mapped_column(
        String(50), nullable=False, default="english",
    )
    data_sharing_consent: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Must be True before the farmer can apply to a partner scheme.",
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(),
    )


class FarmingScore(Base):
    """ORM model for the ``farming_scores`` table (one row per farmer).

    ``current_score`` and ``lifetime_points`` both grow by the same delta on
    every award.  Neither is ever decremented.
    """

    __tablename__ = "farming_scores"

    farmer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("farmers.id"), primary_key=True,
    )
    current_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lifetime_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )


class ScoreHistory(Base):
    """ORM model for the append-only ``score_history`` table.

    Exactly one row is written per award, inside the same transaction that
    increments ``farming_scores``.
    """

    __tablename__ = "score_history"

    __table_args__ = (
        Index("ix_score_history_farmer_timestamp", "farmer_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    farmer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("farmers.id"), nullable=False,
    )
    action_type: Mapped[str] = mapped_column(String(100), nullable=False)
    points_awarded: Mapped[int] = mapped_column(Integer, nullable=False)
    validation_confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )


class FarmExpense(Base):
    """ORM model for the ``farm_expenses`` ledger.

    ``category`` is a free label such as ``Fertilizer``, ``Labor`` or ``Seeds``.
    """

    __tablename__ = "farm_expenses"

    __table_args__ = (
        Index("ix_farm_expenses_farmer_season", "farmer_id", "season"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    farmer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("farmers.id"), nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    crop: Mapped[str] = mapped_column(String(50), nullable=False)
    season: Mapped[str] = mapped_column(String(50), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )


class FarmIncome(Base):
    """ORM model for the ``farm_incomes`` ledger.

    ``source`` describes where the money came from (``Market Sale``,
    ``Subsidy``, ...).  ``quantity``/``unit`` describe the produce sold and
    feed the break-even calculation.
    """

    __tablename__ = "farm_incomes"

    __table_args__ = (
        Index("ix_farm_incomes_farmer_season", "farmer_id", "season"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    farmer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("farmers.id"), nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0"),
    )
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="kg")
    crop: Mapped[str] = mapped_column(String(50), nullable=False)
    season: Mapped[str] = mapped_column(String(50), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )


class Scheme(Base):
    """ORM model for the ``schemes`` catalogue.

    ``criteria`` is a JSON object with any of ``minScore``, ``location``
    (list of district names), ``crops`` (list of crop names) and
    ``maxAcreage``.
    """

    __tablename__ = "schemes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(
        String(50), nullable=False, doc="Subsidy, Loan or Insurance.",
    )
    provider: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    benefits: Mapped[str | None] = mapped_column(Text, nullable=True)
    criteria: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    deadline: Mapped[dt.date | None] = mapped_column(Date, nullable=True)


class SchemeApplication(Base):
    """ORM model for the ``scheme_applications`` table."""

    __tablename__ = "scheme_applications"

    __table_args__ = (
        UniqueConstraint("farmer_id", "scheme_id", name="uq_scheme_applications_farmer_scheme"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    farmer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("farmers.id"), nullable=False,
    )
    scheme_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("schemes.id"), nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="applied",
        doc="applied, approved or rejected.",
    )
    applied_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

DEFAULT_SCHEMES: tuple[dict[str, Any], ...] = (
    {
        "name": "PM-KISAN Samman Nidhi",
        "type": "Subsidy",
        "provider": "Govt of India",
        "description": "Income support for small landholding farmers.",
        "benefits": "₹6,000 per year",
        "criteria": {"minScore": 0, "maxAcreage": 5},
        "link": "https://pmkisan.gov.in",
        "deadline": dt.date(2025, 12, 31),
    },
    {
        "name": "Drip Irrigation Subsidy",
        "type": "Subsidy",
        "provider": "Karnataka Dept of Agriculture",
        "description": "Subsidies for installing drip irrigation systems.",
        "benefits": "90% subsidy on equipment",
        "criteria": {
            "minScore": 40,
            "location": ["Mandya", "Kolar", "Mysore"],
            "crops": ["Sugarcane", "Tomato", "Banana"],
        },
        "link": "https://raitamitra.karnataka.gov.in",
        "deadline": dt.date(2024, 10, 30),
    },
    {
        "name": "Agri Gold Loan",
        "type": "Loan",
        "provider": "SBI",
        "description": "Low interest loans for crop production against gold.",
        "benefits": "Interest rate 7%, Quick Disbursement",
        "criteria": {"minScore": 80},
        "link": "https://sbi.co.in",
        "deadline": dt.date(2025, 3, 31),
    },
    {
        "name": "Pradhan Mantri Fasal Bima Yojana",
        "type": "Insurance",
        "provider": "AIC of India",
        "description": "Crop insurance against non-preventable natural risks.",
        "benefits": "Full crop value coverage",
        "criteria": {"minScore": 20, "crops": ["Paddy", "Ragi", "Groundnut"]},
        "link": "https://pmfby.gov.in",
        "deadline": dt.date(2024, 8, 15),
    },
)


# ---------------------------------------------------------------------------
# Database lifecycle helpers
# ---------------------------------------------------------------------------


async def create_tables(bind: AsyncEngine | None = None) -> None:
    """Create all ORM-mapped tables if they do not already exist.

    Uses ``Base.metadata.create_all`` via the async engine's ``run_sync``
    helper.  Safe to call on every application startup because it is a
    no-op when tables already exist.

    Args:
        bind: Engine to create the tables on.  Defaults to the shared
            module-level ``engine``.

    Example::

        from farmledger.models.database import create_tables
        import asyncio
        asyncio.run(create_tables())
    """
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_schemes(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> int:
    """Insert ``DEFAULT_SCHEMES`` when the ``schemes`` table is empty.

    Args:
        session_factory: Factory used to open the seeding session.  Defaults
            to the shared ``async_session``.

    Returns:
        Number of schemes inserted (0 when the catalogue already existed).
    """
    factory = session_factory or async_session
    async with factory() as session:
        existing = await session.scalar(select(func.count()).select_from(Scheme))
        if existing:
            return 0
        session.add_all(Scheme(**scheme) for scheme in DEFAULT_SCHEMES)
        await session.commit()
    logger.info("Seeded %d government schemes", len(DEFAULT_SCHEMES))
    return len(DEFAULT_SCHEMES)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Async generator that yields a database session for each request.

    Designed for use with FastAPI's ``Depends`` dependency injection system.
    The session is automatically closed (and any pending transaction rolled
    back) when the request context exits, whether normally or via an exception.

    Yields:
        AsyncSession: A live SQLAlchemy async session bound to ``engine``.
    """
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
