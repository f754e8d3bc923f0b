"""Expense/income recording and economics dashboard endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from farmledger.api.auth import require_farmer
from farmledger.engine.economics import load_dashboard
from farmledger.errors import PersistenceError
from farmledger.models.database import Farmer, FarmExpense, FarmIncome, get_db
from farmledger.schemas.schemas import (
    ERROR_RESPONSES,
    DashboardResponse,
    ExpenseCreate,
    ExpenseResponse,
    IncomeCreate,
    IncomeResponse,
)

logger = logging.getLogger(__name__)

economics_router = APIRouter(
    prefix="/api/v1/economics",
    tags=["economics"],
    responses=ERROR_RESPONSES,
)


async def _store(db: AsyncSession, row: FarmExpense | FarmIncome) -> None:
    """Commit one ledger row and reload its server-side columns."""
    try:
        db.add(row)
        await db.commit()
        await db.refresh(row)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to store %s for farmer %s", type(row).__name__, row.farmer_id)
        raise PersistenceError(f"could not store {type(row).__name__}") from exc


@economics_router.post("/expense", response_model=ExpenseResponse)
async def add_expense(
    body: ExpenseCreate,
    farmer: Farmer = Depends(require_farmer),
    db: AsyncSession = Depends(get_db),
) -> ExpenseResponse:
    """Record an expense for the authenticated farmer.

    Args:
        body: Validated expense fields.
        farmer: Authenticated farmer.
        db: Async database session dependency.

    Returns:
        The stored expense row.
    """
    expense = FarmExpense(farmer_id=farmer.id, **body.model_dump())
    await _store(db, expense)
    logger.info(
        "Expense %s recorded for farmer %s: %s %s on %s",
        expense.id, farmer.id, expense.category, expense.amount, expense.crop,
    )
    return ExpenseResponse.model_validate(expense)


@economics_router.post("/income", response_model=IncomeResponse)
async def add_income(
    body: IncomeCreate,
    farmer: Farmer = Depends(require_farmer),
    db: AsyncSession = Depends(get_db),
) -> IncomeResponse:
    """Record an income for the authenticated farmer.

    Args:
        body: Validated income fields; ``quantity`` defaults to 0 and
            ``unit`` to ``kg``.
        farmer: Authenticated farmer.
        db: Async database session dependency.

    Returns:
        The stored income row.
    """
    income = FarmIncome(farmer_id=farmer.id, **body.model_dump())
    await _store(db, income)
    logger.info(
        "Income %s recorded for farmer %s: %s %s on %s",
        income.id, farmer.id, income.source, income.amount, income.crop,
    )
    return IncomeResponse.model_validate(income)


@economics_router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    season: str | None = Query(default=None, description="Exact season label filter"),
    farmer: Farmer = Depends(require_farmer),
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    """Compute totals, cashflow, crop performance, categories and recent activity.

    Args:
        season: Optional season label, e.g. ``"Kharif 2024"``.
        farmer: Authenticated farmer.
        db: Async database session dependency.

    Returns:
        The economics dashboard.
    """
    view = await load_dashboard(db, farmer.id, season)
    return DashboardResponse.model_validate(view)


@economics_router.get("/summary", response_model=DashboardResponse)
async def get_summary(
    season: str | None = Query(default=None, description="Exact season label filter"),
    farmer: Farmer = Depends(require_farmer),
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    """Alias of ``/dashboard`` kept for older clients."""
    return await get_dashboard(season=season, farmer=farmer, db=db)
