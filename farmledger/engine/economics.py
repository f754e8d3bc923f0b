"""Farm economics dashboard aggregation.

``build_dashboard`` is a pure, read-only projection of one farmer's expense
and income rows into:

    1. Totals            -- revenue, expenses and net profit.
    2. Cashflow          -- income/expense per calendar month, oldest first.
    3. Crop performance  -- cost, revenue, break-even and margin per crop.
    4. Category totals   -- expense amount per category, first-seen order.
    5. Recent activity   -- newest expenses and incomes, tagged by kind.

All money is summed as ``Decimal`` and never rounded here; rounding is a
presentation concern.  ``load_dashboard`` fetches the (optionally
season-filtered) rows and runs the projection.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from farmledger.config import settings
from farmledger.engine.scoring_rules import DEFAULT_SELL_WINDOWS, FALLBACK_SELL_WINDOW
from farmledger.errors import PersistenceError, ValidationError
from farmledger.models.database import FarmExpense, FarmIncome

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
DEFAULT_UNIT = "kg"


@dataclass(frozen=True, slots=True)
class CashflowBucket:
    """Money in and out for one calendar month.

    Attributes:
        period: ``"YYYY-MM"`` key of the bucket.
        month: Short month name used as the chart label (``"May"``).
        income: Sum of income amounts dated in the month.
        expense: Sum of expense amounts dated in the month.
    """

    period: str
    month: str
    income: Decimal
    expense: Decimal


@dataclass(frozen=True, slots=True)
class CropPerformance:
    """Per-crop profitability.

    ``break_even_price`` and ``avg_sell_price`` are 0 when nothing was sold;
    ``profit_margin`` is a percentage and 0 when there is no revenue.
    """

    crop: str
    total_cost: Decimal
    total_revenue: Decimal
    sold_quantity: Decimal
    unit: str
    break_even_price: Decimal
    avg_sell_price: Decimal
    profit_margin: Decimal
    best_sell_month: str


@dataclass(frozen=True, slots=True)
class CategoryTotal:
    category: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class LedgerTransaction:
    """An expense or income row tagged with its kind for the activity feed."""

    transaction_type: str
    id: int | None
    date: dt.date
    amount: Decimal
    crop: str
    season: str
    notes: str | None = None
    category: str | None = None
    source: str | None = None
    quantity: Decimal | None = None
    unit: str | None = None


@dataclass(frozen=True, slots=True)
class EconomicsView:
    """The full dashboard for one farmer (and optionally one season)."""

    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    cashflow: list[CashflowBucket] = field(default_factory=list)
    crop_performance: list[CropPerformance] = field(default_factory=list)
    expenses_by_category: list[CategoryTotal] = field(default_factory=list)
    recent_transactions: list[LedgerTransaction] = field(default_factory=list)


@dataclass(slots=True)
class _CropTally:
    cost: Decimal = ZERO
    revenue: Decimal = ZERO
    quantity: Decimal = ZERO
    unit: str = DEFAULT_UNIT


# ---------------------------------------------------------------------------
# Row validation
# ---------------------------------------------------------------------------


def _to_decimal(value: Any, name: str, row: Any) -> Decimal:
    if value is None:
        raise ValidationError(f"{type(row).__name__} {getattr(row, 'id', None)} has no {name}")
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if amount < 0:
        raise ValidationError(f"{type(row).__name__} {getattr(row, 'id', None)} has negative {name}")
    return amount


def _amount(row: FarmExpense | FarmIncome) -> Decimal:
    return _to_decimal(row.amount, "amount", row)


def _quantity(row: FarmIncome) -> Decimal:
    if row.quantity is None:
        return ZERO
    return _to_decimal(row.quantity, "quantity", row)


def _date(row: FarmExpense | FarmIncome) -> dt.date:
    if row.date is None:
        raise ValidationError(f"{type(row).__name__} {getattr(row, 'id', None)} has no date")
    return row.date


# ---------------------------------------------------------------------------
# Projection steps
# ---------------------------------------------------------------------------


def _compute_cashflow(
    expenses: Sequence[FarmExpense],
    incomes: Sequence[FarmIncome],
) -> list[CashflowBucket]:
    """Bucket both ledgers by calendar month, sorted by (year, month)."""
    buckets: dict[tuple[int, int], dict[str, Decimal]] = {}

    for kind, rows in (("expense", expenses), ("income", incomes)):
        for row in rows:
            day = _date(row)
            totals = buckets.setdefault((day.year, day.month), {"income": ZERO, "expense": ZERO})
            totals[kind] += _amount(row)

    return [
        CashflowBucket(
            period=f"{year:04d}-{month:02d}",
            month=dt.date(year, month, 1).strftime("%b"),
            income=totals["income"],
            expense=totals["expense"],
        )
        for (year, month), totals in sorted(buckets.items())
    ]


def _compute_crop_performance(
    expenses: Sequence[FarmExpense],
    incomes: Sequence[FarmIncome],
    sell_windows: Mapping[str, str],
) -> list[CropPerformance]:
    """Group both ledgers by exact crop name and derive break-even figures.

    Crops appear in first-seen order, expenses scanned before incomes.  The
    unit is the last non-empty income unit seen for the crop.
    """
    tallies: dict[str, _CropTally] = {}

    for expense in expenses:
        tallies.setdefault(expense.crop, _CropTally()).cost += _amount(expense)

    for income in incomes:
        tally = tallies.setdefault(income.crop, _CropTally())
        tally.revenue += _amount(income)
        tally.quantity += _quantity(income)
        if income.unit:
            tally.unit = income.unit

    performance: list[CropPerformance] = []
    for crop, tally in tallies.items():
        sold = tally.quantity
        performance.append(
            CropPerformance(
                crop=crop,
                total_cost=tally.cost,
                total_revenue=tally.revenue,
                sold_quantity=sold,
                unit=tally.unit,
                break_even_price=tally.cost / sold if sold > 0 else ZERO,
                avg_sell_price=tally.revenue / sold if sold > 0 else ZERO,
                profit_margin=(
                    (tally.revenue - tally.cost) / tally.revenue * HUNDRED
                    if tally.revenue > 0
                    else ZERO
                ),
                best_sell_month=sell_windows.get(crop, FALLBACK_SELL_WINDOW),
            )
        )
    return performance


def _compute_category_totals(expenses: Sequence[FarmExpense]) -> list[CategoryTotal]:
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, ZERO) + _amount(expense)
    return [CategoryTotal(category=cat, amount=amount) for cat, amount in totals.items()]


def _recent_transactions(
    expenses: Sequence[FarmExpense],
    incomes: Sequence[FarmIncome],
    limit: int,
) -> list[LedgerTransaction]:
    """Tag, merge and return the *limit* newest rows (stable on equal dates)."""
    tagged = [
        LedgerTransaction(
            transaction_type="expense",
            id=e.id,
            date=_date(e),
            amount=_amount(e),
            crop=e.crop,
            season=e.season,
            notes=e.notes,
            category=e.category,
        )
        for e in expenses
    ]
    tagged.extend(
        LedgerTransaction(
            transaction_type="income",
            id=i.id,
            date=_date(i),
            amount=_amount(i),
            crop=i.crop,
            season=i.season,
            notes=i.notes,
            source=i.source,
            quantity=_quantity(i),
            unit=i.unit or DEFAULT_UNIT,
        )
        for i in incomes
    )
    tagged.sort(key=lambda tx: tx.date, reverse=True)
    return tagged[:limit]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_dashboard(
    expenses: Sequence[FarmExpense],
    incomes: Sequence[FarmIncome],
    *,
    sell_windows: Mapping[str, str] = DEFAULT_SELL_WINDOWS,
    recent_limit: int = settings.RECENT_TRANSACTIONS_LIMIT,
) -> EconomicsView:
    """Project expense and income rows into the economics dashboard.

    Args:
        expenses: Expense rows, already filtered to the farmer (and season).
        incomes: Income rows, already filtered the same way.
        sell_windows: Crop -> best selling window lookup table.
        recent_limit: Maximum rows in ``recent_transactions``.

    Returns:
        An ``EconomicsView``; every figure is 0 and every list empty when
        both inputs are empty.

    Raises:
        ValidationError: If a row lacks a date or amount, or carries a
            negative amount or quantity.
    """
    total_expenses = sum((_amount(e) for e in expenses), ZERO)
    total_revenue = sum((_amount(i) for i in incomes), ZERO)

    view = EconomicsView(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_profit=total_revenue - total_expenses,
        cashflow=_compute_cashflow(expenses, incomes),
        crop_performance=_compute_crop_performance(expenses, incomes, sell_windows),
        expenses_by_category=_compute_category_totals(expenses),
        recent_transactions=_recent_transactions(expenses, incomes, recent_limit),
    )
    logger.debug(
        "Dashboard built from %d expense(s) and %d income(s): net %s",
        len(expenses),
        len(incomes),
        view.net_profit,
    )
    return view


async def load_dashboard(
    session: AsyncSession,
    farmer_id: int,
    season: str | None = None,
    *,
    sell_windows: Mapping[str, str] = DEFAULT_SELL_WINDOWS,
    recent_limit: int = settings.RECENT_TRANSACTIONS_LIMIT,
) -> EconomicsView:
    """Fetch a farmer's ledgers (exact ``season`` match when given) and aggregate.

    Raises:
        PersistenceError: If the rows could not be read.
    """
    expense_stmt = select(FarmExpense).where(FarmExpense.farmer_id == farmer_id)
    income_stmt = select(FarmIncome).where(FarmIncome.farmer_id == farmer_id)
    if season:
        expense_stmt = expense_stmt.where(FarmExpense.season == season)
        income_stmt = income_stmt.where(FarmIncome.season == season)

    try:
        expenses = list((await session.scalars(expense_stmt.order_by(FarmExpense.id))).all())
        incomes = list((await session.scalars(income_stmt.order_by(FarmIncome.id))).all())
    except SQLAlchemyError as exc:
        logger.exception("Dashboard query failed for farmer %s", farmer_id)
        raise PersistenceError(f"dashboard query failed for farmer {farmer_id}") from exc

    return build_dashboard(
        expenses, incomes, sell_windows=sell_windows, recent_limit=recent_limit,
    )
