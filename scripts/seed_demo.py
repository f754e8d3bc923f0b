#!/usr/bin/env python3
"""Farm Ledger demo database seeder.

CLI entry point that initialises the database, loads the scheme catalogue,
then inserts farmers and their expense/income ledgers and scores their
farming actions through the same ``ScoreLedger`` the API uses.

Usage::

    python scripts/seed_demo.py [--data-file data/farmers.json]
    python scripts/seed_demo.py --generate 20 --seed 7
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import random
import sys
import time
from datetime import date
from decimal import Decimal

# ---------------------------------------------------------------------------
# Ensure the project root is on ``sys.path`` so that ``farmledger.*`` and
# ``data.*`` imports work when this script is invoked directly.
# ---------------------------------------------------------------------------
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from faker import Faker  # noqa: E402

from data.generate_data import generate_dataset  # noqa: E402
from farmledger.config import settings  # noqa: E402
from farmledger.engine.score_ledger import ScoreLedger  # noqa: E402
from farmledger.models.database import (  # noqa: E402
    FarmExpense,
    Farmer,
    FarmIncome,
    FarmingScore,
    async_session,
    create_tables,
    seed_schemes,
)

logger = logging.getLogger("seed_demo")


def _configure_logging() -> None:
    """Set up root logger with a clean console format."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def load_farmer(record: dict, ledger: ScoreLedger) -> tuple[int, int]:
    """Insert one farmer with ledgers, then score the farmer's actions.

    Args:
        record: A farmer dict as produced by ``data/generate_data.py``.
        ledger: Ledger used to award the action points.

    Returns:
        ``(farmer_id, final_score)``.
    """
    async with async_session() as session:
        farmer = Farmer(
            name=record["name"],
            email=record.get("email"),
            phone_number=record.get("phone_number"),
            place=record.get("place"),
            preferred_language=record.get("preferred_language", "english"),
            data_sharing_consent=bool(record.get("data_sharing_consent")),
        )
        session.add(farmer)
        await session.flush()
        session.add(FarmingScore(farmer_id=farmer.id, current_score=0, lifetime_points=0))

        for row in record.get("expenses", []):
            session.add(
                FarmExpense(
                    farmer_id=farmer.id,
                    date=date.fromisoformat(row["date"]),
                    category=row["category"],
                    amount=Decimal(row["amount"]),
                    crop=row["crop"],
                    season=row["season"],
                    notes=row.get("notes"),
                )
            )
        for row in record.get("incomes", []):
            session.add(
                FarmIncome(
                    farmer_id=farmer.id,
                    date=date.fromisoformat(row["date"]),
                    source=row["source"],
                    amount=Decimal(row["amount"]),
                    quantity=Decimal(row.get("quantity") or "0"),
                    unit=row.get("unit") or "kg",
                    crop=row["crop"],
                    season=row["season"],
                    notes=row.get("notes"),
                )
            )
        await session.commit()
        farmer_id = farmer.id

    score = 0
    for action in record.get("actions", []):
        result = await ledger.award_points(farmer_id, action["action_label"], action["confidence"])
        score = result.new_score
    return farmer_id, score


async def main() -> None:
    """Parse arguments, initialise the database, and load the demo data."""
    _configure_logging()

    parser = argparse.ArgumentParser(
        description="Seed the Farm Ledger database with demo farmers",
    )
    parser.add_argument(
        "--data-file",
        default="data/farmers.json",
        help="Path to the farmers JSON file (default: data/farmers.json)",
    )
    parser.add_argument(
        "--generate",
        type=int,
        default=None,
        metavar="N",
        help="Generate N farmers in memory instead of reading --data-file",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed used with --generate (default: 42)",
    )
    args = parser.parse_args()

    print("=== Farm Ledger Demo Seeder ===")
    print("Initializing database...")
    await create_tables()
    await seed_schemes()

    if args.generate is not None:
        random.seed(args.seed)
        Faker.seed(args.seed)
        print(f"Generating {args.generate} farmers (seed={args.seed})...")
        dataset = generate_dataset(farmers=args.generate)
    else:
        print(f"Loading farmers from {args.data_file}...")
        with open(args.data_file, encoding="utf-8") as f:
            dataset = json.load(f)

    ledger = ScoreLedger(async_session)
    started = time.perf_counter()
    scores: list[int] = []
    for record in dataset:
        farmer_id, score = await load_farmer(record, ledger)
        logger.info("Loaded farmer %s (%s) with score %d", farmer_id, record["name"], score)
        scores.append(score)
    elapsed = time.perf_counter() - started

    print("\n=== Seed Summary ===")
    print(f"Farmers Loaded:     {len(scores)}")
    if scores:
        print(f"Average Score:      {sum(scores) / len(scores):.1f}")
        print(f"Highest Score:      {max(scores)}")
    print(f"Processing Time:    {elapsed:.2f}s")
    print(f"\nDatabase: {settings.DATABASE_URL}")
    print("Run 'uvicorn farmledger.api.main:app --reload' to start the API")


if __name__ == "__main__":
    asyncio.run(main())
