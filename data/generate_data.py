#!/usr/bin/env python3
"""Generate synthetic farmer data for the Farm Ledger demo.

Produces a set of farmers around Karnataka districts, each with a Kharif and
a Rabi season of expense and income ledger rows plus a stream of validated
farming actions to be scored.

Usage::

    python data/generate_data.py [--farmers 20] [--seed 42]

Output:
    data/farmers.json  -- list of farmer dictionaries with nested
                          ``expenses``, ``incomes`` and ``actions``.
"""

from __future__ import annotations

import json
import random
from datetime import date, timedelta
from pathlib import Path
from typing import Final

from faker import Faker

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

fake = Faker(["en_IN"])

DISTRICTS: Final[list[str]] = ["Mandya", "Kolar", "Mysore", "Hassan", "Tumkur", "Dharwad"]

LANGUAGES: Final[list[str]] = ["english", "kannada", "hindi"]
LANGUAGE_WEIGHTS: Final[list[float]] = [0.3, 0.6, 0.1]

# season label -> (first day, last day)
SEASONS: Final[dict[str, tuple[date, date]]] = {
    "Kharif 2024": (date(2024, 6, 1), date(2024, 10, 31)),
    "Rabi 2024": (date(2024, 11, 1), date(2025, 3, 31)),
}

SEASON_CROPS: Final[dict[str, list[str]]] = {
    "Kharif 2024": ["Rice", "Ragi", "Tomato", "Sugarcane", "Chilli"],
    "Rabi 2024": ["Wheat", "Onion", "Potato", "Tomato"],
}

# crop -> (min price per unit, max price per unit, unit)
CROP_PRICES: Final[dict[str, tuple[float, float, str]]] = {
    "Rice": (18.0, 28.0, "kg"),
    "Ragi": (25.0, 38.0, "kg"),
    "Tomato": (8.0, 35.0, "kg"),
    "Sugarcane": (2800.0, 3400.0, "tonne"),
    "Chilli": (90.0, 180.0, "kg"),
    "Wheat": (20.0, 27.0, "kg"),
    "Onion": (12.0, 40.0, "kg"),
    "Potato": (10.0, 22.0, "kg"),
}

# crop -> (min quantity, max quantity) sold in one sale
SALE_QUANTITIES: Final[dict[str, tuple[int, int]]] = {
    "Sugarcane": (5, 40),
}
DEFAULT_SALE_QUANTITY: Final[tuple[int, int]] = (100, 1500)

EXPENSE_CATEGORIES: Final[list[str]] = ["Seeds", "Fertilizer", "Labor", "Pesticide", "Irrigation", "Transport"]
EXPENSE_WEIGHTS: Final[list[float]] = [0.15, 0.25, 0.30, 0.10, 0.12, 0.08]

EXPENSE_RANGES: Final[dict[str, tuple[float, float]]] = {
    "Seeds": (500.0, 4000.0),
    "Fertilizer": (800.0, 6000.0),
    "Labor": (1000.0, 9000.0),
    "Pesticide": (300.0, 2500.0),
    "Irrigation": (400.0, 3500.0),
    "Transport": (200.0, 1500.0),
}

INCOME_SOURCES: Final[list[str]] = ["Market Sale", "Mandi Sale", "Contract Buyer"]
INCOME_WEIGHTS: Final[list[float]] = [0.5, 0.35, 0.15]

ACTIONS: Final[list[str]] = [
    "Morning watering",
    "Drip irrigation optimization",
    "Organic fertilizer application",
    "Sowing seeds",
    "Harvesting produce",
    "Pest_control spraying",
    "Soil_care mulching",
    "Proof_upload field photo",
    "Weeding",
]
ACTION_WEIGHTS: Final[list[float]] = [0.2, 0.1, 0.12, 0.1, 0.08, 0.1, 0.1, 0.15, 0.05]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _random_date(season: str, *, late: bool = False) -> date:
    """Return a random date inside *season*.

    Args:
        season: Season label from ``SEASONS``.
        late: Restrict to the last third of the season (harvest and sales).

    Returns:
        A date within the season window.
    """
    start, end = SEASONS[season]
    span = (end - start).days
    offset = random.randint(span * 2 // 3, span) if late else random.randint(0, span * 2 // 3)
    return start + timedelta(days=offset)


def _money(low: float, high: float) -> str:
    """Random amount rendered with two decimals so it loads as an exact Decimal."""
    return f"{random.uniform(low, high):.2f}"


def _confidence() -> int:
    """Validator confidence skewed towards confident validations."""
    return min(100, max(0, int(random.gauss(82, 12))))


# ---------------------------------------------------------------------------
# Record generators
# ---------------------------------------------------------------------------


def generate_farmer() -> dict[str, object]:
    """Build one farmer profile.

    Returns:
        A dictionary matching the ``FarmerCreate`` schema.
    """
    district = random.choice(DISTRICTS)
    return {
        "name": fake.name(),
        "email": fake.unique.email(),
        "phone_number": fake.numerify("9#########"),
        "place": f"{fake.city()}, {district}",
        "preferred_language": random.choices(LANGUAGES, weights=LANGUAGE_WEIGHTS, k=1)[0],
        "data_sharing_consent": random.random() < 0.6,
    }


def generate_expenses(crop: str, season: str) -> list[dict[str, object]]:
    """Expenses for growing *crop* during *season* (3-8 rows)."""
    expenses: list[dict[str, object]] = []
    for _ in range(random.randint(3, 8)):
        category = random.choices(EXPENSE_CATEGORIES, weights=EXPENSE_WEIGHTS, k=1)[0]
        low, high = EXPENSE_RANGES[category]
        expenses.append(
            {
                "date": _random_date(season).isoformat(),
                "category": category,
                "amount": _money(low, high),
                "crop": crop,
                "season": season,
                "notes": fake.sentence(nb_words=5) if random.random() < 0.3 else None,
            }
        )
    return expenses


def generate_incomes(crop: str, season: str) -> list[dict[str, object]]:
    """Sales of *crop* late in *season* (0-3 rows; some crops fail to sell)."""
    incomes: list[dict[str, object]] = []
    price_low, price_high, unit = CROP_PRICES[crop]
    qty_low, qty_high = SALE_QUANTITIES.get(crop, DEFAULT_SALE_QUANTITY)

    for _ in range(random.choices([0, 1, 2, 3], weights=[0.1, 0.4, 0.35, 0.15], k=1)[0]):
        quantity = random.randint(qty_low, qty_high)
        price = random.uniform(price_low, price_high)
        incomes.append(
            {
                "date": _random_date(season, late=True).isoformat(),
                "source": random.choices(INCOME_SOURCES, weights=INCOME_WEIGHTS, k=1)[0],
                "amount": f"{quantity * price:.2f}",
                "quantity": str(quantity),
                "unit": unit,
                "crop": crop,
                "season": season,
                "notes": None,
            }
        )
    return incomes


def generate_actions(count: int) -> list[dict[str, object]]:
    """Validated farming actions to be scored, in submission order."""
    return [
        {
            "action_label": random.choices(ACTIONS, weights=ACTION_WEIGHTS, k=1)[0],
            "confidence": _confidence(),
        }
        for _ in range(count)
    ]


# ---------------------------------------------------------------------------
# Dataset assembly
# ---------------------------------------------------------------------------


def generate_dataset(farmers: int = 20) -> list[dict[str, object]]:
    """Assemble the full synthetic dataset.

    Each farmer grows one or two crops per season.  Expenses and incomes are
    sorted by date inside each farmer record.

    Args:
        farmers: Number of farmers to produce.

    Returns:
        A list of *farmers* farmer dicts with nested ledgers and actions.
    """
    dataset: list[dict[str, object]] = []

    for _ in range(farmers):
        record = generate_farmer()
        expenses: list[dict[str, object]] = []
        incomes: list[dict[str, object]] = []

        for season, crops in SEASON_CROPS.items():
            for crop in random.sample(crops, k=random.randint(1, 2)):
                expenses.extend(generate_expenses(crop, season))
                incomes.extend(generate_incomes(crop, season))

        expenses.sort(key=lambda row: str(row["date"]))
        incomes.sort(key=lambda row: str(row["date"]))
        record["expenses"] = expenses
        record["incomes"] = incomes
        record["actions"] = generate_actions(random.randint(5, 40))
        dataset.append(record)

    return dataset


def _print_summary(dataset: list[dict[str, object]]) -> None:
    """Print a summary of the generated dataset to stdout.

    Args:
        dataset: The full list of generated farmers.
    """
    expense_count = sum(len(f["expenses"]) for f in dataset)
    income_count = sum(len(f["incomes"]) for f in dataset)
    action_count = sum(len(f["actions"]) for f in dataset)
    consenting = sum(1 for f in dataset if f["data_sharing_consent"])

    crops: dict[str, int] = {}
    for farmer in dataset:
        for row in farmer["expenses"]:
            crops[str(row["crop"])] = crops.get(str(row["crop"]), 0) + 1

    print(f"\n{'=' * 60}")
    print("  Farm Ledger Demo Dataset Summary")
    print(f"{'=' * 60}")
    print(f"  Farmers:                 {len(dataset)} ({consenting} consenting)")
    print(f"  Expense rows:            {expense_count}")
    print(f"  Income rows:             {income_count}")
    print(f"  Farming actions:         {action_count}")
    print()
    print("  --- Expense rows per crop ---")
    for crop, count in sorted(crops.items()):
        print(f"    {crop:<20s} {count:>4d}")
    print(f"{'=' * 60}\n")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Generate synthetic Farm Ledger demo data")
    parser.add_argument(
        "--farmers", type=int, default=20,
        help="Number of farmers to generate (default: 20)",
    )
    parser.add_argument(
        "--seed", type=int, default=42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--output", type=str, default=None,
        help="Output file path (default: data/farmers.json)",
    )
    args = parser.parse_args()

    random.seed(args.seed)
    Faker.seed(args.seed)

    print(f"Generating {args.farmers} farmers (seed={args.seed})...")
    dataset = generate_dataset(farmers=args.farmers)

    script_dir = Path(__file__).resolve().parent
    output_path = Path(args.output) if args.output else script_dir / "farmers.json"

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(dataset, f, indent=2, default=str)

    print(f"Generated {len(dataset)} farmers -> {output_path}")
    _print_summary(dataset)
