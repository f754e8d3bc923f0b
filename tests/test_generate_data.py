import random

from faker import Faker

from data.generate_data import SEASONS, generate_dataset
from farmledger.engine.economics import build_dashboard
from farmledger.models.database import FarmExpense, FarmIncome
from farmledger.schemas.schemas import AwardRequest, ExpenseCreate, FarmerCreate, IncomeCreate


def test_generated_records_pass_request_validation():
    random.seed(3)
    Faker.seed(3)

    dataset = generate_dataset(farmers=5)

    assert len(dataset) == 5
    for record in dataset:
        FarmerCreate.model_validate(
            {k: v for k, v in record.items() if k not in {"expenses", "incomes", "actions"}}
        )
        expenses = [ExpenseCreate.model_validate(row) for row in record["expenses"]]
        incomes = [IncomeCreate.model_validate(row) for row in record["incomes"]]
        for action in record["actions"]:
            AwardRequest.model_validate(action)

        for row in [*expenses, *incomes]:
            start, end = SEASONS[row.season]
            assert start <= row.date <= end

        view = build_dashboard(
            [FarmExpense(**e.model_dump()) for e in expenses],
            [FarmIncome(**i.model_dump()) for i in incomes],
        )
        assert view.net_profit == view.total_revenue - view.total_expenses
