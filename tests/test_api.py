"""End-to-end API tests through the ASGI app with a temporary database."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession


async def register(client, **overrides) -> int:
    body = {"name": "Lakshmi", "place": "Mandya", **overrides}
    response = await client.post("/api/v1/farmers", json=body)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def as_farmer(farmer_id: int) -> dict[str, str]:
    return {"X-Farmer-Id": str(farmer_id)}


# ---------------------------------------------------------------------------
# Identity and farmers
# ---------------------------------------------------------------------------


async def test_register_and_read_profile(client):
    farmer_id = await register(client, email="lakshmi@example.com", preferredLanguage="kannada")

    response = await client.get("/api/v1/farmers/me", headers=as_farmer(farmer_id))

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Lakshmi"
    assert body["preferredLanguage"] == "kannada"
    assert body["dataSharingConsent"] is False


async def test_duplicate_email_conflicts(client):
    await register(client, email="dup@example.com")
    response = await client.post("/api/v1/farmers", json={"name": "Other", "email": "dup@example.com"})
    assert response.status_code == 409
    assert response.json() == {"error": "Farmer data conflicts with an existing record"}


@pytest.mark.parametrize("headers", [{}, {"X-Farmer-Id": "abc"}, {"X-Farmer-Id": "0"}])
async def test_missing_or_bad_identity_is_unauthorised(client, headers):
    response = await client.get("/api/v1/score/me", headers=headers)
    assert response.status_code == 401
    assert "error" in response.json()


async def test_unknown_farmer_is_not_found(client):
    profile = await client.get("/api/v1/farmers/me", headers=as_farmer(404))
    assert profile.status_code == 404
    assert profile.json() == {"error": "Farmer not found"}

    award = await client.post(
        "/api/v1/score/award",
        json={"actionLabel": "watering", "confidence": 80},
        headers=as_farmer(404),
    )
    assert award.status_code == 404


async def test_update_profile(client):
    farmer_id = await register(client)

    response = await client.patch(
        "/api/v1/farmers/me",
        json={"place": "Kolar", "data_sharing_consent": True},
        headers=as_farmer(farmer_id),
    )

    assert response.status_code == 200
    assert response.json()["place"] == "Kolar"
    assert response.json()["dataSharingConsent"] is True


@pytest.mark.parametrize("field", ["name", "preferredLanguage", "dataSharingConsent"])
async def test_update_profile_rejects_null_for_required_fields(client, field):
    farmer_id = await register(client)
    headers = as_farmer(farmer_id)

    response = await client.patch("/api/v1/farmers/me", json={field: None}, headers=headers)

    assert response.status_code == 422
    assert response.json()["error"] == "Invalid request"
    profile = (await client.get("/api/v1/farmers/me", headers=headers)).json()
    assert profile["name"] == "Lakshmi"
    assert profile["preferredLanguage"] == "english"


async def test_update_profile_allows_clearing_optional_fields(client):
    farmer_id = await register(client)

    response = await client.patch(
        "/api/v1/farmers/me", json={"place": None}, headers=as_farmer(farmer_id),
    )

    assert response.status_code == 200
    assert response.json()["place"] is None


async def test_storage_failure_after_commit_is_reported_as_unavailable(client, monkeypatch):
    async def failing_refresh(self, instance, *args, **kwargs):
        raise OperationalError("SELECT farmers", {}, Exception("disk I/O error"))

    monkeypatch.setattr(AsyncSession, "refresh", failing_refresh)

    response = await client.post("/api/v1/farmers", json={"name": "Lakshmi"})

    assert response.status_code == 503
    assert response.json() == {"error": "Storage temporarily unavailable"}


async def test_openapi_documents_error_body(client):
    schema = (await client.get("/openapi.json")).json()

    assert "ErrorResponse" in schema["components"]["schemas"]
    apply = schema["paths"]["/api/v1/match/apply"]["post"]["responses"]
    assert {"401", "403", "404", "409", "503"} <= set(apply)


# ---------------------------------------------------------------------------
# Score
# ---------------------------------------------------------------------------


async def test_award_and_read_score(client):
    farmer_id = await register(client)

    award = await client.post(
        "/api/v1/score/award",
        json={"actionLabel": "Drip irrigation optimization", "confidence": 95},
        headers=as_farmer(farmer_id),
    )
    assert award.status_code == 200
    assert award.json() == {
        "success": True,
        "pointsAdded": 9,
        "newScore": 9,
        "newLifetimePoints": 9,
        "unlockedRewards": [],
    }

    score = await client.get("/api/v1/score/me", headers=as_farmer(farmer_id))
    body = score.json()
    assert body["currentScore"] == 9
    assert body["nextMilestone"] == {"points": 50, "reward": "Basic Loan Eligibility"}
    assert body["history"][0]["actionType"] == "Drip irrigation optimization"
    assert body["history"][0]["pointsAwarded"] == 9


@pytest.mark.parametrize(
    "payload",
    [
        {"actionLabel": "watering", "confidence": 150},
        {"actionLabel": "", "confidence": 80},
        {"actionLabel": "watering"},
        {"actionLabel": "watering", "confidence": 80, "bonus": 100},
    ],
)
async def test_invalid_award_requests(client, payload):
    farmer_id = await register(client)

    response = await client.post("/api/v1/score/award", json=payload, headers=as_farmer(farmer_id))

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "Invalid request"
    assert body["fields"]


# ---------------------------------------------------------------------------
# Economics
# ---------------------------------------------------------------------------


async def test_dashboard_with_season_filter(client):
    farmer_id = await register(client)
    headers = as_farmer(farmer_id)

    for body in (
        {"date": "2024-06-01", "category": "Seeds", "amount": 1000, "crop": "Tomato", "season": "Kharif 2024"},
        {"date": "2024-12-01", "category": "Labor", "amount": "250.50", "crop": "Wheat", "season": "Rabi 2024"},
    ):
        response = await client.post("/api/v1/economics/expense", json=body, headers=headers)
        assert response.status_code == 200, response.text

    income = await client.post(
        "/api/v1/economics/income",
        json={
            "date": "2024-08-10",
            "source": "Market Sale",
            "amount": 3000,
            "quantity": 100,
            "crop": "Tomato",
            "season": "Kharif 2024",
        },
        headers=headers,
    )
    assert income.status_code == 200
    assert income.json()["unit"] == "kg"

    everything = (await client.get("/api/v1/economics/dashboard", headers=headers)).json()
    assert everything["totalExpenses"] == pytest.approx(1250.5)
    assert [b["period"] for b in everything["cashflow"]] == ["2024-06", "2024-08", "2024-12"]
    assert everything["recentTransactions"][0]["transactionType"] == "expense"

    kharif = (
        await client.get(
            "/api/v1/economics/dashboard", params={"season": "Kharif 2024"}, headers=headers,
        )
    ).json()
    assert kharif["netProfit"] == pytest.approx(2000)
    (tomato,) = kharif["cropPerformance"]
    assert tomato["breakEvenPrice"] == pytest.approx(10)
    assert tomato["avgSellPrice"] == pytest.approx(30)
    assert tomato["profitMargin"] == pytest.approx(66.67, abs=0.01)
    assert kharif["expensesByCategory"] == [{"category": "Seeds", "amount": 1000.0}]

    summary = await client.get(
        "/api/v1/economics/summary", params={"season": "Kharif 2024"}, headers=headers,
    )
    assert summary.json() == kharif


async def test_negative_expense_rejected(client):
    farmer_id = await register(client)
    response = await client.post(
        "/api/v1/economics/expense",
        json={"date": "2024-06-01", "category": "Seeds", "amount": -5, "crop": "Tomato", "season": "Kharif 2024"},
        headers=as_farmer(farmer_id),
    )
    assert response.status_code == 422
    assert "body.amount" in response.json()["fields"]


# ---------------------------------------------------------------------------
# Schemes
# ---------------------------------------------------------------------------


async def test_scheme_matching(client):
    farmer_id = await register(client)
    headers = as_farmer(farmer_id)
    await client.post(
        "/api/v1/economics/expense",
        json={"date": "2024-06-01", "category": "Seeds", "amount": 10, "crop": "Tomato", "season": "Kharif 2024"},
        headers=headers,
    )
    for _ in range(5):
        await client.post(
            "/api/v1/score/award", json={"actionLabel": "fertilizer", "confidence": 80}, headers=headers,
        )

    response = await client.get("/api/v1/match/schemes", headers=headers)

    assert response.status_code == 200
    by_name = {s["name"]: s for s in response.json()}
    assert len(by_name) == 4
    drip = by_name["Drip Irrigation Subsidy"]
    assert drip["isEligible"] is True
    assert drip["matchReason"] == ["Good Credit Score", "Location Match", "Crop Match"]
    loan = by_name["Agri Gold Loan"]
    assert loan["isEligible"] is False
    assert loan["missingCriteria"] == ["Min Score: 80"]
    insurance = by_name["Pradhan Mantri Fasal Bima Yojana"]
    assert insurance["missingCriteria"] == ["Eligible Crops: Paddy, Ragi, Groundnut"]


async def test_apply_requires_consent_and_is_once_only(client):
    farmer_id = await register(client)
    headers = as_farmer(farmer_id)

    denied = await client.post("/api/v1/match/apply", json={"schemeId": 1}, headers=headers)
    assert denied.status_code == 403
    assert denied.json() == {"error": "Data sharing consent required to apply."}

    await client.patch("/api/v1/farmers/me", json={"dataSharingConsent": True}, headers=headers)

    accepted = await client.post("/api/v1/match/apply", json={"schemeId": 1}, headers=headers)
    assert accepted.status_code == 200
    assert accepted.json()["success"] is True
    assert accepted.json()["applicationId"] >= 1

    again = await client.post("/api/v1/match/apply", json={"schemeId": 1}, headers=headers)
    assert again.status_code == 409
    assert again.json() == {"error": "Already applied."}

    missing = await client.post("/api/v1/match/apply", json={"schemeId": 999}, headers=headers)
    assert missing.status_code == 404
    assert missing.json() == {"error": "Scheme not found"}

    schemes = (await client.get("/api/v1/match/schemes", headers=headers)).json()
    assert [s["hasApplied"] for s in schemes] == [True, False, False, False]
