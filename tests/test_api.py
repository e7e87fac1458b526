import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from main import app, get_db


@pytest.fixture
def client():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    # Not used as a context manager, so the scheduler never starts
    yield TestClient(app)
    app.dependency_overrides.clear()
    engine.dispose()


def _body(**overrides):
    body = {
        "title": "Rent",
        "amount_cents": 120_000,
        "date": "10/01/2025",
        "category": "utilities",
        "type": "expense",
    }
    body.update(overrides)
    return body


def test_create_and_list_simple_transaction(client):
    res = client.post("/api/transactions", json=_body(date="01/02/2025"))
    assert res.status_code == 201
    created = res.json()
    assert created["occurrence_date"] == "2025-02-01"
    assert created["budget_month"] == "2025-02-01"
    assert created["parent_transaction_id"] is None

    res = client.get("/api/transactions", params={"month": "2025-02"})
    assert [t["id"] for t in res.json()] == [created["id"]]

    res = client.get(f"/api/transactions/{created['id']}/role")
    assert res.json() == {"kind": "simple", "series_id": None}


@pytest.mark.parametrize(
    "overrides,detail",
    [
        ({"date": "2025/01/10"}, "Unparseable date"),
        ({"category": "yachts"}, "Unknown category"),
        ({"type": "transfer"}, "Unknown transaction type"),
    ],
)
def test_invalid_input_is_rejected(client, overrides, detail):
    res = client.post("/api/transactions", json=_body(**overrides))
    assert res.status_code == 400
    assert detail in res.json()["detail"]
    assert client.get("/api/transactions").json() == []


def test_recurring_series_lifecycle(client):
    res = client.post(
        "/api/transactions/recurring",
        params={"today": "2025-01-15"},
        json=_body(),
    )
    assert res.status_code == 201
    template = res.json()
    assert template["is_recurring_template"] is True
    assert template["parent_transaction_id"] == template["id"]

    march = client.get("/api/transactions", params={"month": "2025-03"}).json()
    assert len(march) == 1
    occurrence_id = march[0]["id"]

    res = client.get(f"/api/transactions/{occurrence_id}/role")
    assert res.json() == {
        "kind": "recurring_occurrence",
        "series_id": template["id"],
    }

    res = client.delete(f"/api/transactions/{occurrence_id}")
    assert res.status_code == 409

    res = client.post(
        f"/api/transactions/{occurrence_id}/delete-series",
        json={"cleanup_option": "futureOnly"},
    )
    assert res.status_code == 200
    assert len(res.json()["deleted_ids"]) == 23
    assert len(client.get("/api/transactions").json()) == 2

    res = client.post(
        f"/api/transactions/{template['id']}/delete-series",
        json={"cleanup_option": "all"},
    )
    assert len(res.json()["deleted_ids"]) == 2
    assert client.get("/api/transactions").json() == []


def test_installments_hide_template(client):
    body = {
        "title": "Bike",
        "total_amount_cents": 100_001,
        "date": "31/01/2025",
        "category": "transportation",
        "type": "expense",
        "installment_count": 3,
    }
    res = client.post("/api/transactions/installments", json=body)
    assert res.status_code == 201
    template = res.json()
    assert template["amount_cents"] == 0
    assert template["original_amount_cents"] == 100_001

    listed = client.get("/api/transactions").json()
    assert [t["amount_cents"] for t in listed] == [33_335, 33_333, 33_333]
    assert [t["occurrence_date"] for t in listed] == [
        "2025-01-31",
        "2025-02-28",
        "2025-03-31",
    ]

    body["installment_count"] = 1
    res = client.post("/api/transactions/installments", json=body)
    assert res.status_code == 400


def test_unknown_transaction_is_404(client):
    assert client.delete("/api/transactions/999").status_code == 404
    res = client.post(
        "/api/transactions/999/delete-series", json={"cleanup_option": "all"}
    )
    assert res.status_code == 404


def test_daily_projection(client):
    client.post(
        "/api/transactions",
        json=_body(type="income", category="salary", amount_cents=50_000, date="05/01/2025"),
    )
    client.post("/api/transactions", json=_body(amount_cents=80_000, date="15/02/2025"))

    res = client.get(
        "/api/projection/daily", params={"month": "2025-02", "today": "2025-02-01"}
    )
    assert res.status_code == 200
    data = res.json()
    assert data["opening_balance_cents"] == 50_000
    assert data["daily_balances"]["2025-02-15"] == -30_000
    assert data["first_negative_day"] == "2025-02-15"
    assert data["alert_day"] == "2025-02-15"


def test_month_projection_with_budget(client):
    client.post("/api/transactions", json=_body(amount_cents=45_000, date="03/02/2025"))
    res = client.put("/api/budgets/2025-02", json={"limit_cents": 60_000})
    assert res.status_code == 200
    assert res.json() == {"month": "2025-02", "limit_cents": 60_000}

    res = client.get(
        "/api/projection/months",
        params=[("months", "2025-01"), ("months", "2025-02"), ("today", "2025-02-10")],
    )
    assert res.status_code == 200
    jan, feb = res.json()
    assert jan["anchor"] == "2025-01-01"
    assert feb["expense_cents"] == 45_000
    assert feb["available_balance_cents"] == -45_000
    assert feb["budget_limit_cents"] == 60_000
    assert feb["budget_remaining_cents"] == 15_000

    res = client.get("/api/projection/months", params={"today": "2025-02-10"})
    assert len(res.json()) == 37


def test_budget_endpoints(client):
    client.put("/api/budgets/2025-03", json={"limit_cents": 10_000})
    assert client.get("/api/budgets").json() == [
        {"month": "2025-03", "limit_cents": 10_000}
    ]
    assert client.put("/api/budgets/2025-03", json={"limit_cents": -1}).status_code == 422
    assert client.delete("/api/budgets/2025-03").status_code == 204
    assert client.get("/api/budgets").json() == []


def test_bad_month_is_400(client):
    res = client.get("/api/projection/daily", params={"month": "March"})
    assert res.status_code == 400
    assert client.get("/api/transactions", params={"month": "2025-13"}).status_code == 400
