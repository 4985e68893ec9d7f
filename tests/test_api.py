"""
Tests for the FastAPI adapter: identity header, error mapping and the
main request flows end to end.
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from bookkeeper.api import app

from tests.conftest import MEMBER, OUTSIDER, OWNER

ALICE = {"X-User-Id": OWNER}
BOB = {"X-User-Id": MEMBER}
MALLORY = {"X-User-Id": OUTSIDER}


def money(value):
    return Decimal(str(value))


@pytest.fixture
def api(tmp_path, monkeypatch):
    monkeypatch.setenv("BOOKKEEPER_DB_FILE", str(tmp_path / "api.db"))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def company_id(api):
    response = api.post("/api/companies", json={"name": "Acme Trading", "currency": "usd"}, headers=ALICE)
    assert response.status_code == 200
    return response.json()["id"]


def test_health(api):
    assert api.get("/health").json() == {"status": "ok"}


def test_missing_identity_is_401(api):
    assert api.get("/api/companies").status_code == 401


def test_user_profile_upsert_and_fetch(api):
    assert api.get("/api/auth/user", headers=ALICE).status_code == 404

    api.put("/api/auth/user", json={"email": "alice@example.com", "first_name": "Alice"}, headers=ALICE)
    response = api.put("/api/auth/user", json={"email": "alice@acme.example", "first_name": "Alice"}, headers=ALICE)

    assert response.status_code == 200
    body = api.get("/api/auth/user", headers=ALICE).json()
    assert body["email"] == "alice@acme.example"
    assert body["display_name"] == "Alice"


def test_company_creation_seeds_categories(api, company_id):
    company = api.get(f"/api/companies/{company_id}", headers=ALICE).json()
    categories = api.get(f"/api/categories/{company_id}", headers=ALICE).json()

    assert company["currency"] == "USD"
    assert company["owner_id"] == OWNER
    assert len(categories) == 6
    assert [c["id"] for c in api.get("/api/companies", headers=ALICE).json()] == [company_id]


def test_error_kinds_map_to_status_codes(api, company_id):
    denied = api.get(f"/api/dashboard/{company_id}", headers=MALLORY)
    hidden = api.get(f"/api/companies/{company_id}", headers=MALLORY)
    invalid = api.post(
        "/api/transactions",
        json={"company_id": company_id, "kind": "income", "amount": "5", "description": "x",
              "date": "2024-01-01", "category_id": 10_000},
        headers=ALICE,
    )

    assert denied.status_code == 403
    assert denied.json() == {"kind": "unauthorized", "message": "Unauthorized"}
    assert hidden.status_code == 404
    assert invalid.status_code == 422
    assert invalid.json()["kind"] == "validation_failed"


def test_membership_scenario(api, company_id):
    assert api.get(f"/api/dashboard/{company_id}", headers=BOB).status_code == 403

    assert api.post(f"/api/companies/{company_id}/members", json={"user_id": MEMBER}, headers=ALICE).status_code == 200
    summary = api.get(f"/api/dashboard/{company_id}", headers=BOB).json()["summary"]
    assert money(summary["total_revenue"]) == 0

    assert api.delete(f"/api/companies/{company_id}/members/{MEMBER}", headers=ALICE).status_code == 200
    assert api.get(f"/api/dashboard/{company_id}", headers=BOB).status_code == 403


def test_transaction_crud_and_cash_flow(api, company_id):
    def post(kind, amount, on):
        response = api.post(
            "/api/transactions",
            json={"company_id": company_id, "kind": kind, "amount": amount, "description": kind, "date": on},
            headers=ALICE,
        )
        assert response.status_code == 200
        return response.json()

    income = post("income", "500", "2024-01-05")
    expense = post("expense", "200", "2024-01-10")

    updated = api.put(
        f"/api/transactions/{expense['id']}",
        json={"company_id": company_id, "kind": "expense", "amount": "250", "description": "fix", "date": "2024-01-10"},
        headers=ALICE,
    )
    assert money(updated.json()["amount"]) == Decimal("250")

    report = api.get(
        f"/api/reports/cash-flow/{company_id}",
        params={"startDate": "2024-01-01", "endDate": "2024-01-31"},
        headers=ALICE,
    ).json()
    assert [money(entry["running_balance"]) for entry in report["entries"]] == [Decimal("500"), Decimal("250")]
    assert money(report["final_balance"]) == Decimal("250")

    assert api.delete(f"/api/transactions/{income['id']}", headers=MALLORY).status_code == 403
    assert api.delete(f"/api/transactions/{income['id']}", headers=ALICE).json() == {"success": True}

    listing = api.get(f"/api/transactions/{company_id}", params={"page": 1, "limit": 5}, headers=ALICE).json()
    assert listing["total"] == 1
    assert listing["page_size"] == 5


def test_page_size_limit_is_enforced(api, company_id):
    response = api.get(f"/api/transactions/{company_id}", params={"limit": 1000}, headers=ALICE)

    assert response.status_code == 422


def test_profit_and_loss_endpoint(api, company_id):
    api.post(
        "/api/transactions",
        json={"company_id": company_id, "kind": "income", "amount": "90", "description": "sale", "date": "2024-01-02"},
        headers=ALICE,
    )

    report = api.get(
        f"/api/reports/profit-loss/{company_id}",
        params={"startDate": "2024-01-01", "endDate": "2024-01-31"},
        headers=ALICE,
    ).json()

    assert money(report["net_profit"]) == Decimal("90")
    assert report["income"][0]["category_name"] is None


def test_invoice_flow(api, company_id):
    client = api.post("/api/clients", json={"company_id": company_id, "name": "Noor"}, headers=ALICE).json()
    payload = {
        "invoice": {
            "company_id": company_id,
            "invoice_number": "INV-7",
            "status": "sent",
            "client_id": client["id"],
            "issue_date": "2024-03-01",
            "subtotal": "100.00",
            "tax_amount": "15.00",
            "total": "115.00",
        },
        "items": [
            {"description": "Widget", "quantity": "4", "unit_price": "25.00", "total": "100.00"},
        ],
    }

    created = api.post("/api/invoices", json=payload, headers=ALICE)
    assert created.status_code == 200
    invoice_id = created.json()["id"]

    details = api.get(f"/api/invoices/{invoice_id}/details", headers=ALICE).json()
    assert len(details["items"]) == 1
    assert details["client"]["name"] == "Noor"
    assert money(details["total"]) == Decimal("115.00")
    assert api.get(f"/api/invoices/{invoice_id}/details", headers=MALLORY).status_code == 403
    assert [inv["invoice_number"] for inv in api.get(f"/api/invoices/{company_id}", headers=ALICE).json()] == ["INV-7"]


def test_csv_import_endpoint(api, company_id):
    body = "date,type,amount,description,category\n2024-01-05,income,10,Sale,Sales\n"

    response = api.post(
        f"/api/transactions/{company_id}/import",
        content=body.encode("utf-8"),
        headers={**ALICE, "Content-Type": "text/csv"},
    )

    assert response.json() == {"imported": 1}
    assert api.post(f"/api/transactions/{company_id}/import", content=body, headers=MALLORY).status_code == 403


def test_invoice_body_requires_items(api, company_id):
    payload = {
        "invoice": {
            "company_id": company_id,
            "invoice_number": "INV-8",
            "issue_date": "2024-03-01",
            "subtotal": "10.00",
            "tax_amount": "0.00",
            "total": "10.00",
        },
        "items": [],
    }

    assert api.post("/api/invoices", json=payload, headers=ALICE).status_code == 422
    assert api.get(f"/api/invoices/{company_id}", headers=ALICE).json() == []
