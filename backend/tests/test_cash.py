"""
Cash box entries and cash custody handoffs.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from backoffice.core.config import Settings, get_settings
from backoffice.main import app
from backoffice.models.cash import CashEntry
from backoffice.models.enums import CashEntryType, PaymentType
from backoffice.models.payment import Payment


CASH = "/api/v1/cash"


@pytest.fixture
def custody_settings():
    settings = Settings(CASH_CUSTODY_NAMES="alice, Bob ,owner", CASH_OWNER_NAME="Owner")
    app.dependency_overrides[get_settings] = lambda: settings
    return settings


async def custody_employees(client):
    resp = await client.get(f"{CASH}/custody")
    assert resp.status_code == 200
    return {e["name"]: e["id"] for e in resp.json()["data"]["employees"]}


# =============================================================================
# custody
# =============================================================================


class TestCustody:

    async def test_overview_creates_configured_employees(self, client, custody_settings):
        employees = await custody_employees(client)
        assert sorted(employees) == ["Alice", "Bob", "Owner"]

        # second call reuses them
        assert await custody_employees(client) == employees

    async def test_existing_employee_is_reused(self, client, factory, custody_settings):
        existing = await factory.employee(name="  ALICE ")

        employees = await custody_employees(client)

        assert existing.id in employees.values()
        assert len(employees) == 3

    async def test_handoff_moves_custody(self, client, custody_settings):
        ids = await custody_employees(client)

        resp = await client.post(f"{CASH}/custody", json={
            "amount": "100", "fromEmployeeId": ids["Alice"], "toEmployeeId": ids["Bob"],
        })
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["from_employee"]["name"] == "Alice"
        assert data["to_employee"]["name"] == "Bob"
        assert data["owner_draw_payment_id"] is None
        assert data["deposit_entry_id"] is None

        overview = (await client.get(f"{CASH}/custody")).json()["data"]
        held = {h["employee"]["name"]: Decimal(h["amount"]) for h in overview["outstanding"]}
        assert held == {"Alice": Decimal("-100"), "Bob": Decimal("100")}
        assert [e["id"] for e in overview["entries"]] == [data["id"]]

    async def test_handoff_to_owner_books_owner_draw(self, client, db, custody_settings):
        ids = await custody_employees(client)

        resp = await client.post(f"{CASH}/custody", json={
            "amount": 40, "from_employee_id": ids["Bob"], "to_employee_id": ids["Owner"],
        })

        data = resp.json()["data"]
        payment = await db.get(Payment, data["owner_draw_payment_id"])
        assert payment.type == PaymentType.OWNER_DRAW
        assert payment.amount == Decimal("40")
        assert payment.reference == f"custody-{data['id']}"

    async def test_handoff_from_owner_books_deposit(self, client, db, custody_settings):
        ids = await custody_employees(client)

        resp = await client.post(f"{CASH}/custody", json={
            "amount": 15, "fromEmployeeId": ids["Owner"], "toEmployeeId": ids["Alice"],
        })

        deposit = await db.get(CashEntry, resp.json()["data"]["deposit_entry_id"])
        assert deposit.type == CashEntryType.DEPOSIT
        assert deposit.amount == Decimal("15")

    async def test_handoff_validation(self, client, factory, custody_settings):
        ids = await custody_employees(client)
        outsider = await factory.employee(name="Mallory")

        same = await client.post(f"{CASH}/custody", json={
            "amount": 5, "fromEmployeeId": ids["Alice"], "toEmployeeId": ids["Alice"],
        })
        assert same.json()["error"]["code"] == "CUSTODY_SAME_EMPLOYEE"

        not_allowed = await client.post(f"{CASH}/custody", json={
            "amount": 5, "fromEmployeeId": outsider.id, "toEmployeeId": ids["Alice"],
        })
        assert not_allowed.json()["error"]["code"] == "CUSTODY_NOT_ALLOWED"

        unknown = await client.post(f"{CASH}/custody", json={
            "amount": 5, "fromEmployeeId": ids["Alice"], "toEmployeeId": 9999,
        })
        assert unknown.status_code == 404
        assert unknown.json()["error"]["code"] == "EMPLOYEE_NOT_FOUND"

        bad_amount = await client.post(f"{CASH}/custody", json={
            "amount": 0, "fromEmployeeId": ids["Bob"], "toEmployeeId": ids["Alice"],
        })
        assert bad_amount.json()["error"]["code"] == "INVALID_AMOUNT"

    async def test_no_configured_names(self, client):
        app.dependency_overrides[get_settings] = lambda: Settings(CASH_CUSTODY_NAMES="")

        overview = (await client.get(f"{CASH}/custody")).json()["data"]
        assert overview == {"employees": [], "entries": [], "outstanding": []}


# =============================================================================
# cash box
# =============================================================================


class TestCashEntries:

    async def test_withdraw_is_stored_negative(self, client):
        resp = await client.post(f"{CASH}/entries", json={"amount": "30", "type": "withdraw"})

        assert resp.status_code == 201
        assert Decimal(resp.json()["data"]["amount"]) == Decimal("-30")

    async def test_owner_draw_books_payment(self, client, db):
        resp = await client.post(f"{CASH}/entries", json={
            "amount": 20, "type": "OWNER_DRAW", "description": "Weekly draw",
        })
        entry_id = resp.json()["data"]["id"]

        payments = (await db.execute(select(Payment))).scalars().all()
        assert [(p.type, p.amount, p.reference) for p in payments] == [
            (PaymentType.OWNER_DRAW, Decimal("20"), f"cash-entry-{entry_id}"),
        ]

    async def test_invalid_type(self, client):
        resp = await client.post(f"{CASH}/entries", json={"amount": 20, "type": "LOAN"})
        assert resp.json()["error"]["code"] == "INVALID_TYPE"

    async def test_listing(self, client):
        await client.post(f"{CASH}/entries", json={"amount": 10, "type": "DEPOSIT"})
        await client.post(f"{CASH}/entries", json={"amount": 4, "type": "WITHDRAW"})

        resp = await client.get(f"{CASH}/entries")
        assert resp.json()["meta"]["total"] == 2
        assert {e["type"] for e in resp.json()["data"]} == {"DEPOSIT", "WITHDRAW"}
