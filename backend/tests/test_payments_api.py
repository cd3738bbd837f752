"""
Payments API and authentication.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import select

from backoffice.models.audit_log import AuditLog
from backoffice.models.enums import UserRole


PAYMENTS = "/api/v1/payments"


# =============================================================================
# authentication
# =============================================================================


class TestAuthentication:

    async def test_requires_token(self, anon_client):
        resp = await anon_client.get(PAYMENTS)
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "NOT_AUTHENTICATED"

    async def test_invalid_token(self, anon_client):
        resp = await anon_client.get(PAYMENTS, headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "INVALID_TOKEN"

    async def test_login_and_me(self, anon_client, factory):
        await factory.user(email="manager@example.com", role=UserRole.MANAGER, password="secret-pass")

        resp = await anon_client.post(
            "/api/v1/auth/login", json={"email": "manager@example.com", "password": "secret-pass"}
        )
        assert resp.status_code == 200
        token = resp.json()["data"]["token"]["access_token"]

        me = await anon_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["role"] == "MANAGER"

        listing = await anon_client.get(PAYMENTS, headers={"Authorization": f"Bearer {token}"})
        assert listing.status_code == 200

    async def test_wrong_password(self, anon_client, factory):
        await factory.user(email="manager@example.com", role=UserRole.MANAGER, password="secret-pass")

        resp = await anon_client.post(
            "/api/v1/auth/login", json={"email": "manager@example.com", "password": "wrong-pass"}
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"

    async def test_worker_cannot_touch_ledger(self, anon_client, factory):
        await factory.user(email="worker@example.com", role=UserRole.WORKER, password="worker-pass")
        login = await anon_client.post(
            "/api/v1/auth/login", json={"email": "worker@example.com", "password": "worker-pass"}
        )
        token = login.json()["data"]["token"]["access_token"]

        resp = await anon_client.get(PAYMENTS, headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "FORBIDDEN"


# =============================================================================
# create / edit / delete
# =============================================================================


class TestPaymentLifecycle:

    async def test_create_customer_payment(self, client, factory, db):
        customer = await factory.customer(name="Acme Trading")
        first = await factory.receipt(customer, total="100", date=datetime(2024, 1, 1), receipt_no="R-1")
        second = await factory.receipt(customer, total="50", date=datetime(2024, 1, 5), receipt_no="R-2")

        resp = await client.post(PAYMENTS, json={
            "amount": "120",
            "type": "CUSTOMER_PAYMENT",
            "customerId": str(customer.id),
            "date": "2024-02-01",
        })
        assert resp.status_code == 201
        data = resp.json()["data"]

        assert data["type"] == "CUSTOMER_PAYMENT"
        assert data["customer_name"] == "Acme Trading"
        assert [(l["receipt_no"], Decimal(l["amount"])) for l in data["receipt_payments"]] == [
            ("R-1", Decimal("100")),
            ("R-2", Decimal("20")),
        ]
        assert data["receipt_payments"][0]["receipt_is_paid"] is True
        assert Decimal(data["linked_amount"]) == Decimal("120")
        assert Decimal(data["unapplied_amount"]) == Decimal("0")

        await factory.reload(first)
        await factory.reload(second)
        assert first.is_paid is True
        assert second.amount_paid == Decimal("20")

        audit = (await db.execute(
            select(AuditLog).where(AuditLog.action == "PAYMENT_CREATE")
        )).scalars().all()
        assert len(audit) == 1
        assert audit[0].entity_id == data["id"]
        assert audit[0].user_email == "admin@example.com"

    async def test_validation_errors_use_ledger_codes(self, client):
        resp = await client.post(PAYMENTS, json={"amount": "-3", "type": "GENERAL_EXPENSE"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_AMOUNT"

        resp = await client.post(PAYMENTS, json={"amount": "3", "type": "SUPPLIER"})
        assert resp.json()["error"]["code"] == "SUPPLIER_REQUIRED"

        resp = await client.post(PAYMENTS, json={"amount": "3", "type": "RECEIPT", "receiptId": 404})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "RECEIPT_NOT_FOUND"

    async def test_edit_and_delete(self, client, factory):
        customer = await factory.customer()
        receipt_a = await factory.receipt(customer, total="100")
        receipt_b = await factory.receipt(customer, total="30")

        created = await client.post(PAYMENTS, json={"amount": 50, "type": "RECEIPT", "receiptId": receipt_a.id})
        payment_id = created.json()["data"]["id"]

        updated = await client.put(f"{PAYMENTS}/{payment_id}", json={
            "amount": 50, "type": "RECEIPT", "receipt_id": receipt_b.id,
        })
        assert updated.status_code == 200
        links = updated.json()["data"]["receipt_payments"]
        assert [(l["receipt_id"], Decimal(l["amount"])) for l in links] == [(receipt_b.id, Decimal("30"))]

        await factory.reload(receipt_a)
        await factory.reload(receipt_b)
        assert receipt_a.amount_paid == Decimal("0")
        assert receipt_b.is_paid is True

        deleted = await client.delete(f"{PAYMENTS}/{payment_id}")
        assert deleted.status_code == 204
        await factory.reload(receipt_b)
        assert receipt_b.amount_paid == Decimal("0")

        missing = await client.get(f"{PAYMENTS}/{payment_id}")
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "PAYMENT_NOT_FOUND"

    async def test_overpayment_reports_unapplied_amount(self, client, factory):
        customer = await factory.customer()
        await factory.receipt(customer, total="40")

        resp = await client.post(PAYMENTS, json={"amount": 100, "type": "CUSTOMER_PAYMENT", "customerId": customer.id})

        data = resp.json()["data"]
        assert Decimal(data["linked_amount"]) == Decimal("40")
        assert Decimal(data["unapplied_amount"]) == Decimal("60")


# =============================================================================
# listing
# =============================================================================


class TestPaymentListing:

    async def test_filters(self, client, factory):
        customer = await factory.customer(name="Blue Harbor")
        supplier = await factory.supplier(name="Stone Works")
        await factory.receipt(customer, total="100")
        await factory.purchase(supplier, total="100")

        await client.post(PAYMENTS, json={"amount": 10, "type": "CUSTOMER_PAYMENT", "customerId": customer.id})
        await client.post(PAYMENTS, json={"amount": 20, "type": "SUPPLIER", "supplierId": supplier.id})
        await client.post(PAYMENTS, json={"amount": 5, "type": "GENERAL_EXPENSE", "description": "Fuel"})

        everything = await client.get(PAYMENTS)
        assert everything.json()["meta"]["total"] == 3

        by_type = await client.get(PAYMENTS, params={"type": "supplier"})
        assert [p["supplier_id"] for p in by_type.json()["data"]] == [supplier.id]

        by_customer = await client.get(PAYMENTS, params={"customerId": customer.id})
        assert len(by_customer.json()["data"]) == 1

        by_text = await client.get(PAYMENTS, params={"description": "stone"})
        assert [p["type"] for p in by_text.json()["data"]] == ["SUPPLIER"]

        by_description = await client.get(PAYMENTS, params={"description": "fuel"})
        assert [p["type"] for p in by_description.json()["data"]] == ["GENERAL_EXPENSE"]

    @pytest.mark.parametrize("params", [{"type": "NOPE"}, {"supplierId": "abc"}, {"employeeId": "1.5"}])
    async def test_bad_filters(self, client, params):
        resp = await client.get(PAYMENTS, params=params)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_FILTER"

    async def test_filter_by_employee(self, client, factory):
        employee = await factory.employee(name="Sami")
        entry = await factory.payroll(employee)
        await client.post(PAYMENTS, json={"amount": 500, "type": "PAYROLL_SALARY", "payrollEntryId": entry.id})
        await client.post(PAYMENTS, json={"amount": 5, "type": "GENERAL_EXPENSE"})

        resp = await client.get(PAYMENTS, params={"employeeId": employee.id})
        data = resp.json()["data"]
        assert len(data) == 1
        assert data[0]["payroll_entry_id"] == entry.id
