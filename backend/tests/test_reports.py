"""
Balances, unapplied customer credit and the cash-flow report.
"""

from datetime import datetime
from decimal import Decimal

from backoffice.services.balances import cash_flows, customer_receivables, unapplied_credit
from backoffice.services.payment_effects import create_payment
from backoffice.services.payment_sanitizer import sanitize_payment_input


REPORTS = "/api/v1/reports"


def by_name(rows):
    return {row["name"]: row for row in rows}


# =============================================================================
# balances
# =============================================================================


class TestBalances:

    async def test_receivables_and_payables(self, client, factory):
        customer = await factory.customer(name="Cedar", manual_balance_override=Decimal("25"))
        supplier = await factory.supplier(name="Quarry")
        await factory.receipt(customer, total="100")
        await factory.purchase(supplier, total="80")
        await client.post("/api/v1/payments", json={"amount": 30, "type": "CUSTOMER_PAYMENT", "customerId": customer.id})
        await client.post("/api/v1/payments", json={"amount": 50, "type": "SUPPLIER", "supplierId": supplier.id})

        data = (await client.get(f"{REPORTS}/balances")).json()["data"]

        cedar = by_name(data["customers"])["Cedar"]
        assert Decimal(cedar["outstanding"]) == Decimal("70")
        assert Decimal(cedar["balance"]) == Decimal("95")
        quarry = by_name(data["suppliers"])["Quarry"]
        assert Decimal(quarry["outstanding"]) == Decimal("30")
        assert Decimal(data["total_receivable"]) == Decimal("70")
        assert Decimal(data["total_payable"]) == Decimal("30")

    async def test_overpayment_becomes_unapplied_credit(self, db, factory):
        customer = await factory.customer()
        await factory.receipt(customer, total="40")

        intent = await sanitize_payment_input(db, {"amount": 100, "type": "CUSTOMER_PAYMENT", "customerId": customer.id})
        await create_payment(db, intent)

        assert await unapplied_credit(db, customer.id) == Decimal("60")
        [balance] = await customer_receivables(db)
        assert balance.outstanding == Decimal("0")
        assert balance.balance == Decimal("-60")

    async def test_unapplied_credit_endpoint(self, client, factory):
        customer = await factory.customer()

        resp = await client.get(f"{REPORTS}/unapplied-credit/{customer.id}")
        assert Decimal(resp.json()["data"]["unapplied_credit"]) == Decimal("0")

        missing = await client.get(f"{REPORTS}/unapplied-credit/999")
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "CUSTOMER_NOT_FOUND"


# =============================================================================
# cash flow
# =============================================================================


class TestCashFlow:

    async def test_inflows_and_outflows(self, client, factory):
        customer = await factory.customer(name="Cedar")
        receipt = await factory.receipt(customer, total="100", receipt_no="R-9")
        await client.post("/api/v1/payments", json={
            "amount": 60, "type": "RECEIPT", "receiptId": receipt.id, "date": "2024-05-02",
        })
        await client.post("/api/v1/payments", json={
            "amount": 15, "type": "GENERAL_EXPENSE", "description": "Diesel", "date": "2024-05-03",
        })

        data = (await client.get(f"{REPORTS}/cash-flow")).json()["data"]

        assert [(l["type"], l["receipt_no"]) for l in data["inflows"]] == [("RECEIPT", "R-9")]
        assert [l["label"] for l in data["outflows"]] == ["Diesel"]
        assert Decimal(data["cash_on_hand"]) == Decimal("45")

    async def test_receipt_paid_without_payment_counts_as_direct_inflow(self, db, factory):
        customer = await factory.customer()
        receipt = await factory.receipt(
            customer, total="70", amount_paid="70", is_paid=True, receipt_no="R-CASH",
            date=datetime(2024, 6, 1),
        )

        report = await cash_flows(db)

        assert [(l.id, l.amount) for l in report.inflows] == [(f"direct-receipt-{receipt.id}", Decimal("70"))]

    async def test_settlement_is_not_cash(self, client, factory, db):
        customer = await factory.customer()
        supplier = await factory.supplier()
        await factory.receipt(customer, total="100")
        await factory.purchase(supplier, total="100")
        await client.post("/api/v1/merge/pair-customer-supplier", json={"customerId": customer.id, "supplierId": supplier.id})
        await client.post("/api/v1/merge/settle-pairs")

        report = await cash_flows(db)

        assert report.inflows == []
        assert report.outflows == []

    async def test_date_range(self, client):
        await client.post("/api/v1/payments", json={"amount": 5, "type": "GENERAL_EXPENSE", "date": "2024-01-10"})
        await client.post("/api/v1/payments", json={"amount": 7, "type": "GENERAL_EXPENSE", "date": "2024-03-10"})

        data = (await client.get(f"{REPORTS}/cash-flow", params={
            "start": "2024-03-01T00:00:00", "end": "2024-03-31T23:59:59",
        })).json()["data"]
        assert [Decimal(l["amount"]) for l in data["outflows"]] == [Decimal("7")]

        reversed_range = await client.get(f"{REPORTS}/cash-flow", params={"start": "2024-04-01T00:00:00", "end": "2024-03-01T00:00:00"})
        assert reversed_range.json()["error"]["code"] == "INVALID_FILTER"
