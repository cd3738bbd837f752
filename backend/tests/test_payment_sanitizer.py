"""
Payment request validation.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from backoffice.core.errors import LedgerError
from backoffice.models.enums import PaymentType
from backoffice.services.payment_effects import create_payment, load_payment
from backoffice.services.payment_sanitizer import (
    parse_amount,
    parse_optional_id,
    sanitize_payment_input,
)


async def expect_error(code, coro):
    with pytest.raises(LedgerError) as excinfo:
        await coro
    assert excinfo.value.code == code
    return excinfo.value


# =============================================================================
# field parsers
# =============================================================================


class TestParsers:

    @pytest.mark.parametrize("raw", [None, True, "abc", "", "0", -5, float("nan"), float("inf"), "Infinity"])
    def test_parse_amount_rejects(self, raw):
        with pytest.raises(LedgerError) as excinfo:
            parse_amount(raw)
        assert excinfo.value.code == "INVALID_AMOUNT"

    def test_parse_amount_rounds_to_cents(self):
        assert parse_amount("10.005") == Decimal("10.01")
        assert parse_amount(12) == Decimal("12.00")
        assert parse_amount(" 7.5 ") == Decimal("7.50")

    def test_parse_optional_id(self):
        assert parse_optional_id(None, "X") is None
        assert parse_optional_id("  ", "X") is None
        assert parse_optional_id("42", "X") == 42
        assert parse_optional_id(7.0, "X") == 7
        for bad in ("abc", 1.5, True):
            with pytest.raises(LedgerError) as excinfo:
                parse_optional_id(bad, "INVALID_SUPPLIER")
            assert excinfo.value.code == "INVALID_SUPPLIER"


# =============================================================================
# sanitizer
# =============================================================================


class TestSanitizer:

    async def test_invalid_type(self, db):
        await expect_error("INVALID_TYPE", sanitize_payment_input(db, {"amount": 10, "type": "BOGUS"}))

    async def test_invalid_date(self, db):
        await expect_error(
            "INVALID_DATE",
            sanitize_payment_input(db, {"amount": 10, "type": "GENERAL_EXPENSE", "date": "yesterday"}),
        )
        await expect_error(
            "INVALID_DATE",
            sanitize_payment_input(db, {"amount": 10, "type": "GENERAL_EXPENSE", "date": 12345}),
        )

    async def test_date_is_normalized_to_naive_utc(self, db):
        intent = await sanitize_payment_input(
            db, {"amount": 10, "type": "general_expense", "date": "2024-03-01T10:00:00+02:00"}
        )
        assert intent.type == PaymentType.GENERAL_EXPENSE
        assert intent.date == datetime(2024, 3, 1, 8, 0)

    @pytest.mark.parametrize(
        "payment_type,code",
        [
            ("SUPPLIER", "SUPPLIER_REQUIRED"),
            ("RECEIPT", "RECEIPT_REQUIRED"),
            ("PAYROLL_SALARY", "PAYROLL_REQUIRED"),
            ("PAYROLL_PIECEWORK", "PAYROLL_REQUIRED"),
            ("DEBRIS_REMOVAL", "DEBRIS_REQUIRED"),
            ("CUSTOMER_PAYMENT", "CUSTOMER_REQUIRED"),
        ],
    )
    async def test_required_reference_per_type(self, db, payment_type, code):
        await expect_error(code, sanitize_payment_input(db, {"amount": 10, "type": payment_type}))

    async def test_malformed_reference_is_rejected(self, db):
        await expect_error(
            "INVALID_SUPPLIER",
            sanitize_payment_input(db, {"amount": 10, "type": "SUPPLIER", "supplierId": "abc"}),
        )

    async def test_missing_references(self, db):
        await expect_error(
            "SUPPLIER_NOT_FOUND",
            sanitize_payment_input(db, {"amount": 10, "type": "SUPPLIER", "supplierId": 999}),
        )
        await expect_error(
            "RECEIPT_NOT_FOUND",
            sanitize_payment_input(db, {"amount": 10, "type": "RECEIPT", "receiptId": 999}),
        )
        await expect_error(
            "CUSTOMER_NOT_FOUND",
            sanitize_payment_input(db, {"amount": 10, "type": "CUSTOMER_PAYMENT", "customer_id": 999}),
        )

    async def test_irrelevant_references_are_dropped(self, db, factory):
        supplier = await factory.supplier()
        intent = await sanitize_payment_input(db, {
            "amount": "25",
            "type": "SUPPLIER",
            "supplierId": str(supplier.id),
            "customerId": 999,
            "receiptId": 999,
        })
        assert intent.supplier_id == supplier.id
        assert intent.customer_id is None
        assert intent.receipt_id is None
        assert intent.apply_to_purchases is True

    async def test_receipt_payment_inherits_customer(self, db, factory):
        customer = await factory.customer()
        receipt = await factory.receipt(customer, total="80")

        intent = await sanitize_payment_input(db, {"amount": 80, "type": "RECEIPT", "receiptId": receipt.id})
        assert intent.receipt_id == receipt.id
        assert intent.customer_id == customer.id

    async def test_payroll_entry_already_paid(self, db, factory):
        employee = await factory.employee()
        entry = await factory.payroll(employee)
        entry.payment_id = 12345
        await db.commit()

        await expect_error(
            "PAYROLL_ALREADY_PAID",
            sanitize_payment_input(db, {"amount": 500, "type": "PAYROLL_SALARY", "payrollEntryId": entry.id}),
        )

    async def test_debris_entry_already_removed(self, db, factory):
        debris = await factory.debris()
        payload = {"amount": 75, "type": "DEBRIS_REMOVAL", "debrisEntryId": debris.id}
        payment = await create_payment(db, await sanitize_payment_input(db, payload))

        await expect_error("DEBRIS_ALREADY_PAID", sanitize_payment_input(db, payload))

        # the payment that removed it can still be edited
        existing = await load_payment(db, payment.id)
        intent = await sanitize_payment_input(db, {**payload, "amount": 90}, existing_payment=existing)
        assert intent.debris_entry_id == debris.id
        assert intent.amount == Decimal("90")

    async def test_unknown_payroll_and_debris_entries(self, db):
        await expect_error(
            "PAYROLL_NOT_FOUND",
            sanitize_payment_input(db, {"amount": 10, "type": "PAYROLL_PIECEWORK", "payrollEntryId": 999}),
        )
        await expect_error(
            "DEBRIS_NOT_FOUND",
            sanitize_payment_input(db, {"amount": 10, "type": "DEBRIS_REMOVAL", "debrisEntryId": 999}),
        )

    async def test_walk_in_receipt_accepts_payment(self, db, factory):
        receipt = await factory.receipt(None, total="40")

        intent = await sanitize_payment_input(db, {"amount": 40, "type": "RECEIPT", "receiptId": receipt.id})

        assert intent.receipt_id == receipt.id
        assert intent.customer_id is None

    async def test_customer_payment_plans_waterfall(self, db, factory):
        customer = await factory.customer()
        older = await factory.receipt(customer, total="100", date=datetime(2024, 1, 1))
        newer = await factory.receipt(customer, total="100", date=datetime(2024, 2, 1))

        intent = await sanitize_payment_input(
            db, {"amount": 150, "type": "CUSTOMER_PAYMENT", "customerId": customer.id}
        )
        assert [(a.entity_id, a.applied) for a in intent.receipt_allocations] == [
            (older.id, Decimal("100")),
            (newer.id, Decimal("50")),
        ]

    async def test_customer_payment_without_application(self, db, factory):
        customer = await factory.customer()
        await factory.receipt(customer, total="100")

        intent = await sanitize_payment_input(db, {
            "amount": 150, "type": "CUSTOMER_PAYMENT", "customerId": customer.id, "applyToReceipts": False,
        })
        assert intent.apply_to_receipts is False
        assert intent.receipt_allocations == []
