"""
Applying, editing and deleting payments against receipts, purchases,
payroll and debris.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from backoffice.core.errors import LedgerError
from backoffice.models.enums import DebrisStatus, PaymentType
from backoffice.models.inventory import InventoryPayment
from backoffice.models.payment import Payment
from backoffice.models.receipt import ReceiptPayment
from backoffice.services.payment_effects import (
    create_payment,
    delete_payment,
    load_payment,
    update_payment,
)
from backoffice.services.payment_sanitizer import sanitize_payment_input
from backoffice.services.reconciliation import recompute_receipts_paid


async def pay(db, **payload):
    intent = await sanitize_payment_input(db, payload)
    return await create_payment(db, intent)


async def edit(db, payment_id, **payload):
    existing = await load_payment(db, payment_id)
    intent = await sanitize_payment_input(db, payload, existing_payment=existing)
    return await update_payment(db, payment_id, intent)


async def receipt_links(db, receipt_id):
    return (await db.execute(
        select(ReceiptPayment).where(ReceiptPayment.receipt_id == receipt_id)
    )).scalars().all()


async def linked_sum(db, receipt_id):
    return sum((link.amount for link in await receipt_links(db, receipt_id)), Decimal("0"))


# =============================================================================
# receipts
# =============================================================================


class TestReceiptPayments:

    async def test_receipt_payment_is_capped_at_outstanding(self, db, factory):
        customer = await factory.customer()
        receipt = await factory.receipt(customer, total="80")

        payment = await pay(db, amount=100, type="RECEIPT", receiptId=receipt.id)

        links = await receipt_links(db, receipt.id)
        assert [link.amount for link in links] == [Decimal("80")]
        assert links[0].payment_id == payment.id
        assert receipt.amount_paid == Decimal("80")
        assert receipt.is_paid is True

    async def test_customer_payment_oldest_first(self, db, factory):
        customer = await factory.customer()
        first = await factory.receipt(customer, total="100", date=datetime(2024, 1, 1))
        second = await factory.receipt(customer, total="50", date=datetime(2024, 1, 5))

        await pay(db, amount=120, type="CUSTOMER_PAYMENT", customerId=customer.id)

        assert first.amount_paid == Decimal("100")
        assert first.is_paid is True
        assert second.amount_paid == Decimal("20")
        assert second.total - second.amount_paid == Decimal("30")
        assert second.is_paid is False

    async def test_customer_overpayment_leaves_unlinked_remainder(self, db, factory):
        customer = await factory.customer()
        receipt = await factory.receipt(customer, total="40")

        payment = await pay(db, amount=100, type="CUSTOMER_PAYMENT", customerId=customer.id)

        assert receipt.amount_paid == Decimal("40")
        assert await linked_sum(db, receipt.id) == Decimal("40")
        assert payment.amount == Decimal("100")

    async def test_amount_paid_matches_links_after_many_operations(self, db, factory):
        customer = await factory.customer()
        receipts = [
            await factory.receipt(customer, total="100", date=datetime(2024, 1, day))
            for day in (1, 2, 3)
        ]

        p1 = await pay(db, amount=70, type="CUSTOMER_PAYMENT", customerId=customer.id)
        p2 = await pay(db, amount=90, type="CUSTOMER_PAYMENT", customerId=customer.id)
        await pay(db, amount=25, type="RECEIPT", receiptId=receipts[2].id)
        await edit(db, p1.id, amount=30, type="CUSTOMER_PAYMENT", customerId=customer.id)
        await delete_payment(db, p2.id)

        for receipt in receipts:
            assert receipt.amount_paid == await linked_sum(db, receipt.id)
            assert receipt.amount_paid <= receipt.total


# =============================================================================
# reversal
# =============================================================================


class TestReversal:

    async def test_delete_restores_previous_state(self, db, factory):
        customer = await factory.customer()
        first = await factory.receipt(customer, total="100", date=datetime(2024, 1, 1))
        second = await factory.receipt(customer, total="100", date=datetime(2024, 1, 2))
        await pay(db, amount=30, type="RECEIPT", receiptId=first.id)
        before = [(r.amount_paid, r.is_paid) for r in (first, second)]

        payment = await pay(db, amount=150, type="CUSTOMER_PAYMENT", customerId=customer.id)
        assert first.is_paid is True

        await delete_payment(db, payment.id)

        assert [(r.amount_paid, r.is_paid) for r in (first, second)] == before
        remaining = (await db.execute(
            select(func.count(ReceiptPayment.id)).where(ReceiptPayment.payment_id == payment.id)
        )).scalar()
        assert remaining == 0
        assert await db.get(Payment, payment.id) is None

    async def test_payment_on_settled_receipt_leaves_nothing_behind(self, db, factory):
        customer = await factory.customer()
        receipt = await factory.receipt(customer, total="100")
        full = await pay(db, amount=100, type="RECEIPT", receiptId=receipt.id)
        extra = await pay(db, amount=30, type="RECEIPT", receiptId=receipt.id)
        assert await linked_sum(db, extra.receipt_id) == Decimal("100")

        await delete_payment(db, full.id)
        assert receipt.amount_paid == Decimal("0")
        assert receipt.is_paid is False

        await delete_payment(db, extra.id)
        assert receipt.amount_paid == Decimal("0")
        assert await linked_sum(db, receipt.id) == Decimal("0")
        assert (await db.execute(select(func.count(Payment.id)))).scalar() == 0

    async def test_edit_moves_receipt_payment_to_new_target(self, db, factory):
        customer = await factory.customer()
        receipt_a = await factory.receipt(customer, total="100")
        receipt_b = await factory.receipt(customer, total="30")

        payment = await pay(db, amount=50, type="RECEIPT", receiptId=receipt_a.id)
        assert receipt_a.amount_paid == Decimal("50")

        await edit(db, payment.id, amount=50, type="RECEIPT", receiptId=receipt_b.id)

        assert receipt_a.amount_paid == Decimal("0")
        assert receipt_b.amount_paid == Decimal("30")
        links = (await db.execute(
            select(ReceiptPayment).where(ReceiptPayment.payment_id == payment.id)
        )).scalars().all()
        assert [(link.receipt_id, link.amount) for link in links] == [(receipt_b.id, Decimal("30"))]

    async def test_edit_to_general_expense_drops_links(self, db, factory):
        customer = await factory.customer()
        receipt = await factory.receipt(customer, total="100")
        payment = await pay(db, amount=60, type="CUSTOMER_PAYMENT", customerId=customer.id)

        await edit(db, payment.id, amount=60, type="GENERAL_EXPENSE", customerId=customer.id)

        assert receipt.amount_paid == Decimal("0")
        assert payment.type == PaymentType.GENERAL_EXPENSE
        assert payment.customer_id is None
        assert await receipt_links(db, receipt.id) == []

    async def test_edit_reapplies_customer_payment_against_freed_balance(self, db, factory):
        customer = await factory.customer()
        receipt = await factory.receipt(customer, total="100")
        payment = await pay(db, amount=100, type="CUSTOMER_PAYMENT", customerId=customer.id)

        await edit(db, payment.id, amount=80, type="CUSTOMER_PAYMENT", customerId=customer.id)

        assert receipt.amount_paid == Decimal("80")
        assert receipt.is_paid is False

    async def test_missing_payment(self, db):
        with pytest.raises(LedgerError) as excinfo:
            await delete_payment(db, 404)
        assert excinfo.value.code == "PAYMENT_NOT_FOUND"


# =============================================================================
# suppliers / payroll / debris
# =============================================================================


class TestOtherTargets:

    async def test_supplier_payment_waterfall_and_delete(self, db, factory):
        supplier = await factory.supplier()
        first = await factory.purchase(supplier, total="100", date=datetime(2024, 1, 1))
        second = await factory.purchase(supplier, total="100", date=datetime(2024, 1, 2))

        payment = await pay(db, amount=150, type="SUPPLIER", supplierId=supplier.id)
        assert (first.amount_paid, first.is_paid) == (Decimal("100"), True)
        assert (second.amount_paid, second.is_paid) == (Decimal("50"), False)

        await delete_payment(db, payment.id)
        assert first.amount_paid == Decimal("0")
        assert second.amount_paid == Decimal("0")
        remaining = (await db.execute(select(func.count(InventoryPayment.id)))).scalar()
        assert remaining == 0

    async def test_supplier_payment_without_application(self, db, factory):
        supplier = await factory.supplier()
        purchase = await factory.purchase(supplier, total="100")

        await pay(db, amount=50, type="SUPPLIER", supplierId=supplier.id, applyToPurchases=False)
        assert purchase.amount_paid == Decimal("0")

    async def test_payroll_attach_and_detach(self, db, factory):
        employee = await factory.employee()
        entry = await factory.payroll(employee)

        payment = await pay(db, amount=500, type="PAYROLL_SALARY", payrollEntryId=entry.id)
        assert entry.payment_id == payment.id

        await delete_payment(db, payment.id)
        assert entry.payment_id is None

    async def test_second_payroll_payment_is_rejected_without_changes(self, db, factory):
        employee = await factory.employee()
        entry = await factory.payroll(employee)
        first = await pay(db, amount=500, type="PAYROLL_SALARY", payrollEntryId=entry.id)
        count_before = (await db.execute(select(func.count(Payment.id)))).scalar()

        with pytest.raises(LedgerError) as excinfo:
            await pay(db, amount=500, type="PAYROLL_PIECEWORK", payrollEntryId=entry.id)

        assert excinfo.value.code == "PAYROLL_ALREADY_PAID"
        assert entry.payment_id == first.id
        assert (await db.execute(select(func.count(Payment.id)))).scalar() == count_before

    async def test_editing_payroll_payment_keeps_its_own_entry(self, db, factory):
        employee = await factory.employee()
        entry = await factory.payroll(employee)
        payment = await pay(db, amount=500, type="PAYROLL_SALARY", payrollEntryId=entry.id)

        await edit(db, payment.id, amount=450, type="PAYROLL_SALARY", payrollEntryId=entry.id)

        assert entry.payment_id == payment.id
        assert payment.amount == Decimal("450")

    async def test_debris_removal_round_trip(self, db, factory):
        debris = await factory.debris()

        payment = await pay(db, amount=75, type="DEBRIS_REMOVAL", debrisEntryId=debris.id)
        assert debris.status == DebrisStatus.REMOVED
        assert debris.removal_cost == Decimal("75")
        assert debris.removal_payment_id == payment.id

        await delete_payment(db, payment.id)
        assert debris.status == DebrisStatus.PENDING
        assert debris.removal_cost is None
        assert debris.removal_payment_id is None


# =============================================================================
# recompute
# =============================================================================


class TestRecompute:

    async def test_recompute_is_idempotent(self, db, factory):
        customer = await factory.customer()
        receipt = await factory.receipt(customer, total="100")
        await pay(db, amount=45, type="CUSTOMER_PAYMENT", customerId=customer.id)

        await recompute_receipts_paid(db, [receipt.id])
        once = (receipt.amount_paid, receipt.is_paid)
        await recompute_receipts_paid(db, [receipt.id])

        assert (receipt.amount_paid, receipt.is_paid) == once == (Decimal("45"), False)

    async def test_legacy_receipt_payment_counts_up_to_outstanding(self, db, factory):
        customer = await factory.customer()
        receipt = await factory.receipt(customer, total="60")
        db.add(Payment(
            date=datetime(2024, 1, 2),
            amount=Decimal("80"),
            type=PaymentType.RECEIPT,
            receipt_id=receipt.id,
            is_legacy=True,
        ))
        await db.flush()

        await recompute_receipts_paid(db, [receipt.id])

        assert receipt.amount_paid == Decimal("60")
        assert receipt.is_paid is True

    async def test_stale_amount_paid_is_corrected(self, db, factory):
        customer = await factory.customer()
        receipt = await factory.receipt(customer, total="100", amount_paid="90")

        await recompute_receipts_paid(db, [receipt.id])

        assert receipt.amount_paid == Decimal("0")
        assert receipt.is_paid is False
