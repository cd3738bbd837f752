"""
Back-office ledger - payment effects
Applies a validated payment to the ledger and undoes it again. Every
function here runs inside the caller's transaction and never commits.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.core.errors import LedgerError
from backoffice.models.debris import DebrisEntry
from backoffice.models.enums import (
    DebrisStatus, InventoryEntryType, PaymentType, PAYROLL_PAYMENT_TYPES,
)
from backoffice.models.inventory import InventoryEntry, InventoryPayment
from backoffice.models.payment import Payment
from backoffice.models.payroll import PayrollEntry
from backoffice.models.receipt import Receipt, ReceiptPayment
from backoffice.services.allocation import (
    OpenItem, ZERO, apply_waterfall, is_settled, outstanding,
)
from backoffice.services.payment_sanitizer import SanitizedPayment, plan_customer_allocation
from backoffice.services.reconciliation import (
    inventory_total, recompute_inventory_paid, recompute_receipts_paid,
)

logger = logging.getLogger(__name__)


@dataclass
class TouchedEntities:
    receipt_ids: Set[int] = field(default_factory=set)
    inventory_ids: Set[int] = field(default_factory=set)
    payroll_entry_id: Optional[int] = None
    debris_entry_id: Optional[int] = None


async def load_payment(db: AsyncSession, payment_id: int) -> Optional[Payment]:
    """Payment with its allocation links, refreshed from the database"""
    result = await db.execute(
        select(Payment)
        .options(
            selectinload(Payment.receipt_payments),
            selectinload(Payment.inventory_payments),
        )
        .where(Payment.id == payment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# =============================================================================
# applier
# =============================================================================

def _link_receipt(db: AsyncSession, payment: Payment, receipt: Receipt, applied) -> None:
    db.add(ReceiptPayment(payment_id=payment.id, receipt_id=receipt.id, amount=applied))
    receipt.amount_paid = receipt.amount_paid + applied
    receipt.is_paid = is_settled(receipt.total, receipt.amount_paid)


async def apply_payment_effects(
    db: AsyncSession, payment: Payment, intent: SanitizedPayment
) -> TouchedEntities:
    """
    Create link rows for a persisted payment and update linked entities.

    Touched receipts and purchases are passed through the recompute pass
    before returning.
    """
    touched = TouchedEntities()

    if intent.type == PaymentType.RECEIPT and intent.receipt_id is not None:
        receipt = await db.get(Receipt, intent.receipt_id)
        if receipt is not None:
            applied = min(payment.amount, outstanding(receipt.total, receipt.amount_paid))
            if applied > ZERO:
                _link_receipt(db, payment, receipt, applied)
                touched.receipt_ids.add(receipt.id)

    elif intent.type == PaymentType.CUSTOMER_PAYMENT and intent.apply_to_receipts:
        for alloc in intent.receipt_allocations:
            if alloc.applied <= ZERO:
                continue
            receipt = await db.get(Receipt, alloc.entity_id)
            if receipt is None:
                continue
            _link_receipt(db, payment, receipt, alloc.applied)
            touched.receipt_ids.add(receipt.id)

    elif intent.type == PaymentType.SUPPLIER and intent.apply_to_purchases and intent.supplier_id:
        entries = (await db.execute(
            select(InventoryEntry)
            .where(
                InventoryEntry.supplier_id == intent.supplier_id,
                InventoryEntry.type == InventoryEntryType.PURCHASE,
                InventoryEntry.is_paid.is_(False),
            )
            .order_by(InventoryEntry.entry_date.asc(), InventoryEntry.id.asc())
        )).scalars().all()
        by_id = {e.id: e for e in entries}

        plan = apply_waterfall(
            payment.amount,
            [OpenItem(id=e.id, total=inventory_total(e), paid=e.amount_paid) for e in entries],
        )
        for alloc in plan.allocations:
            entry = by_id[alloc.entity_id]
            db.add(InventoryPayment(
                payment_id=payment.id,
                inventory_entry_id=entry.id,
                amount=alloc.applied,
            ))
            entry.amount_paid = alloc.new_paid
            entry.is_paid = is_settled(inventory_total(entry), alloc.new_paid)
            touched.inventory_ids.add(entry.id)

    elif intent.type in PAYROLL_PAYMENT_TYPES and intent.payroll_entry_id is not None:
        entry = await db.get(PayrollEntry, intent.payroll_entry_id)
        entry.payment_id = payment.id
        touched.payroll_entry_id = entry.id

    elif intent.type == PaymentType.DEBRIS_REMOVAL and intent.debris_entry_id is not None:
        debris = await db.get(DebrisEntry, intent.debris_entry_id)
        debris.status = DebrisStatus.REMOVED
        debris.removal_cost = payment.amount
        debris.removal_date = payment.date
        debris.removal_payment_id = payment.id
        touched.debris_entry_id = debris.id

    # GENERAL_EXPENSE / OWNER_DRAW / PAYROLL_RUN: the payment row is the whole effect

    await db.flush()
    await recompute_receipts_paid(db, touched.receipt_ids)
    await recompute_inventory_paid(db, touched.inventory_ids)
    return touched


# =============================================================================
# reverser
# =============================================================================

async def revert_payment_effects(db: AsyncSession, payment: Payment) -> TouchedEntities:
    """
    Undo everything apply_payment_effects did for this payment.

    `payment` must be loaded with its links (see load_payment).
    """
    touched = TouchedEntities()
    if payment.receipt_id is not None:
        touched.receipt_ids.add(payment.receipt_id)

    for link in list(payment.receipt_payments):
        receipt = await db.get(Receipt, link.receipt_id)
        if receipt is None:
            continue
        receipt.amount_paid = max(receipt.amount_paid - link.amount, ZERO)
        receipt.is_paid = is_settled(receipt.total, receipt.amount_paid)
        touched.receipt_ids.add(receipt.id)
    payment.receipt_payments.clear()

    for link in list(payment.inventory_payments):
        entry = await db.get(InventoryEntry, link.inventory_entry_id)
        if entry is None:
            continue
        entry.amount_paid = max(entry.amount_paid - link.amount, ZERO)
        entry.is_paid = is_settled(inventory_total(entry), entry.amount_paid)
        touched.inventory_ids.add(entry.id)
    payment.inventory_payments.clear()

    payroll_entries = (await db.execute(
        select(PayrollEntry).where(PayrollEntry.payment_id == payment.id)
    )).scalars().all()
    for entry in payroll_entries:
        entry.payment_id = None
        touched.payroll_entry_id = entry.id

    debris_entries = (await db.execute(
        select(DebrisEntry).where(DebrisEntry.removal_payment_id == payment.id)
    )).scalars().all()
    for debris in debris_entries:
        debris.status = DebrisStatus.PENDING
        debris.removal_cost = None
        debris.removal_date = None
        debris.removal_payment_id = None
        touched.debris_entry_id = debris.id

    await db.flush()
    await recompute_receipts_paid(db, touched.receipt_ids, exclude_payment_ids={payment.id})
    await recompute_inventory_paid(db, touched.inventory_ids)
    return touched


# =============================================================================
# create / update / delete
# =============================================================================

def _assign_fields(payment: Payment, intent: SanitizedPayment) -> None:
    if intent.has_date_override:
        payment.date = intent.date
    payment.amount = intent.amount
    payment.type = intent.type
    payment.description = intent.description
    payment.category = intent.category
    payment.reference = intent.reference
    payment.supplier_id = intent.supplier_id
    payment.customer_id = intent.customer_id
    payment.receipt_id = intent.receipt_id


async def create_payment(db: AsyncSession, intent: SanitizedPayment) -> Payment:
    """Insert the payment row and apply its effects"""
    payment = Payment(date=intent.date or datetime.utcnow())
    _assign_fields(payment, intent)
    db.add(payment)
    await db.flush()

    touched = await apply_payment_effects(db, payment, intent)
    logger.info(
        f"[Payment] created #{payment.id} {payment.type.value} {payment.amount} "
        f"(receipts={sorted(touched.receipt_ids)}, purchases={sorted(touched.inventory_ids)})"
    )
    return payment


async def update_payment(db: AsyncSession, payment_id: int, intent: SanitizedPayment) -> Payment:
    """Reverse the old effects, rewrite the row, apply the new effects"""
    payment = await load_payment(db, payment_id)
    if payment is None:
        raise LedgerError("PAYMENT_NOT_FOUND")

    await revert_payment_effects(db, payment)
    _assign_fields(payment, intent)
    await db.flush()

    # the old links no longer count against the receipts, plan again
    if intent.type == PaymentType.CUSTOMER_PAYMENT and intent.apply_to_receipts:
        intent.receipt_allocations = await plan_customer_allocation(
            db, intent.customer_id, intent.amount
        )

    touched = await apply_payment_effects(db, payment, intent)
    logger.info(
        f"[Payment] updated #{payment.id} {payment.type.value} {payment.amount} "
        f"(receipts={sorted(touched.receipt_ids)}, purchases={sorted(touched.inventory_ids)})"
    )
    return payment


async def delete_payment(db: AsyncSession, payment_id: int) -> Payment:
    """Reverse the payment's effects and delete it"""
    payment = await load_payment(db, payment_id)
    if payment is None:
        raise LedgerError("PAYMENT_NOT_FOUND")

    await revert_payment_effects(db, payment)
    await db.delete(payment)
    await db.flush()
    logger.info(f"[Payment] deleted #{payment_id}")
    return payment
