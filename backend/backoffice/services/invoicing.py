"""
Back-office ledger - invoicing
Receipt selection, invoice creation and the mark-paid waterfall.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.core.errors import LedgerError
from backoffice.models.enums import InvoiceStatus, PaymentType, ReceiptType
from backoffice.models.invoice import Invoice, InvoiceReceipt
from backoffice.models.party import Customer
from backoffice.models.payment import INVOICE_PAYMENT_REFERENCE_PREFIX, Payment
from backoffice.models.receipt import Receipt, ReceiptPayment
from backoffice.services.allocation import (
    EPSILON, ZERO, OpenItem, apply_waterfall, is_settled, outstanding, round_money, to_decimal,
)
from backoffice.services.payment_sanitizer import parse_amount, parse_optional_id
from backoffice.services.reconciliation import recompute_receipts_paid

logger = logging.getLogger(__name__)


@dataclass
class InvoiceSelection:
    customer: Customer
    receipts: List[Receipt]
    receipt_type: ReceiptType
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total: Decimal
    amount_paid: Decimal
    outstanding: Decimal


async def select_receipts_for_invoice(
    db: AsyncSession,
    customer_id: int,
    receipt_ids: Optional[Sequence[Any]] = None,
    amount: Any = None,
    include_paid: bool = False,
    tva_rate: Decimal = Decimal("0.11"),
) -> InvoiceSelection:
    """
    Pick the receipts for a new invoice.

    Either an explicit id list or a target amount: receipts are taken oldest
    first until their totals reach the amount. All picked receipts must share
    one receipt type and none may already belong to an invoice.
    """
    if not receipt_ids and amount is None:
        raise LedgerError("INVOICE_SELECTION_REQUIRED")

    customer = await db.get(Customer, customer_id)
    if customer is None:
        raise LedgerError("CUSTOMER_NOT_FOUND")

    query = (
        select(Receipt)
        .where(Receipt.customer_id == customer_id)
        .order_by(Receipt.date.asc(), Receipt.id.asc())
    )
    if not include_paid:
        query = query.where(Receipt.is_paid.is_(False))
    candidates = list((await db.execute(query)).scalars().all())

    if receipt_ids:
        wanted = set()
        for raw in receipt_ids:
            try:
                parsed = parse_optional_id(raw, "INVALID_RECEIPT")
            except LedgerError:
                continue
            if parsed is not None:
                wanted.add(parsed)
        candidates = [r for r in candidates if r.id in wanted]
        if not candidates:
            raise LedgerError("NO_MATCHING_RECEIPTS")
    else:
        target = parse_amount(amount)
        selected: List[Receipt] = []
        running = ZERO
        for receipt in candidates:
            selected.append(receipt)
            running += to_decimal(receipt.total)
            if running >= target - EPSILON:
                break
        if not selected:
            raise LedgerError("NO_RECEIPTS_FOR_AMOUNT")
        candidates = selected

    if len({r.type for r in candidates}) > 1:
        raise LedgerError("MIXED_RECEIPT_TYPES")
    receipt_type = candidates[0].type

    already = (await db.execute(
        select(func.count(InvoiceReceipt.id))
        .where(InvoiceReceipt.receipt_id.in_([r.id for r in candidates]))
    )).scalar() or 0
    if already:
        raise LedgerError("RECEIPT_ALREADY_INVOICED")

    subtotal = sum((to_decimal(r.total) for r in candidates), ZERO)
    vat_rate = to_decimal(tva_rate) if receipt_type == ReceiptType.TVA else ZERO
    vat_amount = round_money(subtotal * vat_rate)
    total = round_money(subtotal + vat_amount)
    amount_paid = sum((to_decimal(r.amount_paid) for r in candidates), ZERO)

    return InvoiceSelection(
        customer=customer,
        receipts=candidates,
        receipt_type=receipt_type,
        subtotal=subtotal,
        vat_rate=vat_rate,
        vat_amount=vat_amount,
        total=total,
        amount_paid=amount_paid,
        outstanding=outstanding(total, amount_paid),
    )


async def create_invoice(
    db: AsyncSession,
    selection: InvoiceSelection,
    notes: Optional[str] = None,
) -> Invoice:
    """Persist an invoice snapshot and its receipt memberships"""
    fully_paid = selection.outstanding <= EPSILON
    invoice = Invoice(
        customer_id=selection.customer.id,
        receipt_type=selection.receipt_type,
        status=InvoiceStatus.PAID if fully_paid else InvoiceStatus.PENDING,
        subtotal=selection.subtotal,
        vat_rate=selection.vat_rate if selection.vat_rate > ZERO else None,
        vat_amount=selection.vat_amount if selection.vat_rate > ZERO else None,
        total=selection.total,
        amount_paid=min(selection.amount_paid, selection.total),
        outstanding=selection.outstanding,
        notes=notes.strip() if isinstance(notes, str) and notes.strip() else None,
        issued_at=datetime.utcnow(),
        paid_at=datetime.utcnow() if fully_paid else None,
    )
    db.add(invoice)
    await db.flush()

    for receipt in selection.receipts:
        db.add(InvoiceReceipt(invoice_id=invoice.id, receipt_id=receipt.id))
    invoice.invoice_no = f"INV-{invoice.id:05d}"
    await db.flush()

    logger.info(
        f"[Invoice] created {invoice.invoice_no} for customer #{invoice.customer_id} "
        f"({len(selection.receipts)} receipts, total {invoice.total})"
    )
    return invoice


async def load_invoice(db: AsyncSession, invoice_id: int) -> Optional[Invoice]:
    result = await db.execute(
        select(Invoice)
        .options(selectinload(Invoice.invoice_receipts).selectinload(InvoiceReceipt.receipt))
        .where(Invoice.id == invoice_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_invoices(
    db: AsyncSession,
    status: Optional[InvoiceStatus] = None,
    customer_id: Optional[int] = None,
) -> Sequence[Invoice]:
    query = (
        select(Invoice)
        .options(selectinload(Invoice.invoice_receipts).selectinload(InvoiceReceipt.receipt))
        .order_by(Invoice.issued_at.desc(), Invoice.id.desc())
    )
    if status is not None:
        query = query.where(Invoice.status == status)
    if customer_id is not None:
        query = query.where(Invoice.customer_id == customer_id)
    return (await db.execute(query)).scalars().all()


async def mark_invoice_paid(
    db: AsyncSession,
    invoice_id: int,
    paid_at: Optional[datetime] = None,
) -> Tuple[Invoice, Optional[Payment]]:
    """
    Settle an invoice.

    When money is still outstanding a CUSTOMER_PAYMENT is booked for it and
    spread over the invoice's receipts oldest first. The invoice is then
    marked PAID in full.

    Returns:
        (invoice, payment or None when nothing was outstanding)
    """
    invoice = await load_invoice(db, invoice_id)
    if invoice is None:
        raise LedgerError("INVOICE_NOT_FOUND")
    if invoice.status == InvoiceStatus.PAID:
        raise LedgerError("INVOICE_ALREADY_PAID")

    paid_at = paid_at or datetime.utcnow()
    due = outstanding(invoice.total, invoice.amount_paid)
    payment = None

    if due > EPSILON:
        payment = Payment(
            date=paid_at,
            amount=round_money(due),
            type=PaymentType.CUSTOMER_PAYMENT,
            customer_id=invoice.customer_id,
            description=f"Invoice {invoice.invoice_no or invoice.id} payment",
            reference=f"{INVOICE_PAYMENT_REFERENCE_PREFIX}{invoice.id}",
        )
        db.add(payment)
        await db.flush()

        receipts = sorted(
            (link.receipt for link in invoice.invoice_receipts if link.receipt is not None),
            key=lambda r: (r.date, r.id),
        )
        plan = apply_waterfall(
            payment.amount,
            [OpenItem(id=r.id, total=r.total, paid=r.amount_paid) for r in receipts],
        )
        by_id = {r.id: r for r in receipts}
        for alloc in plan.allocations:
            receipt = by_id[alloc.entity_id]
            db.add(ReceiptPayment(payment_id=payment.id, receipt_id=receipt.id, amount=alloc.applied))
            receipt.amount_paid = alloc.new_paid
            receipt.is_paid = is_settled(receipt.total, alloc.new_paid)
        await recompute_receipts_paid(db, [a.entity_id for a in plan.allocations])

    invoice.status = InvoiceStatus.PAID
    invoice.amount_paid = invoice.total
    invoice.outstanding = ZERO
    invoice.paid_at = paid_at
    await db.flush()

    logger.info(
        f"[Invoice] {invoice.invoice_no} marked paid"
        + (f" via payment #{payment.id} ({payment.amount})" if payment else "")
    )
    return invoice, payment


async def delete_invoice(db: AsyncSession, invoice_id: int) -> Invoice:
    """Remove an invoice and its memberships; receipts and payments stay"""
    invoice = await load_invoice(db, invoice_id)
    if invoice is None:
        raise LedgerError("INVOICE_NOT_FOUND")
    await db.delete(invoice)
    await db.flush()
    logger.info(f"[Invoice] deleted {invoice.invoice_no or invoice.id}")
    return invoice


async def customer_old_balance(
    db: AsyncSession, customer_id: int, exclude_receipt_ids: Iterable[int] = ()
) -> Decimal:
    """Outstanding on the customer's other unpaid receipts"""
    query = select(Receipt).where(
        Receipt.customer_id == customer_id,
        Receipt.is_paid.is_(False),
    )
    excluded = list(exclude_receipt_ids)
    if excluded:
        query = query.where(Receipt.id.not_in(excluded))
    receipts = (await db.execute(query)).scalars().all()
    return sum((outstanding(r.total, r.amount_paid) for r in receipts), ZERO)
