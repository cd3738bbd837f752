"""
Back-office ledger - balances and cash flow
Read-only reports. Every call re-queries the rows it needs.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.models.enums import (
    CASH_IN_TYPES, CASH_OUT_TYPES, InventoryEntryType, PaymentType,
)
from backoffice.models.inventory import InventoryEntry
from backoffice.models.party import Customer, Supplier
from backoffice.models.payment import INVOICE_PAYMENT_REFERENCE_PREFIX, Payment
from backoffice.models.receipt import Receipt, ReceiptPayment
from backoffice.models.settlement import SettlementAllocation
from backoffice.services.allocation import ZERO, outstanding, to_decimal
from backoffice.services.reconciliation import inventory_total

logger = logging.getLogger(__name__)


@dataclass
class PartyBalance:
    id: int
    name: str
    outstanding: Decimal = ZERO
    manual_override: Optional[Decimal] = None
    unapplied_credit: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.outstanding + to_decimal(self.manual_override) - self.unapplied_credit


@dataclass
class CashFlowLine:
    id: str
    type: PaymentType
    label: str
    amount: Decimal
    date: datetime
    receipt_no: Optional[str] = None


@dataclass
class CashFlowReport:
    inflows: List[CashFlowLine] = field(default_factory=list)
    outflows: List[CashFlowLine] = field(default_factory=list)

    @property
    def inflow_total(self) -> Decimal:
        return sum((line.amount for line in self.inflows), ZERO)

    @property
    def outflow_total(self) -> Decimal:
        return sum((line.amount for line in self.outflows), ZERO)

    @property
    def cash_on_hand(self) -> Decimal:
        return self.inflow_total - self.outflow_total


# ============================================================================
# unapplied credit
# ============================================================================

async def _unapplied_credit_by_customer(
    db: AsyncSession, customer_id: Optional[int] = None
) -> Dict[int, Decimal]:
    """
    CUSTOMER_PAYMENT amount minus what its links absorbed, summed per customer.

    Invoice settlements are left out: their unlinked part is the VAT on the
    invoice, not money the customer can spend.
    """
    linked = (
        select(
            ReceiptPayment.payment_id.label("payment_id"),
            func.sum(ReceiptPayment.amount).label("linked"),
        )
        .group_by(ReceiptPayment.payment_id)
        .subquery()
    )
    query = (
        select(Payment.customer_id, Payment.amount, func.coalesce(linked.c.linked, 0))
        .outerjoin(linked, linked.c.payment_id == Payment.id)
        .where(
            Payment.type == PaymentType.CUSTOMER_PAYMENT,
            Payment.customer_id.is_not(None),
            or_(
                Payment.reference.is_(None),
                Payment.reference.not_like(f"{INVOICE_PAYMENT_REFERENCE_PREFIX}%"),
            ),
        )
    )
    if customer_id is not None:
        query = query.where(Payment.customer_id == customer_id)

    credit: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for cust_id, amount, linked_amount in (await db.execute(query)).all():
        credit[cust_id] += outstanding(amount, linked_amount)
    return dict(credit)


async def unapplied_credit(db: AsyncSession, customer_id: int) -> Decimal:
    """Money a customer paid that no receipt has absorbed yet"""
    return (await _unapplied_credit_by_customer(db, customer_id)).get(customer_id, ZERO)


# ============================================================================
# receivables / payables
# ============================================================================

async def customer_receivables(db: AsyncSession) -> List[PartyBalance]:
    """Per customer: receipt outstanding, manual override and unapplied credit"""
    customers = (await db.execute(select(Customer).order_by(Customer.name.asc(), Customer.id.asc()))).scalars().all()
    receipts = (await db.execute(
        select(Receipt.customer_id, Receipt.total, Receipt.amount_paid)
        .where(Receipt.customer_id.is_not(None))
    )).all()
    credit = await _unapplied_credit_by_customer(db)

    owed: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for cust_id, total, paid in receipts:
        owed[cust_id] += outstanding(total, paid)

    return [
        PartyBalance(
            id=c.id,
            name=c.name,
            outstanding=owed.get(c.id, ZERO),
            manual_override=c.manual_balance_override,
            unapplied_credit=credit.get(c.id, ZERO),
        )
        for c in customers
    ]


async def supplier_payables(db: AsyncSession) -> List[PartyBalance]:
    """Per supplier: purchase outstanding and manual override"""
    suppliers = (await db.execute(select(Supplier).order_by(Supplier.name.asc(), Supplier.id.asc()))).scalars().all()
    purchases = (await db.execute(
        select(InventoryEntry).where(
            InventoryEntry.type == InventoryEntryType.PURCHASE,
            InventoryEntry.supplier_id.is_not(None),
        )
    )).scalars().all()

    owed: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for entry in purchases:
        owed[entry.supplier_id] += outstanding(inventory_total(entry), entry.amount_paid)

    return [
        PartyBalance(
            id=s.id,
            name=s.name,
            outstanding=owed.get(s.id, ZERO),
            manual_override=s.manual_balance_override,
        )
        for s in suppliers
    ]


# ============================================================================
# cash flow
# ============================================================================

def _payment_label(payment: Payment) -> str:
    party = payment.customer or payment.supplier
    return (
        payment.description
        or (party.name if party is not None else None)
        or payment.reference
        or f"Payment #{payment.id}"
    )


async def cash_flows(
    db: AsyncSession,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> CashFlowReport:
    """
    Money in and out over a date range.

    Inflows are RECEIPT and CUSTOMER_PAYMENT payments plus receipts that were
    marked paid without any payment row. Settlement offsets move no cash and
    are left out.
    """
    def in_range(column):
        criteria = []
        if start is not None:
            criteria.append(column >= start)
        if end is not None:
            criteria.append(column <= end)
        return criteria

    payments = (await db.execute(
        select(Payment)
        .options(
            selectinload(Payment.customer),
            selectinload(Payment.supplier),
            selectinload(Payment.receipt),
        )
        .where(Payment.type.in_(CASH_IN_TYPES + CASH_OUT_TYPES), *in_range(Payment.date))
        .order_by(Payment.date.desc(), Payment.id.desc())
    )).scalars().all()

    report = CashFlowReport()
    for payment in payments:
        line = CashFlowLine(
            id=f"payment-{payment.id}",
            type=payment.type,
            label=_payment_label(payment),
            amount=to_decimal(payment.amount),
            date=payment.date,
            receipt_no=payment.receipt.receipt_no if payment.receipt is not None else None,
        )
        if payment.type in CASH_IN_TYPES:
            report.inflows.append(line)
        else:
            report.outflows.append(line)

    direct_receipts = (await db.execute(
        select(Receipt)
        .where(
            Receipt.is_paid.is_(True),
            Receipt.amount_paid > 0,
            Receipt.id.not_in(select(ReceiptPayment.receipt_id)),
            Receipt.id.not_in(
                select(Payment.receipt_id).where(Payment.receipt_id.is_not(None))
            ),
            Receipt.id.not_in(
                select(SettlementAllocation.receipt_id)
                .where(SettlementAllocation.receipt_id.is_not(None))
            ),
            *in_range(Receipt.date),
        )
        .order_by(Receipt.date.desc(), Receipt.id.desc())
    )).scalars().all()

    for receipt in direct_receipts:
        label = receipt.receipt_no or f"Receipt #{receipt.id}"
        report.inflows.append(CashFlowLine(
            id=f"direct-receipt-{receipt.id}",
            type=PaymentType.RECEIPT,
            label=label,
            amount=to_decimal(receipt.amount_paid),
            date=receipt.date,
            receipt_no=label,
        ))

    logger.debug(
        f"[Report] cash flow {start} - {end}: "
        f"{len(report.inflows)} in, {len(report.outflows)} out"
    )
    return report
