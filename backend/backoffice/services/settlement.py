"""
Back-office ledger - pairing, barter settlement and party merges
A customer who is also a supplier can be paired 1:1 with that supplier; the
settle-pairs pass nets receivables against payables without moving cash.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import select, update, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.errors import LedgerError
from backoffice.models.debris import DebrisEntry
from backoffice.models.enums import InventoryEntryType
from backoffice.models.inventory import InventoryEntry
from backoffice.models.invoice import Invoice
from backoffice.models.party import Customer, Supplier, CustomerSupplierLink
from backoffice.models.payment import Payment
from backoffice.models.receipt import Receipt
from backoffice.models.settlement import PairSettlement, SettlementAllocation
from backoffice.services.allocation import (
    EPSILON, ZERO, OpenItem, apply_waterfall, to_decimal,
)
from backoffice.services.payment_sanitizer import parse_optional_id
from backoffice.services.reconciliation import (
    inventory_total, recompute_inventory_paid, recompute_receipts_paid,
)

logger = logging.getLogger(__name__)


@dataclass
class PairSettlementResult:
    customer_id: int
    supplier_id: int
    applied_to_receipts: Decimal
    applied_to_purchases: Decimal
    settlement_id: Optional[int] = None


@dataclass
class MergeResult:
    source_id: int
    target_id: int
    source_name: str
    target_name: str


# =============================================================================
# pairing
# =============================================================================

async def pair_customer_supplier(
    db: AsyncSession, customer_id: Any, supplier_id: Any
) -> CustomerSupplierLink:
    """Link a customer and a supplier, dropping any pairing either had"""
    customer_id = parse_optional_id(customer_id, "INVALID_CUSTOMER")
    supplier_id = parse_optional_id(supplier_id, "INVALID_SUPPLIER")
    if customer_id is None:
        raise LedgerError("INVALID_CUSTOMER")
    if supplier_id is None:
        raise LedgerError("INVALID_SUPPLIER")

    customer = await db.get(Customer, customer_id)
    if customer is None:
        raise LedgerError("CUSTOMER_NOT_FOUND")
    supplier = await db.get(Supplier, supplier_id)
    if supplier is None:
        raise LedgerError("SUPPLIER_NOT_FOUND")

    await db.execute(
        delete(CustomerSupplierLink).where(
            or_(
                CustomerSupplierLink.customer_id == customer_id,
                CustomerSupplierLink.supplier_id == supplier_id,
            )
        )
    )
    link = CustomerSupplierLink(customer_id=customer_id, supplier_id=supplier_id)
    db.add(link)
    await db.flush()

    logger.info(f"[Settlement] paired customer #{customer_id} with supplier #{supplier_id}")
    return link


# =============================================================================
# settle pairs
# =============================================================================

def _effective_paid(total: Decimal, amount_paid: Any, is_paid: bool) -> Decimal:
    paid = to_decimal(amount_paid)
    if is_paid and total > paid:
        return total
    return paid


async def _settle_pair(
    db: AsyncSession, link: CustomerSupplierLink, user_email: Optional[str]
) -> PairSettlementResult:
    receipts = (await db.execute(
        select(Receipt)
        .where(Receipt.customer_id == link.customer_id, Receipt.is_paid.is_(False))
        .order_by(Receipt.date.asc(), Receipt.id.asc())
    )).scalars().all()
    purchases = (await db.execute(
        select(InventoryEntry)
        .where(
            InventoryEntry.supplier_id == link.supplier_id,
            InventoryEntry.type == InventoryEntryType.PURCHASE,
            InventoryEntry.is_paid.is_(False),
        )
        .order_by(InventoryEntry.entry_date.asc(), InventoryEntry.id.asc())
    )).scalars().all()

    receipt_items = [
        OpenItem(id=r.id, total=to_decimal(r.total),
                 paid=_effective_paid(to_decimal(r.total), r.amount_paid, r.is_paid))
        for r in receipts
    ]
    purchase_items = [
        OpenItem(id=p.id, total=inventory_total(p),
                 paid=_effective_paid(inventory_total(p), p.amount_paid, p.is_paid))
        for p in purchases
    ]

    receivable = sum((item.outstanding for item in receipt_items), ZERO)
    payable = sum((item.outstanding for item in purchase_items), ZERO)
    offset = min(receivable, payable)

    result = PairSettlementResult(
        customer_id=link.customer_id,
        supplier_id=link.supplier_id,
        applied_to_receipts=ZERO,
        applied_to_purchases=ZERO,
    )
    if offset <= EPSILON:
        return result

    receipt_plan = apply_waterfall(offset, receipt_items)
    purchase_plan = apply_waterfall(receipt_plan.applied_total, purchase_items)

    settlement = PairSettlement(
        customer_id=link.customer_id,
        supplier_id=link.supplier_id,
        amount=receipt_plan.applied_total,
        created_by=user_email,
    )
    db.add(settlement)
    await db.flush()

    for alloc in receipt_plan.allocations:
        db.add(SettlementAllocation(
            settlement_id=settlement.id, receipt_id=alloc.entity_id, amount=alloc.applied
        ))
    for alloc in purchase_plan.allocations:
        db.add(SettlementAllocation(
            settlement_id=settlement.id, inventory_entry_id=alloc.entity_id, amount=alloc.applied
        ))
    await db.flush()

    await recompute_receipts_paid(db, [a.entity_id for a in receipt_plan.allocations])
    await recompute_inventory_paid(db, [a.entity_id for a in purchase_plan.allocations])

    result.applied_to_receipts = receipt_plan.applied_total
    result.applied_to_purchases = purchase_plan.applied_total
    result.settlement_id = settlement.id
    return result


async def settle_pairs(db: AsyncSession, user_email: Optional[str] = None) -> List[PairSettlementResult]:
    """
    Net every paired customer's receivables against its supplier's payables.

    For each pair the offset is min(receipt outstanding, purchase
    outstanding). It is spread oldest first over both sides and persisted as
    a PairSettlement with one SettlementAllocation per entity. No Payment row
    is created.
    """
    links = (await db.execute(
        select(CustomerSupplierLink).order_by(CustomerSupplierLink.id.asc())
    )).scalars().all()

    results = []
    for link in links:
        outcome = await _settle_pair(db, link, user_email)
        results.append(outcome)
        if outcome.settlement_id is not None:
            logger.info(
                f"[Settlement] pair customer #{outcome.customer_id} / supplier "
                f"#{outcome.supplier_id}: {outcome.applied_to_receipts} netted"
            )
    return results


# =============================================================================
# merges
# =============================================================================

def _parse_merge_ids(source_id: Any, target_id: Any) -> tuple[int, int]:
    try:
        source = parse_optional_id(source_id, "INVALID_MERGE")
        target = parse_optional_id(target_id, "INVALID_MERGE")
    except LedgerError:
        raise LedgerError("INVALID_MERGE", "Both sourceId and targetId must be valid numbers")
    if source is None or target is None:
        raise LedgerError("INVALID_MERGE", "Both sourceId and targetId must be valid numbers")
    if source == target:
        raise LedgerError("SAME_ENTITY")
    return source, target


def _combine_manual_balance(source, target) -> None:
    if source.manual_balance_override is None and not source.manual_balance_note:
        return
    target.manual_balance_override = (
        to_decimal(target.manual_balance_override) + to_decimal(source.manual_balance_override)
    )
    target.manual_balance_note = source.manual_balance_note or target.manual_balance_note
    target.manual_balance_updated_at = datetime.utcnow()


async def merge_customers(db: AsyncSession, source_id: Any, target_id: Any) -> MergeResult:
    """Move everything owned by the source customer onto the target, then delete the source"""
    source_id, target_id = _parse_merge_ids(source_id, target_id)
    source = await db.get(Customer, source_id)
    target = await db.get(Customer, target_id)
    if source is None or target is None:
        raise LedgerError("INVALID_MERGE", "One or both customer IDs do not exist")

    for model in (Receipt, Payment, Invoice, DebrisEntry, PairSettlement):
        await db.execute(
            update(model)
            .where(model.customer_id == source_id)
            .values(customer_id=target_id)
        )
    await db.execute(
        delete(CustomerSupplierLink).where(CustomerSupplierLink.customer_id == source_id)
    )

    _combine_manual_balance(source, target)
    result = MergeResult(source_id, target_id, source.name, target.name)
    await db.delete(source)
    await db.flush()

    logger.info(f"[Merge] customer #{source_id} merged into #{target_id}")
    return result


async def merge_suppliers(db: AsyncSession, source_id: Any, target_id: Any) -> MergeResult:
    """Move everything owned by the source supplier onto the target, then delete the source"""
    source_id, target_id = _parse_merge_ids(source_id, target_id)
    source = await db.get(Supplier, source_id)
    target = await db.get(Supplier, target_id)
    if source is None or target is None:
        raise LedgerError("INVALID_MERGE", "One or both supplier IDs do not exist")

    for model in (InventoryEntry, Payment, DebrisEntry, PairSettlement):
        await db.execute(
            update(model)
            .where(model.supplier_id == source_id)
            .values(supplier_id=target_id)
        )
    await db.execute(
        delete(CustomerSupplierLink).where(CustomerSupplierLink.supplier_id == source_id)
    )

    _combine_manual_balance(source, target)
    result = MergeResult(source_id, target_id, source.name, target.name)
    await db.delete(source)
    await db.flush()

    logger.info(f"[Merge] supplier #{source_id} merged into #{target_id}")
    return result
