"""
Back-office ledger - recompute pass
Re-derives paid/is_paid of receipts and purchases from their link rows.
Run after every mutation; stored amount_paid values are never trusted.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional, Set

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.enums import PaymentType
from backoffice.models.inventory import InventoryEntry, InventoryPayment
from backoffice.models.payment import Payment
from backoffice.models.receipt import Receipt, ReceiptPayment
from backoffice.models.settlement import SettlementAllocation
from backoffice.services.allocation import ZERO, to_decimal, is_settled, outstanding

logger = logging.getLogger(__name__)


def inventory_total(entry: InventoryEntry) -> Decimal:
    """total_cost when set, else unit_cost * quantity, else 0"""
    if entry.total_cost is not None:
        return to_decimal(entry.total_cost)
    if entry.unit_cost is not None:
        return to_decimal(entry.unit_cost) * to_decimal(entry.quantity)
    return ZERO


async def _grouped_sums(db: AsyncSession, key_col, amount_col, ids: list[int], *criteria) -> dict[int, Decimal]:
    result = await db.execute(
        select(key_col, func.coalesce(func.sum(amount_col), 0))
        .where(key_col.in_(ids), *criteria)
        .group_by(key_col)
    )
    return {row[0]: to_decimal(row[1]) for row in result.all()}


async def recompute_receipts_paid(
    db: AsyncSession,
    receipt_ids: Iterable[int],
    exclude_payment_ids: Optional[Set[int]] = None,
) -> None:
    """
    amount_paid = allocation links + settlement offsets + direct payments.

    Direct payments are legacy RECEIPT payments on the receipt (imported
    before links existed, `is_legacy`) that carry no allocation link. They
    only fill what the links leave open. `exclude_payment_ids` keeps a
    payment that is being reversed from counting as a direct payment.
    """
    ids = sorted({rid for rid in receipt_ids if rid is not None})
    if not ids:
        return
    await db.flush()

    link_sums = await _grouped_sums(
        db, ReceiptPayment.receipt_id, ReceiptPayment.amount, ids
    )
    offset_sums = await _grouped_sums(
        db, SettlementAllocation.receipt_id, SettlementAllocation.amount, ids
    )
    direct_criteria = [
        Payment.type == PaymentType.RECEIPT,
        Payment.is_legacy.is_(True),
        Payment.id.not_in(select(ReceiptPayment.payment_id)),
    ]
    if exclude_payment_ids:
        direct_criteria.append(Payment.id.not_in(sorted(exclude_payment_ids)))
    direct_sums = await _grouped_sums(
        db, Payment.receipt_id, Payment.amount, ids, *direct_criteria
    )

    receipts = (await db.execute(
        select(Receipt).where(Receipt.id.in_(ids))
    )).scalars().all()

    for receipt in receipts:
        base = link_sums.get(receipt.id, ZERO) + offset_sums.get(receipt.id, ZERO)
        direct = direct_sums.get(receipt.id, ZERO)
        paid = base + min(direct, outstanding(receipt.total, base))
        receipt.amount_paid = paid
        receipt.is_paid = is_settled(receipt.total, paid)

    await db.flush()
    logger.debug(f"[Recompute] receipts {ids}")


async def recompute_inventory_paid(db: AsyncSession, inventory_ids: Iterable[int]) -> None:
    """amount_paid = allocation links + settlement offsets"""
    ids = sorted({eid for eid in inventory_ids if eid is not None})
    if not ids:
        return
    await db.flush()

    link_sums = await _grouped_sums(
        db, InventoryPayment.inventory_entry_id, InventoryPayment.amount, ids
    )
    offset_sums = await _grouped_sums(
        db, SettlementAllocation.inventory_entry_id, SettlementAllocation.amount, ids
    )

    entries = (await db.execute(
        select(InventoryEntry).where(InventoryEntry.id.in_(ids))
    )).scalars().all()

    for entry in entries:
        paid = link_sums.get(entry.id, ZERO) + offset_sums.get(entry.id, ZERO)
        entry.amount_paid = paid
        entry.is_paid = is_settled(inventory_total(entry), paid)

    await db.flush()
    logger.debug(f"[Recompute] inventory entries {ids}")
