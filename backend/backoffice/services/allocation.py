"""
Back-office ledger - money and allocation primitives
Pure functions; callers persist the results.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List

# Tolerance for "paid in full" comparisons
EPSILON = Decimal("0.000001")
ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """None -> 0, floats go through str to avoid binary noise"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def outstanding(total: Any, paid: Any) -> Decimal:
    """max(total - paid, 0)"""
    remaining = to_decimal(total) - to_decimal(paid)
    return remaining if remaining > ZERO else ZERO


def is_settled(total: Any, paid: Any) -> bool:
    return to_decimal(paid) >= to_decimal(total) - EPSILON


@dataclass(frozen=True)
class OpenItem:
    """An entity that can absorb money: a receipt, a purchase"""
    id: int
    total: Decimal
    paid: Decimal

    @property
    def outstanding(self) -> Decimal:
        return outstanding(self.total, self.paid)


@dataclass(frozen=True)
class Allocation:
    entity_id: int
    applied: Decimal
    new_paid: Decimal
    new_outstanding: Decimal


@dataclass
class WaterfallResult:
    allocations: List[Allocation] = field(default_factory=list)
    remainder: Decimal = ZERO

    @property
    def applied_total(self) -> Decimal:
        return sum((a.applied for a in self.allocations), ZERO)


def apply_waterfall(amount: Any, items: Iterable[OpenItem]) -> WaterfallResult:
    """
    Spread `amount` over `items` in the given order (oldest first).

    Each unsettled item receives min(remaining, outstanding) until the
    amount runs out. Settled items are skipped and no zero or negative
    allocation is ever produced.

    Args:
        amount: money to distribute
        items: open items, already sorted by (date, id)

    Returns:
        WaterfallResult with one Allocation per touched item and the
        unallocated remainder
    """
    remaining = to_decimal(amount)
    result = WaterfallResult()
    if remaining <= ZERO:
        return result

    for item in items:
        if remaining <= ZERO:
            break
        if is_settled(item.total, item.paid):
            continue
        open_amount = item.outstanding
        if open_amount <= ZERO:
            continue

        applied = min(remaining, open_amount)
        new_paid = to_decimal(item.paid) + applied
        result.allocations.append(Allocation(
            entity_id=item.id,
            applied=applied,
            new_paid=new_paid,
            new_outstanding=outstanding(item.total, new_paid),
        ))
        remaining -= applied

    result.remainder = remaining if remaining > ZERO else ZERO
    return result
