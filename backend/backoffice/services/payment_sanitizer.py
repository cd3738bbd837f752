"""
Back-office ledger - payment sanitizer
Validates a raw payment request and resolves its references. Read-only:
nothing is written until the applier runs.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.errors import LedgerError
from backoffice.models.debris import DebrisEntry
from backoffice.models.enums import PaymentType, PAYROLL_PAYMENT_TYPES
from backoffice.models.party import Customer, Supplier
from backoffice.models.payment import Payment
from backoffice.models.payroll import PayrollEntry
from backoffice.models.receipt import Receipt
from backoffice.services.allocation import (
    Allocation, OpenItem, ZERO, apply_waterfall, round_money,
)


@dataclass
class SanitizedPayment:
    """Validated, normalized payment intent"""
    amount: Decimal
    type: PaymentType
    date: Optional[datetime] = None
    description: Optional[str] = None
    category: Optional[str] = None
    reference: Optional[str] = None
    supplier_id: Optional[int] = None
    customer_id: Optional[int] = None
    receipt_id: Optional[int] = None
    payroll_entry_id: Optional[int] = None
    debris_entry_id: Optional[int] = None
    apply_to_receipts: bool = False
    apply_to_purchases: bool = False
    receipt_allocations: List[Allocation] = field(default_factory=list)

    @property
    def has_date_override(self) -> bool:
        return self.date is not None


# ============================================================================
# field parsers
# ============================================================================

def _field(payload: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in payload and payload[camel] is not None:
        return payload[camel]
    return payload.get(snake)


def parse_amount(raw: Any) -> Decimal:
    if raw is None or isinstance(raw, bool):
        raise LedgerError("INVALID_AMOUNT")
    try:
        if isinstance(raw, float):
            if not math.isfinite(raw):
                raise LedgerError("INVALID_AMOUNT")
            value = Decimal(str(raw))
        else:
            value = Decimal(str(raw).strip())
        if not value.is_finite():
            raise LedgerError("INVALID_AMOUNT")
        value = round_money(value)
    except (InvalidOperation, ValueError):
        raise LedgerError("INVALID_AMOUNT")
    if value <= ZERO:
        raise LedgerError("INVALID_AMOUNT")
    return value


def _parse_type(raw: Any) -> PaymentType:
    normalized = str(raw if raw is not None else "").strip().upper()
    try:
        return PaymentType(normalized)
    except ValueError:
        raise LedgerError("INVALID_TYPE")


def _parse_date(raw: Any) -> Optional[datetime]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise LedgerError("INVALID_DATE")
    text = raw.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise LedgerError("INVALID_DATE")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _clean_text(raw: Any) -> Optional[str]:
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


def parse_optional_id(raw: Any, error_code: str) -> Optional[int]:
    """Blank -> None, integer-like -> int, anything else -> error_code"""
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise LedgerError(error_code)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if raw.is_integer():
            return int(raw)
        raise LedgerError(error_code)
    text = str(raw).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        raise LedgerError(error_code)


# ============================================================================
# allocation plan
# ============================================================================

async def plan_customer_allocation(
    db: AsyncSession, customer_id: int, amount: Decimal
) -> List[Allocation]:
    """Oldest-first waterfall of `amount` over the customer's receipts"""
    receipts = (await db.execute(
        select(Receipt)
        .where(Receipt.customer_id == customer_id)
        .order_by(Receipt.date.asc(), Receipt.id.asc())
    )).scalars().all()

    plan = apply_waterfall(
        amount,
        [OpenItem(id=r.id, total=r.total, paid=r.amount_paid) for r in receipts],
    )
    return plan.allocations


# ============================================================================
# sanitizer
# ============================================================================

async def sanitize_payment_input(
    db: AsyncSession,
    payload: Mapping[str, Any],
    existing_payment: Optional[Payment] = None,
) -> SanitizedPayment:
    """
    Validate a payment request.

    Accepts camelCase or snake_case keys. Raises LedgerError with the first
    failing rule; performs no writes.

    Args:
        db: session used for reference lookups only
        payload: raw request fields
        existing_payment: the payment being edited, if any

    Returns:
        SanitizedPayment with only the references relevant to its type
    """
    amount = parse_amount(payload.get("amount"))
    payment_type = _parse_type(payload.get("type"))
    date_value = _parse_date(payload.get("date"))

    supplier_id = parse_optional_id(_field(payload, "supplierId", "supplier_id"), "INVALID_SUPPLIER")
    customer_id = parse_optional_id(_field(payload, "customerId", "customer_id"), "INVALID_CUSTOMER")
    receipt_id = parse_optional_id(_field(payload, "receiptId", "receipt_id"), "INVALID_RECEIPT")
    payroll_entry_id = parse_optional_id(
        _field(payload, "payrollEntryId", "payroll_entry_id"), "INVALID_PAYROLL"
    )
    debris_entry_id = parse_optional_id(
        _field(payload, "debrisEntryId", "debris_entry_id"), "INVALID_DEBRIS"
    )

    # required references per type
    if payment_type == PaymentType.SUPPLIER and supplier_id is None:
        raise LedgerError("SUPPLIER_REQUIRED")
    if payment_type == PaymentType.RECEIPT and receipt_id is None:
        raise LedgerError("RECEIPT_REQUIRED")
    if payment_type in PAYROLL_PAYMENT_TYPES and payroll_entry_id is None:
        raise LedgerError("PAYROLL_REQUIRED")
    if payment_type == PaymentType.DEBRIS_REMOVAL and debris_entry_id is None:
        raise LedgerError("DEBRIS_REQUIRED")
    if payment_type == PaymentType.CUSTOMER_PAYMENT and customer_id is None:
        raise LedgerError("CUSTOMER_REQUIRED")

    intent = SanitizedPayment(
        amount=amount,
        type=payment_type,
        date=date_value,
        description=_clean_text(payload.get("description")),
        category=_clean_text(payload.get("category")),
        reference=_clean_text(payload.get("reference")),
    )
    existing_id = existing_payment.id if existing_payment is not None else None

    if payment_type == PaymentType.SUPPLIER:
        if await db.get(Supplier, supplier_id) is None:
            raise LedgerError("SUPPLIER_NOT_FOUND")
        intent.supplier_id = supplier_id
        intent.apply_to_purchases = _field(payload, "applyToPurchases", "apply_to_purchases") is not False

    elif payment_type == PaymentType.RECEIPT:
        receipt = await db.get(Receipt, receipt_id)
        if receipt is None:
            raise LedgerError("RECEIPT_NOT_FOUND")
        if customer_id is not None and await db.get(Customer, customer_id) is None:
            raise LedgerError("CUSTOMER_NOT_FOUND")
        intent.receipt_id = receipt_id
        intent.customer_id = customer_id if customer_id is not None else receipt.customer_id

    elif payment_type in PAYROLL_PAYMENT_TYPES:
        entry = await db.get(PayrollEntry, payroll_entry_id)
        if entry is None:
            raise LedgerError("PAYROLL_NOT_FOUND")
        if entry.payment_id is not None and entry.payment_id != existing_id:
            raise LedgerError("PAYROLL_ALREADY_PAID")
        intent.payroll_entry_id = payroll_entry_id

    elif payment_type == PaymentType.DEBRIS_REMOVAL:
        debris = await db.get(DebrisEntry, debris_entry_id)
        if debris is None:
            raise LedgerError("DEBRIS_NOT_FOUND")
        if debris.removal_payment_id is not None and debris.removal_payment_id != existing_id:
            raise LedgerError("DEBRIS_ALREADY_PAID")
        intent.debris_entry_id = debris_entry_id

    elif payment_type == PaymentType.CUSTOMER_PAYMENT:
        if await db.get(Customer, customer_id) is None:
            raise LedgerError("CUSTOMER_NOT_FOUND")
        intent.customer_id = customer_id
        intent.apply_to_receipts = _field(payload, "applyToReceipts", "apply_to_receipts") is not False
        if intent.apply_to_receipts:
            intent.receipt_allocations = await plan_customer_allocation(db, customer_id, amount)

    return intent
