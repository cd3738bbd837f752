"""
Back-office ledger - payment schemas
Requests are deliberately loose: every field is validated by the payment
sanitizer so that errors come back with ledger error codes, not 422s.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, AliasChoices

from backoffice.models.enums import PaymentType


def _alias(camel: str, snake: str) -> AliasChoices:
    return AliasChoices(camel, snake)


# ============================================================================
# request
# ============================================================================

class PaymentRequest(BaseModel):
    """Create / update payment (camelCase or snake_case keys)"""
    amount: Any = None
    type: Any = None
    date: Any = None
    description: Any = None
    category: Any = None
    reference: Any = None
    supplier_id: Any = Field(None, validation_alias=_alias("supplierId", "supplier_id"))
    customer_id: Any = Field(None, validation_alias=_alias("customerId", "customer_id"))
    receipt_id: Any = Field(None, validation_alias=_alias("receiptId", "receipt_id"))
    payroll_entry_id: Any = Field(None, validation_alias=_alias("payrollEntryId", "payroll_entry_id"))
    debris_entry_id: Any = Field(None, validation_alias=_alias("debrisEntryId", "debris_entry_id"))
    apply_to_receipts: Any = Field(None, validation_alias=_alias("applyToReceipts", "apply_to_receipts"))
    apply_to_purchases: Any = Field(None, validation_alias=_alias("applyToPurchases", "apply_to_purchases"))


# ============================================================================
# response
# ============================================================================

class ReceiptLinkResponse(BaseModel):
    """Allocation to a receipt, with the receipt's current state"""
    id: int
    receipt_id: int
    amount: Decimal
    receipt_no: Optional[str] = None
    receipt_total: Decimal
    receipt_amount_paid: Decimal
    receipt_is_paid: bool


class PurchaseLinkResponse(BaseModel):
    """Allocation to a purchase, with the purchase's current state"""
    id: int
    inventory_entry_id: int
    amount: Decimal
    inventory_no: Optional[str] = None
    entry_total: Decimal
    entry_amount_paid: Decimal
    entry_is_paid: bool


class PaymentResponse(BaseModel):
    id: int
    date: datetime
    amount: Decimal
    type: PaymentType
    description: Optional[str] = None
    category: Optional[str] = None
    reference: Optional[str] = None
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    receipt_id: Optional[int] = None
    payroll_entry_id: Optional[int] = None
    debris_entry_id: Optional[int] = None
    receipt_payments: List[ReceiptLinkResponse] = []
    inventory_payments: List[PurchaseLinkResponse] = []
    linked_amount: Decimal = Decimal("0")
    unapplied_amount: Decimal = Decimal("0")
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
