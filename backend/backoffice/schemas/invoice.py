"""
Back-office ledger - invoice schemas
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, AliasChoices

from backoffice.models.enums import InvoiceStatus, ReceiptType


class InvoiceCreate(BaseModel):
    """Create invoice: explicit receipt ids or a target amount"""
    customer_id: Any = Field(None, validation_alias=AliasChoices("customerId", "customer_id"))
    receipt_ids: Optional[List[Any]] = Field(
        None, validation_alias=AliasChoices("receiptIds", "receipt_ids")
    )
    amount: Any = None
    include_paid: bool = Field(False, validation_alias=AliasChoices("includePaid", "include_paid"))
    notes: Optional[str] = None


class InvoiceMarkPaid(BaseModel):
    paid_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("paidAt", "paid_at"))


class InvoiceReceiptResponse(BaseModel):
    id: int
    receipt_no: Optional[str] = None
    date: datetime
    type: ReceiptType
    total: Decimal
    amount_paid: Decimal
    is_paid: bool

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: int
    invoice_no: Optional[str] = None
    customer_id: int
    customer_name: Optional[str] = None
    receipt_type: ReceiptType
    status: InvoiceStatus
    subtotal: Decimal
    vat_rate: Optional[Decimal] = None
    vat_amount: Optional[Decimal] = None
    total: Decimal
    amount_paid: Decimal
    outstanding: Decimal
    notes: Optional[str] = None
    issued_at: datetime
    paid_at: Optional[datetime] = None
    receipts: List[InvoiceReceiptResponse] = []
    old_balance: Decimal = Decimal("0")  # other unpaid receipts of the customer

    class Config:
        from_attributes = True


class MarkPaidResponse(BaseModel):
    invoice: InvoiceResponse
    payment_id: Optional[int] = None
