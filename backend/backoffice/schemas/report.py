"""
Back-office ledger - report schemas
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from backoffice.models.enums import PaymentType


class PartyBalanceResponse(BaseModel):
    id: int
    name: str
    outstanding: Decimal
    manual_override: Optional[Decimal] = None
    unapplied_credit: Decimal = Decimal("0")
    balance: Decimal

    class Config:
        from_attributes = True


class BalancesResponse(BaseModel):
    customers: List[PartyBalanceResponse] = []
    suppliers: List[PartyBalanceResponse] = []
    total_receivable: Decimal = Decimal("0")
    total_payable: Decimal = Decimal("0")


class UnappliedCreditResponse(BaseModel):
    customer_id: int
    unapplied_credit: Decimal


class CashFlowLineResponse(BaseModel):
    id: str
    type: PaymentType
    label: str
    amount: Decimal
    date: datetime
    receipt_no: Optional[str] = None

    class Config:
        from_attributes = True


class CashFlowResponse(BaseModel):
    inflows: List[CashFlowLineResponse] = []
    outflows: List[CashFlowLineResponse] = []
    inflow_total: Decimal
    outflow_total: Decimal
    cash_on_hand: Decimal

    class Config:
        from_attributes = True
