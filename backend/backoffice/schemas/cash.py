"""
Back-office ledger - cash box / custody schemas
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, AliasChoices

from backoffice.models.enums import CashEntryType, CashCustodyType


class CashEntryCreate(BaseModel):
    amount: Any = None
    type: Any = None
    description: Optional[str] = None


class CashEntryResponse(BaseModel):
    id: int
    type: CashEntryType
    amount: Decimal
    description: Optional[str] = None
    created_by_user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EmployeeRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class CustodyCreate(BaseModel):
    amount: Any = None
    from_employee_id: Any = Field(
        None, validation_alias=AliasChoices("fromEmployeeId", "from_employee_id")
    )
    to_employee_id: Any = Field(
        None, validation_alias=AliasChoices("toEmployeeId", "to_employee_id")
    )
    description: Optional[str] = None


class CustodyEntryResponse(BaseModel):
    id: int
    type: CashCustodyType
    amount: Decimal
    description: Optional[str] = None
    from_employee: EmployeeRef
    to_employee: EmployeeRef
    created_by_user_id: Optional[int] = None
    created_at: datetime
    owner_draw_payment_id: Optional[int] = None
    deposit_entry_id: Optional[int] = None

    class Config:
        from_attributes = True


class CustodyHolderResponse(BaseModel):
    employee: EmployeeRef
    amount: Decimal

    class Config:
        from_attributes = True


class CustodyOverviewResponse(BaseModel):
    employees: List[EmployeeRef] = []
    entries: List[CustodyEntryResponse] = []
    outstanding: List[CustodyHolderResponse] = []
