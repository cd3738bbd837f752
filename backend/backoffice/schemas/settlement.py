"""
Back-office ledger - merge / pairing / settlement schemas
"""

from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, AliasChoices


class MergeRequest(BaseModel):
    source_id: Any = Field(None, validation_alias=AliasChoices("sourceId", "source_id"))
    target_id: Any = Field(None, validation_alias=AliasChoices("targetId", "target_id"))


class MergeResponse(BaseModel):
    message: str
    source_id: int
    target_id: int
    source_name: str
    target_name: str


class PairRequest(BaseModel):
    customer_id: Any = Field(None, validation_alias=AliasChoices("customerId", "customer_id"))
    supplier_id: Any = Field(None, validation_alias=AliasChoices("supplierId", "supplier_id"))


class PairResponse(BaseModel):
    message: str
    customer_id: int
    supplier_id: int


class PairSettlementResponse(BaseModel):
    customer_id: int
    supplier_id: int
    applied_to_receipts: Decimal
    applied_to_purchases: Decimal
    settlement_id: Optional[int] = None

    class Config:
        from_attributes = True


class SettlePairsResponse(BaseModel):
    message: str
    applied: List[PairSettlementResponse] = []
