"""
Back-office ledger - reports API
Balances and cash flow, always computed from current rows.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_ledger_user
from backoffice.core.database import get_db
from backoffice.core.errors import LedgerError
from backoffice.models.party import Customer
from backoffice.models.user import User
from backoffice.schemas.common import SuccessResponse
from backoffice.schemas.report import (
    BalancesResponse,
    CashFlowResponse,
    PartyBalanceResponse,
    UnappliedCreditResponse,
)
from backoffice.services.allocation import ZERO
from backoffice.services.balances import (
    cash_flows,
    customer_receivables,
    supplier_payables,
    unapplied_credit,
)

router = APIRouter()


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@router.get("/balances", response_model=SuccessResponse[BalancesResponse])
async def get_balances(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """Receivables per customer and payables per supplier"""
    customers = await customer_receivables(db)
    suppliers = await supplier_payables(db)
    return SuccessResponse(data=BalancesResponse(
        customers=[PartyBalanceResponse.model_validate(c) for c in customers],
        suppliers=[PartyBalanceResponse.model_validate(s) for s in suppliers],
        total_receivable=sum((c.outstanding for c in customers), ZERO),
        total_payable=sum((s.outstanding for s in suppliers), ZERO),
    ))


@router.get("/cash-flow", response_model=SuccessResponse[CashFlowResponse])
async def get_cash_flow(
    start: Optional[datetime] = Query(None, description="From (inclusive)"),
    end: Optional[datetime] = Query(None, description="To (inclusive)"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """Cash in and out; barter settlements move no cash and are not listed"""
    start, end = _naive_utc(start), _naive_utc(end)
    if start is not None and end is not None and start > end:
        raise LedgerError("INVALID_FILTER", "start must not be after end")
    report = await cash_flows(db, start=start, end=end)
    return SuccessResponse(data=CashFlowResponse.model_validate(report))


@router.get("/unapplied-credit/{customer_id}", response_model=SuccessResponse[UnappliedCreditResponse])
async def get_unapplied_credit(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """Customer money not absorbed by any receipt"""
    if await db.get(Customer, customer_id) is None:
        raise LedgerError("CUSTOMER_NOT_FOUND")
    return SuccessResponse(data=UnappliedCreditResponse(
        customer_id=customer_id,
        unapplied_credit=await unapplied_credit(db, customer_id),
    ))
