"""
Back-office ledger - cash box / custody API
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_ledger_user
from backoffice.core.audit import log_audit
from backoffice.core.config import Settings, get_settings
from backoffice.core.database import get_db
from backoffice.models.user import User
from backoffice.schemas.cash import (
    CashEntryCreate,
    CashEntryResponse,
    CustodyCreate,
    CustodyEntryResponse,
    CustodyOverviewResponse,
)
from backoffice.schemas.common import SuccessResponse, ResponseMeta
from backoffice.services.custody import (
    custody_overview,
    list_cash_entries,
    record_cash_entry,
    record_custody,
)

router = APIRouter()


# ============================================================================
# cash entries
# ============================================================================

@router.get("/entries", response_model=SuccessResponse[list[CashEntryResponse]])
async def get_cash_entries(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """Latest cash box entries"""
    entries = await list_cash_entries(db)
    return SuccessResponse(
        data=[CashEntryResponse.model_validate(e) for e in entries],
        meta=ResponseMeta(total=len(entries)),
    )


@router.post("/entries", response_model=SuccessResponse[CashEntryResponse], status_code=status.HTTP_201_CREATED)
async def create_cash_entry(
    body: CashEntryCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """
    Record a cash box entry

    - WITHDRAW and OWNER_DRAW are stored as negative amounts
    - OWNER_DRAW also books an OWNER_DRAW payment
    """
    entry = await record_cash_entry(db, body.amount, body.type, body.description, user=current_user)
    data = CashEntryResponse.model_validate(entry)
    await db.commit()

    await log_audit(
        action="CASH_ENTRY_RECORDED",
        entity_type="CASH_ENTRY",
        entity_id=entry.id,
        description=f"Cash {entry.type.value} of {entry.amount}",
        user=current_user.email,
        metadata={"type": entry.type, "amount": entry.amount},
    )
    return SuccessResponse(data=data)


# ============================================================================
# custody
# ============================================================================

@router.get("/custody", response_model=SuccessResponse[CustodyOverviewResponse])
async def get_custody(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
    settings: Settings = Depends(get_settings),
):
    """Custody employees, latest handoffs and what each employee currently holds"""
    overview = await custody_overview(db, settings.cash_custody_names)
    data = CustodyOverviewResponse.model_validate(overview, from_attributes=True)
    await db.commit()  # custody employees may have been created
    return SuccessResponse(data=data)


@router.post("/custody", response_model=SuccessResponse[CustodyEntryResponse], status_code=status.HTTP_201_CREATED)
async def create_custody(
    body: CustodyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
    settings: Settings = Depends(get_settings),
):
    """
    Record a cash handoff between two custody employees

    - a handoff to the owner books an OWNER_DRAW payment
    - a handoff from the owner books a cash DEPOSIT
    """
    record = await record_custody(
        db,
        settings.cash_custody_names,
        settings.cash_owner_name,
        body.amount,
        body.from_employee_id,
        body.to_employee_id,
        body.description,
        user=current_user,
    )
    data = CustodyEntryResponse.model_validate(record.entry)
    data.owner_draw_payment_id = record.owner_draw.id if record.owner_draw is not None else None
    data.deposit_entry_id = record.deposit.id if record.deposit is not None else None
    await db.commit()

    entry = record.entry
    await log_audit(
        action="CASH_CUSTODY_RECORDED",
        entity_type="CASH_CUSTODY",
        entity_id=entry.id,
        description=(
            f"Cash custody handoff of {entry.amount} from "
            f"{entry.from_employee.name} to {entry.to_employee.name}"
        ),
        user=current_user.email,
        metadata={
            "amount": entry.amount,
            "from_employee_id": entry.from_employee_id,
            "to_employee_id": entry.to_employee_id,
        },
    )
    return SuccessResponse(data=data)
