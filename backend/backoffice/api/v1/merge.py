"""
Back-office ledger - merge / pairing API (admin only)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_current_admin_user
from backoffice.core.audit import log_audit
from backoffice.core.database import get_db
from backoffice.models.user import User
from backoffice.schemas.common import SuccessResponse
from backoffice.schemas.settlement import (
    MergeRequest,
    MergeResponse,
    PairRequest,
    PairResponse,
    PairSettlementResponse,
    SettlePairsResponse,
)
from backoffice.services.settlement import (
    merge_customers as merge_customer_records,
    merge_suppliers as merge_supplier_records,
    pair_customer_supplier as pair_records,
    settle_pairs as settle_pair_records,
)

router = APIRouter()


@router.post("/customers", response_model=SuccessResponse[MergeResponse])
async def merge_customers(
    body: MergeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """
    Merge two customers

    - receipts, payments, invoices, debris and settlements move to the target
    - manual balance overrides are added together
    - the source customer is deleted
    """
    result = await merge_customer_records(db, body.source_id, body.target_id)
    await db.commit()

    await log_audit(
        action="CUSTOMER_MERGE",
        entity_type="CUSTOMER",
        entity_id=result.target_id,
        description=f"Merged customer {result.source_id} into {result.target_id}",
        user=current_user.email,
        metadata={"source": result.source_id, "target": result.target_id},
    )
    return SuccessResponse(data=MergeResponse(message="Customers merged", **result.__dict__))


@router.post("/suppliers", response_model=SuccessResponse[MergeResponse])
async def merge_suppliers(
    body: MergeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Merge two suppliers (purchases, payments, debris and settlements move to the target)"""
    result = await merge_supplier_records(db, body.source_id, body.target_id)
    await db.commit()

    await log_audit(
        action="SUPPLIER_MERGE",
        entity_type="SUPPLIER",
        entity_id=result.target_id,
        description=f"Merged supplier {result.source_id} into {result.target_id}",
        user=current_user.email,
        metadata={"source": result.source_id, "target": result.target_id},
    )
    return SuccessResponse(data=MergeResponse(message="Suppliers merged", **result.__dict__))


@router.post("/pair-customer-supplier", response_model=SuccessResponse[PairResponse])
async def pair_customer_supplier(
    body: PairRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Pair a customer with a supplier (1:1; older pairings of either side are dropped)"""
    link = await pair_records(db, body.customer_id, body.supplier_id)
    await db.commit()

    await log_audit(
        action="CUSTOMER_SUPPLIER_PAIR",
        entity_type="CUSTOMER",
        entity_id=link.customer_id,
        description=f"Paired customer {link.customer_id} with supplier {link.supplier_id}",
        user=current_user.email,
        metadata={"customer_id": link.customer_id, "supplier_id": link.supplier_id},
    )
    return SuccessResponse(data=PairResponse(
        message="Customer and supplier paired",
        customer_id=link.customer_id,
        supplier_id=link.supplier_id,
    ))


@router.post("/settle-pairs", response_model=SuccessResponse[SettlePairsResponse])
async def settle_pairs(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Net paired receivables against payables, oldest first on both sides"""
    results = await settle_pair_records(db, user_email=current_user.email)
    await db.commit()

    for outcome in results:
        if outcome.settlement_id is None:
            continue
        await log_audit(
            action="PAIR_SETTLE",
            entity_type="CUSTOMER",
            entity_id=outcome.customer_id,
            description=(
                f"Settled paired balances between customer {outcome.customer_id} "
                f"and supplier {outcome.supplier_id}"
            ),
            user=current_user.email,
            metadata={
                "settlement_id": outcome.settlement_id,
                "applied_receipts": outcome.applied_to_receipts,
                "applied_purchases": outcome.applied_to_purchases,
            },
        )

    return SuccessResponse(data=SettlePairsResponse(
        message="Paired balances settled" if results else "No pairs to settle",
        applied=[PairSettlementResponse.model_validate(r) for r in results],
    ))
