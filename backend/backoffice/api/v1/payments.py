"""
Back-office ledger - payments API
Create, edit and delete payments. Each request is one transaction:
sanitize, then apply (or reverse + apply), then recompute.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_ledger_user
from backoffice.core.audit import log_audit
from backoffice.core.database import get_db
from backoffice.core.errors import LedgerError
from backoffice.models.debris import DebrisEntry
from backoffice.models.enums import PaymentType
from backoffice.models.inventory import InventoryEntry, InventoryPayment
from backoffice.models.party import Customer, Supplier
from backoffice.models.payment import Payment
from backoffice.models.payroll import PayrollEntry
from backoffice.models.receipt import Receipt, ReceiptPayment
from backoffice.models.user import User
from backoffice.schemas.common import SuccessResponse, ResponseMeta
from backoffice.schemas.payment import (
    PaymentRequest,
    PaymentResponse,
    ReceiptLinkResponse,
    PurchaseLinkResponse,
)
from backoffice.services.allocation import ZERO, outstanding
from backoffice.services.payment_effects import (
    create_payment as create_payment_record,
    delete_payment as delete_payment_record,
    load_payment,
    update_payment as update_payment_record,
)
from backoffice.services.payment_sanitizer import parse_optional_id, sanitize_payment_input
from backoffice.services.reconciliation import inventory_total

router = APIRouter()

# types whose amount is meant to be absorbed by receipts or purchases
_ALLOCATING_TYPES = (PaymentType.RECEIPT, PaymentType.CUSTOMER_PAYMENT, PaymentType.SUPPLIER)


async def _build_response(db: AsyncSession, payment: Payment) -> PaymentResponse:
    """Payment plus its links and the current state of every linked entity"""
    receipt_rows = (await db.execute(
        select(ReceiptPayment, Receipt)
        .join(Receipt, Receipt.id == ReceiptPayment.receipt_id)
        .where(ReceiptPayment.payment_id == payment.id)
        .order_by(ReceiptPayment.id.asc())
    )).all()
    purchase_rows = (await db.execute(
        select(InventoryPayment, InventoryEntry)
        .join(InventoryEntry, InventoryEntry.id == InventoryPayment.inventory_entry_id)
        .where(InventoryPayment.payment_id == payment.id)
        .order_by(InventoryPayment.id.asc())
    )).all()

    payroll_entry_id = (await db.execute(
        select(PayrollEntry.id).where(PayrollEntry.payment_id == payment.id)
    )).scalar_one_or_none()
    debris_entry_id = (await db.execute(
        select(DebrisEntry.id).where(DebrisEntry.removal_payment_id == payment.id)
    )).scalar_one_or_none()

    customer = await db.get(Customer, payment.customer_id) if payment.customer_id else None
    supplier = await db.get(Supplier, payment.supplier_id) if payment.supplier_id else None

    receipt_links = [
        ReceiptLinkResponse(
            id=link.id,
            receipt_id=receipt.id,
            amount=link.amount,
            receipt_no=receipt.receipt_no,
            receipt_total=receipt.total,
            receipt_amount_paid=receipt.amount_paid,
            receipt_is_paid=receipt.is_paid,
        )
        for link, receipt in receipt_rows
    ]
    purchase_links = [
        PurchaseLinkResponse(
            id=link.id,
            inventory_entry_id=entry.id,
            amount=link.amount,
            inventory_no=entry.inventory_no,
            entry_total=inventory_total(entry),
            entry_amount_paid=entry.amount_paid,
            entry_is_paid=entry.is_paid,
        )
        for link, entry in purchase_rows
    ]
    linked = sum((l.amount for l in receipt_links), ZERO) + sum((l.amount for l in purchase_links), ZERO)

    return PaymentResponse(
        id=payment.id,
        date=payment.date,
        amount=payment.amount,
        type=payment.type,
        description=payment.description,
        category=payment.category,
        reference=payment.reference,
        supplier_id=payment.supplier_id,
        supplier_name=supplier.name if supplier else None,
        customer_id=payment.customer_id,
        customer_name=customer.name if customer else None,
        receipt_id=payment.receipt_id,
        payroll_entry_id=payroll_entry_id,
        debris_entry_id=debris_entry_id,
        receipt_payments=receipt_links,
        inventory_payments=purchase_links,
        linked_amount=linked,
        unapplied_amount=outstanding(payment.amount, linked) if payment.type in _ALLOCATING_TYPES else Decimal("0"),
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


def _parse_filter_id(raw: Optional[str]) -> Optional[int]:
    return parse_optional_id(raw, "INVALID_FILTER")


@router.get("", response_model=SuccessResponse[list[PaymentResponse]])
async def list_payments(
    type: Optional[str] = Query(None, description="Payment type"),
    supplier_id: Optional[str] = Query(None, alias="supplierId"),
    customer_id: Optional[str] = Query(None, alias="customerId"),
    receipt_id: Optional[str] = Query(None, alias="receiptId"),
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    description: Optional[str] = Query(None, description="Matches description, customer or supplier name"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """
    List payments, newest first

    - Invalid type or id filters are rejected with INVALID_FILTER
    """
    query = select(Payment)

    if type is not None and type.strip():
        try:
            query = query.where(Payment.type == PaymentType(type.strip().upper()))
        except ValueError:
            raise LedgerError("INVALID_FILTER", f"Invalid payment type: {type}")

    supplier_pk = _parse_filter_id(supplier_id)
    if supplier_pk is not None:
        query = query.where(Payment.supplier_id == supplier_pk)
    customer_pk = _parse_filter_id(customer_id)
    if customer_pk is not None:
        query = query.where(Payment.customer_id == customer_pk)
    receipt_pk = _parse_filter_id(receipt_id)
    if receipt_pk is not None:
        query = query.where(Payment.receipt_id == receipt_pk)
    employee_pk = _parse_filter_id(employee_id)
    if employee_pk is not None:
        query = query.where(
            Payment.id.in_(
                select(PayrollEntry.payment_id).where(PayrollEntry.employee_id == employee_pk)
            )
        )

    if description and description.strip():
        pattern = f"%{description.strip()}%"
        query = query.where(or_(
            Payment.description.ilike(pattern),
            Payment.customer.has(Customer.name.ilike(pattern)),
            Payment.supplier.has(Supplier.name.ilike(pattern)),
        ))

    payments = (await db.execute(
        query.order_by(Payment.date.desc(), Payment.id.desc())
    )).scalars().all()

    data = [await _build_response(db, p) for p in payments]
    return SuccessResponse(data=data, meta=ResponseMeta(total=len(data)))


@router.get("/{payment_id}", response_model=SuccessResponse[PaymentResponse])
async def get_payment(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """Payment detail with linkages"""
    payment = await db.get(Payment, payment_id)
    if payment is None:
        raise LedgerError("PAYMENT_NOT_FOUND")
    return SuccessResponse(data=await _build_response(db, payment))


@router.post("", response_model=SuccessResponse[PaymentResponse], status_code=status.HTTP_201_CREATED)
async def create_payment(
    body: PaymentRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """
    Record a payment

    - RECEIPT: settles one receipt (capped at its outstanding)
    - CUSTOMER_PAYMENT: spread over the customer's receipts oldest first
    - SUPPLIER: spread over the supplier's unpaid purchases oldest first
    - payroll / debris types attach to exactly one entry
    """
    intent = await sanitize_payment_input(db, body.model_dump())
    payment = await create_payment_record(db, intent)
    await db.refresh(payment)
    data = await _build_response(db, payment)
    await db.commit()

    await log_audit(
        action="PAYMENT_CREATE",
        entity_type="PAYMENT",
        entity_id=payment.id,
        description=f"Created {payment.type.value} payment of {payment.amount}",
        user=current_user.email,
        metadata={
            "amount": payment.amount,
            "receipts": [l.receipt_id for l in data.receipt_payments],
            "purchases": [l.inventory_entry_id for l in data.inventory_payments],
        },
    )
    return SuccessResponse(data=data)


@router.put("/{payment_id}", response_model=SuccessResponse[PaymentResponse])
async def update_payment(
    payment_id: int,
    body: PaymentRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """Edit a payment: its old effects are reversed before the new ones apply"""
    existing = await load_payment(db, payment_id)
    if existing is None:
        raise LedgerError("PAYMENT_NOT_FOUND")
    before = {"type": existing.type, "amount": existing.amount}

    intent = await sanitize_payment_input(db, body.model_dump(), existing_payment=existing)
    payment = await update_payment_record(db, payment_id, intent)
    await db.refresh(payment)
    data = await _build_response(db, payment)
    await db.commit()

    await log_audit(
        action="PAYMENT_UPDATE",
        entity_type="PAYMENT",
        entity_id=payment.id,
        description=f"Updated payment #{payment.id}",
        user=current_user.email,
        metadata={"before": before, "after": {"type": payment.type, "amount": payment.amount}},
    )
    return SuccessResponse(data=data)


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """Delete a payment and undo everything it paid"""
    payment = await delete_payment_record(db, payment_id)
    await db.commit()

    await log_audit(
        action="PAYMENT_DELETE",
        entity_type="PAYMENT",
        entity_id=payment_id,
        description=f"Deleted {payment.type.value} payment of {payment.amount}",
        user=current_user.email,
        metadata={"amount": payment.amount},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
