"""
Back-office ledger - invoices API
"""

from datetime import timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_current_admin_user, get_ledger_user
from backoffice.core.audit import log_audit
from backoffice.core.config import Settings, get_settings
from backoffice.core.database import get_db
from backoffice.core.errors import LedgerError
from backoffice.models.enums import InvoiceStatus
from backoffice.models.invoice import Invoice
from backoffice.models.party import Customer
from backoffice.models.user import User
from backoffice.schemas.common import SuccessResponse, ResponseMeta
from backoffice.schemas.invoice import (
    InvoiceCreate,
    InvoiceMarkPaid,
    InvoiceReceiptResponse,
    InvoiceResponse,
    MarkPaidResponse,
)
from backoffice.services.invoicing import (
    create_invoice as create_invoice_record,
    customer_old_balance,
    delete_invoice as delete_invoice_record,
    list_invoices as list_invoice_records,
    load_invoice,
    mark_invoice_paid,
    select_receipts_for_invoice,
)
from backoffice.services.payment_sanitizer import parse_optional_id

router = APIRouter()


async def _build_response(db: AsyncSession, invoice: Invoice) -> InvoiceResponse:
    receipts = [link.receipt for link in invoice.invoice_receipts if link.receipt is not None]
    customer = await db.get(Customer, invoice.customer_id)
    old_balance = await customer_old_balance(db, invoice.customer_id, [r.id for r in receipts])

    response = InvoiceResponse.model_validate(invoice)
    response.customer_name = customer.name if customer else None
    response.receipts = [InvoiceReceiptResponse.model_validate(r) for r in receipts]
    response.old_balance = old_balance
    return response


@router.get("", response_model=SuccessResponse[list[InvoiceResponse]])
async def list_invoices(
    status_filter: Optional[str] = Query(None, alias="status"),
    customer_id: Optional[str] = Query(None, alias="customerId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """List invoices, newest first"""
    invoice_status = None
    if status_filter:
        try:
            invoice_status = InvoiceStatus(status_filter.strip().upper())
        except ValueError:
            raise LedgerError("INVALID_FILTER", f"Invalid invoice status: {status_filter}")
    customer_pk = parse_optional_id(customer_id, "INVALID_FILTER")

    invoices = await list_invoice_records(db, status=invoice_status, customer_id=customer_pk)
    data = [await _build_response(db, inv) for inv in invoices]
    return SuccessResponse(data=data, meta=ResponseMeta(total=len(data)))


@router.get("/{invoice_id}", response_model=SuccessResponse[InvoiceResponse])
async def get_invoice(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """Invoice detail with its receipts and the customer's old balance"""
    invoice = await load_invoice(db, invoice_id)
    if invoice is None:
        raise LedgerError("INVOICE_NOT_FOUND")
    return SuccessResponse(data=await _build_response(db, invoice))


@router.post("", response_model=SuccessResponse[InvoiceResponse], status_code=status.HTTP_201_CREATED)
async def create_invoice(
    body: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
    settings: Settings = Depends(get_settings),
):
    """
    Create an invoice

    - receiptIds: invoice exactly these receipts of the customer
    - amount: take the customer's receipts oldest first until the amount is reached
    - receipts of one invoice share one receipt type (NORMAL or TVA)
    """
    customer_pk = parse_optional_id(body.customer_id, "INVALID_CUSTOMER")
    if customer_pk is None:
        raise LedgerError("CUSTOMER_REQUIRED")

    selection = await select_receipts_for_invoice(
        db,
        customer_pk,
        receipt_ids=body.receipt_ids,
        amount=body.amount,
        include_paid=body.include_paid,
        tva_rate=settings.TVA_RATE,
    )
    invoice = await create_invoice_record(db, selection, notes=body.notes)
    invoice = await load_invoice(db, invoice.id)
    data = await _build_response(db, invoice)
    await db.commit()

    await log_audit(
        action="INVOICE_CREATE",
        entity_type="INVOICE",
        entity_id=invoice.id,
        description=f"Created invoice {invoice.invoice_no}",
        user=current_user.email,
        metadata={"receipts": [r.id for r in selection.receipts], "total": invoice.total},
    )
    return SuccessResponse(data=data)


@router.post("/{invoice_id}/mark-paid", response_model=SuccessResponse[MarkPaidResponse])
async def mark_paid(
    invoice_id: int,
    body: Optional[InvoiceMarkPaid] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_ledger_user),
):
    """Pay the invoice's outstanding amount and spread it over its receipts"""
    paid_at = body.paid_at if body is not None else None
    if paid_at is not None and paid_at.tzinfo is not None:
        paid_at = paid_at.astimezone(timezone.utc).replace(tzinfo=None)
    invoice, payment = await mark_invoice_paid(db, invoice_id, paid_at)
    invoice = await load_invoice(db, invoice.id)
    data = MarkPaidResponse(
        invoice=await _build_response(db, invoice),
        payment_id=payment.id if payment is not None else None,
    )
    await db.commit()

    await log_audit(
        action="INVOICE_MARK_PAID",
        entity_type="INVOICE",
        entity_id=invoice.id,
        description=f"Marked invoice {invoice.invoice_no} as paid",
        user=current_user.email,
        metadata={"payment_id": data.payment_id},
    )
    return SuccessResponse(data=data)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Delete an invoice (admin). Receipts and payments are left untouched."""
    invoice = await delete_invoice_record(db, invoice_id)
    await db.commit()

    await log_audit(
        action="INVOICE_DELETE",
        entity_type="INVOICE",
        entity_id=invoice_id,
        description=f"Deleted invoice {invoice.invoice_no}",
        user=current_user.email,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
