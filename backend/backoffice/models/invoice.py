"""
Back-office ledger - Invoice model
Groups receipts of one customer and one receipt type. Amounts are a
snapshot taken at creation and changed only by mark-paid.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Integer, String, DateTime, Text, Numeric,
    ForeignKey, UniqueConstraint, Index, Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import Base
from backoffice.models.enums import InvoiceStatus, ReceiptType


class Invoice(Base):
    """Invoices table"""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_no: Mapped[str | None] = mapped_column(
        String(20), unique=True, nullable=True, comment="INV-00001"
    )
    customer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
    )
    receipt_type: Mapped[ReceiptType] = mapped_column(
        SQLEnum(ReceiptType, name="receipt_type"),
        nullable=False,
        comment="Single receipt type per invoice",
    )
    status: Mapped[InvoiceStatus] = mapped_column(
        SQLEnum(InvoiceStatus, name="invoice_status"),
        default=InvoiceStatus.PENDING,
        nullable=False,
    )

    # ==================== amounts (snapshot) ====================
    subtotal: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    vat_rate: Mapped[Decimal | None] = mapped_column(Numeric(6, 4), nullable=True)
    vat_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    total: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), default=Decimal("0"), nullable=False
    )
    outstanding: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    invoice_receipts = relationship(
        "InvoiceReceipt",
        back_populates="invoice",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="InvoiceReceipt.id",
    )

    __table_args__ = (
        Index("ix_invoices_customer_status", "customer_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, no={self.invoice_no}, status={self.status})>"


class InvoiceReceipt(Base):
    """Invoice -> receipt membership"""

    __tablename__ = "invoice_receipts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )
    receipt_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("receipts.id", ondelete="CASCADE"),
        nullable=False,
    )

    invoice = relationship("Invoice", back_populates="invoice_receipts")
    receipt = relationship("Receipt")

    __table_args__ = (
        UniqueConstraint("receipt_id", name="uq_ir_receipt"),
        Index("ix_ir_invoice", "invoice_id"),
    )

    def __repr__(self) -> str:
        return f"<InvoiceReceipt(invoice={self.invoice_id}, receipt={self.receipt_id})>"
