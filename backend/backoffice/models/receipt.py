"""
Back-office ledger - Receipt model
Sales receipts (receivables) and the payment links that settle them.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Integer, String, DateTime, Boolean, Numeric,
    ForeignKey, Index, CheckConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import Base
from backoffice.models.enums import ReceiptType


class Receipt(Base):
    """Receipts table"""

    __tablename__ = "receipts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    receipt_no: Mapped[str | None] = mapped_column(
        String(50), unique=True, nullable=True, comment="Printed receipt number"
    )
    date: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, comment="Sale date"
    )
    type: Mapped[ReceiptType] = mapped_column(
        SQLEnum(ReceiptType, name="receipt_type"),
        default=ReceiptType.NORMAL,
        nullable=False,
        comment="NORMAL or TVA",
    )

    # ==================== party ====================
    customer_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        comment="Customer (null for walk-in sales)",
    )
    walk_in_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # ==================== amounts ====================
    total: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Receipt total (fixed at creation)"
    )
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), default=Decimal("0"), nullable=False,
        comment="Paid so far (recomputed from links)",
    )
    is_paid: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, comment="amount_paid >= total"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_receipt_total_non_negative"),
        Index("ix_receipts_customer_date", "customer_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<Receipt(id={self.id}, total={self.total}, paid={self.amount_paid})>"


class ReceiptPayment(Base):
    """Payment -> receipt allocation"""

    __tablename__ = "receipt_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
        comment="Payment",
    )
    receipt_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("receipts.id", ondelete="CASCADE"),
        nullable=False,
        comment="Receipt",
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Allocated amount"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    payment = relationship("Payment", back_populates="receipt_payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_rp_amount_positive"),
        Index("ix_rp_payment", "payment_id"),
        Index("ix_rp_receipt", "receipt_id"),
    )

    def __repr__(self) -> str:
        return f"<ReceiptPayment(payment={self.payment_id}, receipt={self.receipt_id}, amount={self.amount})>"
