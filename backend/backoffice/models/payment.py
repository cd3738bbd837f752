"""
Back-office ledger - Payment model
A single cash movement. Its effects on receipts, purchases, payroll and
debris live in the linked rows, never in the payment itself.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Integer, String, DateTime, Text, Numeric, Boolean,
    ForeignKey, Index, CheckConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import Base
from backoffice.models.enums import PaymentType

# reference prefix of the payment booked when an invoice is marked paid
INVOICE_PAYMENT_REFERENCE_PREFIX = "invoice-"


class Payment(Base):
    """Payments table"""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, comment="Payment date"
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Amount (positive)"
    )
    type: Mapped[PaymentType] = mapped_column(
        SQLEnum(PaymentType, name="payment_type"),
        nullable=False,
        comment="Payment type",
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # ==================== targets ====================
    supplier_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
        comment="SUPPLIER payments",
    )
    customer_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        comment="CUSTOMER_PAYMENT / RECEIPT payments",
    )
    receipt_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("receipts.id", ondelete="SET NULL"),
        nullable=True,
        comment="RECEIPT payments",
    )
    is_legacy: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default="false",
        nullable=False,
        comment="Imported before allocation links existed",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # ==================== relationships ====================
    customer = relationship("Customer", foreign_keys=[customer_id])
    supplier = relationship("Supplier", foreign_keys=[supplier_id])
    receipt = relationship("Receipt", foreign_keys=[receipt_id])

    # ==================== links ====================
    receipt_payments = relationship(
        "ReceiptPayment",
        back_populates="payment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ReceiptPayment.id",
    )
    inventory_payments = relationship(
        "InventoryPayment",
        back_populates="payment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="InventoryPayment.id",
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        Index("ix_payments_type_date", "type", "date"),
        Index("ix_payments_customer", "customer_id"),
        Index("ix_payments_supplier", "supplier_id"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, type={self.type}, amount={self.amount})>"
