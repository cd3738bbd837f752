"""
Back-office ledger - InventoryEntry model
Purchases (payables) and production entries, plus supplier payment links.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Integer, String, DateTime, Boolean, Numeric,
    ForeignKey, Index, CheckConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import Base
from backoffice.models.enums import InventoryEntryType


class InventoryEntry(Base):
    """Inventory entries table"""

    __tablename__ = "inventory_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inventory_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    entry_date: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, comment="Purchase/production date"
    )
    type: Mapped[InventoryEntryType] = mapped_column(
        SQLEnum(InventoryEntryType, name="inventory_entry_type"),
        default=InventoryEntryType.PURCHASE,
        nullable=False,
    )
    supplier_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
        comment="Supplier (purchases only)",
    )

    # ==================== amounts ====================
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(18, 3), default=Decimal("0"), nullable=False
    )
    unit_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 2), nullable=True, comment="Unit cost"
    )
    total_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 2), nullable=True, comment="Explicit total (else unit_cost * quantity)"
    )
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), default=Decimal("0"), nullable=False,
        comment="Paid so far (recomputed from links)",
    )
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_inventory_supplier_date", "supplier_id", "entry_date"),
    )

    def __repr__(self) -> str:
        return f"<InventoryEntry(id={self.id}, type={self.type}, paid={self.amount_paid})>"


class InventoryPayment(Base):
    """Payment -> purchase allocation"""

    __tablename__ = "inventory_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
    )
    inventory_entry_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("inventory_entries.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Allocated amount"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    payment = relationship("Payment", back_populates="inventory_payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ip_amount_positive"),
        Index("ix_ip_payment", "payment_id"),
        Index("ix_ip_entry", "inventory_entry_id"),
    )

    def __repr__(self) -> str:
        return f"<InventoryPayment(payment={self.payment_id}, entry={self.inventory_entry_id}, amount={self.amount})>"
