"""
Back-office ledger - PairSettlement + SettlementAllocation models
Barter netting between a paired customer and supplier. The offset moves no
cash, so it is recorded here instead of as a Payment.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Integer, String, DateTime, Numeric,
    ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import Base


class PairSettlement(Base):
    """One settle-pairs offset for one customer/supplier pair"""

    __tablename__ = "pair_settlements"

    # ==================== primary key ====================
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ==================== pair ====================
    customer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        comment="Customer side (receivables reduced)",
    )
    supplier_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
        comment="Supplier side (payables reduced)",
    )

    # ==================== offset ====================
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Netted amount"
    )

    # ==================== system ====================
    created_by: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="Acting user email"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    # ==================== relationships ====================
    allocations = relationship(
        "SettlementAllocation",
        back_populates="settlement",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ps_amount_positive"),
        Index("ix_ps_customer", "customer_id"),
        Index("ix_ps_supplier", "supplier_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PairSettlement(id={self.id}, customer={self.customer_id}, "
            f"supplier={self.supplier_id}, amount={self.amount})>"
        )


class SettlementAllocation(Base):
    """Offset applied to one receipt or one purchase"""

    __tablename__ = "settlement_allocations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    settlement_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("pair_settlements.id", ondelete="CASCADE"),
        nullable=False,
    )
    receipt_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("receipts.id", ondelete="CASCADE"),
        nullable=True,
    )
    inventory_entry_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("inventory_entries.id", ondelete="CASCADE"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Offset applied"
    )

    settlement = relationship("PairSettlement", back_populates="allocations")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_sa_amount_positive"),
        CheckConstraint(
            "(receipt_id IS NULL) <> (inventory_entry_id IS NULL)",
            name="ck_sa_single_target",
        ),
        Index("ix_sa_receipt", "receipt_id"),
        Index("ix_sa_entry", "inventory_entry_id"),
    )

    def __repr__(self) -> str:
        target = f"receipt={self.receipt_id}" if self.receipt_id else f"entry={self.inventory_entry_id}"
        return f"<SettlementAllocation(settlement={self.settlement_id}, {target}, amount={self.amount})>"
