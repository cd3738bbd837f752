"""
Back-office ledger - Customer / Supplier models
Trading parties and the 1:1 customer-supplier pairing used for netting.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Integer, String, DateTime, Text, Numeric,
    ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.core.database import Base


class Customer(Base):
    """Customers table (receivables side)"""

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(200), nullable=False, index=True, comment="Customer name"
    )
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # ==================== manual balance ====================
    manual_balance_override: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 2), nullable=True, comment="Manually booked opening balance"
    )
    manual_balance_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    manual_balance_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name={self.name})>"


class Supplier(Base):
    """Suppliers table (payables side)"""

    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(200), nullable=False, index=True, comment="Supplier name"
    )
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # ==================== manual balance ====================
    manual_balance_override: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 2), nullable=True, comment="Manually booked opening balance"
    )
    manual_balance_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    manual_balance_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Supplier(id={self.id}, name={self.name})>"


class CustomerSupplierLink(Base):
    """Barter pairing: at most one supplier per customer and vice versa"""

    __tablename__ = "customer_supplier_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        comment="Paired customer",
    )
    supplier_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
        comment="Paired supplier",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("customer_id", name="uq_csl_customer"),
        UniqueConstraint("supplier_id", name="uq_csl_supplier"),
    )

    def __repr__(self) -> str:
        return f"<CustomerSupplierLink(customer={self.customer_id}, supplier={self.supplier_id})>"
