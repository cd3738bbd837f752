"""
Back-office ledger - cash box and custody models
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Integer, DateTime, Text, Numeric, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import Base
from backoffice.models.enums import CashEntryType, CashCustodyType


class CashEntry(Base):
    """Cash box movements (signed: withdrawals negative)"""

    __tablename__ = "cash_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[CashEntryType] = mapped_column(
        SQLEnum(CashEntryType, name="cash_entry_type"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Signed amount"
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<CashEntry(id={self.id}, type={self.type}, amount={self.amount})>"


class CashCustodyEntry(Base):
    """Cash handed from one employee to another"""

    __tablename__ = "cash_custody_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[CashCustodyType] = mapped_column(
        SQLEnum(CashCustodyType, name="cash_custody_type"),
        default=CashCustodyType.HANDOFF,
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    from_employee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    to_employee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    created_by_user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    from_employee = relationship("Employee", foreign_keys=[from_employee_id], lazy="joined")
    to_employee = relationship("Employee", foreign_keys=[to_employee_id], lazy="joined")

    __table_args__ = (
        Index("ix_cce_created", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<CashCustodyEntry(id={self.id}, from={self.from_employee_id}, "
            f"to={self.to_employee_id}, amount={self.amount})>"
        )
