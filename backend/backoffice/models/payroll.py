"""
Back-office ledger - Employee / PayrollEntry models
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Integer, String, DateTime, Boolean, Text, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.core.database import Base


class Employee(Base):
    """Employees table"""

    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, comment="Employee name")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, name={self.name})>"


class PayrollEntry(Base):
    """Payroll entries: unpaid until exactly one payment attaches"""

    __tablename__ = "payroll_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    period_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    period_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("payments.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
        comment="Paying payment (one-to-one once paid)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<PayrollEntry(id={self.id}, employee={self.employee_id}, payment={self.payment_id})>"
