"""
Back-office ledger - DebrisEntry model
Debris collected at customer sites; removal is paid by one DEBRIS_REMOVAL payment.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Integer, DateTime, Text, Numeric, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.core.database import Base
from backoffice.models.enums import DebrisStatus


class DebrisEntry(Base):
    """Debris entries table"""

    __tablename__ = "debris_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    customer_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    supplier_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True
    )
    volume: Mapped[Decimal] = mapped_column(
        Numeric(18, 3), default=Decimal("0"), nullable=False
    )

    # ==================== removal ====================
    status: Mapped[DebrisStatus] = mapped_column(
        SQLEnum(DebrisStatus, name="debris_status"),
        default=DebrisStatus.PENDING,
        nullable=False,
    )
    removal_cost: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    removal_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    removal_payment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("payments.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
        comment="DEBRIS_REMOVAL payment",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<DebrisEntry(id={self.id}, status={self.status})>"
