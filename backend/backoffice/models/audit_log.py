"""
Back-office ledger - AuditLog model
Who did what to which entity, with free-form metadata.
"""

from datetime import datetime

from sqlalchemy import Integer, String, DateTime, Text, JSON, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.core.database import Base


class AuditLog(Base):
    """Audit log table"""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    action: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Action (PAYMENT_CREATED, INVOICE_PAID, ...)"
    )
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Entity type (payment, invoice, customer, ...)"
    )
    entity_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Entity id"
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Acting user"
    )
    metadata_: Mapped[dict | None] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB, "postgresql"),
        nullable=True,
        comment="Extra context"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_audit_logs_action_created", "action", "created_at"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action}, entity={self.entity_type}#{self.entity_id})>"
