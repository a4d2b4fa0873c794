"""Append-only audit trail for ledger, moderation and account actions."""
from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from crowdfund.utils.time import utcnow

from .base import Base


class AuditLog(Base):
    """Who did what to which campaign, milestone, user or key.

    ``actor`` is ``user:<id>`` or ``system``; ``data_json`` is masked by
    ``crowdfund.utils.audit`` before it is stored. Rows are never updated and
    keep their ``entity_id`` after the entity itself is deleted.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity", "entity_id"),
        Index("ix_audit_logs_action_at", "action", "at"),
    )

    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[int] = mapped_column(nullable=False)
    data_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
