"""Ledger transaction model."""
from enum import Enum as PyEnum

from sqlalchemy import BigInteger, CheckConstraint, Enum as SqlEnum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class TransactionType(str, PyEnum):
    DONATION = "DONATION"
    PAYOUT = "PAYOUT"


class TransactionStatus(str, PyEnum):
    """Possible transaction statuses."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Transaction(Base):
    """Append-only ledger entry describing a money movement.

    DONATION entries reference the payer, PAYOUT entries the campaign owner.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transaction_positive_amount"),
        Index("ix_transactions_created_at", "created_at"),
        Index("ix_transactions_campaign_type", "campaign_id", "type"),
    )

    type: Mapped[TransactionType] = mapped_column(SqlEnum(TransactionType), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        SqlEnum(TransactionStatus), nullable=False, default=TransactionStatus.PENDING
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    campaign_id: Mapped[int | None] = mapped_column(
        ForeignKey("campaigns.id", ondelete="SET NULL"), nullable=True, index=True
    )
    milestone_id: Mapped[int | None] = mapped_column(
        ForeignKey("milestones.id", ondelete="SET NULL"), nullable=True, index=True
    )
    donation_id: Mapped[int | None] = mapped_column(
        ForeignKey("donations.id", ondelete="SET NULL"), nullable=True, index=True
    )
