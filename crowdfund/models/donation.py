"""Donation model."""
from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Donation(Base):
    """Immutable record of one verified payment towards a campaign.

    ``psp_payment_id`` is unique so the same gateway payment can never be
    credited twice. ``campaign_id`` is nulled when the campaign is deleted.
    """

    __tablename__ = "donations"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_donation_positive_amount"),
        Index("ix_donations_created_at", "created_at"),
    )

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    campaign_id: Mapped[int | None] = mapped_column(
        ForeignKey("campaigns.id", ondelete="SET NULL"), nullable=True, index=True
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    psp_order_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    psp_payment_id: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True)
