"""Campaign model definitions."""
from enum import Enum as PyEnum

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Enum as SqlEnum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class CampaignStatus(str, PyEnum):
    """Moderation and funding status of a campaign."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class Campaign(Base):
    """A fundraising goal owned by a user.

    ``amount_raised`` is only ever incremented by the disbursement engine.
    Deleting the row is the terminal state once the payout is recorded.
    """

    __tablename__ = "campaigns"
    __table_args__ = (
        CheckConstraint("goal_amount > 0", name="ck_campaign_positive_goal"),
        CheckConstraint("amount_raised >= 0", name="ck_campaign_non_negative_raised"),
        Index("ix_campaigns_status", "status"),
    )

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    goal_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    amount_raised: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    status: Mapped[CampaignStatus] = mapped_column(
        SqlEnum(CampaignStatus), nullable=False, default=CampaignStatus.PENDING
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    owner = relationship("User", back_populates="campaigns")
    milestones = relationship(
        "Milestone",
        back_populates="campaign",
        cascade="all, delete-orphan",
        order_by="Milestone.created_at",
    )

    @property
    def goal_met(self) -> bool:
        return self.amount_raised >= self.goal_amount

    @property
    def percentage_raised(self) -> float:
        if not self.goal_amount:
            return 0.0
        return round(self.amount_raised * 100 / self.goal_amount, 2)

    @property
    def total_milestones(self) -> int:
        return len(self.milestones)

    @property
    def approved_milestones(self) -> int:
        return sum(1 for m in self.milestones if m.status.value == "APPROVED")
