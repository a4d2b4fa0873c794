"""Milestone and milestone vote model definitions."""
from enum import Enum as PyEnum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class MilestoneStatus(str, PyEnum):
    """Moderation outcome of a milestone."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Milestone(Base):
    """A sequential sub-goal of a campaign, ordered by creation time."""

    __tablename__ = "milestones"
    __table_args__ = (
        CheckConstraint("goal_amount > 0", name="ck_milestone_positive_goal"),
        CheckConstraint("amount >= 0", name="ck_milestone_non_negative_amount"),
        # At most one active milestone per campaign.
        Index(
            "uq_milestones_single_active",
            "campaign_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        Index("ix_milestones_campaign_created", "campaign_id", "created_at"),
    )

    campaign_id: Mapped[int] = mapped_column(
        ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    proof_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    goal_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    status: Mapped[MilestoneStatus] = mapped_column(
        SqlEnum(MilestoneStatus), nullable=False, default=MilestoneStatus.PENDING
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    campaign = relationship("Campaign", back_populates="milestones")
    votes = relationship("MilestoneVote", back_populates="milestone", cascade="all, delete-orphan")

    @property
    def is_funded(self) -> bool:
        return self.amount >= self.goal_amount


class MilestoneVote(Base):
    """A donor's approve/reject vote on a milestone; unique per user and milestone."""

    __tablename__ = "milestone_votes"
    __table_args__ = (UniqueConstraint("user_id", "milestone_id", name="uq_milestone_votes_user_milestone"),)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    milestone_id: Mapped[int] = mapped_column(
        ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False, index=True
    )
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False)

    milestone = relationship("Milestone", back_populates="votes")
