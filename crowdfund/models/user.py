"""User model."""
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Enum as SqlEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class UserRole(str, PyEnum):
    """Roles a platform user can hold."""

    DONOR = "DONOR"
    CAMPAIGN_CREATOR = "CAMPAIGN_CREATOR"
    ADMIN = "ADMIN"


class User(Base):
    """Represents a donor, campaign creator or administrator."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(SqlEnum(UserRole), nullable=False, default=UserRole.DONOR)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    firstname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    lastname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    contact: Mapped[str | None] = mapped_column(String(10), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)

    campaigns = relationship("Campaign", back_populates="owner")
    api_keys = relationship("ApiKey", back_populates="user", cascade="all, delete-orphan")
    votes = relationship("MilestoneVote", cascade="all, delete-orphan")
