"""Declarative base model shared by every crowdfunding table."""
from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from crowdfund.utils.time import utcnow


class Base(DeclarativeBase):
    """Base class for all ORM models.

    ``created_at`` doubles as the ordering key for milestones, so it is set on
    the Python side at insert time rather than by the database.
    """

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
