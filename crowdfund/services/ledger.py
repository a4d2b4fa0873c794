"""Ledger store primitives shared by the disbursement core.

The SQLAlchemy ``Session`` handed to each service call is the store handle:
``unit_of_work`` gives it all-or-nothing semantics, the ``lock_*`` helpers take
row locks (``SELECT ... FOR UPDATE`` where the backend supports it) and the
``increment_*`` helpers update balances with SQL-side arithmetic so concurrent
payments never lose an update.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crowdfund.models.campaign import Campaign
from crowdfund.models.milestone import Milestone
from crowdfund.utils.errors import CrowdfundError, PersistenceFailure

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(
    db: Session,
    *,
    operation: str,
    failure: type[CrowdfundError] = PersistenceFailure,
) -> Iterator[Session]:
    """Commit the block as one atomic unit, rolling everything back on error.

    Store errors are re-raised as ``failure`` (``PersistenceFailure`` unless the
    caller asks otherwise) with the original exception chained.
    """

    try:
        yield db
        db.commit()
    except CrowdfundError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Ledger unit of work failed", extra={"operation": operation}, exc_info=True)
        raise failure(
            "Ledger update could not be committed.",
            details={"operation": operation},
        ) from exc
    except Exception:
        db.rollback()
        raise


def lock_campaign(db: Session, campaign_id: int) -> Campaign | None:
    stmt = (
        select(Campaign)
        .where(Campaign.id == campaign_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.scalars(stmt).one_or_none()


def lock_milestone(db: Session, milestone_id: int) -> Milestone | None:
    stmt = (
        select(Milestone)
        .where(Milestone.id == milestone_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.scalars(stmt).one_or_none()


def milestones_in_order(db: Session, campaign_id: int, *, lock: bool = False) -> list[Milestone]:
    """Return a campaign's milestones in ascending creation order."""

    stmt = (
        select(Milestone)
        .where(Milestone.campaign_id == campaign_id)
        .order_by(Milestone.created_at.asc(), Milestone.id.asc())
        .execution_options(populate_existing=True)
    )
    if lock:
        stmt = stmt.with_for_update()
    return list(db.scalars(stmt).all())


def increment_campaign_raised(db: Session, campaign: Campaign, amount: int) -> None:
    db.execute(
        update(Campaign)
        .where(Campaign.id == campaign.id)
        .values(amount_raised=Campaign.amount_raised + amount)
        .execution_options(synchronize_session=False)
    )
    db.refresh(campaign, ["amount_raised"])


def increment_milestone_amount(db: Session, milestone: Milestone, amount: int) -> None:
    db.execute(
        update(Milestone)
        .where(Milestone.id == milestone.id)
        .values(amount=Milestone.amount + amount)
        .execution_options(synchronize_session=False)
    )
    db.refresh(milestone, ["amount"])


__all__ = [
    "unit_of_work",
    "lock_campaign",
    "lock_milestone",
    "milestones_in_order",
    "increment_campaign_raised",
    "increment_milestone_amount",
]
