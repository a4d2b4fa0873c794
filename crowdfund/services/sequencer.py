"""Milestone sequencer: keeps exactly one milestone per campaign unlocked for funding."""
from __future__ import annotations

import logging

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.orm import Session, aliased

from crowdfund.models.milestone import Milestone
from crowdfund.services import ledger
from crowdfund.utils.errors import SequencerFailure

logger = logging.getLogger(__name__)


def advance(db: Session, campaign_id: int) -> Milestone | None:
    """Hand the active flag from a fully funded milestone to its successor.

    Only the currently active milestone can trigger the hand-off, and only
    towards the next one in creation order, so an earlier milestone is never
    reactivated. Returns the newly activated milestone, or ``None`` when there
    is nothing to advance. Store errors surface as ``SequencerFailure``.
    """

    with ledger.unit_of_work(db, operation="advance_milestone", failure=SequencerFailure):
        milestones = ledger.milestones_in_order(db, campaign_id, lock=True)
        current_index = next(
            (i for i, m in enumerate(milestones) if m.is_active and m.is_funded),
            None,
        )
        if current_index is None or current_index == len(milestones) - 1:
            return None

        current = milestones[current_index]
        successor = milestones[current_index + 1]
        current.is_active = False
        # Flush the deactivation first so the single-active index never sees two rows.
        db.flush()
        successor.is_active = True
        db.flush()

    logger.info(
        "Milestone sequence advanced",
        extra={
            "campaign_id": campaign_id,
            "previous_milestone_id": current.id,
            "active_milestone_id": successor.id,
        },
    )
    return successor


def activate_first(db: Session, campaign_id: int) -> Milestone | None:
    """Activate the earliest milestone when none is active yet.

    Runs inside the caller's unit of work and does not commit.
    """

    milestones = ledger.milestones_in_order(db, campaign_id, lock=True)
    if not milestones or any(m.is_active for m in milestones):
        return None
    first = milestones[0]
    first.is_active = True
    db.flush()
    return first


def campaigns_pending_advance(db: Session) -> list[int]:
    """Return campaigns whose active milestone is funded and has a successor."""

    later = aliased(Milestone)
    has_successor = exists().where(
        later.campaign_id == Milestone.campaign_id,
        or_(
            later.created_at > Milestone.created_at,
            and_(later.created_at == Milestone.created_at, later.id > Milestone.id),
        ),
    )
    stmt = (
        select(Milestone.campaign_id)
        .where(
            Milestone.is_active.is_(True),
            Milestone.amount >= Milestone.goal_amount,
            has_successor,
        )
        .order_by(Milestone.campaign_id)
    )
    return list(db.scalars(stmt).all())


__all__ = ["advance", "activate_first", "campaigns_pending_advance"]
