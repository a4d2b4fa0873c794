"""Background jobs run by the scheduler."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from crowdfund.db import Database
from crowdfund.services import sequencer
from crowdfund.services.scheduler_lock import refresh_scheduler_lock
from crowdfund.utils.errors import SequencerFailure

logger = logging.getLogger(__name__)


def reconcile_milestones_once(db: Session) -> int:
    """Advance every campaign whose active milestone is funded but still active.

    Catches up on sequencer runs that failed after a payment committed.
    Returns the number of campaigns advanced.
    """

    advanced = 0
    for campaign_id in sequencer.campaigns_pending_advance(db):
        try:
            if sequencer.advance(db, campaign_id) is not None:
                advanced += 1
        except SequencerFailure:
            logger.warning("Reconciliation could not advance campaign", extra={"campaign_id": campaign_id})
    db.rollback()

    if advanced:
        logger.info("Milestone reconciliation advanced campaigns", extra={"count": advanced})
    return advanced


def reconcile_job(database: Database) -> int:
    """Scheduler entry point: one reconciliation pass on a fresh session."""

    with database.session() as session:
        return reconcile_milestones_once(session)


def lock_heartbeat_job(database: Database) -> bool:
    with database.session() as session:
        held = refresh_scheduler_lock(session)
    if not held:
        logger.warning("Scheduler lock heartbeat found the lock held elsewhere")
    return held


__all__ = ["reconcile_milestones_once", "reconcile_job", "lock_heartbeat_job"]
