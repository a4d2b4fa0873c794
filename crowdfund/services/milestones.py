"""Milestone lifecycle guards and donor voting."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import exists, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdfund.config import get_settings
from crowdfund.models.campaign import Campaign
from crowdfund.models.donation import Donation
from crowdfund.models.milestone import Milestone, MilestoneStatus, MilestoneVote
from crowdfund.models.user import User, UserRole
from crowdfund.schemas.milestone import MilestoneCreate, MilestoneUpdate, VoteCreate
from crowdfund.services import ledger
from crowdfund.services.campaigns import get_campaign_or_404
from crowdfund.utils.audit import actor_for_user, log_audit
from crowdfund.utils.errors import Conflict, Forbidden, NotFound, ValidationFailure

logger = logging.getLogger(__name__)


@dataclass
class VoteOutcome:
    vote: MilestoneVote
    milestone: Milestone
    approval_ratio: float
    rejection_ratio: float


def get_milestone_or_404(db: Session, milestone_id: int, *, lock: bool = False) -> Milestone:
    """Load a milestone, row-locked when the caller is about to change it."""

    milestone = ledger.lock_milestone(db, milestone_id) if lock else db.get(Milestone, milestone_id)
    if milestone is None:
        raise NotFound("Milestone not found.", code="MILESTONE_NOT_FOUND", details={"milestone_id": milestone_id})
    return milestone


def _ensure_campaign_owner(campaign: Campaign, user: User) -> None:
    if user.role == UserRole.ADMIN or campaign.user_id == user.id:
        return
    raise Forbidden("Only the campaign owner can manage its milestones.", code="NOT_CAMPAIGN_OWNER")


def has_votes(db: Session, milestone_id: int) -> bool:
    return bool(db.scalar(select(exists().where(MilestoneVote.milestone_id == milestone_id))))


def _ensure_unlocked(db: Session, milestone: Milestone) -> None:
    # Voting start freezes the milestone's structure.
    if has_votes(db, milestone.id):
        raise Conflict(
            "Milestone has votes and can no longer be changed.",
            code="MILESTONE_LOCKED_BY_VOTES",
            details={"milestone_id": milestone.id},
        )


def add_milestone(db: Session, campaign_id: int, payload: MilestoneCreate, *, actor: User) -> Milestone:
    """Append a milestone at the end of the campaign's sequence."""

    campaign = get_campaign_or_404(db, campaign_id)
    _ensure_campaign_owner(campaign, actor)

    milestone = Milestone(
        campaign_id=campaign.id,
        title=payload.title,
        description=payload.description,
        proof_url=payload.proof_url,
        goal_amount=payload.goal_amount,
        amount=0,
        status=MilestoneStatus.PENDING,
        is_active=False,
    )
    db.add(milestone)
    db.flush()
    log_audit(
        db,
        actor=actor_for_user(actor),
        action="MILESTONE_CREATED",
        entity="Milestone",
        entity_id=milestone.id,
        data={"campaign_id": campaign.id, "goal_amount": milestone.goal_amount},
    )
    db.commit()
    db.refresh(milestone)
    logger.info("Milestone created", extra={"milestone_id": milestone.id, "campaign_id": campaign.id})
    return milestone


def list_milestones(db: Session, campaign_id: int) -> list[Milestone]:
    get_campaign_or_404(db, campaign_id)
    return ledger.milestones_in_order(db, campaign_id)


def update_milestone(db: Session, milestone_id: int, payload: MilestoneUpdate, *, actor: User) -> Milestone:
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise ValidationFailure("No valid fields provided for update.", code="EMPTY_UPDATE")

    with ledger.unit_of_work(db, operation="update_milestone"):
        milestone = get_milestone_or_404(db, milestone_id, lock=True)
        _ensure_campaign_owner(milestone.campaign, actor)
        _ensure_unlocked(db, milestone)
        for field, value in changes.items():
            setattr(milestone, field, value)

        log_audit(
            db,
            actor=actor_for_user(actor),
            action="MILESTONE_UPDATED",
            entity="Milestone",
            entity_id=milestone.id,
            data={"fields": sorted(changes)},
        )
    db.refresh(milestone)
    return milestone


def delete_milestone(db: Session, milestone_id: int, *, actor: User) -> None:
    with ledger.unit_of_work(db, operation="delete_milestone"):
        milestone = get_milestone_or_404(db, milestone_id, lock=True)
        _ensure_campaign_owner(milestone.campaign, actor)
        _ensure_unlocked(db, milestone)

        log_audit(
            db,
            actor=actor_for_user(actor),
            action="MILESTONE_DELETED",
            entity="Milestone",
            entity_id=milestone.id,
            data={"campaign_id": milestone.campaign_id, "amount": milestone.amount},
        )
        db.delete(milestone)
    logger.info("Milestone deleted", extra={"milestone_id": milestone_id})


def _unique_donor_count(db: Session, campaign_id: int) -> int:
    stmt = select(func.count(func.distinct(Donation.user_id))).where(Donation.campaign_id == campaign_id)
    return int(db.scalar(stmt) or 0)


def _tally(db: Session, milestone: Milestone) -> tuple[float, float]:
    """Return (approval, rejection) ratios over the campaign's unique donors."""

    donors = _unique_donor_count(db, milestone.campaign_id)
    if donors == 0:
        return 0.0, 0.0
    approvals = db.scalar(
        select(func.count()).where(MilestoneVote.milestone_id == milestone.id, MilestoneVote.approved.is_(True))
    )
    rejections = db.scalar(
        select(func.count()).where(MilestoneVote.milestone_id == milestone.id, MilestoneVote.approved.is_(False))
    )
    return approvals / donors, rejections / donors


def cast_vote(db: Session, milestone_id: int, payload: VoteCreate, *, voter: User) -> VoteOutcome:
    """Store one vote per user and milestone, then apply the moderation tally.

    The vote's proof URL is kept on the milestone when it has none yet. The
    tally only moves the milestone's moderation status; it never touches
    balances or which milestone is active.
    """

    with ledger.unit_of_work(db, operation="cast_vote"):
        # The lock orders this vote against a concurrent update or delete of the milestone.
        milestone = get_milestone_or_404(db, milestone_id, lock=True)
        if milestone.status in (MilestoneStatus.APPROVED, MilestoneStatus.REJECTED):
            raise Conflict(
                f"Milestone is already {milestone.status.value.lower()} and cannot be voted on.",
                code="MILESTONE_DECIDED",
            )

        existing = db.scalars(
            select(MilestoneVote).where(
                MilestoneVote.user_id == voter.id,
                MilestoneVote.milestone_id == milestone.id,
            )
        ).first()
        if existing is not None:
            raise Conflict("You have already voted on this milestone.", code="DUPLICATE_VOTE")

        if not milestone.proof_url:
            milestone.proof_url = payload.proof_url

        vote = MilestoneVote(user_id=voter.id, milestone_id=milestone.id, approved=payload.approved)
        db.add(vote)
        try:
            db.flush()
        except IntegrityError as exc:
            raise Conflict("You have already voted on this milestone.", code="DUPLICATE_VOTE") from exc

        approval_ratio, rejection_ratio = _tally(db, milestone)
        threshold = get_settings().VOTE_DECISION_THRESHOLD
        if approval_ratio >= threshold:
            milestone.status = MilestoneStatus.APPROVED
        elif rejection_ratio >= threshold:
            milestone.status = MilestoneStatus.REJECTED

        log_audit(
            db,
            actor=actor_for_user(voter),
            action="MILESTONE_VOTE_CAST",
            entity="Milestone",
            entity_id=milestone.id,
            data={"approved": payload.approved, "status": milestone.status.value, "proof_url": payload.proof_url},
        )
    db.refresh(milestone)
    db.refresh(vote)
    logger.info(
        "Milestone vote recorded",
        extra={"milestone_id": milestone.id, "user_id": voter.id, "status": milestone.status.value},
    )
    return VoteOutcome(
        vote=vote,
        milestone=milestone,
        approval_ratio=approval_ratio,
        rejection_ratio=rejection_ratio,
    )


__all__ = [
    "VoteOutcome",
    "get_milestone_or_404",
    "has_votes",
    "add_milestone",
    "list_milestones",
    "update_milestone",
    "delete_milestone",
    "cast_vote",
]
