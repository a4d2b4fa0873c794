"""Campaign lifecycle services: creation, moderation and terminal deletion."""
from __future__ import annotations

import logging

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from crowdfund.models.campaign import Campaign, CampaignStatus
from crowdfund.models.donation import Donation
from crowdfund.models.transaction import Transaction, TransactionType
from crowdfund.models.user import User, UserRole
from crowdfund.schemas.campaign import CampaignCreate, CampaignReview, CampaignUpdate
from crowdfund.services import ledger, sequencer
from crowdfund.services.disbursement import record_payout
from crowdfund.utils.audit import actor_for_user, log_audit
from crowdfund.utils.errors import Conflict, Forbidden, NotFound, ValidationFailure

logger = logging.getLogger(__name__)


def get_campaign_or_404(db: Session, campaign_id: int) -> Campaign:
    campaign = db.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFound("Campaign not found.", code="CAMPAIGN_NOT_FOUND", details={"campaign_id": campaign_id})
    return campaign


def _ensure_owner_or_admin(campaign: Campaign, user: User) -> None:
    if user.role == UserRole.ADMIN or campaign.user_id == user.id:
        return
    raise Forbidden("Only the campaign owner can change this campaign.", code="NOT_CAMPAIGN_OWNER")


def create_campaign(db: Session, payload: CampaignCreate, *, owner: User) -> Campaign:
    """Create a PENDING campaign owned by ``owner``."""

    campaign = Campaign(
        user_id=owner.id,
        title=payload.title,
        description=payload.description,
        goal_amount=payload.goal_amount,
        amount_raised=0,
        status=CampaignStatus.PENDING,
        is_active=True,
    )
    db.add(campaign)
    db.flush()
    log_audit(
        db,
        actor=actor_for_user(owner),
        action="CAMPAIGN_CREATED",
        entity="Campaign",
        entity_id=campaign.id,
        data={"goal_amount": campaign.goal_amount},
    )
    db.commit()
    db.refresh(campaign)
    logger.info("Campaign created", extra={"campaign_id": campaign.id, "user_id": owner.id})
    return campaign


def list_campaigns(db: Session, *, approved: bool | None = None, user_id: int | None = None) -> list[Campaign]:
    """List campaigns, newest first; ``approved=False`` means still pending review."""

    stmt = select(Campaign).order_by(Campaign.created_at.desc(), Campaign.id.desc())
    if approved is True:
        stmt = stmt.where(Campaign.status == CampaignStatus.APPROVED)
    elif approved is False:
        stmt = stmt.where(Campaign.status == CampaignStatus.PENDING)
    if user_id is not None:
        stmt = stmt.where(Campaign.user_id == user_id)
    return list(db.scalars(stmt).all())


def list_donated_campaigns(db: Session, user: User) -> list[Campaign]:
    donated = select(Donation.campaign_id).where(Donation.user_id == user.id)
    stmt = (
        select(Campaign)
        .where(Campaign.id.in_(donated))
        .order_by(Campaign.created_at.desc(), Campaign.id.desc())
    )
    return list(db.scalars(stmt).all())


def update_campaign(db: Session, campaign_id: int, payload: CampaignUpdate, *, actor: User) -> Campaign:
    campaign = get_campaign_or_404(db, campaign_id)
    _ensure_owner_or_admin(campaign, actor)
    if campaign.status == CampaignStatus.APPROVED:
        raise Conflict("Cannot update an approved campaign.", code="CAMPAIGN_ALREADY_APPROVED")

    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise ValidationFailure("No valid fields provided for update.", code="EMPTY_UPDATE")
    for field, value in changes.items():
        setattr(campaign, field, value)

    log_audit(
        db,
        actor=actor_for_user(actor),
        action="CAMPAIGN_UPDATED",
        entity="Campaign",
        entity_id=campaign.id,
        data={"fields": sorted(changes)},
    )
    db.commit()
    db.refresh(campaign)
    return campaign


def review_campaign(db: Session, campaign_id: int, payload: CampaignReview, *, actor: User) -> Campaign:
    """Approve or reject a campaign; approval unlocks its first milestone."""

    if actor.role != UserRole.ADMIN:
        raise Forbidden("Only admins can approve or reject campaigns.", code="ADMIN_ONLY")

    with ledger.unit_of_work(db, operation="review_campaign"):
        campaign = ledger.lock_campaign(db, campaign_id)
        if campaign is None:
            raise NotFound("Campaign not found.", code="CAMPAIGN_NOT_FOUND", details={"campaign_id": campaign_id})
        if campaign.status == CampaignStatus.COMPLETED:
            raise Conflict("Campaign is already completed.", code="CAMPAIGN_COMPLETED")

        campaign.status = payload.status
        activated = None
        if payload.status == CampaignStatus.APPROVED:
            activated = sequencer.activate_first(db, campaign.id)

        log_audit(
            db,
            actor=actor_for_user(actor),
            action=f"CAMPAIGN_{payload.status.value}",
            entity="Campaign",
            entity_id=campaign.id,
            data={"activated_milestone_id": activated.id if activated else None},
        )

    db.refresh(campaign)
    logger.info(
        "Campaign reviewed",
        extra={"campaign_id": campaign.id, "status": campaign.status.value},
    )
    return campaign


def delete_campaign(db: Session, campaign_id: int, *, actor: User) -> Transaction | None:
    """Delete a campaign, recording its payout first when the goal is met.

    Admins may always delete. The owner may delete a campaign without
    donations, or one whose goal has been met. Returns the PAYOUT entry
    recorded by this call, if any.
    """

    with ledger.unit_of_work(db, operation="delete_campaign"):
        campaign = ledger.lock_campaign(db, campaign_id)
        if campaign is None:
            raise NotFound("Campaign not found.", code="CAMPAIGN_NOT_FOUND", details={"campaign_id": campaign_id})
        _ensure_owner_or_admin(campaign, actor)

        is_admin = actor.role == UserRole.ADMIN
        has_donations = db.scalar(select(exists().where(Donation.campaign_id == campaign.id)))
        if not is_admin and has_donations and not campaign.goal_met:
            raise Forbidden("Cannot delete a campaign with donations.", code="CAMPAIGN_HAS_DONATIONS")

        payout = None
        if campaign.goal_met:
            already_paid = db.scalar(
                select(
                    exists().where(
                        Transaction.campaign_id == campaign.id,
                        Transaction.type == TransactionType.PAYOUT,
                    )
                )
            )
            if not already_paid:
                payout = record_payout(db, campaign)
                db.flush()

        log_audit(
            db,
            actor=actor_for_user(actor),
            action="CAMPAIGN_DELETED",
            entity="Campaign",
            entity_id=campaign.id,
            data={"amount_raised": campaign.amount_raised, "payout_id": payout.id if payout else None},
        )
        db.delete(campaign)
        db.flush()

    logger.info("Campaign deleted", extra={"campaign_id": campaign_id, "payout_recorded": payout is not None})
    return payout


__all__ = [
    "get_campaign_or_404",
    "create_campaign",
    "list_campaigns",
    "list_donated_campaigns",
    "update_campaign",
    "review_campaign",
    "delete_campaign",
]
