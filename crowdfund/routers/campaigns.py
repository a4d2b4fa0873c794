"""Campaign endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from crowdfund.db import get_db
from crowdfund.models.campaign import Campaign
from crowdfund.models.transaction import Transaction
from crowdfund.models.user import User, UserRole
from crowdfund.schemas.campaign import (
    CampaignCreate,
    CampaignDeleted,
    CampaignRead,
    CampaignReview,
    CampaignUpdate,
)
from crowdfund.schemas.milestone import MilestoneCreate, MilestoneRead
from crowdfund.schemas.transaction import TransactionRead
from crowdfund.security import get_current_user, require_roles
from crowdfund.services import campaigns as campaigns_service
from crowdfund.services import milestones as milestones_service

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.post("", response_model=CampaignRead, status_code=status.HTTP_201_CREATED)
def create_campaign(
    payload: CampaignCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles({UserRole.CAMPAIGN_CREATOR})),
) -> Campaign:
    return campaigns_service.create_campaign(db, payload, owner=user)


@router.get("", response_model=list[CampaignRead])
def list_campaigns(
    approved: bool | None = None,
    user_id: int | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[Campaign]:
    """List campaigns; ``approved=false`` returns those awaiting review."""

    return campaigns_service.list_campaigns(db, approved=approved, user_id=user_id)


@router.get("/mine", response_model=list[CampaignRead])
def list_my_campaigns(
    db: Session = Depends(get_db),
    user: User = Depends(require_roles({UserRole.CAMPAIGN_CREATOR})),
) -> list[Campaign]:
    return campaigns_service.list_campaigns(db, user_id=user.id)


@router.get("/donated", response_model=list[CampaignRead])
def list_donated_campaigns(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[Campaign]:
    return campaigns_service.list_donated_campaigns(db, user)


@router.get("/{campaign_id}", response_model=CampaignRead)
def get_campaign(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Campaign:
    return campaigns_service.get_campaign_or_404(db, campaign_id)


@router.put("/{campaign_id}", response_model=CampaignRead)
def update_campaign(
    campaign_id: int,
    payload: CampaignUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles({UserRole.CAMPAIGN_CREATOR})),
) -> Campaign:
    return campaigns_service.update_campaign(db, campaign_id, payload, actor=user)


@router.put("/{campaign_id}/approval", response_model=CampaignRead)
def review_campaign(
    campaign_id: int,
    payload: CampaignReview,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles({UserRole.ADMIN})),
) -> Campaign:
    """Approve or reject a campaign (admin only)."""

    return campaigns_service.review_campaign(db, campaign_id, payload, actor=admin)


@router.delete("/{campaign_id}", response_model=CampaignDeleted)
def delete_campaign(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles({UserRole.CAMPAIGN_CREATOR})),
) -> CampaignDeleted:
    payout = campaigns_service.delete_campaign(db, campaign_id, actor=user)
    return CampaignDeleted(
        campaign_id=campaign_id,
        payout_id=payout.id if payout else None,
        payout_amount=payout.amount if payout else None,
    )


@router.post(
    "/{campaign_id}/milestones",
    response_model=MilestoneRead,
    status_code=status.HTTP_201_CREATED,
)
def add_milestone(
    campaign_id: int,
    payload: MilestoneCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles({UserRole.CAMPAIGN_CREATOR})),
):
    return milestones_service.add_milestone(db, campaign_id, payload, actor=user)


@router.get("/{campaign_id}/milestones", response_model=list[MilestoneRead])
def list_milestones(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Milestones in funding order."""

    return milestones_service.list_milestones(db, campaign_id)


@router.get("/{campaign_id}/transactions", response_model=list[TransactionRead])
def list_campaign_transactions(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[Transaction]:
    campaigns_service.get_campaign_or_404(db, campaign_id)
    stmt = (
        select(Transaction)
        .where(Transaction.campaign_id == campaign_id)
        .order_by(Transaction.created_at.asc(), Transaction.id.asc())
    )
    return list(db.scalars(stmt).all())
