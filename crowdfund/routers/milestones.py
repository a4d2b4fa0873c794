"""Milestone maintenance and voting endpoints."""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from crowdfund.db import get_db
from crowdfund.models.milestone import Milestone
from crowdfund.models.user import User, UserRole
from crowdfund.schemas.milestone import MilestoneRead, MilestoneUpdate, VoteCreate, VoteRead
from crowdfund.security import require_roles
from crowdfund.services import milestones as milestones_service

router = APIRouter(prefix="/milestones", tags=["milestones"])


@router.put("/{milestone_id}", response_model=MilestoneRead)
def update_milestone(
    milestone_id: int,
    payload: MilestoneUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles({UserRole.CAMPAIGN_CREATOR})),
) -> Milestone:
    return milestones_service.update_milestone(db, milestone_id, payload, actor=user)


@router.delete("/{milestone_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_milestone(
    milestone_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles({UserRole.CAMPAIGN_CREATOR})),
) -> Response:
    milestones_service.delete_milestone(db, milestone_id, actor=user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{milestone_id}/votes", response_model=VoteRead, status_code=status.HTTP_201_CREATED)
def vote_on_milestone(
    milestone_id: int,
    payload: VoteCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles({UserRole.DONOR})),
) -> VoteRead:
    """Record the caller's approval or rejection of a milestone."""

    outcome = milestones_service.cast_vote(db, milestone_id, payload, voter=user)
    return VoteRead(
        id=outcome.vote.id,
        user_id=outcome.vote.user_id,
        milestone_id=outcome.vote.milestone_id,
        approved=outcome.vote.approved,
        milestone_status=outcome.milestone.status,
        approval_ratio=outcome.approval_ratio,
        rejection_ratio=outcome.rejection_ratio,
    )
