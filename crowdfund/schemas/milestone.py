"""Schemas for milestones and votes."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from crowdfund.models.milestone import MilestoneStatus


class MilestoneCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    goal_amount: int = Field(gt=0)
    proof_url: str | None = Field(default=None, max_length=500)


class MilestoneUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    goal_amount: int | None = Field(default=None, gt=0)
    proof_url: str | None = Field(default=None, max_length=500)


class MilestoneRead(BaseModel):
    id: int
    campaign_id: int
    title: str
    description: str | None
    proof_url: str | None
    goal_amount: int
    amount: int
    status: MilestoneStatus
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VoteCreate(BaseModel):
    approved: bool
    # Evidence the voter reviewed; required on every vote.
    proof_url: str = Field(min_length=1, max_length=500)


class VoteRead(BaseModel):
    id: int
    user_id: int
    milestone_id: int
    approved: bool
    milestone_status: MilestoneStatus
    approval_ratio: float
    rejection_ratio: float
