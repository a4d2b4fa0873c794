"""Campaign schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crowdfund.models.campaign import CampaignStatus


class CampaignCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    goal_amount: int = Field(gt=0)


class CampaignUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    goal_amount: int | None = Field(default=None, gt=0)


class CampaignReview(BaseModel):
    status: CampaignStatus

    @field_validator("status", mode="before")
    @classmethod
    def _review_outcome(cls, value: str | CampaignStatus) -> CampaignStatus | str:
        """Only APPROVED and REJECTED are reachable through review."""

        if isinstance(value, str):
            value = value.upper()
        if value not in (CampaignStatus.APPROVED, CampaignStatus.REJECTED, "APPROVED", "REJECTED"):
            raise ValueError("status must be APPROVED or REJECTED")
        return value


class CampaignRead(BaseModel):
    id: int
    user_id: int
    title: str
    description: str | None
    goal_amount: int
    amount_raised: int
    status: CampaignStatus
    is_active: bool
    percentage_raised: float
    total_milestones: int
    approved_milestones: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CampaignDeleted(BaseModel):
    campaign_id: int
    payout_id: int | None = None
    payout_amount: int | None = None
