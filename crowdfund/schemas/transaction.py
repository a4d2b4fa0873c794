"""Ledger entry schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from crowdfund.models.transaction import TransactionStatus, TransactionType


class TransactionRead(BaseModel):
    id: int
    type: TransactionType
    amount: int
    status: TransactionStatus
    user_id: int
    campaign_id: int | None
    milestone_id: int | None
    donation_id: int | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DonationRead(BaseModel):
    id: int
    user_id: int
    campaign_id: int | None
    amount: int
    psp_order_id: str | None
    psp_payment_id: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
