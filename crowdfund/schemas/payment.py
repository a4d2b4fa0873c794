"""Schemas for gateway orders and payment verification."""
from pydantic import BaseModel, Field

from .milestone import MilestoneRead
from .transaction import DonationRead, TransactionRead


class OrderCreate(BaseModel):
    campaign_id: int
    milestone_id: int
    amount: int = Field(gt=0)
    currency: str | None = Field(default=None, pattern="^[A-Za-z]{3}$")


class OrderRead(BaseModel):
    order_id: str
    client_secret: str | None = None
    amount: int
    currency: str
    campaign_id: int
    milestone_id: int


class PaymentVerify(BaseModel):
    order_id: str = Field(min_length=1)
    payment_id: str = Field(min_length=1)
    signature: str = Field(min_length=1)
    amount: int
    campaign_id: int
    milestone_id: int


class PaymentVerificationRead(BaseModel):
    """Ledger entries written (or found again) for a verified payment."""

    donation: DonationRead
    transaction: TransactionRead | None
    payout: TransactionRead | None = None
    campaign_amount_raised: int | None = None
    milestone_amount: int | None = None
    goal_reached: bool = False
    replayed: bool = False
    active_milestone: MilestoneRead | None = None
    sequencer_error: str | None = None
