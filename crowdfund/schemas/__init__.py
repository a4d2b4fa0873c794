"""Schema package exports."""
from .api_key import ApiKeyCreate, ApiKeyCreateOut, ApiKeyRead
from .campaign import CampaignCreate, CampaignDeleted, CampaignRead, CampaignReview, CampaignUpdate
from .milestone import MilestoneCreate, MilestoneRead, MilestoneUpdate, VoteCreate, VoteRead
from .payment import OrderCreate, OrderRead, PaymentVerificationRead, PaymentVerify
from .transaction import DonationRead, TransactionRead
from .user import UserCreate, UserDeleted, UserRead, UserUpdate

__all__ = [
    "ApiKeyCreate",
    "ApiKeyCreateOut",
    "ApiKeyRead",
    "CampaignCreate",
    "CampaignDeleted",
    "CampaignRead",
    "CampaignReview",
    "CampaignUpdate",
    "MilestoneCreate",
    "MilestoneRead",
    "MilestoneUpdate",
    "VoteCreate",
    "VoteRead",
    "OrderCreate",
    "OrderRead",
    "PaymentVerificationRead",
    "PaymentVerify",
    "DonationRead",
    "TransactionRead",
    "UserCreate",
    "UserDeleted",
    "UserRead",
    "UserUpdate",
]
