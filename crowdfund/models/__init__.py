"""ORM models package."""
from .api_key import ApiKey
from .audit import AuditLog
from .base import Base
from .campaign import Campaign, CampaignStatus
from .donation import Donation
from .milestone import Milestone, MilestoneStatus, MilestoneVote
from .scheduler_lock import SchedulerLock
from .transaction import Transaction, TransactionStatus, TransactionType
from .user import User, UserRole

__all__ = [
    "ApiKey",
    "AuditLog",
    "Base",
    "Campaign",
    "CampaignStatus",
    "Donation",
    "Milestone",
    "MilestoneStatus",
    "MilestoneVote",
    "SchedulerLock",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "User",
    "UserRole",
]
