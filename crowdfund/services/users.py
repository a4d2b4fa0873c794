"""Self-service account management: profile updates and account deletion."""
from __future__ import annotations

import logging

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdfund.models.api_key import ApiKey
from crowdfund.models.campaign import Campaign
from crowdfund.models.donation import Donation
from crowdfund.models.transaction import Transaction
from crowdfund.models.user import User
from crowdfund.schemas.user import UserUpdate
from crowdfund.services import ledger
from crowdfund.utils.audit import actor_for_user, log_audit
from crowdfund.utils.errors import Conflict, ValidationFailure

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("firstname", "lastname", "contact", "address", "purpose")


def update_profile(db: Session, user: User, payload: UserUpdate) -> User:
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise ValidationFailure("No valid fields provided for update.", code="EMPTY_UPDATE")

    with ledger.unit_of_work(db, operation="update_profile"):
        for field, value in changes.items():
            setattr(user, field, value)
        try:
            db.flush()
        except IntegrityError as exc:
            raise Conflict("Username or email already in use.", code="USER_UPDATE_CONFLICT") from exc
        log_audit(
            db,
            actor=actor_for_user(user),
            action="USER_PROFILE_UPDATED",
            entity="User",
            entity_id=user.id,
            data={"fields": sorted(changes), "email": changes.get("email")},
        )
    db.refresh(user)
    logger.info("User profile updated", extra={"user_id": user.id, "fields": sorted(changes)})
    return user


def _has_ledger_history(db: Session, user_id: int) -> bool:
    donated = db.scalar(select(exists().where(Donation.user_id == user_id)))
    booked = db.scalar(select(exists().where(Transaction.user_id == user_id)))
    return bool(donated or booked)


def _erase(db: Session, user: User) -> None:
    user.username = f"deleted-user-{user.id}"
    user.email = f"deleted-user-{user.id}@deleted.invalid"
    for field in PROFILE_FIELDS:
        setattr(user, field, None)
    user.is_active = False
    db.execute(
        update(ApiKey)
        .where(ApiKey.user_id == user.id)
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )


def delete_account(db: Session, user: User) -> str:
    """Remove the caller's account.

    An owner of campaigns must delete them first. An account that appears in
    the ledger (donations or transactions) is erased instead of removed: its
    personal data is cleared, it is deactivated and its API keys are revoked,
    so donation totals and payouts keep a payer. Any other account is deleted
    with its API keys and votes. Returns ``"erased"`` or ``"deleted"``.
    """

    with ledger.unit_of_work(db, operation="delete_account"):
        owns_campaigns = db.scalar(select(exists().where(Campaign.user_id == user.id)))
        if owns_campaigns:
            raise Conflict(
                "Delete or hand over your campaigns before deleting the account.",
                code="USER_OWNS_CAMPAIGNS",
            )

        mode = "erased" if _has_ledger_history(db, user.id) else "deleted"
        log_audit(
            db,
            actor=actor_for_user(user),
            action="USER_ERASED" if mode == "erased" else "USER_DELETED",
            entity="User",
            entity_id=user.id,
            data={"email": user.email},
        )
        if mode == "erased":
            _erase(db, user)
        else:
            db.delete(user)

    logger.info("User account removed", extra={"user_id": user.id, "mode": mode})
    return mode


__all__ = ["update_profile", "delete_account"]
