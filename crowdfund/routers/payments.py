"""Payment order and verification endpoints."""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from crowdfund.config import get_settings
from crowdfund.db import get_db
from crowdfund.models.user import User, UserRole
from crowdfund.schemas.milestone import MilestoneRead
from crowdfund.schemas.payment import OrderCreate, OrderRead, PaymentVerificationRead, PaymentVerify
from crowdfund.schemas.transaction import DonationRead, TransactionRead
from crowdfund.security import get_current_user, require_roles
from crowdfund.services import orders as orders_service
from crowdfund.services.disbursement import process_verified_payment
from crowdfund.services.payment_verifier import PaymentClaim, Rejected, verify_payment
from crowdfund.utils.errors import ValidationFailure

router = APIRouter(prefix="/payments", tags=["payments"])
logger = logging.getLogger(__name__)


@router.post("/orders", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles({UserRole.DONOR})),
) -> OrderRead:
    return orders_service.create_order(db, payload, payer=user)


@router.post("/verify", response_model=PaymentVerificationRead, status_code=status.HTTP_200_OK)
def verify(
    payload: PaymentVerify,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> PaymentVerificationRead:
    """Verify a checkout confirmation and credit it to the campaign ledger."""

    claim = PaymentClaim(
        order_id=payload.order_id,
        payment_id=payload.payment_id,
        signature=payload.signature,
        amount=payload.amount,
        campaign_id=payload.campaign_id,
        milestone_id=payload.milestone_id,
        payer_id=user.id,
    )
    outcome = verify_payment(claim, get_settings().payment_signature_secret)
    if isinstance(outcome, Rejected):
        logger.warning(
            "Payment verification rejected",
            extra={"reason": outcome.reason, "user_id": user.id, "campaign_id": payload.campaign_id},
        )
        raise ValidationFailure(
            "Payment verification failed.",
            code="PAYMENT_VERIFICATION_FAILED",
            details={"reason": outcome.reason},
        )

    result = process_verified_payment(db, outcome)
    return PaymentVerificationRead(
        donation=DonationRead.model_validate(result.donation),
        transaction=TransactionRead.model_validate(result.transaction) if result.transaction else None,
        payout=TransactionRead.model_validate(result.payout) if result.payout else None,
        campaign_amount_raised=result.campaign.amount_raised if result.campaign else None,
        milestone_amount=result.milestone.amount if result.milestone else None,
        goal_reached=result.goal_reached,
        replayed=result.replayed,
        active_milestone=(
            MilestoneRead.model_validate(result.activated_milestone) if result.activated_milestone else None
        ),
        sequencer_error=result.sequencer_error,
    )
