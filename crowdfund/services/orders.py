"""Gateway order creation for donations."""
from __future__ import annotations

import logging

import stripe
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from crowdfund.config import get_settings
from crowdfund.models.milestone import Milestone
from crowdfund.models.user import User
from crowdfund.schemas.payment import OrderCreate, OrderRead
from crowdfund.services.campaigns import get_campaign_or_404
from crowdfund.services.psp_stripe import StripeClient
from crowdfund.utils.audit import actor_for_user, log_audit
from crowdfund.utils.errors import NotFound, error_response

logger = logging.getLogger(__name__)


def create_order(db: Session, payload: OrderCreate, *, payer: User) -> OrderRead:
    """Open a gateway order the payer's checkout confirms against.

    Nothing is credited here; balances only move once the confirmation is
    verified.
    """

    settings = get_settings()
    if not settings.STRIPE_ENABLED:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error_response("PAYMENT_GATEWAY_DISABLED", "Payment gateway not enabled."),
        )

    campaign = get_campaign_or_404(db, payload.campaign_id)
    milestone = db.get(Milestone, payload.milestone_id)
    if milestone is None or milestone.campaign_id != campaign.id:
        raise NotFound(
            "Campaign or milestone not found.",
            code="CAMPAIGN_OR_MILESTONE_NOT_FOUND",
            details={"campaign_id": payload.campaign_id, "milestone_id": payload.milestone_id},
        )

    currency = (payload.currency or settings.PAYMENT_CURRENCY).upper()
    try:
        intent = StripeClient(settings).create_order(
            campaign_id=campaign.id,
            milestone_id=milestone.id,
            amount=payload.amount,
            currency=currency,
        )
    except stripe.StripeError as exc:
        logger.error(
            "Gateway order creation failed",
            extra={"campaign_id": campaign.id, "milestone_id": milestone.id, "error": str(exc)},
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=error_response("PAYMENT_GATEWAY_ERROR", "Error creating payment order."),
        ) from exc

    log_audit(
        db,
        actor=actor_for_user(payer),
        action="PAYMENT_ORDER_CREATED",
        entity="Campaign",
        entity_id=campaign.id,
        data={"milestone_id": milestone.id, "amount": payload.amount, "psp_order_id": intent.id},
    )
    db.commit()
    logger.info(
        "Gateway order created",
        extra={"campaign_id": campaign.id, "milestone_id": milestone.id, "amount": payload.amount},
    )
    return OrderRead(
        order_id=intent.id,
        client_secret=getattr(intent, "client_secret", None),
        amount=payload.amount,
        currency=currency,
        campaign_id=campaign.id,
        milestone_id=milestone.id,
    )


__all__ = ["create_order"]
