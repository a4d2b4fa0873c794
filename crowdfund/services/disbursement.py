"""Disbursement engine: credits verified payments to campaigns and milestones."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdfund.models.campaign import Campaign, CampaignStatus
from crowdfund.models.donation import Donation
from crowdfund.models.milestone import Milestone
from crowdfund.models.transaction import Transaction, TransactionStatus, TransactionType
from crowdfund.services import ledger, sequencer
from crowdfund.services.payment_verifier import Verified
from crowdfund.utils.audit import log_audit
from crowdfund.utils.errors import NotFound, PersistenceFailure, SequencerFailure, ValidationFailure

logger = logging.getLogger(__name__)


@dataclass
class DisbursementResult:
    """Ledger entries produced (or found, on replay) for one payment."""

    donation: Donation
    transaction: Transaction | None
    campaign: Campaign | None
    milestone: Milestone | None
    payout: Transaction | None = None
    replayed: bool = False
    activated_milestone: Milestone | None = None
    sequencer_error: str | None = None

    @property
    def goal_reached(self) -> bool:
        return self.payout is not None


def record_payout(db: Session, campaign: Campaign) -> Transaction:
    """Append the PAYOUT entry for a campaign and close it. Caller commits."""

    payout = Transaction(
        type=TransactionType.PAYOUT,
        amount=campaign.amount_raised,
        status=TransactionStatus.COMPLETED,
        user_id=campaign.user_id,
        campaign_id=campaign.id,
    )
    db.add(payout)
    campaign.status = CampaignStatus.COMPLETED
    campaign.is_active = False
    return payout


def _find_replay(db: Session, payment_id: str) -> DisbursementResult | None:
    donation = db.scalars(select(Donation).where(Donation.psp_payment_id == payment_id)).first()
    if donation is None:
        return None

    transaction = db.scalars(
        select(Transaction).where(
            Transaction.donation_id == donation.id,
            Transaction.type == TransactionType.DONATION,
        )
    ).first()
    campaign = db.get(Campaign, donation.campaign_id) if donation.campaign_id is not None else None
    milestone = None
    if transaction is not None and transaction.milestone_id is not None:
        milestone = db.get(Milestone, transaction.milestone_id)

    logger.info(
        "Payment already applied; returning existing ledger entries",
        extra={"donation_id": donation.id, "campaign_id": donation.campaign_id},
    )
    return DisbursementResult(
        donation=donation,
        transaction=transaction,
        campaign=campaign,
        milestone=milestone,
        replayed=True,
    )


def apply_payment(
    db: Session,
    campaign_id: int,
    milestone_id: int,
    amount: int,
    payer_id: int,
    *,
    order_id: str | None = None,
    payment_id: str | None = None,
) -> DisbursementResult:
    """Credit one verified payment as a single atomic unit of work.

    Appends the Donation and its DONATION ledger entry, increments the campaign
    and milestone balances and, when this payment carries the campaign across
    its goal, appends the PAYOUT entry and marks the campaign COMPLETED.
    Nothing is written when a precondition fails or the commit fails.

    A non-positive amount is a malformed payload, so it raises
    ``ValidationFailure`` (400) like the other payload checks; ``NotFound`` is
    kept for a campaign or milestone that does not exist.
    """

    if amount <= 0:
        raise ValidationFailure(
            "Payment amount must be positive.",
            code="INVALID_AMOUNT",
            details={"amount": amount},
        )

    if payment_id:
        replay = _find_replay(db, payment_id)
        if replay is not None:
            return replay

    try:
        with ledger.unit_of_work(db, operation="apply_payment"):
            campaign = ledger.lock_campaign(db, campaign_id)
            milestone = ledger.lock_milestone(db, milestone_id)
            if campaign is None or milestone is None or milestone.campaign_id != campaign.id:
                raise NotFound(
                    "Campaign or milestone not found.",
                    code="CAMPAIGN_OR_MILESTONE_NOT_FOUND",
                    details={"campaign_id": campaign_id, "milestone_id": milestone_id},
                )

            donation = Donation(
                user_id=payer_id,
                campaign_id=campaign.id,
                amount=amount,
                psp_order_id=order_id,
                psp_payment_id=payment_id,
            )
            db.add(donation)
            db.flush()
            transaction = Transaction(
                type=TransactionType.DONATION,
                amount=amount,
                status=TransactionStatus.COMPLETED,
                user_id=payer_id,
                campaign_id=campaign.id,
                milestone_id=milestone.id,
                donation_id=donation.id,
            )
            db.add(transaction)

            ledger.increment_campaign_raised(db, campaign, amount)
            ledger.increment_milestone_amount(db, milestone, amount)

            # Decide the crossing from the post-increment balance, never from the value read before it.
            raised_after = campaign.amount_raised
            payout = None
            if raised_after - amount < campaign.goal_amount <= raised_after:
                payout = record_payout(db, campaign)

            log_audit(
                db,
                actor=f"user:{payer_id}",
                action="PAYMENT_APPLIED",
                entity="Campaign",
                entity_id=campaign.id,
                data={
                    "milestone_id": milestone.id,
                    "amount": amount,
                    "psp_payment_id": payment_id,
                    "goal_reached": payout is not None,
                },
            )
            db.flush()
    except PersistenceFailure as exc:
        # A concurrent request may have credited the same gateway payment first.
        if payment_id and isinstance(exc.__cause__, IntegrityError):
            replay = _find_replay(db, payment_id)
            if replay is not None:
                return replay
        raise

    logger.info(
        "Payment applied",
        extra={
            "campaign_id": campaign.id,
            "milestone_id": milestone.id,
            "donation_id": donation.id,
            "amount": amount,
            "amount_raised": campaign.amount_raised,
        },
    )
    if payout is not None:
        logger.info(
            "Campaign goal reached; payout recorded",
            extra={"campaign_id": campaign.id, "payout_id": payout.id, "amount": payout.amount},
        )

    return DisbursementResult(
        donation=donation,
        transaction=transaction,
        campaign=campaign,
        milestone=milestone,
        payout=payout,
    )


def process_verified_payment(db: Session, verified: Verified) -> DisbursementResult:
    """Apply a verified payment, then advance the milestone sequence.

    The advance runs after the ledger commit; if it fails the payment stays
    committed, the failure is logged and the reconciliation job picks it up.
    """

    result = apply_payment(
        db,
        verified.campaign_id,
        verified.milestone_id,
        verified.amount,
        verified.payer_id,
        order_id=verified.order_id,
        payment_id=verified.payment_id,
    )

    campaign_id = result.campaign.id if result.campaign is not None else None
    if campaign_id is None:
        return result

    try:
        result.activated_milestone = sequencer.advance(db, campaign_id)
    except SequencerFailure as exc:
        logger.warning(
            "Milestone sequencer failed after payment commit",
            extra={"campaign_id": campaign_id, "donation_id": result.donation.id, "error": exc.code},
        )
        result.sequencer_error = exc.code
    return result


__all__ = ["DisbursementResult", "apply_payment", "process_verified_payment", "record_payout"]
