"""Verification of payment confirmations returned by the gateway checkout."""
from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentClaim:
    """What the payer's client reports after checkout."""

    order_id: str
    payment_id: str
    signature: str
    amount: int
    campaign_id: int
    milestone_id: int
    payer_id: int


@dataclass(frozen=True)
class Verified:
    amount: int
    payer_id: int
    campaign_id: int
    milestone_id: int
    order_id: str
    payment_id: str


@dataclass(frozen=True)
class Rejected:
    reason: str


def _secret_fingerprint(secret: str | None) -> str | None:
    if not secret:
        return None
    return "sha256:" + hashlib.sha256(secret.encode()).hexdigest()[:8]


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """Return the hex HMAC-SHA256 of ``order_id|payment_id``."""

    body = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_payment(claim: PaymentClaim, secret: str | None) -> Verified | Rejected:
    """Check the claimed signature against the server-side one."""

    if not secret:
        logger.error("Payment signature secret is not configured")
        return Rejected(reason="secret_missing")

    if not claim.signature or not claim.order_id or not claim.payment_id:
        logger.warning(
            "Payment confirmation incomplete",
            extra={"order_id": claim.order_id, "campaign_id": claim.campaign_id},
        )
        return Rejected(reason="signature_missing")

    expected = compute_signature(secret, claim.order_id, claim.payment_id)
    if not hmac.compare_digest(expected, claim.signature):
        logger.warning(
            "Payment signature mismatch",
            extra={
                "order_id": claim.order_id,
                "campaign_id": claim.campaign_id,
                "secret_fingerprint": _secret_fingerprint(secret),
            },
        )
        return Rejected(reason="signature_mismatch")

    return Verified(
        amount=claim.amount,
        payer_id=claim.payer_id,
        campaign_id=claim.campaign_id,
        milestone_id=claim.milestone_id,
        order_id=claim.order_id,
        payment_id=claim.payment_id,
    )


__all__ = ["PaymentClaim", "Verified", "Rejected", "compute_signature", "verify_payment"]
