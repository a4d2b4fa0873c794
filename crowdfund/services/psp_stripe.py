"""Stripe SDK wrapper used to open gateway orders for donations."""
from __future__ import annotations

from typing import Any, Dict

import stripe

from crowdfund.config import Settings, get_settings
from crowdfund.utils.time import utcnow

# Amounts are stored in whole currency units; the gateway expects minor units.
MINOR_UNITS_PER_UNIT = 100


class StripeClient:
    """Wrapper around the Stripe Python SDK to isolate gateway concerns."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        if not settings.STRIPE_ENABLED:
            raise RuntimeError("Stripe integration is disabled; enable STRIPE_ENABLED to proceed.")
        if not settings.STRIPE_SECRET_KEY:
            raise RuntimeError("Stripe secret key is missing; configure STRIPE_SECRET_KEY.")
        stripe.api_key = settings.STRIPE_SECRET_KEY

    @classmethod
    def from_env(cls) -> "StripeClient":
        """Instantiate a client using the cached application settings."""

        return cls(get_settings())

    def create_order(
        self,
        *,
        campaign_id: int,
        milestone_id: int,
        amount: int,
        currency: str,
    ) -> stripe.PaymentIntent:
        """Create the PaymentIntent the payer's checkout confirms against."""

        receipt = f"receipt_{campaign_id}_{milestone_id}_{int(utcnow().timestamp() * 1000)}"
        metadata: Dict[str, Any] = {
            "campaign_id": str(campaign_id),
            "milestone_id": str(milestone_id),
            "receipt": receipt,
        }
        return stripe.PaymentIntent.create(
            amount=amount * MINOR_UNITS_PER_UNIT,
            currency=currency.lower(),
            metadata=metadata,
        )


__all__ = ["StripeClient", "MINOR_UNITS_PER_UNIT"]
