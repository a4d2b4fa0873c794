import hashlib
import hmac

from crowdfund.services.payment_verifier import (
    PaymentClaim,
    Rejected,
    Verified,
    compute_signature,
    verify_payment,
)

SECRET = "unit-test-secret"


def _claim(**overrides) -> PaymentClaim:
    values = dict(
        order_id="order_123",
        payment_id="pay_456",
        signature=compute_signature(SECRET, "order_123", "pay_456"),
        amount=150,
        campaign_id=1,
        milestone_id=2,
        payer_id=3,
    )
    values.update(overrides)
    return PaymentClaim(**values)


def test_signature_is_hex_hmac_of_order_and_payment():
    expected = hmac.new(SECRET.encode(), b"order_123|pay_456", hashlib.sha256).hexdigest()
    assert compute_signature(SECRET, "order_123", "pay_456") == expected


def test_valid_claim_is_verified_with_its_payload():
    outcome = verify_payment(_claim(), SECRET)

    assert isinstance(outcome, Verified)
    assert outcome.amount == 150
    assert (outcome.campaign_id, outcome.milestone_id, outcome.payer_id) == (1, 2, 3)
    assert outcome.payment_id == "pay_456"


def test_tampered_payment_id_is_rejected():
    outcome = verify_payment(_claim(payment_id="pay_other"), SECRET)
    assert outcome == Rejected(reason="signature_mismatch")


def test_wrong_secret_is_rejected():
    assert verify_payment(_claim(), "another-secret") == Rejected(reason="signature_mismatch")


def test_missing_secret_is_rejected():
    assert verify_payment(_claim(), None) == Rejected(reason="secret_missing")
    assert verify_payment(_claim(), "") == Rejected(reason="secret_missing")


def test_missing_signature_is_rejected():
    assert verify_payment(_claim(signature=""), SECRET) == Rejected(reason="signature_missing")
