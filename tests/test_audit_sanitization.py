from crowdfund.utils.audit import actor_for_user, sanitize_payload_for_audit


def test_sensitive_keys_are_masked():
    payload = {
        "email": "donor@example.com",
        "signature": "abcdef0123",
        "psp_payment_id": "pay_123456789",
        "proof_url": "https://cdn.example.com/proofs/receipt.pdf?token=1",
        "amount": 150,
    }

    sanitized = sanitize_payload_for_audit(payload)

    assert sanitized["email"] == "***@example.com"
    assert sanitized["signature"] == "***"
    assert sanitized["psp_payment_id"] == "***6789"
    assert sanitized["proof_url"] == "https://cdn.example.com/proofs/***"
    assert sanitized["amount"] == 150


def test_nested_payloads_are_masked():
    sanitized = sanitize_payload_for_audit({"items": [{"email": "x@y.z"}], "meta": {"signature": "s"}})
    assert sanitized == {"items": [{"email": "***@y.z"}], "meta": {"signature": "***"}}


def test_actor_for_user_falls_back():
    class Anonymous:
        id = None

    assert actor_for_user(Anonymous()) == "system"
