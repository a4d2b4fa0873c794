import pytest
from sqlalchemy import func, select

from crowdfund.config import get_settings
from crowdfund.models import Campaign, Donation, Milestone, Transaction
from crowdfund.services import ledger, sequencer
from crowdfund.utils.errors import SequencerFailure


def _payload(campaign_id: int, milestone_id: int, amount: int, sign, *, payment_id: str = "pay_001") -> dict:
    return {
        "order_id": "order_001",
        "payment_id": payment_id,
        "signature": sign("order_001", payment_id),
        "amount": amount,
        "campaign_id": campaign_id,
        "milestone_id": milestone_id,
    }


def _ledger_counts(db_session) -> tuple[int, int]:
    return (
        db_session.scalar(select(func.count()).select_from(Donation)),
        db_session.scalar(select(func.count()).select_from(Transaction)),
    )


@pytest.mark.anyio
async def test_verified_payment_is_credited_to_payer(client, creator, donor, donor_headers, make_campaign, db_session, sign):
    campaign = make_campaign(creator, goal=1000, milestone_goals=(500, 400))
    first = ledger.milestones_in_order(db_session, campaign.id)[0]

    response = await client.post("/payments/verify", headers=donor_headers, json=_payload(campaign.id, first.id, 200, sign))

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["replayed"] is False
    assert body["goal_reached"] is False
    assert body["campaign_amount_raised"] == 200
    assert body["milestone_amount"] == 200
    assert body["donation"]["user_id"] == donor.id
    assert body["transaction"]["type"] == "DONATION"
    assert body["payout"] is None
    assert body["active_milestone"] is None


@pytest.mark.anyio
async def test_goal_crossing_payment_reports_payout_and_next_milestone(
    client, creator, donor_headers, make_campaign, db_session, sign
):
    campaign = make_campaign(creator, goal=1000, milestone_goals=(500, 400))
    first, second = ledger.milestones_in_order(db_session, campaign.id)
    campaign.amount_raised = 900
    first.amount = 400
    db_session.commit()

    response = await client.post("/payments/verify", headers=donor_headers, json=_payload(campaign.id, first.id, 150, sign))

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["campaign_amount_raised"] == 1050
    assert body["milestone_amount"] == 550
    assert body["goal_reached"] is True
    assert body["payout"]["type"] == "PAYOUT"
    assert body["payout"]["amount"] == 1050
    assert body["payout"]["user_id"] == creator.id
    assert body["active_milestone"]["id"] == second.id


@pytest.mark.anyio
async def test_signature_mismatch_writes_nothing(client, creator, donor_headers, make_campaign, db_session, sign):
    campaign = make_campaign(creator)
    first = ledger.milestones_in_order(db_session, campaign.id)[0]
    payload = _payload(campaign.id, first.id, 100, sign)
    payload["signature"] = "0" * 64

    response = await client.post("/payments/verify", headers=donor_headers, json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PAYMENT_VERIFICATION_FAILED"
    assert response.json()["error"]["details"]["reason"] == "signature_mismatch"
    assert _ledger_counts(db_session) == (0, 0)
    db_session.expire_all()
    assert db_session.get(Campaign, campaign.id).amount_raised == 0


@pytest.mark.anyio
async def test_missing_secret_rejects_every_payment(
    client, creator, donor_headers, make_campaign, db_session, sign, monkeypatch
):
    campaign = make_campaign(creator)
    first = ledger.milestones_in_order(db_session, campaign.id)[0]
    payload = _payload(campaign.id, first.id, 100, sign)
    monkeypatch.setattr(get_settings(), "payment_signature_secret", None)

    response = await client.post("/payments/verify", headers=donor_headers, json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["details"]["reason"] == "secret_missing"
    assert _ledger_counts(db_session) == (0, 0)


@pytest.mark.anyio
async def test_unknown_milestone_is_not_found(client, creator, donor_headers, make_campaign, sign):
    campaign = make_campaign(creator)

    response = await client.post("/payments/verify", headers=donor_headers, json=_payload(campaign.id, 999, 100, sign))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "CAMPAIGN_OR_MILESTONE_NOT_FOUND"


@pytest.mark.anyio
async def test_non_positive_amount_is_rejected(client, creator, donor_headers, make_campaign, db_session, sign):
    campaign = make_campaign(creator)
    first = ledger.milestones_in_order(db_session, campaign.id)[0]

    response = await client.post("/payments/verify", headers=donor_headers, json=_payload(campaign.id, first.id, 0, sign))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_AMOUNT"
    assert _ledger_counts(db_session) == (0, 0)


@pytest.mark.anyio
async def test_replayed_confirmation_is_not_credited_twice(
    client, creator, donor_headers, make_campaign, db_session, sign
):
    campaign = make_campaign(creator)
    first = ledger.milestones_in_order(db_session, campaign.id)[0]
    payload = _payload(campaign.id, first.id, 100, sign, payment_id="pay_replay")

    original = await client.post("/payments/verify", headers=donor_headers, json=payload)
    replay = await client.post("/payments/verify", headers=donor_headers, json=payload)

    assert original.status_code == 200
    assert replay.status_code == 200
    assert replay.json()["replayed"] is True
    assert replay.json()["donation"]["id"] == original.json()["donation"]["id"]
    assert _ledger_counts(db_session) == (1, 1)
    db_session.expire_all()
    assert db_session.get(Campaign, campaign.id).amount_raised == 100


@pytest.mark.anyio
async def test_sequencer_failure_still_confirms_payment(
    client, creator, donor_headers, make_campaign, db_session, sign, monkeypatch
):
    campaign = make_campaign(creator, goal=1000, milestone_goals=(100, 400))
    first = ledger.milestones_in_order(db_session, campaign.id)[0]

    def _failing_advance(db, campaign_id):
        raise SequencerFailure("Ledger update could not be committed.")

    monkeypatch.setattr(sequencer, "advance", _failing_advance)

    response = await client.post("/payments/verify", headers=donor_headers, json=_payload(campaign.id, first.id, 100, sign))

    assert response.status_code == 200, response.text
    assert response.json()["sequencer_error"] == "SEQUENCER_FAILURE"
    assert response.json()["active_milestone"] is None
    db_session.expire_all()
    assert db_session.get(Milestone, first.id).amount == 100
    assert db_session.get(Milestone, first.id).is_active is True


@pytest.mark.anyio
async def test_verify_requires_api_key(client):
    response = await client.post("/payments/verify", json={})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "NO_API_KEY"
