import threading

import pytest
from sqlalchemy import func, select

from crowdfund.models import Donation, MilestoneStatus, MilestoneVote, User, UserRole
from crowdfund.schemas.milestone import MilestoneUpdate, VoteCreate
from crowdfund.services import ledger
from crowdfund.services import milestones as milestones_service

PROOF = "https://cdn.example.com/proofs/site-photo.jpg"


@pytest.mark.anyio
async def test_new_milestone_defaults(client, creator, creator_headers, make_campaign):
    campaign = make_campaign(creator, milestone_goals=())

    response = await client.post(
        f"/campaigns/{campaign.id}/milestones",
        headers=creator_headers,
        json={"title": "Phase 1", "goal_amount": 300},
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["status"] == "PENDING"
    assert body["is_active"] is False
    assert body["amount"] == 0


@pytest.mark.anyio
async def test_list_milestones_in_creation_order(client, creator, donor_headers, make_campaign):
    campaign = make_campaign(creator, milestone_goals=(300, 100, 200))

    response = await client.get(f"/campaigns/{campaign.id}/milestones", headers=donor_headers)

    assert response.status_code == 200
    assert [m["goal_amount"] for m in response.json()] == [300, 100, 200]
    assert [m["is_active"] for m in response.json()] == [True, False, False]


@pytest.mark.anyio
async def test_other_creator_cannot_add_milestone(client, creator, make_user, headers_for, make_campaign):
    campaign = make_campaign(creator)
    intruder = make_user(UserRole.CAMPAIGN_CREATOR)

    response = await client.post(
        f"/campaigns/{campaign.id}/milestones",
        headers=headers_for(intruder),
        json={"title": "Sneaky", "goal_amount": 10},
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "NOT_CAMPAIGN_OWNER"


@pytest.mark.anyio
async def test_update_and_delete_before_votes(client, creator, creator_headers, make_campaign, db_session):
    campaign = make_campaign(creator, milestone_goals=(100, 200))
    _, second = ledger.milestones_in_order(db_session, campaign.id)

    updated = await client.put(
        f"/milestones/{second.id}",
        headers=creator_headers,
        json={"title": "Renamed", "goal_amount": 250},
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["title"] == "Renamed"
    assert updated.json()["goal_amount"] == 250

    deleted = await client.delete(f"/milestones/{second.id}", headers=creator_headers)
    assert deleted.status_code == 204
    assert len(ledger.milestones_in_order(db_session, campaign.id)) == 1


@pytest.mark.anyio
async def test_votes_lock_milestone_structure(
    client, creator, creator_headers, donor_headers, make_campaign, db_session
):
    campaign = make_campaign(creator, milestone_goals=(100, 200))
    first, _ = ledger.milestones_in_order(db_session, campaign.id)

    vote = await client.post(f"/milestones/{first.id}/votes", headers=donor_headers, json={"approved": True, "proof_url": PROOF})
    assert vote.status_code == 201, vote.text

    updated = await client.put(f"/milestones/{first.id}", headers=creator_headers, json={"title": "Changed"})
    assert updated.status_code == 409
    assert updated.json()["error"]["code"] == "MILESTONE_LOCKED_BY_VOTES"

    deleted = await client.delete(f"/milestones/{first.id}", headers=creator_headers)
    assert deleted.status_code == 409
    assert len(ledger.milestones_in_order(db_session, campaign.id)) == 2


@pytest.mark.anyio
async def test_duplicate_vote_conflicts(client, creator, donor_headers, make_campaign, db_session):
    campaign = make_campaign(creator)
    first = ledger.milestones_in_order(db_session, campaign.id)[0]

    first_vote = await client.post(f"/milestones/{first.id}/votes", headers=donor_headers, json={"approved": True, "proof_url": PROOF})
    second_vote = await client.post(f"/milestones/{first.id}/votes", headers=donor_headers, json={"approved": False, "proof_url": PROOF})

    assert first_vote.status_code == 201
    assert second_vote.status_code == 409
    assert second_vote.json()["error"]["code"] == "DUPLICATE_VOTE"
    count = db_session.scalar(
        select(func.count()).select_from(MilestoneVote).where(MilestoneVote.milestone_id == first.id)
    )
    assert count == 1


@pytest.mark.anyio
async def test_creator_cannot_vote(client, creator, creator_headers, make_campaign, db_session):
    campaign = make_campaign(creator)
    first = ledger.milestones_in_order(db_session, campaign.id)[0]

    response = await client.post(f"/milestones/{first.id}/votes", headers=creator_headers, json={"approved": True, "proof_url": PROOF})

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "INSUFFICIENT_ROLE"


@pytest.mark.anyio
async def test_vote_tally_approves_milestone_and_stores_proof(
    client, creator, make_user, headers_for, make_campaign, db_session
):
    campaign = make_campaign(creator)
    first = ledger.milestones_in_order(db_session, campaign.id)[0]
    donors = [make_user(UserRole.DONOR) for _ in range(2)]
    for donor in donors:
        db_session.add(Donation(user_id=donor.id, campaign_id=campaign.id, amount=10))
    db_session.commit()

    first_vote = await client.post(
        f"/milestones/{first.id}/votes",
        headers=headers_for(donors[0]),
        json={"approved": True, "proof_url": "https://cdn.example.com/proofs/receipt.pdf"},
    )
    assert first_vote.status_code == 201
    assert first_vote.json()["milestone_status"] == "PENDING"
    assert first_vote.json()["approval_ratio"] == pytest.approx(0.5)

    second_vote = await client.post(
        f"/milestones/{first.id}/votes", headers=headers_for(donors[1]), json={"approved": True, "proof_url": PROOF}
    )
    assert second_vote.status_code == 201
    assert second_vote.json()["milestone_status"] == "APPROVED"

    db_session.refresh(first)
    assert first.status == MilestoneStatus.APPROVED
    assert first.proof_url == "https://cdn.example.com/proofs/receipt.pdf"
    assert first.is_active is True
    assert first.amount == 0


@pytest.mark.anyio
async def test_decided_milestone_rejects_votes(client, creator, donor_headers, make_campaign, db_session):
    campaign = make_campaign(creator)
    first = ledger.milestones_in_order(db_session, campaign.id)[0]
    first.status = MilestoneStatus.REJECTED
    db_session.commit()

    response = await client.post(f"/milestones/{first.id}/votes", headers=donor_headers, json={"approved": True, "proof_url": PROOF})

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "MILESTONE_DECIDED"


@pytest.mark.anyio
async def test_vote_on_unknown_milestone_is_not_found(client, donor_headers):
    response = await client.post("/milestones/4242/votes", headers=donor_headers, json={"approved": True, "proof_url": PROOF})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "MILESTONE_NOT_FOUND"


@pytest.mark.anyio
async def test_vote_without_proof_is_rejected(client, creator, donor_headers, make_campaign, db_session):
    campaign = make_campaign(creator)
    first = ledger.milestones_in_order(db_session, campaign.id)[0]

    missing = await client.post(f"/milestones/{first.id}/votes", headers=donor_headers, json={"approved": True})
    blank = await client.post(
        f"/milestones/{first.id}/votes", headers=donor_headers, json={"approved": True, "proof_url": ""}
    )

    assert missing.status_code == 400
    assert missing.json()["error"]["code"] == "VALIDATION_FAILED"
    assert blank.status_code == 400
    count = db_session.scalar(
        select(func.count()).select_from(MilestoneVote).where(MilestoneVote.milestone_id == first.id)
    )
    assert count == 0


def test_vote_waits_for_milestone_update_in_flight(
    db_session, session_factory, creator, donor, make_campaign, monkeypatch
):
    campaign = make_campaign(creator, milestone_goals=(100, 200))
    _, second = ledger.milestones_in_order(db_session, campaign.id)
    db_session.commit()
    original_has_votes = milestones_service.has_votes
    seen: dict[str, bool] = {}
    errors: list[Exception] = []

    def _vote() -> None:
        session = session_factory()
        try:
            voter = session.get(User, donor.id)
            milestones_service.cast_vote(
                session, second.id, VoteCreate(approved=True, proof_url=PROOF), voter=voter
            )
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)
        finally:
            session.close()

    voter_thread = threading.Thread(target=_vote)

    def _has_votes_with_vote_racing(db, milestone_id):
        if not voter_thread.is_alive() and "vote_blocked" not in seen:
            voter_thread.start()
            voter_thread.join(timeout=0.5)
            seen["vote_blocked"] = voter_thread.is_alive()
        return original_has_votes(db, milestone_id)

    monkeypatch.setattr(milestones_service, "has_votes", _has_votes_with_vote_racing)

    updated = milestones_service.update_milestone(
        db_session, second.id, MilestoneUpdate(title="Renamed before voting"), actor=creator
    )
    voter_thread.join(timeout=30)

    assert seen["vote_blocked"] is True
    assert errors == []
    assert updated.title == "Renamed before voting"
    db_session.expire_all()
    votes = db_session.scalars(select(MilestoneVote).where(MilestoneVote.milestone_id == second.id)).all()
    assert len(votes) == 1
