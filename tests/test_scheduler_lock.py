from datetime import timedelta

from sqlalchemy import select

from crowdfund.models.scheduler_lock import SchedulerLock
from crowdfund.services.scheduler_lock import (
    LOCK_NAME,
    describe_scheduler_lock,
    refresh_scheduler_lock,
    release_scheduler_lock,
    try_acquire_scheduler_lock,
)
from crowdfund.utils.time import utcnow

OWNER_PATH = "crowdfund.services.scheduler_lock.owner_id"


def test_scheduler_lock_is_reentrant_for_its_owner(db_session):
    assert try_acquire_scheduler_lock(db_session) is True
    assert try_acquire_scheduler_lock(db_session) is True

    release_scheduler_lock(db_session)
    assert db_session.scalars(select(SchedulerLock)).first() is None


def test_lock_cannot_be_taken_if_not_expired(monkeypatch, db_session):
    monkeypatch.setattr(OWNER_PATH, lambda: "node-A")
    assert try_acquire_scheduler_lock(db_session, ttl_seconds=300)

    monkeypatch.setattr(OWNER_PATH, lambda: "node-B")
    assert try_acquire_scheduler_lock(db_session, ttl_seconds=300) is False
    assert refresh_scheduler_lock(db_session) is False

    # Releasing from a non-owner leaves the lock in place.
    release_scheduler_lock(db_session)
    assert describe_scheduler_lock(db_session)["owner"] == "node-A"


def test_lock_can_be_reacquired_after_expiry(monkeypatch, db_session):
    monkeypatch.setattr(OWNER_PATH, lambda: "node-A")
    assert try_acquire_scheduler_lock(db_session, ttl_seconds=60)

    lock = db_session.scalars(select(SchedulerLock).where(SchedulerLock.name == LOCK_NAME)).one()
    lock.expires_at = utcnow() - timedelta(seconds=1)
    db_session.commit()

    monkeypatch.setattr(OWNER_PATH, lambda: "node-B")
    assert try_acquire_scheduler_lock(db_session, ttl_seconds=300)
    assert describe_scheduler_lock(db_session)["owner"] == "node-B"


def test_describe_scheduler_lock_contains_expiry(monkeypatch, db_session):
    assert describe_scheduler_lock(db_session)["present"] is False

    monkeypatch.setattr(OWNER_PATH, lambda: "node-A")
    assert try_acquire_scheduler_lock(db_session, ttl_seconds=60)
    assert refresh_scheduler_lock(db_session, ttl_seconds=120) is True

    info = describe_scheduler_lock(db_session)
    assert info["present"] is True
    assert info["status"] == "owned_by_self"
    assert 0 < info["expires_in_seconds"] <= 120
    assert info["stale"] is False
