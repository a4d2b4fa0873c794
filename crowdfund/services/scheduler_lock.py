"""DB-backed lock so only one replica runs the reconciliation scheduler."""
from __future__ import annotations

import os
import socket
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdfund.models.scheduler_lock import SchedulerLock
from crowdfund.utils.time import as_utc, utcnow

LOCK_NAME = "reconcile"
LOCK_TTL_SECONDS = 300


def owner_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


def _current_lock(session: Session, name: str) -> SchedulerLock | None:
    stmt = (
        select(SchedulerLock)
        .where(SchedulerLock.name == name)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return session.scalars(stmt).one_or_none()


def try_acquire_scheduler_lock(
    session: Session,
    name: str = LOCK_NAME,
    *,
    ttl_seconds: int = LOCK_TTL_SECONDS,
) -> bool:
    """Take the lock when it is free, expired, or already ours."""

    owner = owner_id()
    now = utcnow()
    expires = now + timedelta(seconds=ttl_seconds)

    try:
        lock = _current_lock(session, name)
        if lock is None:
            session.add(SchedulerLock(name=name, owner=owner, acquired_at=now, expires_at=expires))
            session.commit()
            return True

        expires_at = as_utc(lock.expires_at)
        if expires_at is None or expires_at <= now or lock.owner == owner:
            if lock.owner != owner:
                lock.acquired_at = now
            lock.owner = owner
            lock.expires_at = expires
            session.commit()
            return True

        session.rollback()
        return False
    except IntegrityError:
        # Another runner inserted the row first.
        session.rollback()
        return False


def refresh_scheduler_lock(session: Session, name: str = LOCK_NAME, *, ttl_seconds: int = LOCK_TTL_SECONDS) -> bool:
    """Extend the TTL when the lock is held by this runner."""

    lock = _current_lock(session, name)
    if lock is None or lock.owner != owner_id():
        session.rollback()
        return False
    lock.expires_at = utcnow() + timedelta(seconds=ttl_seconds)
    session.commit()
    return True


def release_scheduler_lock(session: Session, name: str = LOCK_NAME) -> None:
    lock = _current_lock(session, name)
    if lock is not None and lock.owner == owner_id():
        session.delete(lock)
    session.commit()


def describe_scheduler_lock(session: Session, name: str = LOCK_NAME) -> dict[str, object]:
    """Return a lightweight description of the lock for the health endpoint."""

    lock = session.scalars(select(SchedulerLock).where(SchedulerLock.name == name)).one_or_none()
    if lock is None:
        return {"status": "none", "owner": None, "present": False}

    now = utcnow()
    expires_at = as_utc(lock.expires_at)
    expires_in = (expires_at - now).total_seconds() if expires_at else None
    return {
        "status": "owned_by_self" if lock.owner == owner_id() else "owned_by_other",
        "owner": lock.owner,
        "present": True,
        "expires_in_seconds": expires_in,
        "stale": expires_in is not None and expires_in < 0,
    }


__all__ = [
    "LOCK_NAME",
    "owner_id",
    "try_acquire_scheduler_lock",
    "refresh_scheduler_lock",
    "release_scheduler_lock",
    "describe_scheduler_lock",
]
