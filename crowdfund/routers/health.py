"""Health check endpoint."""
from __future__ import annotations

import logging

from alembic.config import Config
from alembic.script import ScriptDirectory
from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crowdfund.config import get_settings
from crowdfund.db import get_db
from crowdfund.services.scheduler_lock import describe_scheduler_lock

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger(__name__)


def _db_status(db: Session) -> str:
    """Return 'ok' if the DB is reachable, 'error' otherwise."""

    try:
        db.execute(text("SELECT 1"))
        return "ok"
    except Exception:  # noqa: BLE001
        logger.exception("DB health check failed")
        db.rollback()
        return "error"


def _expected_migration_head() -> str | None:
    try:
        script = ScriptDirectory.from_config(Config("alembic.ini"))
        return script.get_current_head()
    except Exception:  # noqa: BLE001
        logger.exception("Failed to load Alembic head revision")
        return None


def _migrations_status(db: Session) -> str:
    expected_head = _expected_migration_head()
    if expected_head is None:
        return "unknown"
    try:
        current = db.execute(text("SELECT version_num FROM alembic_version")).scalar()
    except SQLAlchemyError:
        logger.warning("Migration version table not readable")
        db.rollback()
        return "unknown"
    return "up_to_date" if current == expected_head else "out_of_date"


def _scheduler_lock_state(db: Session) -> dict[str, object]:
    try:
        return describe_scheduler_lock(db)
    except SQLAlchemyError:
        logger.warning("Scheduler lock state not readable")
        db.rollback()
        return {"status": "unknown", "owner": None}


def _scheduler_running(request: Request) -> bool:
    scheduler = getattr(request.app.state, "scheduler", None)
    return bool(scheduler is not None and scheduler.running)


@router.get("", summary="Health check")
def healthcheck(request: Request, db: Session = Depends(get_db)) -> dict[str, object]:
    settings = get_settings()
    db_status = _db_status(db)
    migrations_status = _migrations_status(db) if db_status == "ok" else "unknown"
    degraded = db_status != "ok" or migrations_status != "up_to_date"
    payload = {
        "status": "degraded" if degraded else "ok",
        "db_status": db_status,
        "migrations_status": migrations_status,
        "payment_signature_configured": bool(settings.payment_signature_secret),
        "stripe": {
            "enabled": bool(settings.STRIPE_ENABLED),
            "api_key_configured": bool(settings.STRIPE_SECRET_KEY),
        },
        "scheduler_config_enabled": bool(settings.SCHEDULER_ENABLED),
        "scheduler_running": _scheduler_running(request),
        "scheduler_lock": _scheduler_lock_state(db) if db_status == "ok" else {"status": "unknown", "owner": None},
    }
    db.rollback()
    return payload
