from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crowdfund.config import AppInfo, Settings, get_settings
from crowdfund.core.logging import setup_logging
from crowdfund.db import Database
import crowdfund.models  # noqa: F401  registers the tables
from crowdfund.routers import get_api_router
from crowdfund.services.cron import lock_heartbeat_job, reconcile_job
from crowdfund.services.scheduler_lock import release_scheduler_lock, try_acquire_scheduler_lock
from crowdfund.utils.errors import CrowdfundError, error_response

logger = logging.getLogger(__name__)
ALLOWED_CREATE_ENV = {"dev", "local", "test"}


def _configure_middlewares(fastapi_app: FastAPI) -> None:
    runtime_settings = get_settings()
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=runtime_settings.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-API-Key"],
    )

    if runtime_settings.PROMETHEUS_ENABLED:
        from starlette_exporter import PrometheusMiddleware, handle_metrics

        fastapi_app.add_middleware(PrometheusMiddleware, app_name="crowdfund")
        fastapi_app.add_route("/metrics", handle_metrics)

    if runtime_settings.SENTRY_DSN:
        import sentry_sdk

        sentry_sdk.init(dsn=runtime_settings.SENTRY_DSN, traces_sample_rate=0.2)


def _assert_payment_secret(settings: Settings) -> None:
    """Refuse to start outside dev without the payment signature secret."""

    if settings.payment_signature_secret:
        return
    if settings.app_env.lower() != "dev":
        logger.error(
            "Payment signature secret is missing; configure PAYMENT_SIGNATURE_SECRET before startup.",
            extra={"env": settings.app_env},
        )
        raise RuntimeError("Missing payment signature secret in non-dev environment.")
    logger.warning(
        "Payment signature secret is not configured; every verification will be rejected.",
        extra={"env": settings.app_env},
    )


def _start_scheduler(settings: Settings, database: Database) -> AsyncIOScheduler | None:
    with database.session() as session:
        acquired = try_acquire_scheduler_lock(session)
    if not acquired:
        logger.warning(
            "Scheduler disabled because lock is already held by another instance.",
            extra={"env": settings.app_env},
        )
        return None

    scheduler = AsyncIOScheduler()
    scheduler.start()
    scheduler.add_job(
        reconcile_job,
        "interval",
        minutes=settings.RECONCILE_INTERVAL_MINUTES,
        args=[database],
        id="reconcile-milestones",
        replace_existing=True,
    )
    scheduler.add_job(
        lock_heartbeat_job,
        "interval",
        seconds=60,
        args=[database],
        id="scheduler-lock-heartbeat",
        replace_existing=True,
    )
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings)
    logger.info("Application startup", extra={"env": settings.app_env})
    _assert_payment_secret(settings)

    database = Database(settings.database_url)
    app.state.database = database
    if settings.ALLOW_DB_CREATE_ALL and settings.app_env.lower() in ALLOWED_CREATE_ENV:
        logger.warning(
            "Running Base.metadata.create_all() because APP_ENV=%s and ALLOW_DB_CREATE_ALL=True",
            settings.app_env,
        )
        database.create_all()
    else:
        logger.info("Skipping create_all(); use Alembic migrations.", extra={"env": settings.app_env})

    # Enable CF_SCHEDULER_ENABLED on one runner only; the DB lock backs that up.
    app.state.scheduler = _start_scheduler(settings, database) if settings.SCHEDULER_ENABLED else None
    try:
        yield
    finally:
        scheduler = app.state.scheduler
        if scheduler is not None:
            scheduler.shutdown(wait=False)
            app.state.scheduler = None
            with database.session() as session:
                release_scheduler_lock(session)
        database.dispose()
        logger.info("Application shutdown", extra={"env": settings.app_env})


app_info = AppInfo()

app = FastAPI(title=app_info.name, version=app_info.version, lifespan=lifespan)
app.state.scheduler = None

_configure_middlewares(app)
app.include_router(get_api_router())


@app.exception_handler(CrowdfundError)
async def crowdfund_error_handler(request: Request, exc: CrowdfundError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", extra={"code": exc.code, "path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


def _validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    payload = error_response("VALIDATION_FAILED", "Request payload is invalid.", {"errors": _validation_errors(exc)})
    return JSONResponse(status_code=400, content=payload)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", exc_info=exc)
    payload = error_response("INTERNAL_SERVER_ERROR", "An unexpected error occurred.")
    return JSONResponse(status_code=500, content=payload)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict) and "error" in detail:
        content: dict[str, Any] = detail
    else:
        content = error_response("HTTP_ERROR", str(detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


__all__ = ["app"]
