"""API routers for the crowdfunding backend."""
from fastapi import APIRouter

from . import apikeys, campaigns, health, milestones, payments, users


def get_api_router() -> APIRouter:
    """Return the root API router."""

    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(users.router)
    api_router.include_router(apikeys.router)
    api_router.include_router(campaigns.router)
    api_router.include_router(milestones.router)
    api_router.include_router(payments.router)
    return api_router
