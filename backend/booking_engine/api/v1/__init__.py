"""Versioned API router."""

from fastapi import APIRouter

from . import availability, blocked_dates, health, reservations

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(availability.router, prefix="/availability", tags=["availability"])
router.include_router(reservations.router, prefix="/reservations", tags=["reservations"])
router.include_router(blocked_dates.router, prefix="/vehicles", tags=["vehicles"])

__all__ = ["router"]
