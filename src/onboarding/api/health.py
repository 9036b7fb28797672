"""
onboarding/api/health.py — Health check endpoint.

GET /api/v1/health — checks that PostgreSQL answers.
"""

from fastapi import APIRouter

from onboarding.database import check_connection

router = APIRouter(tags=["health"])


@router.get("/health", summary="Onboarding service health check")
async def health():
    db_ok = await check_connection()
    return {
        "status": "healthy" if db_ok else "degraded",
        "database": "connected" if db_ok else "disconnected",
        "service": "onboarding",
    }
