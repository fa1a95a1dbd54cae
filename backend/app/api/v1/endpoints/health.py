"""Health check endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache.redis_cache import PolicyCache
from app.deps import get_db, get_policy_cache

router = APIRouter()


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    cache: Optional[PolicyCache] = Depends(get_policy_cache),
) -> dict:
    """
    Health check endpoint.

    Verifies that the API is running and the database is accessible.
    The policy cache is reported but never degrades the status, since
    evaluations fall back to the database without it.

    Returns:
        dict: Health status with API, database and cache status
    """
    # Check database connectivity
    try:
        await db.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "api": "healthy",
        "database": db_status,
        "policy_cache": "enabled" if cache is not None and cache.enabled else "disabled",
    }
