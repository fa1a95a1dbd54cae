"""Dependency injection for FastAPI endpoints."""

from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache.redis_cache import PolicyCache
from app.db.session import get_db

__all__ = ["get_db", "get_session", "get_policy_cache"]


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session dependency.

    This is an alias for get_db for clarity in endpoint signatures.
    """
    async for session in get_db():
        yield session


def get_policy_cache(request: Request) -> Optional[PolicyCache]:
    """Active-policy cache created at startup (None when Redis is not configured)."""
    return getattr(request.app.state, "policy_cache", None)
