"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import api_router
from app.cache.redis_cache import PolicyCache
from app.config import settings
from app.core.logging import setup_logging
from app.db.session import SessionLocal, engine
from app.repositories.policy_repository import PolicyRepository
from app.services.policy_templates import seed_policy_templates

logger = logging.getLogger(__name__)


async def _seed_templates() -> None:
    async with SessionLocal() as session:
        try:
            await seed_policy_templates(PolicyRepository(session))
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Policy template initialization failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)

    cache = None
    if settings.REDIS_URL:
        cache = PolicyCache.from_url(settings.REDIS_URL, settings.POLICY_CACHE_TTL_SECONDS)
        await cache.start()
    else:
        logger.info("REDIS_URL not set, active policy cache disabled")
    app.state.policy_cache = cache

    if settings.SEED_POLICY_TEMPLATES:
        await _seed_templates()

    yield

    if cache is not None:
        await cache.stop()
    await engine.dispose()


# Create FastAPI application
app = FastAPI(
    title="Loan Policy Engine API",
    description="API for managing lending policies and evaluating loan applications against them",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router with v1 prefix
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "message": "Loan Policy Engine API",
        "version": "1.0.0",
        "docs": "/api/docs",
    }
