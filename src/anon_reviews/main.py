"""Main entry point for the anonymous review service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from anon_reviews.api.v1 import (
    agent_router,
    auth_router,
    reviews_router,
    slash_router,
    system_router,
)
from anon_reviews.core.privacy import configure_logging
from anon_reviews.core.settings import settings
from anon_reviews.services.blockchain import ConfigurationError, load_blockchain_config
from anon_reviews.services.discord import get_discord_notifier
from anon_reviews.services.ethos import get_ethos_client
from anon_reviews.services.twitter import get_twitter_client

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Anonymous reviews for the Ethos reputation network",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(reviews_router, prefix="/api/v1")
app.include_router(slash_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")
app.include_router(agent_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging(settings)
    config = load_blockchain_config()
    try:
        config.ensure_complete()
    except ConfigurationError as exc:
        logger.warning("Review submission unavailable on %s: %s", config.network, exc)
    else:
        logger.info("Review contract %s on %s", config.contract_address, config.network)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_ethos_client().close()
    await get_twitter_client().close()
    await get_discord_notifier().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "network": settings.blockchain_network,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("anon_reviews.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
