"""Public stats for the agent account that signs anonymous reviews."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Response

from anon_reviews.api.v1.dependencies import EthosClientDep
from anon_reviews.core.settings import settings
from anon_reviews.services.agent_stats import fetch_agent_stats

router = APIRouter(prefix="/agent", tags=["agent"])

STATS_CACHE_CONTROL = "public, max-age=300"


@router.get("/stats")
async def agent_stats(response: Response, ethos: EthosClientDep) -> dict[str, Any]:
    """Return the agent's Ethos reputation summary, or fixed stats when Ethos is unavailable."""
    stats = await fetch_agent_stats(
        ethos,
        settings.agent_x_username,
        app_base_url=settings.ethos_app_base_url,
    )
    response.headers["Cache-Control"] = STATS_CACHE_CONTROL
    return stats.to_dict()
