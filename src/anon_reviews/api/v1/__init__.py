"""Version 1 API endpoints."""

from .endpoints import agent_router, auth_router, reviews_router, slash_router, system_router

__all__ = [
    "agent_router",
    "auth_router",
    "reviews_router",
    "slash_router",
    "system_router",
]
