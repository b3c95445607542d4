"""API endpoint modules for version 1."""

from .agent import router as agent_router
from .auth import router as auth_router
from .reviews import router as reviews_router
from .slash import router as slash_router
from .system import router as system_router

__all__ = [
    "agent_router",
    "auth_router",
    "reviews_router",
    "slash_router",
    "system_router",
]
