"""Authentication and reputation schemas."""

from typing import Any

from pydantic import BaseModel, Field

from anon_reviews.core.security import SessionUser


class MeResponse(BaseModel):
    """Authentication status of the caller."""

    authenticated: bool
    user: SessionUser | None = None


class CsrfTokenResponse(BaseModel):
    """Freshly issued CSRF token."""

    csrf_token: str = Field(..., description="Token to echo back in state-changing requests")
    timestamp: int = Field(..., description="Issue time in milliseconds since the epoch")


class ReputationInfo(BaseModel):
    """Reputation summary shown before the review form."""

    score: int
    level: str = Field(..., description="exemplary, reputable or ineligible")
    can_submit: bool
    reason: str | None = None


class ReputationResponse(BaseModel):
    """Caller's Ethos profile and eligibility."""

    authenticated: bool = True
    user: SessionUser
    ethos_profile: dict[str, Any] | None = None
    reputation: ReputationInfo | None = None
    can_submit: bool
    reason: str | None = None
