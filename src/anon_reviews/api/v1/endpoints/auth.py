"""Login, session and reputation endpoints."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from anon_reviews.api.v1.dependencies import (
    CurrentSessionDep,
    EthosClientDep,
    GuardServiceDep,
    SessionSignerDep,
    TwitterClientDep,
)
from anon_reviews.core.privacy import anonymize_user_id, redact
from anon_reviews.core.security import SessionUser, generate_token
from anon_reviews.core.settings import settings
from anon_reviews.schemas.auth import (
    CsrfTokenResponse,
    MeResponse,
    ReputationInfo,
    ReputationResponse,
)
from anon_reviews.services.eligibility import assess
from anon_reviews.services.ethos import EthosAPIError
from anon_reviews.services.guards import GuardStoreError
from anon_reviews.services.twitter import IdentityProviderError, generate_pkce_pair

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

STATE_COOKIE = "oauth_state"
VERIFIER_COOKIE = "oauth_code_verifier"


def _set_cookie(response: RedirectResponse, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key,
        value,
        max_age=max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


@router.get("/twitter")
async def start_login(twitter: TwitterClientDep) -> RedirectResponse:
    """Redirect the browser to the X consent screen."""
    state = generate_token()
    verifier, challenge = generate_pkce_pair()
    response = RedirectResponse(
        twitter.authorization_url(state, challenge),
        status_code=status.HTTP_302_FOUND,
    )
    _set_cookie(response, STATE_COOKIE, state, settings.oauth_state_ttl_seconds)
    _set_cookie(response, VERIFIER_COOKIE, verifier, settings.oauth_state_ttl_seconds)
    return response


@router.get("/twitter/callback")
async def login_callback(
    request: Request,
    twitter: TwitterClientDep,
    signer: SessionSignerDep,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """Complete the OAuth flow and set the session cookie."""
    if error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Authorization was denied",
        )

    expected_state = request.cookies.get(STATE_COOKIE)
    verifier = request.cookies.get(VERIFIER_COOKIE)
    if not code or not state or not expected_state or not verifier or state != expected_state:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid OAuth state",
        )

    try:
        grant = await twitter.exchange_code(code, verifier)
        profile = await twitter.fetch_profile(grant.access_token)
    except IdentityProviderError as exc:
        logger.error("OAuth callback failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication failed",
        ) from exc

    user = SessionUser(
        id=profile.id,
        name=profile.name,
        username=profile.username,
        profile_image_url=profile.profile_image_url,
    )
    token = signer.create(
        user,
        access_token=grant.access_token,
        expires_at=int(time.time()) + grant.expires_in,
    )
    logger.info("Session created for user %s", anonymize_user_id(user.id))
    logger.debug("OAuth profile: %s", redact(user.model_dump()))

    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    _set_cookie(response, settings.session_cookie_name, token, grant.expires_in)
    response.delete_cookie(STATE_COOKIE, path="/")
    response.delete_cookie(VERIFIER_COOKIE, path="/")
    return response


@router.get("/logout")
async def logout() -> RedirectResponse:
    """Drop the session cookie."""
    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return response


@router.get("/me", response_model=MeResponse)
async def me(session: CurrentSessionDep) -> MeResponse:
    return MeResponse(authenticated=True, user=session.user)


@router.get("/csrf", response_model=CsrfTokenResponse)
async def issue_csrf_token(session: CurrentSessionDep, guard: GuardServiceDep) -> CsrfTokenResponse:
    """Issue a CSRF token bound to the caller's session."""
    try:
        token = guard.issue_csrf_token(session.user.id)
    except GuardStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to issue CSRF token",
        ) from exc
    return CsrfTokenResponse(csrf_token=token, timestamp=int(time.time() * 1000))


@router.get("/reputation", response_model=ReputationResponse)
async def reputation(session: CurrentSessionDep, ethos: EthosClientDep) -> ReputationResponse:
    """Report the caller's Ethos profile and whether they may submit reviews."""
    try:
        profile = await ethos.get_user_by_x(session.user.username)
    except EthosAPIError as exc:
        logger.error("Reputation lookup failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch reputation",
        ) from exc

    decision = assess(profile)
    if profile is None:
        return ReputationResponse(user=session.user, can_submit=False, reason=decision.reason)

    return ReputationResponse(
        user=session.user,
        ethos_profile=profile.to_dict(),
        reputation=ReputationInfo(
            score=profile.score,
            level=decision.tier.value,
            can_submit=decision.allowed,
            reason=decision.reason,
        ),
        can_submit=decision.allowed,
        reason=decision.reason,
    )
