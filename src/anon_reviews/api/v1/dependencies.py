"""Shared API dependencies for authentication and request gating."""

import logging
from typing import Annotated, TypeVar
from urllib.parse import urlsplit

from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel, ValidationError

from anon_reviews.core.privacy import rate_limit_key
from anon_reviews.core.security import SessionClaims, SessionSigner
from anon_reviews.core.settings import settings
from anon_reviews.services.blockchain import ReviewContractClient, get_review_contract_client
from anon_reviews.services.discord import DiscordNotifier, get_discord_notifier
from anon_reviews.services.eligibility import EligibilityDecision, assess
from anon_reviews.services.ethos import EthosAPIError, EthosClient, get_ethos_client
from anon_reviews.services.guards import AbuseGuardService, get_guard_service
from anon_reviews.services.submission import ReviewSubmissionService
from anon_reviews.services.twitter import TwitterOAuthClient, get_twitter_client

logger = logging.getLogger(__name__)

# Detail returned for every security-control rejection.
INVALID_REQUEST = "Invalid request"

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_session_signer() -> SessionSigner:
    return SessionSigner(settings.session_secret)


def get_guard_service_dep() -> AbuseGuardService:
    return get_guard_service()


def get_ethos_client_dep() -> EthosClient:
    return get_ethos_client()


def get_contract_client_dep() -> ReviewContractClient:
    return get_review_contract_client()


def get_notifier_dep() -> DiscordNotifier:
    return get_discord_notifier()


def get_twitter_client_dep() -> TwitterOAuthClient:
    return get_twitter_client()


SessionSignerDep = Annotated[SessionSigner, Depends(get_session_signer)]
GuardServiceDep = Annotated[AbuseGuardService, Depends(get_guard_service_dep)]
EthosClientDep = Annotated[EthosClient, Depends(get_ethos_client_dep)]
ContractClientDep = Annotated[ReviewContractClient, Depends(get_contract_client_dep)]
NotifierDep = Annotated[DiscordNotifier, Depends(get_notifier_dep)]
TwitterClientDep = Annotated[TwitterOAuthClient, Depends(get_twitter_client_dep)]


def get_submission_service(
    ethos: EthosClientDep,
    contract_client: ContractClientDep,
) -> ReviewSubmissionService:
    return ReviewSubmissionService(ethos, contract_client)


SubmissionServiceDep = Annotated[ReviewSubmissionService, Depends(get_submission_service)]


def is_allowed_origin(request: Request) -> bool:
    """Return True if the Origin (or, when absent, Referer) header is allowed."""
    allowed = set(settings.allowed_origins)
    origin = request.headers.get("origin")
    if origin:
        return origin in allowed

    referer = request.headers.get("referer")
    if referer:
        parts = urlsplit(referer)
        return f"{parts.scheme}://{parts.netloc}" in allowed
    return False


def verify_origin(request: Request) -> None:
    """Reject state-changing requests that do not come from our own pages."""
    if not is_allowed_origin(request):
        logger.warning("Rejected request with invalid origin")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=INVALID_REQUEST)


def get_optional_session(request: Request, signer: SessionSignerDep) -> SessionClaims | None:
    """Return the verified session from the cookie, if any."""
    return signer.verify(request.cookies.get(settings.session_cookie_name))


def get_current_session(
    session: Annotated[SessionClaims | None, Depends(get_optional_session)],
) -> SessionClaims:
    """Require a valid session.

    Raises:
        HTTPException: 401 if the cookie is missing, tampered with or expired.
    """
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return session


OptionalSessionDep = Annotated[SessionClaims | None, Depends(get_optional_session)]
CurrentSessionDep = Annotated[SessionClaims, Depends(get_current_session)]


async def read_json_body(request: Request, model: type[ModelT]) -> ModelT:
    """Parse and validate a JSON body after the earlier gates have run.

    Raises:
        HTTPException: 400 for malformed JSON or missing fields.
    """
    try:
        payload = await request.json()
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON in request body",
        ) from err

    try:
        return model.model_validate(payload)
    except ValidationError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields",
        ) from err


def require_request_tokens(
    guard: AbuseGuardService,
    *,
    csrf_token: str,
    request_nonce: str,
    subject: str,
) -> None:
    """Check the CSRF token, then consume the nonce.

    The nonce is consumed only after the CSRF check passes; consumption is
    irreversible.
    """
    if not guard.validate_csrf_token(csrf_token, subject):
        logger.warning("Rejected request with invalid CSRF token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=INVALID_REQUEST)
    if not guard.consume_nonce(request_nonce):
        logger.warning("Rejected request with reused nonce")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=INVALID_REQUEST)


async def require_eligible(ethos: EthosClient, username: str, *, action: str) -> EligibilityDecision:
    """Fetch the caller's reputation and enforce the submission threshold.

    Raises:
        HTTPException: 502 if the reputation lookup fails, 403 below threshold.
    """
    try:
        profile = await ethos.get_user_by_x(username)
    except EthosAPIError as exc:
        logger.error("Reputation lookup failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to verify reputation",
        ) from exc

    decision = assess(profile, action=action)
    if not decision.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=decision.reason)
    return decision


def enforce_rate_limit(
    guard: AbuseGuardService,
    action: str,
    user_id: str,
    *,
    max_requests: int,
    window_seconds: int,
) -> None:
    """Count one `action` for the user and reject it once the window is full."""
    key = rate_limit_key(action, user_id)
    if not guard.check_rate_limit(key, max_requests, window_seconds):
        logger.warning("Rate limit exceeded for %s", key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
        )
