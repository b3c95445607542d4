"""Slash request endpoint.

Slash requests are not recorded on-chain; they are forwarded to the
moderators' notification channel for manual processing.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from anon_reviews.api.v1.dependencies import (
    CurrentSessionDep,
    EthosClientDep,
    GuardServiceDep,
    NotifierDep,
    enforce_rate_limit,
    read_json_body,
    require_eligible,
    require_request_tokens,
    verify_origin,
)
from anon_reviews.core.privacy import anonymize_user_id
from anon_reviews.core.settings import settings
from anon_reviews.schemas.slash import SlashSubmitRequest, SlashSubmitResponse
from anon_reviews.services.content_policy import validate_review_content
from anon_reviews.services.discord import SlashNotification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slash", tags=["slash"])


@router.post("/submit", response_model=SlashSubmitResponse)
async def submit_slash(
    request: Request,
    session: CurrentSessionDep,
    guard: GuardServiceDep,
    ethos: EthosClientDep,
    notifier: NotifierDep,
) -> SlashSubmitResponse:
    """Accept a slash request for manual review."""
    verify_origin(request)
    user = session.user
    enforce_rate_limit(
        guard,
        "slash",
        user.id,
        max_requests=settings.slash_rate_limit_max,
        window_seconds=settings.slash_rate_limit_window_seconds,
    )

    body = await read_json_body(request, SlashSubmitRequest)
    require_request_tokens(
        guard,
        csrf_token=body.csrf_token,
        request_nonce=body.request_nonce,
        subject=user.id,
    )

    validation = validate_review_content(body.title, body.description)
    if not validation.valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation.error)

    decision = await require_eligible(ethos, user.username, action="slash requests")

    delivered = await notifier.notify_slash(
        SlashNotification(
            title=body.title,
            description=body.description,
            reviewer_tier=decision.tier.value,
            target_username=body.profile_username,
            requester_username=user.username,
        )
    )
    if not delivered:
        logger.warning("Slash request from %s was not delivered", anonymize_user_id(user.id))
    else:
        logger.info("Slash request from %s forwarded", anonymize_user_id(user.id))

    return SlashSubmitResponse(profile_username=body.profile_username)
