"""Anonymous review submission endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, status

from anon_reviews.api.v1.dependencies import (
    CurrentSessionDep,
    EthosClientDep,
    GuardServiceDep,
    NotifierDep,
    SubmissionServiceDep,
    enforce_rate_limit,
    read_json_body,
    require_eligible,
    require_request_tokens,
    verify_origin,
)
from anon_reviews.core.privacy import anonymize_user_id
from anon_reviews.core.settings import settings
from anon_reviews.schemas.review import ReviewSubmitRequest, ReviewSubmitResponse
from anon_reviews.services.blockchain import BlockchainSubmissionError, ConfigurationError, Sentiment
from anon_reviews.services.content_policy import validate_review_content
from anon_reviews.services.discord import ReviewNotification
from anon_reviews.services.ethos import AccountResolutionError, EthosAPIError
from anon_reviews.services.submission import ReviewDraft

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post(
    "/submit",
    response_model=ReviewSubmitResponse,
    response_model_exclude_none=True,
)
async def submit_review(
    request: Request,
    session: CurrentSessionDep,
    guard: GuardServiceDep,
    ethos: EthosClientDep,
    service: SubmissionServiceDep,
    notifier: NotifierDep,
    background_tasks: BackgroundTasks,
) -> ReviewSubmitResponse:
    """Submit an anonymous review on behalf of the signed-in user.

    Gates run in a fixed order: origin, session, rate limit, body, CSRF token,
    request nonce, content policy, sentiment and reputation. The review is
    only sent on-chain once all of them pass.
    """
    verify_origin(request)
    user = session.user
    enforce_rate_limit(
        guard,
        "review",
        user.id,
        max_requests=settings.review_rate_limit_max,
        window_seconds=settings.review_rate_limit_window_seconds,
    )

    body = await read_json_body(request, ReviewSubmitRequest)
    require_request_tokens(
        guard,
        csrf_token=body.csrf_token,
        request_nonce=body.request_nonce,
        subject=user.id,
    )

    validation = validate_review_content(body.title, body.description)
    if not validation.valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation.error)

    try:
        sentiment = Sentiment(body.sentiment)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid sentiment") from exc

    decision = await require_eligible(ethos, user.username, action="reviews")

    draft = ReviewDraft(
        target_username=body.profile_username,
        title=body.title,
        description=body.description,
        sentiment=sentiment,
    )
    try:
        result = await service.submit(
            draft,
            reviewer_username=user.username,
            reviewer_tier=decision.tier,
        )
    except AccountResolutionError as exc:
        logger.warning("Target resolution failed: %s", exc.reasons)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except EthosAPIError as exc:
        logger.error("Reputation service error during submission: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to reach the reputation service",
        ) from exc
    except ConfigurationError as exc:
        logger.error("Blockchain not configured: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Blockchain not configured",
        ) from exc
    except BlockchainSubmissionError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc

    logger.info(
        "Review submitted by %s: tx=%s review_id=%s",
        anonymize_user_id(user.id),
        result.transaction_hash,
        result.review_id,
    )
    background_tasks.add_task(
        notifier.notify_review,
        ReviewNotification(
            sentiment=sentiment.value,
            title=body.title,
            description=body.description,
            reviewer_tier=decision.tier.value,
            target_username=body.profile_username,
            transaction_hash=result.transaction_hash,
            review_id=result.review_id,
        ),
    )

    return ReviewSubmitResponse(
        transaction_hash=result.transaction_hash,
        explorer_url=result.explorer_url,
        review_id=result.review_id,
        review_url=result.review_url,
    )
