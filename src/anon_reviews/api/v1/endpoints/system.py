"""Diagnostic endpoints, available only when DEBUG is enabled."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from anon_reviews.api.v1.dependencies import CurrentSessionDep, EthosClientDep, NotifierDep
from anon_reviews.core.settings import settings
from anon_reviews.schemas.common import normalize_x_handle
from anon_reviews.services.eligibility import REPUTABLE_THRESHOLD
from anon_reviews.services.ethos import X_SERVICE_KEY_PREFIX, EthosAPIError, EthosClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


def require_debug() -> None:
    """Hide diagnostic endpoints outside debug mode."""
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")


DebugOnly = Annotated[None, Depends(require_debug)]


def _handle_param(value: str) -> str:
    try:
        return normalize_x_handle(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


async def _lookup_first(ethos: EthosClient, username: str) -> dict[str, Any] | None:
    try:
        users = await ethos.lookup_x_users([username])
    except EthosAPIError as exc:
        logger.error("Debug reputation lookup failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch from Ethos API",
        ) from exc
    return users[0] if users else None


@router.post("/discord/test")
async def discord_test(_: DebugOnly, notifier: NotifierDep) -> dict[str, Any]:
    """Send a sample notification through the configured webhook."""
    sent = await notifier.send_test()
    return {
        "success": sent,
        "message": "Test notification sent" if sent else "Notification not sent",
        "enabled": notifier.enabled,
    }


@router.get("/debug/x-account-resolution")
async def x_account_resolution(
    _: DebugOnly,
    session: CurrentSessionDep,
    ethos: EthosClientDep,
    username: Annotated[str, Query(min_length=1)],
) -> dict[str, Any]:
    """Report how each strategy fared when resolving `username` to an account id."""
    report = await ethos.explain_x_account_resolution(_handle_param(username))
    return {
        "username": report.username,
        "success": report.success,
        "account_id": report.account_id,
        "strategy": report.strategy,
        "attempts": report.attempts,
    }


@router.get("/debug/reputation")
async def debug_reputation(
    _: DebugOnly,
    session: CurrentSessionDep,
    ethos: EthosClientDep,
    test_username: Annotated[str | None, Query(alias="testUsername")] = None,
) -> dict[str, Any]:
    """Show the raw Ethos record behind a reputation decision.

    Without `testUsername` the caller's own record is evaluated against the
    submission threshold. With it, the named user's userkeys are reported so
    a failed X account id lookup can be diagnosed.
    """
    username = _handle_param(test_username) if test_username else session.user.username
    record = await _lookup_first(ethos, username)
    if record is None:
        return {"username": username, "error": "No Ethos profile found"}

    userkeys = [key for key in record.get("userkeys") or () if isinstance(key, str)]
    if test_username:
        service_key = next((key for key in userkeys if key.startswith(X_SERVICE_KEY_PREFIX)), None)
        return {
            "username": username,
            "profile": {
                "id": record.get("id"),
                "profile_id": record.get("profileId"),
                "username": record.get("username"),
                "display_name": record.get("displayName"),
                "score": record.get("score"),
                "userkeys": userkeys,
            },
            "x_service_key": service_key,
            "x_account_id": service_key.removeprefix(X_SERVICE_KEY_PREFIX) if service_key else None,
        }

    score = record.get("score")
    can_submit = isinstance(score, int) and score >= REPUTABLE_THRESHOLD
    return {
        "session_user": {"id": session.user.id, "username": session.user.username},
        "profile": {
            "id": record.get("id"),
            "username": record.get("username"),
            "display_name": record.get("displayName"),
            "score": score,
            "status": record.get("status"),
        },
        "evaluation": {
            "score": score,
            "threshold": REPUTABLE_THRESHOLD,
            "can_submit": can_submit,
            "reason": "Qualified" if can_submit else f"Score {score} is below threshold {REPUTABLE_THRESHOLD}",
        },
    }
