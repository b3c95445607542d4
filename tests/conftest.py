# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Iterator
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("COOKIE_SECURE", "false")
os.environ.setdefault("ENABLE_DISCORD_NOTIFICATIONS", "false")

from anon_reviews.api.v1.dependencies import (
    get_contract_client_dep,
    get_ethos_client_dep,
    get_guard_service_dep,
    get_notifier_dep,
)
from anon_reviews.core.security import SessionSigner, SessionUser
from anon_reviews.core.settings import settings
from anon_reviews.main import app as fastapi_app
from anon_reviews.services.blockchain import ReviewContractClient, ReviewSubmissionResult
from anon_reviews.services.discord import DiscordNotifier
from anon_reviews.services.ethos import EthosClient, EthosProfile
from anon_reviews.services.guards import AbuseGuardService

ALLOWED_ORIGIN = "http://localhost:8000"
TX_HASH = "0x" + "ab" * 32


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def signer() -> SessionSigner:
    return SessionSigner(settings.session_secret)


@pytest.fixture()
def session_user() -> SessionUser:
    return SessionUser(id="1001", name="Alice", username="alice")


def make_profile(score: int, username: str = "alice") -> EthosProfile:
    return EthosProfile(
        id=1,
        profile_id=42,
        username=username,
        display_name=username.title(),
        score=score,
    )


@pytest.fixture()
def guard() -> AbuseGuardService:
    return AbuseGuardService(ttl_seconds=3600)


@pytest.fixture()
def ethos() -> AsyncMock:
    client = AsyncMock(spec=EthosClient)
    client.get_user_by_x.return_value = make_profile(1700)
    client.resolve_x_account_id.return_value = "555111"
    return client


@pytest.fixture()
def contract_client() -> AsyncMock:
    client = AsyncMock(spec=ReviewContractClient)
    client.submit_review.return_value = ReviewSubmissionResult(transaction_hash=TX_HASH, review_id=77)
    return client


@pytest.fixture()
def notifier() -> AsyncMock:
    mock = AsyncMock(spec=DiscordNotifier)
    mock.enabled = False
    mock.notify_review.return_value = True
    mock.notify_slash.return_value = True
    return mock


@pytest.fixture(autouse=True)
def override_collaborators(
    app: FastAPI,
    guard: AbuseGuardService,
    ethos: AsyncMock,
    contract_client: AsyncMock,
    notifier: AsyncMock,
) -> Iterator[None]:
    app.dependency_overrides[get_guard_service_dep] = lambda: guard
    app.dependency_overrides[get_ethos_client_dep] = lambda: ethos
    app.dependency_overrides[get_contract_client_dep] = lambda: contract_client
    app.dependency_overrides[get_notifier_dep] = lambda: notifier
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def session_token(signer: SessionSigner, session_user: SessionUser) -> str:
    return signer.create(session_user, access_token="x-access-token", expires_at=4_102_444_800)


@pytest.fixture()
def authed_client(client: TestClient, session_token: str) -> TestClient:
    client.cookies.set(settings.session_cookie_name, session_token)
    return client


@pytest.fixture()
def csrf_token(guard: AbuseGuardService, session_user: SessionUser) -> str:
    return guard.issue_csrf_token(session_user.id)


@pytest.fixture()
def origin_headers() -> dict[str, str]:
    return {"Origin": ALLOWED_ORIGIN}


def review_payload(csrf_token: str, nonce: str = "nonce-1", **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "profileId": 42,
        "profileUsername": "bob",
        "title": "Great collaborator",
        "description": "Shipped everything on time.",
        "sentiment": "positive",
        "csrfToken": csrf_token,
        "requestNonce": nonce,
    }
    payload.update(overrides)
    return payload


def slash_payload(csrf_token: str, nonce: str = "slash-nonce-1", **overrides: Any) -> dict[str, Any]:
    payload = review_payload(csrf_token, nonce, **overrides)
    payload.pop("sentiment", None)
    return payload
