"""Tests for the X OAuth adapter."""

import base64
import hashlib
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from anon_reviews.services.twitter import (
    IdentityProviderError,
    TwitterConfig,
    TwitterOAuthClient,
    generate_pkce_pair,
)


def _config() -> TwitterConfig:
    return TwitterConfig(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:8000/api/v1/auth/twitter/callback",
    )


def test_pkce_challenge_matches_verifier() -> None:
    verifier, challenge = generate_pkce_pair()

    digest = hashlib.sha256(verifier.encode()).digest()
    assert challenge == base64.urlsafe_b64encode(digest).decode().rstrip("=")


def test_authorization_url_carries_state_and_challenge() -> None:
    url = TwitterOAuthClient(_config()).authorization_url("state-1", "challenge-1")

    query = parse_qs(urlsplit(url).query)
    assert query["state"] == ["state-1"]
    assert query["code_challenge"] == ["challenge-1"]
    assert query["code_challenge_method"] == ["S256"]
    assert query["client_id"] == ["client-id"]


@pytest.mark.asyncio
async def test_exchange_and_profile() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/2/oauth2/token":
            assert request.headers["authorization"].startswith("Basic ")
            return httpx.Response(200, json={"access_token": "at-1", "expires_in": 3600})
        assert request.headers["authorization"] == "Bearer at-1"
        return httpx.Response(
            200,
            json={"data": {"id": "1001", "name": "Alice", "username": "alice"}},
        )

    client = TwitterOAuthClient(_config(), transport=httpx.MockTransport(handler))
    grant = await client.exchange_code("code-1", "verifier-1")
    profile = await client.fetch_profile(grant.access_token)
    await client.close()

    assert grant.expires_in == 3600
    assert profile.id == "1001"
    assert profile.username == "alice"


@pytest.mark.asyncio
async def test_rejected_code_raises() -> None:
    client = TwitterOAuthClient(
        _config(),
        transport=httpx.MockTransport(lambda request: httpx.Response(400, json={"error": "invalid_grant"})),
    )

    with pytest.raises(IdentityProviderError):
        await client.exchange_code("bad", "verifier")
