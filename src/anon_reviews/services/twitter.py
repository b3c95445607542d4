"""X (Twitter) OAuth 2.0 identity provider adapter."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import secrets
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from anon_reviews.core.settings import settings

AUTHORIZE_URL = "https://twitter.com/i/oauth2/authorize"
TOKEN_URL = "https://api.twitter.com/2/oauth2/token"
PROFILE_URL = "https://api.twitter.com/2/users/me"
SCOPES = "tweet.read users.read"


class IdentityProviderError(RuntimeError):
    """Raised when the OAuth code exchange or profile fetch fails."""


@dataclass(frozen=True)
class TwitterConfig:
    """Immutable OAuth client configuration."""

    client_id: str
    client_secret: str
    redirect_uri: str
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class TokenGrant:
    """Access token returned by the code exchange."""

    access_token: str
    expires_in: int


@dataclass(frozen=True)
class TwitterProfile:
    """Profile of the account that completed the login."""

    id: str
    name: str
    username: str
    profile_image_url: str | None = None


def load_twitter_config() -> TwitterConfig:
    """Build configuration object from global settings."""
    return TwitterConfig(
        client_id=settings.twitter_client_id,
        client_secret=settings.twitter_client_secret,
        redirect_uri=settings.twitter_redirect_uri,
    )


def generate_pkce_pair() -> tuple[str, str]:
    """Return a PKCE `(code_verifier, code_challenge)` pair using S256."""
    verifier = secrets.token_urlsafe(48)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
    return verifier, challenge


class TwitterOAuthClient:
    """Authorization-code flow against the X API."""

    def __init__(
        self,
        config: TwitterConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_twitter_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def authorization_url(self, state: str, code_challenge: str) -> str:
        """Return the provider URL the browser is redirected to."""
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self.config.client_id,
                "redirect_uri": self.config.redirect_uri,
                "scope": SCOPES,
                "state": state,
                "code_challenge": code_challenge,
                "code_challenge_method": "S256",
            }
        )
        return f"{AUTHORIZE_URL}?{query}"

    async def exchange_code(self, code: str, code_verifier: str) -> TokenGrant:
        """Exchange an authorization code for an access token."""
        client = await self._ensure_client()
        try:
            response = await client.post(
                TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.config.redirect_uri,
                    "code_verifier": code_verifier,
                },
                auth=(self.config.client_id, self.config.client_secret),
            )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Token exchange failed: {exc}") from exc
        if response.status_code != httpx.codes.OK:
            raise IdentityProviderError(f"Token exchange failed: {response.status_code}")

        payload: dict[str, Any] = response.json()
        try:
            return TokenGrant(
                access_token=str(payload["access_token"]),
                expires_in=int(payload.get("expires_in", 7200)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise IdentityProviderError("Token exchange returned an invalid payload") from exc

    async def fetch_profile(self, access_token: str) -> TwitterProfile:
        """Fetch the profile of the account that owns `access_token`."""
        client = await self._ensure_client()
        try:
            response = await client.get(
                PROFILE_URL,
                params={"user.fields": "profile_image_url"},
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"User fetch failed: {exc}") from exc
        if response.status_code != httpx.codes.OK:
            raise IdentityProviderError(f"User fetch failed: {response.status_code}")

        data = response.json().get("data") or {}
        try:
            return TwitterProfile(
                id=str(data["id"]),
                name=str(data.get("name", "")),
                username=str(data["username"]),
                profile_image_url=data.get("profile_image_url"),
            )
        except KeyError as exc:
            raise IdentityProviderError("User fetch returned an invalid payload") from exc

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _TwitterClientSingleton:
    """Singleton wrapper for TwitterOAuthClient."""

    _instance: TwitterOAuthClient | None = None

    @classmethod
    def get_instance(cls) -> TwitterOAuthClient:
        if cls._instance is None:
            cls._instance = TwitterOAuthClient()
        return cls._instance


def get_twitter_client() -> TwitterOAuthClient:
    """Return a singleton OAuth client instance."""
    return _TwitterClientSingleton.get_instance()
