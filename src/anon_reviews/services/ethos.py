"""Client for the Ethos reputation oracle.

Two capabilities are consumed:

- score lookup by X handle, used by the eligibility gate
- resolution of an X handle to the canonical numeric X account id, used as the
  attestation account of a review

Resolution never falls back to the raw handle. If every lookup strategy
fails the caller gets an `AccountResolutionError` explaining that the target
must link their X account.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from anon_reviews.core.settings import settings

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_NOT_FOUND = 404
X_SERVICE_KEY_PREFIX = "service:x.com:"


class EthosAPIError(RuntimeError):
    """Raised when the Ethos API cannot be reached or answers unexpectedly."""


class AccountResolutionError(EthosAPIError):
    """Raised when no canonical X account id can be found for a handle."""

    def __init__(self, username: str, reasons: dict[str, str]) -> None:
        self.username = username
        self.reasons = reasons
        super().__init__(
            f"Could not resolve the X account id for @{username}. They need to link their "
            "X account to their Ethos profile before they can be reviewed."
        )


@dataclass(frozen=True)
class EthosConfig:
    """Immutable configuration for the Ethos API client."""

    base_url: str
    timeout_seconds: float


@dataclass(frozen=True)
class EthosProfile:
    """Subset of an Ethos user record relevant to reviews."""

    id: int
    profile_id: int | None
    username: str | None
    display_name: str | None
    score: int
    avatar_url: str | None = None
    userkeys: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> EthosProfile:
        return cls(
            id=int(payload.get("id", 0)),
            profile_id=payload.get("profileId"),
            username=payload.get("username"),
            display_name=payload.get("displayName"),
            score=int(payload.get("score") or 0),
            avatar_url=payload.get("avatarUrl"),
            userkeys=tuple(payload.get("userkeys") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "username": self.username,
            "display_name": self.display_name,
            "score": self.score,
            "avatar_url": self.avatar_url,
        }


@dataclass
class ResolutionReport:
    """Per-strategy outcome of an X account id resolution attempt."""

    username: str
    account_id: str | None = None
    strategy: str | None = None
    attempts: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.account_id is not None


def load_ethos_config() -> EthosConfig:
    """Build configuration object from global settings."""
    return EthosConfig(
        base_url=settings.ethos_api_base_url,
        timeout_seconds=float(settings.ethos_http_timeout_seconds),
    )


def _canonical_account_id(value: Any) -> str | None:
    text = str(value).strip() if value is not None else ""
    return text if text.isdigit() else None


class EthosClient:
    """HTTP client wrapper for Ethos API interactions."""

    def __init__(
        self,
        config: EthosConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_ethos_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    headers={"accept": "application/json"},
                    transport=self._transport,
                )
        return self._client

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = await self._ensure_client()
        try:
            return await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise EthosAPIError(f"Ethos request failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise EthosAPIError("Ethos returned a malformed JSON body") from exc

    async def get_user_by_x(self, username: str) -> EthosProfile | None:
        """Look up the Ethos profile linked to an X handle.

        Returns None when Ethos knows no such user.
        """
        response = await self._request("GET", f"/api/v2/users/by/x/{username}")
        if response.status_code == HTTP_NOT_FOUND:
            return None
        if response.status_code != HTTP_OK:
            raise EthosAPIError(
                f"Unexpected Ethos response ({response.status_code}) for user lookup"
            )

        body = self._json(response)
        # The endpoint has answered both with a bare record and with {"data": record}.
        record = body.get("data", body) if isinstance(body, dict) else None
        if not isinstance(record, dict) or "score" not in record:
            return None
        try:
            return EthosProfile.from_payload(record)
        except (TypeError, ValueError) as exc:
            raise EthosAPIError("Ethos returned a malformed user record") from exc

    async def lookup_x_users(self, usernames: list[str]) -> list[dict[str, Any]]:
        """Fetch the raw Ethos user records for a batch of X handles.

        Handles Ethos does not know are absent from the result.
        """
        response = await self._request(
            "POST",
            "/api/v2/users/by/x",
            json={"accountIdsOrUsernames": list(usernames)},
        )
        if response.status_code != HTTP_OK:
            raise EthosAPIError(f"Ethos API request failed: {response.status_code}")

        users = self._json(response)
        if not isinstance(users, list):
            raise EthosAPIError("Ethos returned an unexpected user list")
        return [user for user in users if isinstance(user, dict)]

    async def _account_id_from_userkeys(self, username: str) -> tuple[str | None, str]:
        users = await self.lookup_x_users([username])
        if not users:
            return None, "No Ethos profile found"

        for key in users[0].get("userkeys") or ():
            if isinstance(key, str) and key.startswith(X_SERVICE_KEY_PREFIX):
                account_id = _canonical_account_id(key.removeprefix(X_SERVICE_KEY_PREFIX))
                if account_id:
                    return account_id, "ok"
        return None, "No X.com service key found in userkeys"

    async def _account_id_from_twitter_api(self, username: str) -> tuple[str | None, str]:
        response = await self._request("GET", "/api/twitter/user", params={"username": username})
        if response.status_code != HTTP_OK:
            return None, f"Twitter API request failed: {response.status_code}"

        body = self._json(response)
        data = body.get("data") if isinstance(body, dict) and body.get("ok") else None
        account_id = _canonical_account_id(data.get("id")) if isinstance(data, dict) else None
        if account_id is None:
            return None, "Twitter API returned invalid data"
        return account_id, "ok"

    async def explain_x_account_resolution(self, username: str) -> ResolutionReport:
        """Try each resolution strategy in order and report what happened."""
        report = ResolutionReport(username=username)
        strategies = (
            ("userkeys", self._account_id_from_userkeys),
            ("twitter_api", self._account_id_from_twitter_api),
        )
        for name, strategy in strategies:
            try:
                account_id, outcome = await strategy(username)
            except EthosAPIError as exc:
                account_id, outcome = None, str(exc)
            report.attempts[name] = outcome
            if account_id is not None:
                report.account_id = account_id
                report.strategy = name
                break
        return report

    async def resolve_x_account_id(self, username: str) -> str:
        """Return the canonical numeric X account id for `username`.

        Raises:
            AccountResolutionError: If no strategy produced a numeric id.
        """
        report = await self.explain_x_account_resolution(username)
        if report.account_id is None:
            logger.warning("X account id resolution failed: %s", report.attempts)
            raise AccountResolutionError(username, report.attempts)
        logger.info("Resolved X account id via %s", report.strategy)
        return report.account_id

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _EthosClientSingleton:
    """Singleton wrapper for EthosClient."""

    _instance: EthosClient | None = None

    @classmethod
    def get_instance(cls) -> EthosClient:
        if cls._instance is None:
            cls._instance = EthosClient()
        return cls._instance


def get_ethos_client() -> EthosClient:
    """Return a singleton Ethos client instance."""
    return _EthosClientSingleton.get_instance()
