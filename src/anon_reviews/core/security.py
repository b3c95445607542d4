"""Signed, self-contained session tokens.

A session token is the URL-safe base64 encoding of a canonical JSON object
holding the identity claims, an upstream access token, an absolute expiry, a
random nonce and an HMAC-SHA256 signature over everything else. Tokens are
never stored server-side; logout is client-side deletion.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import secrets
import time
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

_SIGNATURE_FIELD = "signature"


class SessionUser(BaseModel):
    """Identity claims of the authenticated X account."""

    id: str = Field(..., min_length=1, description="Opaque X user id")
    name: str = Field(..., description="Display name")
    username: str = Field(..., min_length=1, description="X handle without the @")
    profile_image_url: str | None = Field(None, description="Avatar URL")

    model_config = ConfigDict(frozen=True)


class SessionClaims(BaseModel):
    """Verified contents of a session token."""

    user: SessionUser
    access_token: str = Field(..., description="Upstream OAuth access token")
    expires_at: int = Field(..., description="Absolute expiry as a UNIX timestamp (seconds)")
    nonce: str = Field(..., description="Per-session random value")

    model_config = ConfigDict(frozen=True)


def _canonical_json(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True).encode(
        "utf-8"
    )


class SessionSigner:
    """Create and verify HMAC-sealed session tokens.

    Args:
        secret: Server-held signing secret.
        clock: Returns the current UNIX time in seconds.
    """

    def __init__(self, secret: str, *, clock: Callable[[], float] = time.time) -> None:
        if not secret:
            raise ValueError("Session secret must not be empty")
        self._key = secret.encode("utf-8")
        self._clock = clock

    def _sign(self, data: bytes) -> str:
        return hmac.new(self._key, data, hashlib.sha256).hexdigest()

    def create(self, user: SessionUser, *, access_token: str, expires_at: int) -> str:
        """Seal identity claims into a token with a fresh nonce."""
        unsigned: dict[str, Any] = {
            "user": user.model_dump(),
            "access_token": access_token,
            "expires_at": int(expires_at),
            "nonce": secrets.token_hex(16),
        }
        signature = self._sign(_canonical_json(unsigned))
        sealed = {**unsigned, _SIGNATURE_FIELD: signature}
        return base64.urlsafe_b64encode(_canonical_json(sealed)).decode("ascii")

    def verify(self, token: str | None) -> SessionClaims | None:
        """Return the claims of a valid token, or None.

        Parse errors, expiry and signature mismatches all collapse into the
        same None result so callers cannot tell which check failed.
        """
        if not token:
            return None
        try:
            raw = base64.urlsafe_b64decode(token.encode("ascii"))
            # Reject non-canonical encodings so every bit of the token matters.
            if base64.urlsafe_b64encode(raw).decode("ascii") != token:
                return None
            payload = json.loads(raw)
            if not isinstance(payload, dict) or _canonical_json(payload) != raw:
                return None
            signature = payload.pop(_SIGNATURE_FIELD, None)
            if not isinstance(signature, str):
                return None
            expires_at = payload.get("expires_at")
            if not isinstance(expires_at, int) or self._clock() > expires_at:
                logger.debug("Rejected expired session token")
                return None
            expected = self._sign(_canonical_json(payload)).encode("ascii")
            if not hmac.compare_digest(expected, signature.encode("utf-8")):
                logger.debug("Rejected session token with bad signature")
                return None
            return SessionClaims.model_validate(payload)
        except (binascii.Error, UnicodeError, ValueError, ValidationError):
            logger.debug("Rejected malformed session token")
            return None


def generate_token() -> str:
    """Return a URL-safe random token for CSRF and OAuth state values."""
    return secrets.token_urlsafe(32)
