"""Replay and abuse guards: CSRF tokens, single-use nonces and rate limits."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Any, Final

import redis
from redis.exceptions import RedisError

from anon_reviews.core.security import generate_token
from anon_reviews.core.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_GUARD_TTL_SECONDS: Final[int] = 3600  # 1 hour


class GuardStoreError(RuntimeError):
    """Raised when the shared guard store cannot record new state."""


@dataclass
class RateLimitEntry:
    """Sliding counter for one caller and action."""

    count: int
    reset_at: float


class AbuseGuardService:
    """Ephemeral anti-abuse state shared by all requests of this process.

    Backed by an in-process, lock-protected store whose entries expire lazily.
    When a redis client is supplied the same operations use redis TTLs and
    atomic commands, which keeps the guards correct across several instances.
    Every check fails closed.
    """

    def __init__(
        self,
        *,
        ttl_seconds: int = DEFAULT_GUARD_TTL_SECONDS,
        redis_client: Any | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._redis = redis_client
        self._clock = clock
        self._lock = Lock()
        self._csrf_tokens: dict[str, tuple[str | None, float]] = {}
        self._nonces: dict[str, float] = {}
        self._rate_limits: dict[str, RateLimitEntry] = {}

    # --- CSRF tokens ----------------------------------------------------------------
    def issue_csrf_token(self, subject: str | None = None) -> str:
        """Mint a CSRF token, optionally bound to a session subject."""
        token = generate_token()
        if self._redis is not None:
            try:
                self._redis.set(f"csrf:{token}", subject or "", ex=self.ttl_seconds)
            except RedisError as exc:
                logger.error("Failed to store CSRF token: %s", exc)
                raise GuardStoreError("Unable to issue CSRF token") from exc
            return token

        with self._lock:
            self._purge_expired()
            self._csrf_tokens[token] = (subject, self._clock() + self.ttl_seconds)
        return token

    def validate_csrf_token(self, token: str, subject: str | None = None) -> bool:
        """Return True if the token is live and was issued to `subject`.

        Tokens stay valid until they expire; replay of a whole request is
        prevented by the nonce check, not by consuming the CSRF token.
        """
        if not token:
            return False
        if self._redis is not None:
            try:
                stored = self._redis.get(f"csrf:{token}")
            except RedisError as exc:
                logger.error("CSRF lookup failed, denying request: %s", exc)
                return False
            if stored is None:
                return False
            bound = stored.decode() if isinstance(stored, bytes) else str(stored)
            return not bound or subject is None or bound == subject

        with self._lock:
            entry = self._csrf_tokens.get(token)
            if entry is None:
                return False
            bound_subject, expires_at = entry
            if expires_at <= self._clock():
                self._csrf_tokens.pop(token, None)
                return False
            return bound_subject is None or subject is None or bound_subject == subject

    # --- Request nonces -------------------------------------------------------------
    def consume_nonce(self, nonce: str) -> bool:
        """Record a request nonce; return False if it was seen before."""
        if not nonce:
            return False
        if self._redis is not None:
            try:
                return bool(self._redis.set(f"nonce:{nonce}", "1", nx=True, ex=self.ttl_seconds))
            except RedisError as exc:
                logger.error("Nonce check failed, denying request: %s", exc)
                return False

        now = self._clock()
        with self._lock:
            self._purge_expired()
            expires_at = self._nonces.get(nonce)
            if expires_at is not None and expires_at > now:
                return False
            self._nonces[nonce] = now + self.ttl_seconds
            return True

    # --- Rate limiting --------------------------------------------------------------
    def check_rate_limit(self, key: str, max_requests: int, window_seconds: float) -> bool:
        """Count a request for `key`; return False once `max_requests` is exceeded."""
        if self._redis is not None:
            try:
                pipe = self._redis.pipeline()
                pipe.incr(f"rate:{key}")
                pipe.expire(f"rate:{key}", int(window_seconds), nx=True)
                count, _ = pipe.execute()
            except RedisError as exc:
                logger.error("Rate limit check failed, denying request: %s", exc)
                return False
            return int(count) <= max_requests

        now = self._clock()
        with self._lock:
            entry = self._rate_limits.get(key)
            if entry is None or now > entry.reset_at:
                self._rate_limits[key] = RateLimitEntry(count=1, reset_at=now + window_seconds)
                return True
            if entry.count >= max_requests:
                return False
            entry.count += 1
            return True

    def _purge_expired(self) -> None:
        # Caller holds the lock.
        now = self._clock()
        for token in [t for t, (_, exp) in self._csrf_tokens.items() if exp <= now]:
            del self._csrf_tokens[token]
        for nonce in [n for n, exp in self._nonces.items() if exp <= now]:
            del self._nonces[nonce]
        for key in [k for k, entry in self._rate_limits.items() if entry.reset_at < now]:
            del self._rate_limits[key]


class _GuardServiceSingleton:
    """Process-wide guard service."""

    _instance: AbuseGuardService | None = None

    @classmethod
    def get_instance(cls) -> AbuseGuardService:
        if cls._instance is None:
            redis_client = None
            if settings.guard_redis_url:
                redis_client = redis.from_url(settings.guard_redis_url)
            cls._instance = AbuseGuardService(
                ttl_seconds=settings.guard_ttl_seconds,
                redis_client=redis_client,
            )
        return cls._instance


def get_guard_service() -> AbuseGuardService:
    """Return the shared guard service instance."""
    return _GuardServiceSingleton.get_instance()
