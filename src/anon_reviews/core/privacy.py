"""Privacy-aware logging setup and identity redaction.

Reviews are anonymous, so reviewer identity must never reach the logs. Modules
log through the standard library with `logging.getLogger(__name__)` and pass
identity-bearing values through `anonymize_user_id` or `redact` first.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping
from typing import Any

from anon_reviews.core.settings import Settings, settings

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_REDACTED = "[REDACTED]"
_SENSITIVE_FIELDS = frozenset(
    {
        "username",
        "name",
        "id",
        "user_id",
        "email",
        "phone",
        "access_token",
        "token",
        "secret",
        "key",
        "password",
        "session",
        "reviewer",
        "reviewer_username",
        "subject_account_id",
        "csrf_token",
        "request_nonce",
    }
)


def configure_logging(config: Settings | None = None) -> None:
    """Install the root handler according to the logging policy."""
    config = config or settings
    if config.disable_all_logs:
        logging.disable(logging.CRITICAL)
        return
    logging.disable(logging.NOTSET)
    logging.basicConfig(level=config.log_level.upper(), format=_LOG_FORMAT)


def anonymize_user_id(user_id: str, *, salt: str | None = None) -> str:
    """Return a stable, one-way short digest of a user identifier."""
    salt = settings.anonymization_salt if salt is None else salt
    return hashlib.sha256(f"{user_id}{salt}".encode()).hexdigest()[:12]


def rate_limit_key(action: str, user_id: str) -> str:
    """Build a rate-limit key that does not contain the raw user id."""
    return f"{action}_{anonymize_user_id(user_id)}"


def redact(data: Any) -> Any:
    """Return a copy of `data` with identity-bearing fields masked.

    Identifier-like keys are replaced by their anonymized digest so related
    log lines can still be correlated; other sensitive keys are blanked.
    """
    if not settings.redact_sensitive_data:
        return data
    if isinstance(data, Mapping):
        redacted: dict[Any, Any] = {}
        for key, value in data.items():
            if key in _SENSITIVE_FIELDS and not isinstance(value, (Mapping, list)):
                if key == "id" or key.endswith("_id"):
                    redacted[key] = anonymize_user_id(str(value))
                else:
                    redacted[key] = _REDACTED
            else:
                redacted[key] = redact(value)
        return redacted
    if isinstance(data, list):
        return [redact(item) for item in data]
    return data
