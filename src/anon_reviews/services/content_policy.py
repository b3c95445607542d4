"""Static checks on user-submitted review text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

MAX_TITLE_LENGTH: Final[int] = 200
MAX_DESCRIPTION_LENGTH: Final[int] = 2000

# Markup that could execute in a browser rendering the review.
_SUSPICIOUS_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
)


@dataclass(frozen=True)
class ContentValidation:
    """Outcome of a content policy check."""

    valid: bool
    error: str | None = None


def validate_review_content(title: str, description: str) -> ContentValidation:
    """Check review text against length caps and the injection denylist.

    The first failing rule wins and its message is returned.
    """
    if len(title) > MAX_TITLE_LENGTH:
        return ContentValidation(False, f"Title too long (max {MAX_TITLE_LENGTH} characters)")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        return ContentValidation(
            False, f"Description too long (max {MAX_DESCRIPTION_LENGTH} characters)"
        )

    content = f"{title} {description}"
    if any(pattern.search(content) for pattern in _SUSPICIOUS_PATTERNS):
        return ContentValidation(False, "Content contains suspicious patterns")

    return ContentValidation(True)
