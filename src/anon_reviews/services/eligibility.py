"""Reputation tiers and the submission eligibility gate."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from anon_reviews.services.ethos import EthosProfile

EXEMPLARY_THRESHOLD: Final[int] = 2000
REPUTABLE_THRESHOLD: Final[int] = 1600


class ReputationTier(str, Enum):
    """Coarse reputation classes; the value is shown in review disclaimers."""

    INELIGIBLE = "ineligible"
    REPUTABLE = "reputable"
    EXEMPLARY = "exemplary"

    @property
    def can_submit(self) -> bool:
        return self is not ReputationTier.INELIGIBLE

    @classmethod
    def parse(cls, label: str | None) -> ReputationTier | None:
        """Return the eligible tier named by `label`, ignoring case."""
        if not label:
            return None
        try:
            tier = cls(label.strip().lower())
        except ValueError:
            return None
        return tier if tier.can_submit else None


def classify(score: int | float) -> ReputationTier:
    """Map a reputation score to its tier."""
    if score >= EXEMPLARY_THRESHOLD:
        return ReputationTier.EXEMPLARY
    if score >= REPUTABLE_THRESHOLD:
        return ReputationTier.REPUTABLE
    return ReputationTier.INELIGIBLE


@dataclass(frozen=True)
class EligibilityDecision:
    """Whether a caller may submit, and why not when they may not."""

    score: int | None
    tier: ReputationTier
    reason: str | None = None

    @property
    def allowed(self) -> bool:
        return self.tier.can_submit


def assess(profile: EthosProfile | None, *, action: str = "reviews") -> EligibilityDecision:
    """Decide eligibility from the caller's reputation profile."""
    if profile is None:
        return EligibilityDecision(
            score=None,
            tier=ReputationTier.INELIGIBLE,
            reason="User not found in Ethos network",
        )
    tier = classify(profile.score)
    if not tier.can_submit:
        return EligibilityDecision(
            score=profile.score,
            tier=tier,
            reason=(
                f"Must have reputation score of {REPUTABLE_THRESHOLD} or higher to submit "
                f"{action}. Your current score: {profile.score}"
            ),
        )
    return EligibilityDecision(score=profile.score, tier=tier)
