"""Review submission pipeline, from target resolution to the confirmed transaction."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from anon_reviews.core.settings import settings
from anon_reviews.services.blockchain import (
    AttestationSubject,
    ReviewContractClient,
    ReviewSubmission,
    Sentiment,
    build_review_metadata,
)
from anon_reviews.services.eligibility import ReputationTier, classify
from anon_reviews.services.ethos import EthosAPIError, EthosClient

logger = logging.getLogger(__name__)

DEFAULT_REVIEWER_TIER = ReputationTier.REPUTABLE


@dataclass(frozen=True)
class ReviewDraft:
    """Validated review content as entered by the reviewer."""

    target_username: str
    title: str
    description: str
    sentiment: Sentiment


@dataclass(frozen=True)
class SubmittedReview:
    """Confirmed review with links derived from the transaction."""

    transaction_hash: str
    explorer_url: str
    review_id: int | None = None
    review_url: str | None = None


@dataclass(frozen=True)
class SubmissionLinks:
    """Base URLs used to derive public links."""

    service_domain: str
    explorer_base_url: str
    ethos_app_base_url: str


def load_submission_links() -> SubmissionLinks:
    """Build link configuration from global settings."""
    return SubmissionLinks(
        service_domain=settings.service_domain,
        explorer_base_url=settings.explorer_base_url,
        ethos_app_base_url=settings.ethos_app_base_url,
    )


class ReviewSubmissionService:
    """Turn a validated draft into exactly one review transaction.

    Gates that concern the HTTP request itself (origin, session, rate limit,
    CSRF, nonce, content policy, eligibility) run before this service is
    called. The service only ever calls the contract client after the target
    has been resolved to a canonical account id.
    """

    def __init__(
        self,
        ethos: EthosClient,
        contract_client: ReviewContractClient,
        links: SubmissionLinks | None = None,
    ) -> None:
        self.ethos = ethos
        self.contract_client = contract_client
        self.links = links or load_submission_links()

    async def determine_reviewer_tier(
        self,
        supplied: ReputationTier | str | None,
        reviewer_username: str,
    ) -> ReputationTier:
        """Pick the tier named in the disclaimer.

        A tier computed by an earlier trusted step wins; otherwise it is
        re-fetched from Ethos, and "reputable" is used only if neither is
        available.
        """
        tier = supplied if isinstance(supplied, ReputationTier) else ReputationTier.parse(supplied)
        if tier is not None and tier.can_submit:
            return tier

        try:
            profile = await self.ethos.get_user_by_x(reviewer_username)
        except EthosAPIError as exc:
            logger.warning("Could not re-fetch reviewer reputation: %s", exc)
            profile = None
        if profile is not None:
            fetched = classify(profile.score)
            if fetched.can_submit:
                return fetched
        return DEFAULT_REVIEWER_TIER

    def build_submission(
        self,
        draft: ReviewDraft,
        *,
        subject_account_id: str,
        reviewer_tier: ReputationTier,
    ) -> ReviewSubmission:
        """Assemble the transaction payload for an attestation-addressed review."""
        return ReviewSubmission(
            score=draft.sentiment.score,
            subject=AttestationSubject(account=subject_account_id),
            comment=draft.title,
            metadata=build_review_metadata(
                draft.description,
                tier=reviewer_tier.value,
                service_domain=self.links.service_domain,
            ),
        )

    async def submit(
        self,
        draft: ReviewDraft,
        *,
        reviewer_username: str,
        reviewer_tier: ReputationTier | str | None = None,
    ) -> SubmittedReview:
        """Resolve the target, submit the review and derive its links.

        Raises:
            AccountResolutionError: If the target has no canonical X account id.
            ConfigurationError: If the contract client is not configured.
            BlockchainSubmissionError: If the transaction fails.
        """
        subject_account_id = await self.ethos.resolve_x_account_id(draft.target_username)
        tier = await self.determine_reviewer_tier(reviewer_tier, reviewer_username)
        submission = self.build_submission(
            draft,
            subject_account_id=subject_account_id,
            reviewer_tier=tier,
        )

        result = await self.contract_client.submit_review(submission)

        review_url = None
        if result.review_id is not None:
            review_url = f"{self.links.ethos_app_base_url}/activity/review/{result.review_id}"
        return SubmittedReview(
            transaction_hash=result.transaction_hash,
            explorer_url=f"{self.links.explorer_base_url}/tx/{result.transaction_hash}",
            review_id=result.review_id,
            review_url=review_url,
        )
