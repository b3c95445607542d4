"""Discord webhook notifications for anonymous reviews and slash requests.

Notifications are a side channel: every public method returns a bool and
logs failures instead of raising, so delivery problems never affect the
request that triggered them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx

from anon_reviews.core.settings import settings

logger = logging.getLogger(__name__)

SENTIMENT_COLORS = {
    "positive": 0x22C55E,
    "neutral": 0xEAB308,
    "negative": 0xEF4444,
}
SLASH_COLOR = 0xDC2626
FOOTER_TEXT = "Ethos Anonymous Reviews"


@dataclass(frozen=True)
class DiscordConfig:
    """Immutable notifier configuration."""

    enabled: bool
    webhook_url: str | None
    ethos_app_base_url: str
    explorer_base_url: str
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class ReviewNotification:
    """Summary of a submitted review; never names the reviewer."""

    sentiment: str
    title: str
    description: str
    reviewer_tier: str
    target_username: str
    transaction_hash: str
    review_id: int | None = None


@dataclass(frozen=True)
class SlashNotification:
    """Slash request awaiting manual processing."""

    title: str
    description: str
    reviewer_tier: str
    target_username: str
    requester_username: str


def load_discord_config() -> DiscordConfig:
    """Build configuration object from global settings."""
    return DiscordConfig(
        enabled=settings.discord_notifications_enabled,
        webhook_url=settings.discord_webhook_url,
        ethos_app_base_url=settings.ethos_app_base_url,
        explorer_base_url=settings.explorer_base_url,
    )


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


class DiscordNotifier:
    """Fire-and-forget Discord webhook sender."""

    def __init__(
        self,
        config: DiscordConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_discord_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled and bool(self.config.webhook_url)

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def build_review_embed(self, data: ReviewNotification) -> dict[str, Any]:
        """Render the embed announcing a new review."""
        sentiment = data.sentiment.capitalize()
        profile_url = f"{self.config.ethos_app_base_url}/profile/x/{data.target_username}"
        explorer_url = f"{self.config.explorer_base_url}/tx/{data.transaction_hash}"
        fields = [
            {"name": "Target Profile", "value": f"[@{data.target_username}]({profile_url})", "inline": True},
            {"name": "Reviewer Level", "value": data.reviewer_tier, "inline": True},
            {"name": "Sentiment", "value": sentiment, "inline": True},
            {"name": "Review Title", "value": _truncate(data.title, 256), "inline": False},
            {"name": "Review Description", "value": _truncate(data.description, 1000), "inline": False},
            {"name": "Blockchain Transaction", "value": f"[View on BaseScan]({explorer_url})", "inline": True},
        ]
        if data.review_id is not None:
            review_url = f"{self.config.ethos_app_base_url}/activity/review/{data.review_id}"
            fields.append({"name": "Ethos Review", "value": f"[View on Ethos]({review_url})", "inline": True})

        return {
            "title": f"New {sentiment} Anonymous Review",
            "description": f"A **{data.reviewer_tier}** user left an anonymous review",
            "color": SENTIMENT_COLORS.get(data.sentiment, SENTIMENT_COLORS["neutral"]),
            "fields": fields,
            "timestamp": datetime.now(UTC).isoformat(),
            "footer": {"text": FOOTER_TEXT},
        }

    def build_slash_embed(self, data: SlashNotification) -> dict[str, Any]:
        """Render the embed for a slash request needing manual processing."""
        profile_url = f"{self.config.ethos_app_base_url}/profile/x/{data.target_username}"
        return {
            "title": "New Slash Request",
            "description": f"A **{data.reviewer_tier}** user requested a slash (manual processing required)",
            "color": SLASH_COLOR,
            "fields": [
                {"name": "Target Profile", "value": f"[@{data.target_username}]({profile_url})", "inline": True},
                {"name": "Requested By", "value": f"@{data.requester_username}", "inline": True},
                {"name": "Reviewer Level", "value": data.reviewer_tier, "inline": True},
                {"name": "Title", "value": _truncate(data.title, 256), "inline": False},
                {"name": "Description", "value": _truncate(data.description, 1000), "inline": False},
            ],
            "timestamp": datetime.now(UTC).isoformat(),
            "footer": {"text": FOOTER_TEXT},
        }

    async def _send(self, embed: dict[str, Any]) -> bool:
        if not self.enabled:
            logger.info("Discord notifications disabled, skipping notification")
            return False

        client = await self._ensure_client()
        try:
            response = await client.post(self.config.webhook_url or "", json={"embeds": [embed]})
        except httpx.HTTPError as exc:
            logger.error("Error sending Discord notification: %s", exc)
            return False
        if response.is_success:
            logger.info("Discord notification sent")
            return True
        logger.error("Discord webhook failed: %s %s", response.status_code, response.text)
        return False

    async def notify_review(self, data: ReviewNotification) -> bool:
        """Announce a submitted review."""
        return await self._send(self.build_review_embed(data))

    async def notify_slash(self, data: SlashNotification) -> bool:
        """Forward a slash request to the moderators' channel."""
        return await self._send(self.build_slash_embed(data))

    async def send_test(self) -> bool:
        """Send a sample review notification to verify the webhook."""
        return await self.notify_review(
            ReviewNotification(
                sentiment="positive",
                title="Test Review Notification",
                description="This is a test notification to verify Discord webhook configuration.",
                reviewer_tier="reputable",
                target_username="testuser",
                transaction_hash="0x1234567890abcdef1234567890abcdef12345678",
                review_id=123,
            )
        )

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _DiscordNotifierSingleton:
    """Singleton wrapper for DiscordNotifier."""

    _instance: DiscordNotifier | None = None

    @classmethod
    def get_instance(cls) -> DiscordNotifier:
        if cls._instance is None:
            cls._instance = DiscordNotifier()
        return cls._instance


def get_discord_notifier() -> DiscordNotifier:
    """Return a singleton notifier instance."""
    return _DiscordNotifierSingleton.get_instance()
