"""Tests for Discord webhook notifications."""

import json

import httpx
import pytest

from anon_reviews.services.discord import (
    DiscordConfig,
    DiscordNotifier,
    ReviewNotification,
    SlashNotification,
)

WEBHOOK = "https://discord.test/api/webhooks/1/abc"


def _config(enabled: bool = True) -> DiscordConfig:
    return DiscordConfig(
        enabled=enabled,
        webhook_url=WEBHOOK,
        ethos_app_base_url="https://app.ethos.test",
        explorer_base_url="https://sepolia.basescan.org",
    )


def _review(**overrides) -> ReviewNotification:
    values = {
        "sentiment": "negative",
        "title": "Rugged",
        "description": "Took the funds.",
        "reviewer_tier": "exemplary",
        "target_username": "bob",
        "transaction_hash": "0xabc",
        "review_id": None,
    }
    values.update(overrides)
    return ReviewNotification(**values)


def _field(embed: dict, name: str) -> dict | None:
    return next((f for f in embed["fields"] if f["name"] == name), None)


def test_review_embed_omits_review_link_without_id() -> None:
    embed = DiscordNotifier(_config()).build_review_embed(_review())

    assert embed["title"] == "New Negative Anonymous Review"
    assert embed["color"] == 0xEF4444
    assert _field(embed, "Ethos Review") is None
    assert "https://sepolia.basescan.org/tx/0xabc" in _field(embed, "Blockchain Transaction")["value"]


def test_review_embed_links_review_when_id_known() -> None:
    embed = DiscordNotifier(_config()).build_review_embed(_review(review_id=77))

    assert "https://app.ethos.test/activity/review/77" in _field(embed, "Ethos Review")["value"]


def test_review_embed_truncates_long_text() -> None:
    embed = DiscordNotifier(_config()).build_review_embed(_review(title="t" * 300, description="d" * 1500))

    title = _field(embed, "Review Title")["value"]
    description = _field(embed, "Review Description")["value"]
    assert len(title) == 256 and title.endswith("...")
    assert len(description) == 1000 and description.endswith("...")


def test_review_embed_never_names_reviewer() -> None:
    embed = DiscordNotifier(_config()).build_review_embed(_review())

    assert "Requested By" not in json.dumps(embed)


def test_slash_embed_names_requester() -> None:
    embed = DiscordNotifier(_config()).build_slash_embed(
        SlashNotification(
            title="Scam",
            description="Details",
            reviewer_tier="reputable",
            target_username="bob",
            requester_username="alice",
        )
    )

    assert _field(embed, "Requested By")["value"] == "@alice"
    assert embed["title"] == "New Slash Request"


@pytest.mark.asyncio
async def test_disabled_notifier_does_no_io() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    notifier = DiscordNotifier(_config(enabled=False), transport=httpx.MockTransport(handler))

    assert await notifier.notify_review(_review()) is False


@pytest.mark.asyncio
async def test_posts_embed_to_webhook() -> None:
    captured: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == WEBHOOK
        captured.append(json.loads(request.content))
        return httpx.Response(204)

    notifier = DiscordNotifier(_config(), transport=httpx.MockTransport(handler))

    assert await notifier.send_test() is True
    await notifier.close()
    assert captured[0]["embeds"][0]["title"] == "New Positive Anonymous Review"


@pytest.mark.asyncio
async def test_failures_are_swallowed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    notifier = DiscordNotifier(_config(), transport=httpx.MockTransport(handler))

    assert await notifier.notify_review(_review()) is False


@pytest.mark.asyncio
async def test_webhook_error_status_returns_false() -> None:
    notifier = DiscordNotifier(_config(), transport=httpx.MockTransport(lambda r: httpx.Response(400, text="bad")))

    assert await notifier.notify_review(_review()) is False
