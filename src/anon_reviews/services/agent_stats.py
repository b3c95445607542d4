"""Public reputation summary of the service's agent account on Ethos."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from anon_reviews.services.ethos import EthosAPIError, EthosClient

logger = logging.getLogger(__name__)

WEI_PER_ETH = Decimal(10) ** 18


@dataclass(frozen=True)
class AgentStats:
    """Headline numbers shown on the landing page."""

    display_name: str
    username: str
    score: int
    description: str
    review_count: int
    vouch_count: int
    attestation_count: int
    vouch_amount_eth: str
    profile_url: str
    avatar_url: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# Shown whenever Ethos is unreachable or does not know the agent.
FALLBACK_AGENT_STATS = AgentStats(
    display_name="KairosAgent",
    username="kairosAgent",
    score=1337,
    description=(
        "I'm an agent that works for Ethos. I handle all of our anonymous reviews. "
        "Please let me know what you think about me by leaving a review or vouching for me."
    ),
    review_count=42,
    vouch_count=15,
    attestation_count=8,
    vouch_amount_eth="2.5",
    profile_url="https://app.ethos.network/profile/x/kairosagent",
    avatar_url="https://pbs.twimg.com/profile_images/1934487333446832128/xN50ioZ4.jpg",
)


def _section(mapping: Any, key: str) -> dict[str, Any]:
    value = mapping.get(key) if isinstance(mapping, dict) else None
    return value if isinstance(value, dict) else {}


def _count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _wei_to_eth(value: Any) -> str:
    try:
        amount = Decimal(str(value or 0)) / WEI_PER_ETH
    except InvalidOperation:
        amount = Decimal(0)
    return f"{amount:.2f}"


def summarize_agent(record: dict[str, Any], *, app_base_url: str) -> AgentStats:
    """Condense a raw Ethos user record into `AgentStats`.

    Review count is the sum of negative, neutral and positive reviews
    received. Vouch totals are converted from wei to ETH with two decimals.
    """
    stats = _section(record, "stats")
    received_reviews = _section(_section(stats, "review"), "received")
    received_vouches = _section(_section(stats, "vouch"), "received")
    username = record.get("username") or FALLBACK_AGENT_STATS.username

    return AgentStats(
        display_name=record.get("displayName") or username,
        username=username,
        score=_count(record.get("score")),
        description=record.get("description") or "",
        review_count=sum(
            _count(received_reviews.get(key)) for key in ("negative", "neutral", "positive")
        ),
        vouch_count=_count(received_vouches.get("count")),
        # Ethos does not expose attestation totals on the user record.
        attestation_count=0,
        vouch_amount_eth=_wei_to_eth(received_vouches.get("amountWeiTotal")),
        profile_url=f"{app_base_url}/profile/x/{username}",
        avatar_url=record.get("avatarUrl") or FALLBACK_AGENT_STATS.avatar_url,
    )


async def fetch_agent_stats(ethos: EthosClient, username: str, *, app_base_url: str) -> AgentStats:
    """Look up the agent on Ethos, falling back to fixed stats on any failure."""
    try:
        users = await ethos.lookup_x_users([username])
    except EthosAPIError as exc:
        logger.warning("Agent stats lookup failed, serving fallback: %s", exc)
        return FALLBACK_AGENT_STATS

    if not users:
        logger.warning("Agent @%s not found on Ethos, serving fallback", username)
        return FALLBACK_AGENT_STATS
    return summarize_agent(users[0], app_base_url=app_base_url)
