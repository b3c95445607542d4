# tests/v1/test_agent.py
"""Endpoint tests for the public agent stats."""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from anon_reviews.core.settings import settings
from anon_reviews.services.ethos import EthosAPIError

URL = "/api/v1/agent/stats"


def test_stats_are_public_and_cacheable(client: TestClient, ethos: AsyncMock) -> None:
    ethos.lookup_x_users.return_value = [
        {
            "username": "kairosAgent",
            "displayName": "Kairos",
            "score": 1850,
            "stats": {"review": {"received": {"positive": 3}}, "vouch": {"received": {"count": 2}}},
        }
    ]

    response = client.get(URL)

    assert response.status_code == 200
    assert response.headers["cache-control"] == "public, max-age=300"
    body = response.json()
    assert body["score"] == 1850
    assert body["review_count"] == 3
    assert body["vouch_count"] == 2
    ethos.lookup_x_users.assert_awaited_once_with([settings.agent_x_username])


def test_stats_fall_back_when_ethos_is_down(client: TestClient, ethos: AsyncMock) -> None:
    ethos.lookup_x_users.side_effect = EthosAPIError("down")

    response = client.get(URL)

    assert response.status_code == 200
    assert response.headers["cache-control"] == "public, max-age=300"
    assert response.json()["score"] == 1337
