"""Tests for the Ethos reputation oracle client."""

import json
from collections.abc import Callable

import httpx
import pytest

from anon_reviews.services.ethos import (
    AccountResolutionError,
    EthosAPIError,
    EthosClient,
    EthosConfig,
)

BASE_URL = "https://ethos.test"


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> EthosClient:
    return EthosClient(
        EthosConfig(base_url=BASE_URL, timeout_seconds=5),
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_get_user_by_x_parses_profile() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v2/users/by/x/alice"
        return httpx.Response(
            200,
            json={"id": 7, "profileId": 70, "username": "alice", "displayName": "Alice", "score": 1850},
        )

    client = _client(handler)
    profile = await client.get_user_by_x("alice")
    await client.close()

    assert profile is not None
    assert profile.score == 1850
    assert profile.profile_id == 70


@pytest.mark.asyncio
async def test_get_user_by_x_accepts_wrapped_record() -> None:
    client = _client(lambda request: httpx.Response(200, json={"data": {"id": 7, "score": 1600}}))

    profile = await client.get_user_by_x("alice")

    assert profile is not None
    assert profile.score == 1600


@pytest.mark.asyncio
async def test_get_user_by_x_returns_none_when_unknown() -> None:
    client = _client(lambda request: httpx.Response(404, json={"error": "not found"}))

    assert await client.get_user_by_x("ghost") is None


@pytest.mark.asyncio
async def test_get_user_by_x_raises_on_server_error() -> None:
    client = _client(lambda request: httpx.Response(503))

    with pytest.raises(EthosAPIError):
        await client.get_user_by_x("alice")


@pytest.mark.asyncio
async def test_get_user_by_x_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(EthosAPIError):
        await _client(handler).get_user_by_x("alice")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "record",
    [
        {"id": None, "username": "bob", "score": 1700},
        {"id": 7, "username": "bob", "score": "n/a"},
        {"id": [7], "username": "bob", "score": 1700},
    ],
)
async def test_get_user_by_x_rejects_malformed_record(record: dict) -> None:
    client = _client(lambda request: httpx.Response(200, json=record))

    with pytest.raises(EthosAPIError, match="malformed user record"):
        await client.get_user_by_x("bob")
    await client.close()


@pytest.mark.asyncio
async def test_resolve_uses_userkeys_first() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(
            200,
            json=[{"userkeys": ["profileId:70", "service:x.com:555111"]}],
        )

    account_id = await _client(handler).resolve_x_account_id("bob")

    assert account_id == "555111"
    assert seen == ["/api/v2/users/by/x"]


@pytest.mark.asyncio
async def test_resolve_falls_back_to_twitter_lookup() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v2/users/by/x":
            return httpx.Response(200, json=[{"userkeys": ["profileId:70"]}])
        assert request.url.params["username"] == "bob"
        return httpx.Response(200, json={"ok": True, "data": {"id": "987654"}})

    report = await _client(handler).explain_x_account_resolution("bob")

    assert report.success
    assert report.account_id == "987654"
    assert report.strategy == "twitter_api"
    assert report.attempts["userkeys"] == "No X.com service key found in userkeys"


@pytest.mark.asyncio
async def test_resolve_rejects_non_numeric_ids() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v2/users/by/x":
            return httpx.Response(200, json=[{"userkeys": ["service:x.com:bob"]}])
        return httpx.Response(200, json={"ok": True, "data": {"id": "bob"}})

    with pytest.raises(AccountResolutionError):
        await _client(handler).resolve_x_account_id("bob")


@pytest.mark.asyncio
async def test_resolve_fails_closed_with_reasons() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v2/users/by/x":
            return httpx.Response(500)
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(AccountResolutionError) as exc_info:
        await _client(handler).resolve_x_account_id("bob")

    err = exc_info.value
    assert err.username == "bob"
    assert err.reasons["userkeys"] == "Ethos API request failed: 500"
    assert "Ethos request failed" in err.reasons["twitter_api"]
    assert "link their X account" in str(err)


@pytest.mark.asyncio
async def test_lookup_x_users_posts_batch() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert json.loads(request.content) == {"accountIdsOrUsernames": ["kairosAgent", "bob"]}
        return httpx.Response(200, json=[{"username": "kairosAgent"}, "junk"])

    users = await _client(handler).lookup_x_users(["kairosAgent", "bob"])

    assert users == [{"username": "kairosAgent"}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [httpx.Response(502), httpx.Response(200, json={"error": "unexpected"})],
)
async def test_lookup_x_users_raises_on_bad_answer(response: httpx.Response) -> None:
    with pytest.raises(EthosAPIError):
        await _client(lambda request: response).lookup_x_users(["bob"])
