"""Tests for review transaction construction and submission."""

import json
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from web3.exceptions import MismatchedABI, Web3Exception

from anon_reviews.services.blockchain import (
    ZERO_ADDRESS,
    AddressSubject,
    AttestationSubject,
    BlockchainConfig,
    BlockchainSubmissionError,
    ConfigurationError,
    ReviewContractClient,
    ReviewSubmission,
    Sentiment,
    build_anonymous_disclaimer,
    build_review_metadata,
    extract_review_id,
)

CONTRACT = "0x6D3A8Fd5cF89f9a429BFaDFd970968F646AFF325"
OTHER_CONTRACT = "0x1111111111111111111111111111111111111111"
TX_HASH = "0x" + "cd" * 32


def _config(**overrides) -> BlockchainConfig:
    values = {
        "network": "testnet",
        "rpc_url": "http://rpc.test",
        "private_key": "0x" + "11" * 32,
        "contract_address": CONTRACT,
        "chain_id": 84532,
        "confirmations": 3,
        "receipt_timeout_seconds": 5,
        "poll_interval_seconds": 0,
    }
    values.update(overrides)
    return BlockchainConfig(**values)


def _submission() -> ReviewSubmission:
    return ReviewSubmission(
        score=Sentiment.POSITIVE.score,
        subject=AttestationSubject(account="555111"),
        comment="Great",
        metadata="{}",
    )


class FakeEth:
    """Minimal async `eth` namespace with a scripted block height."""

    def __init__(self, receipt: dict, heights: list[int]) -> None:
        self.wait_for_transaction_receipt = AsyncMock(return_value=receipt)
        self._heights = iter(heights)

    @property
    def block_number(self):
        async def _height() -> int:
            return next(self._heights)

        return _height()


def test_sentiment_scores() -> None:
    assert [s.score for s in (Sentiment.NEGATIVE, Sentiment.NEUTRAL, Sentiment.POSITIVE)] == [0, 1, 2]


def test_attestation_subject_sends_zero_address() -> None:
    args = _submission().contract_arguments()

    assert args == (2, ZERO_ADDRESS, ZERO_ADDRESS, "Great", "{}", ("555111", "x.com"))


def test_address_subject_sends_empty_attestation() -> None:
    submission = ReviewSubmission(
        score=1,
        subject=AddressSubject(address=OTHER_CONTRACT),
        comment="ok",
        metadata="{}",
    )

    score, subject, payment_token, _, _, attestation = submission.contract_arguments()

    assert score == 1
    assert subject == OTHER_CONTRACT
    assert payment_token == ZERO_ADDRESS
    assert attestation == ("", "")


@pytest.mark.parametrize("account", ["bob", "@bob", "", "12a"])
def test_attestation_subject_requires_numeric_account(account: str) -> None:
    with pytest.raises(ValueError):
        AttestationSubject(account=account)


def test_address_subject_rejects_zero_address() -> None:
    with pytest.raises(ValueError):
        AddressSubject(address=ZERO_ADDRESS)


def test_submission_rejects_out_of_range_score() -> None:
    with pytest.raises(ValueError):
        ReviewSubmission(score=3, subject=AttestationSubject(account="1"), comment="", metadata="")


def test_disclaimer_names_tier_and_domain() -> None:
    assert build_anonymous_disclaimer("Exemplary", "anon.ethos.network") == (
        "_This review was left anonymously by a **exemplary** Ethos user via anon.ethos.network_\n\n"
    )


def test_metadata_prefixes_disclaimer_and_tags_source() -> None:
    metadata = json.loads(build_review_metadata("Solid.", tier="reputable", service_domain="anon.test"))

    assert metadata["description"].startswith("_This review was left anonymously by a **reputable**")
    assert metadata["description"].endswith("_\n\nSolid.")
    assert metadata["source"] == "anon.test"


class TestExtractReviewId:
    def test_reads_id_from_matching_log(self) -> None:
        event = MagicMock()
        event.process_log.return_value = {"event": "ReviewCreated", "args": {"reviewId": 77}}
        logs = [{"address": CONTRACT.lower(), "topics": []}]

        assert extract_review_id(event, logs, CONTRACT) == 77

    def test_skips_logs_from_other_contracts(self) -> None:
        event = MagicMock()
        logs = [{"address": OTHER_CONTRACT, "topics": []}]

        assert extract_review_id(event, logs, CONTRACT) is None
        event.process_log.assert_not_called()

    def test_skips_undecodable_logs(self) -> None:
        event = MagicMock()
        event.process_log.side_effect = [
            MismatchedABI("not ours"),
            {"event": "ReviewCreated", "args": {"reviewId": 5}},
        ]
        logs = [{"address": CONTRACT}, {"address": CONTRACT}]

        assert extract_review_id(event, logs, CONTRACT) == 5

    def test_no_logs_means_no_id(self) -> None:
        assert extract_review_id(MagicMock(), [], CONTRACT) is None


class TestReviewContractClient:
    @pytest.mark.asyncio
    async def test_missing_key_is_a_configuration_error(self) -> None:
        client = ReviewContractClient(_config(private_key=""), web3=MagicMock())

        with pytest.raises(ConfigurationError):
            await client.submit_review(_submission())

    @pytest.mark.asyncio
    async def test_invalid_contract_address_is_a_configuration_error(self) -> None:
        client = ReviewContractClient(_config(contract_address="0x123"), web3=MagicMock())

        with pytest.raises(ConfigurationError):
            await client.submit_review(_submission())

    @pytest.mark.asyncio
    async def test_submit_returns_hash_and_review_id(self, mocker) -> None:
        web3 = MagicMock()
        event = web3.eth.contract.return_value.events.ReviewCreated.return_value
        event.process_log.return_value = {"event": "ReviewCreated", "args": {"reviewId": 77}}
        client = ReviewContractClient(_config(), web3=web3)
        send = mocker.patch.object(client, "_send_transaction", AsyncMock(return_value=TX_HASH))
        mocker.patch.object(
            client,
            "_wait_for_confirmations",
            AsyncMock(return_value={"status": 1, "logs": [{"address": CONTRACT}]}),
        )

        result = await client.submit_review(_submission())

        assert result.transaction_hash == TX_HASH
        assert result.review_id == 77
        send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_submit_without_event_has_no_review_id(self, mocker) -> None:
        client = ReviewContractClient(_config(), web3=MagicMock())
        mocker.patch.object(client, "_send_transaction", AsyncMock(return_value=TX_HASH))
        mocker.patch.object(
            client,
            "_wait_for_confirmations",
            AsyncMock(return_value={"status": 1, "logs": []}),
        )

        result = await client.submit_review(_submission())

        assert result.transaction_hash == TX_HASH
        assert result.review_id is None

    @pytest.mark.asyncio
    async def test_send_failure_is_wrapped_and_not_retried(self, mocker) -> None:
        client = ReviewContractClient(_config(), web3=MagicMock())
        send = mocker.patch.object(
            client,
            "_send_transaction",
            AsyncMock(side_effect=Web3Exception("insufficient funds")),
        )

        with pytest.raises(BlockchainSubmissionError, match="insufficient funds"):
            await client.submit_review(_submission())
        assert send.await_count == 1

    @pytest.mark.asyncio
    async def test_rpc_http_error_is_wrapped(self, mocker) -> None:
        client = ReviewContractClient(_config(), web3=MagicMock())
        error = aiohttp.ClientResponseError(
            request_info=MagicMock(),
            history=(),
            status=429,
            message="Too Many Requests",
        )
        send = mocker.patch.object(client, "_send_transaction", AsyncMock(side_effect=error))

        with pytest.raises(BlockchainSubmissionError, match="Too Many Requests"):
            await client.submit_review(_submission())
        assert send.await_count == 1

    @pytest.mark.asyncio
    async def test_rpc_connection_error_is_wrapped(self, mocker) -> None:
        client = ReviewContractClient(_config(), web3=MagicMock())
        mocker.patch.object(
            client,
            "_send_transaction",
            AsyncMock(side_effect=aiohttp.ClientConnectionError("connection reset")),
        )

        with pytest.raises(BlockchainSubmissionError, match="connection reset"):
            await client.submit_review(_submission())

    @pytest.mark.asyncio
    async def test_waits_for_confirmations(self) -> None:
        web3 = MagicMock()
        web3.eth = FakeEth({"status": 1, "blockNumber": 100, "logs": []}, heights=[100, 101, 102])
        client = ReviewContractClient(_config(confirmations=3), web3=web3)

        receipt = await client._wait_for_confirmations(TX_HASH)

        assert receipt["blockNumber"] == 100
        web3.eth.wait_for_transaction_receipt.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reverted_transaction_raises(self) -> None:
        web3 = MagicMock()
        web3.eth = FakeEth({"status": 0, "blockNumber": 100}, heights=[])
        client = ReviewContractClient(_config(), web3=web3)

        with pytest.raises(BlockchainSubmissionError, match="reverted"):
            await client._wait_for_confirmations(TX_HASH)
