"""On-chain review submission through the Ethos review contract.

A review transaction carries a 0-2 sentiment score, a subject, a short
comment and a JSON metadata blob. The subject is addressed either by wallet
address or by an attestation (service + canonical account id); the two modes
are exclusive, so attestation reviews always send the zero address.

Submission is a single transaction: it is sent once, awaited for the
configured number of confirmations, and any failure is surfaced to the
caller without retry because a blind resend could record the review twice.
The review id is read from the `ReviewCreated` event on a best-effort
basis; a missing event leaves `review_id` as None.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final

import aiohttp
from eth_abi.exceptions import DecodingError
from web3 import AsyncWeb3, Web3
from web3.exceptions import LogTopicError, MismatchedABI, TimeExhausted, Web3Exception

from anon_reviews.core.settings import MAINNET_CHAIN_ID, TESTNET_CHAIN_ID, settings

logger = logging.getLogger(__name__)

ZERO_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"
X_ATTESTATION_SERVICE: Final[str] = "x.com"
REVIEW_CREATED_EVENT: Final[str] = "ReviewCreated"

REVIEW_CONTRACT_ABI: Final[list[dict[str, Any]]] = [
    {
        "inputs": [
            {"internalType": "uint8", "name": "score", "type": "uint8"},
            {"internalType": "address", "name": "subject", "type": "address"},
            {"internalType": "address", "name": "paymentToken", "type": "address"},
            {"internalType": "string", "name": "comment", "type": "string"},
            {"internalType": "string", "name": "metadata", "type": "string"},
            {
                "components": [
                    {"internalType": "string", "name": "account", "type": "string"},
                    {"internalType": "string", "name": "service", "type": "string"},
                ],
                "internalType": "struct AttestationDetails",
                "name": "attestationDetails",
                "type": "tuple",
            },
        ],
        "name": "addReview",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "internalType": "uint8", "name": "score", "type": "uint8"},
            {"indexed": True, "internalType": "address", "name": "author", "type": "address"},
            {"indexed": True, "internalType": "bytes32", "name": "attestationHash", "type": "bytes32"},
            {"indexed": True, "internalType": "address", "name": "subject", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "reviewId", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "profileId", "type": "uint256"},
        ],
        "name": REVIEW_CREATED_EVENT,
        "type": "event",
    },
]


class BlockchainError(RuntimeError):
    """Base exception raised for blockchain-related failures."""


class ConfigurationError(BlockchainError):
    """Raised when the signing key or contract address is missing."""


class BlockchainSubmissionError(BlockchainError):
    """Raised when the review transaction could not be sent or confirmed."""


class Sentiment(str, Enum):
    """Review sentiment as chosen by the reviewer."""

    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"

    @property
    def score(self) -> int:
        return _SENTIMENT_SCORES[self]


_SENTIMENT_SCORES: Final[dict[Sentiment, int]] = {
    Sentiment.NEGATIVE: 0,
    Sentiment.NEUTRAL: 1,
    Sentiment.POSITIVE: 2,
}


@dataclass(frozen=True)
class AddressSubject:
    """Review subject identified by a wallet address."""

    address: str

    def __post_init__(self) -> None:
        if not Web3.is_address(self.address) or self.address == ZERO_ADDRESS:
            raise ValueError(f"Invalid subject address: {self.address!r}")


@dataclass(frozen=True)
class AttestationSubject:
    """Review subject identified by an external account attestation."""

    account: str
    service: str = X_ATTESTATION_SERVICE

    def __post_init__(self) -> None:
        if not self.account.isdigit():
            raise ValueError("Attestation account must be a canonical numeric account id")
        if not self.service:
            raise ValueError("Attestation service must not be empty")


ReviewSubject = AddressSubject | AttestationSubject


@dataclass(frozen=True)
class ReviewSubmission:
    """Fully built review transaction payload."""

    score: int
    subject: ReviewSubject
    comment: str
    metadata: str

    def __post_init__(self) -> None:
        if self.score not in _SENTIMENT_SCORES.values():
            raise ValueError(f"Score must be 0, 1 or 2, got {self.score}")

    def contract_arguments(self) -> tuple[Any, ...]:
        """Return the positional arguments of `addReview`."""
        if isinstance(self.subject, AttestationSubject):
            subject_address = ZERO_ADDRESS
            attestation = (self.subject.account, self.subject.service)
        else:
            subject_address = Web3.to_checksum_address(self.subject.address)
            attestation = ("", "")
        return (self.score, subject_address, ZERO_ADDRESS, self.comment, self.metadata, attestation)


@dataclass(frozen=True)
class ReviewSubmissionResult:
    """Outcome of a confirmed review transaction."""

    transaction_hash: str
    review_id: int | None = None


@dataclass(frozen=True)
class BlockchainConfig:
    """Immutable configuration for the review contract client."""

    network: str
    rpc_url: str
    private_key: str
    contract_address: str
    chain_id: int
    confirmations: int = 3
    receipt_timeout_seconds: float = 300.0
    poll_interval_seconds: float = 2.0

    def ensure_complete(self) -> None:
        """Raise ConfigurationError if submission cannot possibly succeed."""
        if not self.private_key:
            raise ConfigurationError("Private key not configured")
        if not self.contract_address:
            raise ConfigurationError("Contract address not configured")
        if not Web3.is_address(self.contract_address):
            raise ConfigurationError("Contract address is not a valid address")


def load_blockchain_config() -> BlockchainConfig:
    """Build configuration object from global settings."""
    if settings.is_mainnet:
        rpc_url = settings.mainnet_rpc_url
        private_key = settings.mainnet_private_key
        contract_address = settings.mainnet_contract_address
        chain_id = MAINNET_CHAIN_ID
    else:
        rpc_url = settings.testnet_rpc_url
        private_key = settings.testnet_private_key
        contract_address = settings.testnet_contract_address
        chain_id = TESTNET_CHAIN_ID
    return BlockchainConfig(
        network=settings.blockchain_network,
        rpc_url=rpc_url,
        private_key=private_key,
        contract_address=contract_address,
        chain_id=chain_id,
        confirmations=settings.blockchain_confirmations,
        receipt_timeout_seconds=settings.blockchain_receipt_timeout_seconds,
        poll_interval_seconds=settings.blockchain_poll_interval_seconds,
    )


def build_anonymous_disclaimer(tier: str, service_domain: str) -> str:
    """Return the sentence prefixed to every anonymous review description."""
    return (
        f"_This review was left anonymously by a **{tier.lower()}** Ethos user "
        f"via {service_domain}_\n\n"
    )


def build_review_metadata(description: str, *, tier: str, service_domain: str) -> str:
    """Return the metadata JSON stored alongside the review."""
    return json.dumps(
        {
            "description": build_anonymous_disclaimer(tier, service_domain) + description,
            "source": service_domain,
        }
    )


def extract_review_id(
    event: Any,
    logs: Iterable[Mapping[str, Any]],
    contract_address: str,
) -> int | None:
    """Return the review id from the first `ReviewCreated` log of our contract.

    `event` is the contract event used to decode logs. Logs emitted by other
    contracts, or that do not decode as the event, are skipped.
    """
    expected = contract_address.lower()
    for entry in logs:
        if str(entry.get("address", "")).lower() != expected:
            continue
        try:
            decoded = event.process_log(entry)
        except (MismatchedABI, LogTopicError, DecodingError, ValueError) as exc:
            logger.debug("Skipping undecodable log: %s", exc)
            continue
        if decoded["event"] == REVIEW_CREATED_EVENT:
            return int(decoded["args"]["reviewId"])
    return None


class ReviewContractClient:
    """Signs and submits `addReview` transactions."""

    def __init__(self, config: BlockchainConfig | None = None, *, web3: AsyncWeb3 | None = None) -> None:
        self.config = config or load_blockchain_config()
        self._web3 = web3

    @property
    def web3(self) -> AsyncWeb3:
        if self._web3 is None:
            self._web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self.config.rpc_url))
        return self._web3

    def _contract(self) -> Any:
        return self.web3.eth.contract(
            address=Web3.to_checksum_address(self.config.contract_address),
            abi=REVIEW_CONTRACT_ABI,
        )

    async def _send_transaction(self, submission: ReviewSubmission) -> str:
        account = self.web3.eth.account.from_key(self.config.private_key)
        contract = self._contract()
        nonce = await self.web3.eth.get_transaction_count(account.address, "pending")
        tx = await contract.functions.addReview(*submission.contract_arguments()).build_transaction(
            {"from": account.address, "nonce": nonce, "chainId": self.config.chain_id}
        )
        signed = account.sign_transaction(tx)
        tx_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def _wait_for_confirmations(self, tx_hash: str) -> Mapping[str, Any]:
        deadline = time.monotonic() + self.config.receipt_timeout_seconds
        receipt = await self.web3.eth.wait_for_transaction_receipt(
            tx_hash,
            timeout=self.config.receipt_timeout_seconds,
            poll_latency=self.config.poll_interval_seconds,
        )
        if receipt.get("status") == 0:
            raise BlockchainSubmissionError(f"Transaction {tx_hash} reverted")

        target_block = int(receipt["blockNumber"]) + self.config.confirmations - 1
        while await self.web3.eth.block_number < target_block:
            if time.monotonic() > deadline:
                raise BlockchainSubmissionError(
                    f"Timed out waiting for {self.config.confirmations} confirmations of {tx_hash}"
                )
            await asyncio.sleep(self.config.poll_interval_seconds)
        return receipt

    async def submit_review(self, submission: ReviewSubmission) -> ReviewSubmissionResult:
        """Submit one review transaction and wait for it to be confirmed.

        Raises:
            ConfigurationError: If the signing key or contract address is missing.
            BlockchainSubmissionError: If sending or confirming the transaction fails.
        """
        self.config.ensure_complete()

        logger.info(
            "Submitting review: score=%d network=%s contract=%s",
            submission.score,
            self.config.network,
            self.config.contract_address,
        )
        try:
            tx_hash = await self._send_transaction(submission)
            logger.info("Transaction %s sent, waiting for confirmation", tx_hash)
            receipt = await self._wait_for_confirmations(tx_hash)
        except BlockchainSubmissionError:
            raise
        except (Web3Exception, TimeExhausted, aiohttp.ClientError, ValueError, OSError) as exc:
            logger.error("Blockchain submission error: %s", exc)
            raise BlockchainSubmissionError(f"Failed to submit review to blockchain: {exc}") from exc

        logs = receipt.get("logs") or ()
        review_id = extract_review_id(
            self._contract().events.ReviewCreated(),
            logs,
            self.config.contract_address,
        )
        if review_id is None:
            logger.info("No %s event found in transaction %s", REVIEW_CREATED_EVENT, tx_hash)
        else:
            logger.info("Transaction %s created review %d", tx_hash, review_id)
        return ReviewSubmissionResult(transaction_hash=tx_hash, review_id=review_id)


class _ReviewContractClientSingleton:
    """Singleton wrapper for ReviewContractClient."""

    _instance: ReviewContractClient | None = None

    @classmethod
    def get_instance(cls) -> ReviewContractClient:
        if cls._instance is None:
            cls._instance = ReviewContractClient()
        return cls._instance


def get_review_contract_client() -> ReviewContractClient:
    """Return a singleton review contract client."""
    return _ReviewContractClientSingleton.get_instance()
