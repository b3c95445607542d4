"""Application settings and configuration.

This module defines all configuration options for the anonymous review service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MAINNET_CHAIN_ID = 8453  # Base
TESTNET_CHAIN_ID = 84532  # Base Sepolia


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files. Only
    `SESSION_SECRET` is mandatory; a missing signing key or contract address is
    reported at startup and rejected at submission time.
    """

    # Application metadata
    app_name: str = Field(default="Ethos Anonymous Reviews", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Session and cookie handling
    session_secret: str = Field(alias="SESSION_SECRET")
    session_cookie_name: str = Field(default="twitter_session", alias="SESSION_COOKIE_NAME")
    cookie_secure: bool = Field(default=True, alias="COOKIE_SECURE")
    oauth_state_ttl_seconds: int = Field(default=600, alias="OAUTH_STATE_TTL_SECONDS")

    # Request origin gate (also used for CORS)
    allowed_origins: list[str] = Field(
        default=[
            "http://localhost:8000",
            "http://localhost:8001",
            "http://localhost:3000",
            "https://anon.ethos.network",
            "https://ethos-anon-reviews.deno.dev",
        ],
        alias="ALLOWED_ORIGINS",
    )
    service_domain: str = Field(default="anon.ethos.network", alias="SERVICE_DOMAIN")

    # Blockchain configuration
    blockchain_network: Literal["mainnet", "testnet"] = Field(
        default="testnet",
        alias="BLOCKCHAIN_NETWORK",
    )
    mainnet_rpc_url: str = Field(default="https://mainnet.base.org", alias="MAINNET_RPC_URL")
    mainnet_private_key: str = Field(default="", alias="MAINNET_PRIVATE_KEY")
    mainnet_contract_address: str = Field(
        default="0x6D3A8Fd5cF89f9a429BFaDFd970968F646AFF325",
        alias="MAINNET_CONTRACT_ADDRESS",
    )
    testnet_rpc_url: str = Field(default="https://sepolia.base.org", alias="TESTNET_RPC_URL")
    testnet_private_key: str = Field(default="", alias="TESTNET_PRIVATE_KEY")
    testnet_contract_address: str = Field(default="", alias="TESTNET_CONTRACT_ADDRESS")
    blockchain_confirmations: int = Field(default=3, ge=1, alias="BLOCKCHAIN_CONFIRMATIONS")
    blockchain_receipt_timeout_seconds: float = Field(
        default=300.0,
        alias="BLOCKCHAIN_RECEIPT_TIMEOUT_SECONDS",
    )
    blockchain_poll_interval_seconds: float = Field(
        default=2.0,
        alias="BLOCKCHAIN_POLL_INTERVAL_SECONDS",
    )

    # Ethos reputation oracle
    ethos_api_base_url: str = Field(default="https://api.ethos.network", alias="ETHOS_API_BASE_URL")
    ethos_app_base_url: str = Field(default="https://app.ethos.network", alias="ETHOS_APP_BASE_URL")
    ethos_http_timeout_seconds: float = Field(default=10.0, alias="ETHOS_HTTP_TIMEOUT_SECONDS")
    agent_x_username: str = Field(default="kairosAgent", alias="AGENT_X_USERNAME")

    # X (Twitter) OAuth 2.0 identity provider
    twitter_client_id: str = Field(default="", alias="TWITTER_CLIENT_ID")
    twitter_client_secret: str = Field(default="", alias="TWITTER_CLIENT_SECRET")
    twitter_redirect_uri: str = Field(
        default="http://localhost:8000/api/v1/auth/twitter/callback",
        alias="TWITTER_REDIRECT_URI",
    )

    # Discord notifications
    discord_notifications_enabled: bool = Field(
        default=False,
        alias="ENABLE_DISCORD_NOTIFICATIONS",
    )
    discord_webhook_url: str | None = Field(default=None, alias="DISCORD_WEBHOOK_URL")

    # Anti-abuse guards
    review_rate_limit_max: int = Field(default=3, alias="REVIEW_RATE_LIMIT_MAX")
    review_rate_limit_window_seconds: int = Field(
        default=300,
        alias="REVIEW_RATE_LIMIT_WINDOW_SECONDS",
    )
    slash_rate_limit_max: int = Field(default=3, alias="SLASH_RATE_LIMIT_MAX")
    slash_rate_limit_window_seconds: int = Field(
        default=3600,
        alias="SLASH_RATE_LIMIT_WINDOW_SECONDS",
    )
    guard_ttl_seconds: int = Field(default=3600, alias="GUARD_TTL_SECONDS")
    guard_redis_url: str | None = Field(default=None, alias="GUARD_REDIS_URL")

    # Privacy-aware logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    disable_all_logs: bool = Field(default=False, alias="DISABLE_ALL_LOGS")
    redact_sensitive_data: bool = Field(default=True, alias="REDACT_SENSITIVE_DATA")
    anonymization_salt: str = Field(default="default_salt", alias="ANONYMIZATION_SALT")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def is_mainnet(self) -> bool:
        """Return True when reviews are recorded on the production network."""
        return self.blockchain_network == "mainnet"

    @property
    def explorer_base_url(self) -> str:
        """Return the block explorer matching the configured network."""
        if self.is_mainnet:
            return "https://basescan.org"
        return "https://sepolia.basescan.org"


settings = Settings()  # type: ignore[call-arg]
