"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

import re
from decimal import Decimal, InvalidOperation

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.constants import (
    AVALANCHE_FUJI_CHAIN_ID,
    AVALANCHE_FUJI_RPC_URL,
    AVALANCHE_FUJI_WS_URL,
    BRIDGE_ATTESTATION_POLL_INTERVAL,
    BRIDGE_ATTESTATION_TIMEOUT,
    FUJI_CORE_BRIDGE_ADDRESS,
    FUJI_TOKEN_BRIDGE_ADDRESS,
    MONAD_TESTNET_CHAIN_ID,
    MONITOR_DEFAULT_BRIDGE_AMOUNT,
    MONITOR_DEFAULT_MIN_INCREASE,
    MONITOR_MAX_RECONNECT_ATTEMPTS,
    MONITOR_RECONNECT_INTERVAL,
    RPC_TIMEOUT,
    SHUTDOWN_BRIDGE_TIMEOUT,
    WORMHOLE_CHAIN_AVALANCHE,
    WORMHOLE_CHAIN_MONAD,
    WORMHOLESCAN_TESTNET_API,
)


def split_urls(raw: str | None) -> list[str]:
    """
    Parse comma-separated URL list.

    Empty entries are dropped and duplicates removed, keeping first occurrence.

    Args:
        raw: Comma-separated string

    Returns:
        Ordered list of unique URLs
    """
    if not raw:
        return []

    result: list[str] = []
    for url in raw.split(","):
        url_stripped = url.strip()
        if url_stripped and url_stripped not in result:
            result.append(url_stripped)
    return result


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Destination chain RPC providers (comma-separated, in failover order)
    rpc_urls: str = ""
    rpc_timeout: float = Field(
        default=RPC_TIMEOUT, gt=0, description="Per-endpoint attempt timeout in seconds"
    )
    chain_id: int = Field(default=MONAD_TESTNET_CHAIN_ID, gt=0)
    chain_name: str = "Monad"

    # Monitored (source) chain
    monitor_enabled: bool = False
    monitor_chain: str = "Avalanche"
    monitor_chain_id: int = Field(default=AVALANCHE_FUJI_CHAIN_ID, gt=0)
    monitor_rpc_urls: str = AVALANCHE_FUJI_RPC_URL
    monitor_ws_urls: str = AVALANCHE_FUJI_WS_URL
    monitor_min_increase: Decimal = Field(
        default=Decimal(MONITOR_DEFAULT_MIN_INCREASE),
        ge=0,
        description="Minimum balance increase (native units) that triggers a bridge",
    )
    monitor_bridge_amount: str = Field(
        default=MONITOR_DEFAULT_BRIDGE_AMOUNT,
        description="Fixed amount to bridge, or percentage of the increase (e.g. '50%')",
    )
    monitor_reconnect_interval: float = Field(
        default=MONITOR_RECONNECT_INTERVAL, gt=0, description="Reconnect backoff in seconds"
    )
    monitor_max_reconnect_attempts: int = Field(
        default=MONITOR_MAX_RECONNECT_ATTEMPTS, ge=0
    )
    monitor_private_key: str | None = None
    monitor_user_id: int = 1

    # Bridge (Wormhole token bridge, testnet defaults)
    bridge_source_token_bridge: str = FUJI_TOKEN_BRIDGE_ADDRESS
    bridge_source_core_bridge: str = FUJI_CORE_BRIDGE_ADDRESS
    bridge_destination_token_bridge: str | None = None
    bridge_source_wormhole_chain: int = WORMHOLE_CHAIN_AVALANCHE
    bridge_destination_wormhole_chain: int = WORMHOLE_CHAIN_MONAD
    bridge_attestation_api: str = WORMHOLESCAN_TESTNET_API
    bridge_attestation_timeout: float = Field(default=BRIDGE_ATTESTATION_TIMEOUT, gt=0)
    bridge_attestation_poll_interval: float = Field(
        default=BRIDGE_ATTESTATION_POLL_INTERVAL, gt=0
    )
    shutdown_bridge_timeout: float = Field(
        default=SHUTDOWN_BRIDGE_TIMEOUT,
        ge=0,
        description="Seconds to let in-flight bridges finish on shutdown",
    )

    # Telegram (outcome notifications only)
    telegram_bot_token: str | None = None

    # Redis (wallet key store)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Security
    encryption_key: str | None = None

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("monitor_bridge_amount")
    @classmethod
    def validate_bridge_amount(cls, v: str) -> str:
        """Validate bridge amount is a positive number or a percentage."""
        value = v.strip()
        raw = value[:-1] if value.endswith("%") else value
        try:
            amount = Decimal(raw)
        except InvalidOperation:
            raise ValueError(
                "MONITOR_BRIDGE_AMOUNT must be a positive amount or a percentage like '50%'"
            ) from None
        if amount <= 0 or (value.endswith("%") and amount > 100):
            raise ValueError(
                "MONITOR_BRIDGE_AMOUNT must be a positive amount or a percentage in (0, 100]"
            )
        return value

    @field_validator("monitor_private_key")
    @classmethod
    def validate_private_key(cls, v: str | None) -> str | None:
        """Validate private key format (32 bytes hex, optional 0x prefix)."""
        if v is None or not v.strip():
            return None
        if not re.match(r"^(0x)?[0-9a-fA-F]{64}$", v.strip()):
            raise ValueError("MONITOR_PRIVATE_KEY must be a 32-byte hex string")
        return v.strip()

    @field_validator("rpc_urls", "monitor_rpc_urls")
    @classmethod
    def validate_http_urls(cls, v: str) -> str:
        """Validate HTTP endpoint schemes."""
        for url in split_urls(v):
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"RPC endpoint must be http(s): {url[:24]}...")
        return v

    @field_validator("monitor_ws_urls")
    @classmethod
    def validate_ws_urls(cls, v: str) -> str:
        """Validate WebSocket endpoint schemes."""
        for url in split_urls(v):
            if not url.startswith(("ws://", "wss://")):
                raise ValueError(f"WebSocket endpoint must be ws(s): {url[:24]}...")
        return v

    @model_validator(mode="after")
    def validate_required_in_production(self) -> "Settings":
        """Validate required fields in production environment."""
        if self.environment == "production":
            if not self.get_rpc_urls():
                raise ValueError(
                    "RPC_URLS is required in production. "
                    "Set at least one HTTP endpoint in .env file."
                )
            if not self.encryption_key:
                raise ValueError(
                    "ENCRYPTION_KEY is required in production environment. "
                    "Generate a key with: python -c 'from cryptography.fernet import Fernet; "
                    "print(Fernet.generate_key().decode())'"
                )
            if self.monitor_enabled and not self.monitor_private_key:
                raise ValueError(
                    "MONITOR_PRIVATE_KEY is required when MONITOR_ENABLED=true."
                )
        elif self.monitor_enabled and not self.monitor_private_key:
            logger.warning(
                "MONITOR_ENABLED is set but MONITOR_PRIVATE_KEY is empty. "
                "Single-address monitoring will not start."
            )
        return self

    def get_rpc_urls(self) -> list[str]:
        """Destination chain HTTP endpoints in failover order."""
        return split_urls(self.rpc_urls)

    def get_monitor_rpc_urls(self) -> list[str]:
        """Monitored chain HTTP endpoints in failover order."""
        return split_urls(self.monitor_rpc_urls)

    def get_monitor_ws_urls(self) -> list[str]:
        """Monitored chain WebSocket endpoints."""
        return split_urls(self.monitor_ws_urls)


# Global settings instance
settings = Settings()
