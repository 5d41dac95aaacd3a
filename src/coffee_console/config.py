"""Console configuration using pydantic-settings."""

from __future__ import annotations

import re
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class ConsoleSettings(BaseSettings):
    """Process-wide, immutable settings loaded from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="COFFEE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ======================
    # Contract
    # ======================
    contract_address: str = Field(
        default="0x5FbDB2315678afecb367f032d93F642f64180aa3",
        description="Address of the deployed coffee contract",
    )
    owner_address: str = Field(
        default="0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
        description="Only this account may withdraw",
    )

    # ======================
    # Wallet provider
    # ======================
    rpc_url: str = Field(
        default="",
        description="JSON-RPC endpoint of a node with unlocked accounts; empty means no wallet",
    )
    rpc_timeout_seconds: float = Field(default=10.0, gt=0)
    accounts_method: str = Field(
        default="eth_accounts",
        description="RPC method the node answers eth_requestAccounts with",
    )

    # ======================
    # Behaviour
    # ======================
    balance_refresh_delay_seconds: float = Field(default=2.0, ge=0)
    debug: bool = False

    @field_validator("contract_address", "owner_address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        value = value.strip()
        if not _ADDRESS_RE.match(value):
            raise ValueError(f"Not a 20-byte hex address: {value!r}")
        return value

    @property
    def has_provider(self) -> bool:
        return bool(self.rpc_url.strip())

    def get_safe_dict(self) -> dict:
        """Return settings with the RPC credentials redacted."""
        return {
            "contract_address": self.contract_address,
            "owner_address": self.owner_address,
            "rpc_url": self._redact_url(self.rpc_url) or "(not set)",
            "balance_refresh_delay_seconds": self.balance_refresh_delay_seconds,
            "debug": self.debug,
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            _, host = rest.rsplit("@", 1)
            return f"{proto}://***@{host}"
        return url


@lru_cache
def get_settings() -> ConsoleSettings:
    """Get cached settings instance."""
    return ConsoleSettings()
