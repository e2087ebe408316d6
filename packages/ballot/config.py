"""Ledger configuration.

Credentials and network selection are gathered into one ``LedgerConfig``
validated at construction; the ledger client and submitter receive it
explicitly instead of reading the environment themselves.
"""

import os
import re
from typing import Mapping, NamedTuple, Optional

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from .errors import ConfigError

PRIVATE_KEY_RE = re.compile(r"(0x)?[0-9a-fA-F]{64}")


class Network(NamedTuple):
    chain_id: int
    alchemy_host: str
    currency: str
    explorer: str


NETWORKS = {
    "sepolia": Network(11155111, "eth-sepolia", "SepoliaETH", "https://sepolia.etherscan.io"),
    "holesky": Network(17000, "eth-holesky", "HoleskyETH", "https://holesky.etherscan.io"),
    "mainnet": Network(1, "eth-mainnet", "ETH", "https://etherscan.io"),
}


class LedgerConfig(BaseModel):
    api_key: SecretStr
    private_key: SecretStr
    network_id: str = "sepolia"
    rpc_url: Optional[str] = None
    confirmation_timeout: float = Field(120.0, gt=0)
    poll_interval: float = Field(2.0, gt=0)
    poll_backoff: float = Field(1.5, ge=1.0)
    max_poll_interval: float = Field(15.0, gt=0)
    request_timeout: float = Field(30.0, gt=0)

    class Config:
        frozen = True

    @field_validator("api_key")
    @classmethod
    def _api_key_present(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("api_key must not be empty")
        return value

    @field_validator("private_key")
    @classmethod
    def _normalize_private_key(cls, value: SecretStr) -> SecretStr:
        key = value.get_secret_value().strip()
        if not PRIVATE_KEY_RE.fullmatch(key):
            raise ValueError("private_key must be 64 hex digits, optionally 0x-prefixed")
        if not key.startswith("0x"):
            key = "0x" + key
        return SecretStr(key)

    @field_validator("network_id")
    @classmethod
    def _known_network(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in NETWORKS:
            raise ValueError(f"unknown network {value!r}; expected one of {', '.join(sorted(NETWORKS))}")
        return value

    @property
    def network(self) -> Network:
        return NETWORKS[self.network_id]

    @property
    def chain_id(self) -> int:
        return self.network.chain_id

    @property
    def provider_url(self) -> str:
        if self.rpc_url:
            return self.rpc_url
        return f"https://{self.network.alchemy_host}.g.alchemy.com/v2/{self.api_key.get_secret_value()}"

    def explorer_tx_url(self, tx_hash: str) -> str:
        return f"{self.network.explorer}/tx/{tx_hash}"

    def explorer_address_url(self, address: str) -> str:
        return f"{self.network.explorer}/address/{address}"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "LedgerConfig":
        """Build a config from ALCHEMY_API_KEY, PRIVATE_KEY, NETWORK_ID and friends."""
        env = os.environ if env is None else env
        values = {
            "api_key": env.get("ALCHEMY_API_KEY", ""),
            "private_key": env.get("PRIVATE_KEY", ""),
            "network_id": env.get("NETWORK_ID") or "sepolia",
            "rpc_url": env.get("EVM_RPC") or None,
        }
        if env.get("CONFIRMATION_TIMEOUT"):
            values["confirmation_timeout"] = env["CONFIRMATION_TIMEOUT"]
        if env.get("POLL_INTERVAL"):
            values["poll_interval"] = env["POLL_INTERVAL"]
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**values)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise ConfigError(f"Invalid ledger configuration: {problems}") from exc
