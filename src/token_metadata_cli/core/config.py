"""Runtime configuration for token metadata commands."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import quote

from pydantic import BaseModel, ValidationError, field_validator

from token_metadata_cli.errors import TokenMetadataError
from token_metadata_cli.solana.constants import DEFAULT_COMMITMENT, DEFAULT_KEYPAIR_PATH, DEFAULT_RPC_URL

KEYPAIR_ENV = "TOKEN_METADATA_KEYPAIR"
RPC_URL_ENV = "TOKEN_METADATA_RPC_URL"
VALID_COMMITMENTS = {"processed", "confirmed", "finalized"}

# config file key -> CliConfig field
_FILE_KEYS = {
    "keypair": "keypair_path",
    "url": "rpc_url",
    "commitment": "commitment",
    "timeout": "timeout",
}


class ConfigurationError(TokenMetadataError):
    """Raised when configuration loading fails."""


class CliConfig(BaseModel):
    """Settings for one invocation, passed explicitly to the dispatcher."""

    keypair_path: str = DEFAULT_KEYPAIR_PATH
    rpc_url: str = DEFAULT_RPC_URL
    commitment: str = DEFAULT_COMMITMENT
    timeout: float = 30.0

    @field_validator("commitment")
    @classmethod
    def _check_commitment(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in VALID_COMMITMENTS:
            raise ValueError(f"commitment must be one of {sorted(VALID_COMMITMENTS)}")
        return normalized

    @field_validator("timeout")
    @classmethod
    def _check_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @field_validator("rpc_url")
    @classmethod
    def _check_rpc_url(cls, value: str) -> str:
        text = value.strip()
        if not text.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return text

    @property
    def cluster(self) -> str | None:
        """Explorer cluster name inferred from the RPC URL."""
        lowered = self.rpc_url.lower()
        for name in ("devnet", "testnet"):
            if name in lowered:
                return name
        if "mainnet" in lowered:
            return None
        return "custom"

    def explorer_url(self, signature: str) -> str:
        base = f"https://explorer.solana.com/tx/{signature}"
        cluster = self.cluster
        if cluster is None:
            return base
        if cluster == "custom":
            return f"{base}?cluster=custom&customUrl={quote(self.rpc_url, safe='')}"
        return f"{base}?cluster={cluster}"


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        raw = tomllib.loads(path.read_text())
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Config file not found: {path}") from exc
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Unable to read config file {path}: {exc}") from exc
    unknown = sorted(set(raw) - set(_FILE_KEYS))
    if unknown:
        raise ConfigurationError(f"Unknown keys in {path}: {', '.join(unknown)}")
    return {_FILE_KEYS[key]: value for key, value in raw.items()}


def load_config(
    *,
    config_file: Path | None = None,
    keypair: str | None = None,
    url: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> CliConfig:
    """Resolve settings with precedence flag > environment > file > defaults."""
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    if config_file is not None:
        values.update(_read_config_file(config_file.expanduser()))
    if env.get(KEYPAIR_ENV):
        values["keypair_path"] = env[KEYPAIR_ENV]
    if env.get(RPC_URL_ENV):
        values["rpc_url"] = env[RPC_URL_ENV]
    if keypair:
        values["keypair_path"] = keypair
    if url:
        values["rpc_url"] = url
    try:
        return CliConfig(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


__all__ = ["CliConfig", "ConfigurationError", "load_config", "KEYPAIR_ENV", "RPC_URL_ENV"]
