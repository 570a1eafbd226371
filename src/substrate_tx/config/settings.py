"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``SUBSTRATE_TX_``, nested via ``__``)
2. YAML config file (``SUBSTRATE_TX_CONFIG_PATH`` env var or ``from_yaml``)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class Network(enum.StrEnum):
    """Built-in network presets."""

    POLKADOT = "polkadot"
    WESTEND = "westend"


class CryptoType(enum.StrEnum):
    """Keypair signature scheme."""

    SR25519 = "sr25519"
    ED25519 = "ed25519"


@dataclass(frozen=True)
class NetworkPreset:
    """Endpoint and address format for a known network."""

    url: str
    ss58_format: int
    token_symbol: str


NETWORK_PRESETS: dict[Network, NetworkPreset] = {
    Network.POLKADOT: NetworkPreset(url="wss://rpc.polkadot.io", ss58_format=0, token_symbol="DOT"),
    Network.WESTEND: NetworkPreset(
        url="wss://westend-rpc.polkadot.io", ss58_format=42, token_symbol="WND"
    ),
}


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ChainConfig(BaseSettings):
    """Connection settings for the Substrate node."""

    model_config = SettingsConfigDict(
        env_prefix="SUBSTRATE_TX_CHAIN__",
        case_sensitive=False,
    )

    network: Network = Field(
        default=Network.WESTEND,
        description="Network preset: polkadot or westend",
    )
    url: str = Field(default="", description="WebSocket endpoint; overrides the preset")
    ss58_format: int | None = None
    crypto_type: CryptoType = CryptoType.SR25519
    type_registry_preset: str = ""
    decimals: int = Field(default=12, ge=0, le=30)
    token_symbol: str = ""

    @property
    def preset(self) -> NetworkPreset:
        return NETWORK_PRESETS[self.network]

    @property
    def resolved_url(self) -> str:
        """Endpoint URL, falling back to the network preset."""
        return self.url or self.preset.url

    @property
    def resolved_ss58_format(self) -> int:
        return self.ss58_format if self.ss58_format is not None else self.preset.ss58_format

    @property
    def resolved_token_symbol(self) -> str:
        return self.token_symbol or self.preset.token_symbol


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="SUBSTRATE_TX_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = False
    port: int = 9090


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``SUBSTRATE_TX_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUBSTRATE_TX_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    log_level: str = "INFO"
    config_path: str = ""

    chain: ChainConfig = Field(default_factory=ChainConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                merged = {**val, **values[key]}
                values[key] = merged
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level.upper()
