"""Configuration — pydantic-settings models."""

from substrate_tx.config.settings import AppConfig, ChainConfig, MetricsConfig, Network

__all__ = ["AppConfig", "ChainConfig", "MetricsConfig", "Network"]
