"""Metrics — Prometheus metrics collection and exposure."""

from __future__ import annotations

from substrate_tx.metrics.collector import MetricsCollector, TxMetrics

__all__ = ["MetricsCollector", "TxMetrics"]
