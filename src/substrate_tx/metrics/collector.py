"""Metrics collector — Prometheus counters and histograms for the lifecycle.

- ``substrate_tx_submissions_total`` counter-vec (outcome)
- ``substrate_tx_submission_seconds`` histogram
- ``substrate_tx_fee_estimate_seconds`` histogram
- ``substrate_tx_blocks_scanned_total`` counter
- ``substrate_tx_inclusions_total`` counter
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server

if TYPE_CHECKING:
    from collections.abc import Iterator

_PREFIX = "substrate_tx"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`TxMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)

    def serve(self, port: int) -> None:
        """Expose the registry over HTTP on *port* (background thread)."""
        start_http_server(port, registry=self._registry)


class TxMetrics:
    """High-level transaction lifecycle metrics.

    Histograms track durations in seconds.
    """

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._submissions = self._collector.counter(
            f"{_PREFIX}_submissions",
            "Submissions resolved, by terminal outcome",
            ("outcome",),
        )
        self._submission_seconds = self._collector.histogram(
            f"{_PREFIX}_submission_seconds",
            "Time from submission to terminal outcome",
        )
        self._fee_estimate_seconds = self._collector.histogram(
            f"{_PREFIX}_fee_estimate_seconds",
            "Duration of fee estimation queries",
        )
        self._blocks_scanned = self._collector.counter(
            f"{_PREFIX}_blocks_scanned",
            "Finalized blocks scanned by inclusion monitors",
        )
        self._inclusions = self._collector.counter(
            f"{_PREFIX}_inclusions",
            "Transactions found in a finalized block",
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    def serve(self, port: int) -> None:
        """Start the Prometheus exposition endpoint."""
        self._collector.serve(port)

    # -- Recorders --

    def record_submission(self, outcome: str, duration: float) -> None:
        """Count a resolved submission and observe its duration."""
        self._submissions.labels(outcome=outcome).inc()
        self._submission_seconds.observe(duration)

    def record_block_scanned(self) -> None:
        self._blocks_scanned.inc()

    def record_inclusion(self) -> None:
        self._inclusions.inc()

    # -- Operation trackers (context managers) --

    @contextmanager
    def track_fee_estimate(self) -> Iterator[None]:
        """Track the duration of a fee estimate."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._fee_estimate_seconds.observe(time.monotonic() - start)
