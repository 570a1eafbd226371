"""Tests for metrics module — MetricsCollector and TxMetrics."""

from __future__ import annotations

from unittest.mock import patch

from prometheus_client import CollectorRegistry

from substrate_tx.metrics.collector import MetricsCollector, TxMetrics


class TestMetricsCollector:
    """Tests for the low-level MetricsCollector."""

    def test_creates_registry(self) -> None:
        c = MetricsCollector()
        assert c.registry is not None

    def test_custom_registry(self) -> None:
        reg = CollectorRegistry()
        c = MetricsCollector(registry=reg)
        assert c.registry is reg

    def test_histogram(self) -> None:
        c = MetricsCollector(CollectorRegistry())
        h = c.histogram("test_hist", "A test histogram")
        h.observe(0.5)
        assert h._sum.get() == 0.5

    def test_counter(self) -> None:
        c = MetricsCollector(CollectorRegistry())
        ct = c.counter("test_counter", "A test counter")
        ct.inc()
        ct.inc(2)
        assert ct._value.get() == 3.0

    def test_serve(self) -> None:
        reg = CollectorRegistry()
        with patch("substrate_tx.metrics.collector.start_http_server") as mock_start:
            MetricsCollector(reg).serve(9100)
        mock_start.assert_called_once_with(9100, registry=reg)


class TestTxMetrics:
    """Tests for the high-level TxMetrics."""

    def _metrics(self) -> tuple[TxMetrics, CollectorRegistry]:
        reg = CollectorRegistry()
        return TxMetrics(MetricsCollector(reg)), reg

    def test_record_submission(self) -> None:
        m, reg = self._metrics()
        m.record_submission("succeeded", 1.5)
        m.record_submission("failed", 0.5)
        m.record_submission("succeeded", 2.0)
        assert reg.get_sample_value("substrate_tx_submissions_total", {"outcome": "succeeded"}) == 2
        assert reg.get_sample_value("substrate_tx_submissions_total", {"outcome": "failed"}) == 1
        assert reg.get_sample_value("substrate_tx_submission_seconds_sum") == 4.0

    def test_block_and_inclusion_counters(self) -> None:
        m, reg = self._metrics()
        m.record_block_scanned()
        m.record_block_scanned()
        m.record_inclusion()
        assert reg.get_sample_value("substrate_tx_blocks_scanned_total") == 2.0
        assert reg.get_sample_value("substrate_tx_inclusions_total") == 1.0

    def test_track_fee_estimate(self) -> None:
        m, reg = self._metrics()
        with m.track_fee_estimate():
            pass
        assert reg.get_sample_value("substrate_tx_fee_estimate_seconds_count") == 1.0

    def test_registry_property(self) -> None:
        m, reg = self._metrics()
        assert m.registry is reg

    def test_default_collector(self) -> None:
        assert TxMetrics().registry is not None
