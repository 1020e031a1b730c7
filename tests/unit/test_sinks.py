"""Unit tests for metrics, storage, and error reporting sinks."""
from __future__ import annotations

import json
import logging
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from prometheus_client import CollectorRegistry

from stats_watcher.config import ErrorReportingConfig, StorageConfig
from stats_watcher.errors import SinkError
from stats_watcher.sinks import (
    LoggingBlobStorage,
    LoggingMetrics,
    PrometheusMetrics,
    S3BlobStorage,
    SentryErrorReporter,
)
from stats_watcher.sinks.prometheus import metric_name, parse_tags

# ---------------------------------------------------------------------------
# Prometheus
# ---------------------------------------------------------------------------


class TestMetricNaming:
    def test_dotted_name(self) -> None:
        assert metric_name("kolibri", "tvl.quipuswap_lp_farm") == "kolibri_tvl_quipuswap_lp_farm"

    def test_no_prefix(self) -> None:
        assert metric_name("", "xtz.price") == "xtz_price"

    def test_parse_tags(self) -> None:
        assert parse_tags(["network:mainnet", "bare"]) == {"network": "mainnet"}


class TestPrometheusMetrics:
    def test_gauge(self) -> None:
        registry = CollectorRegistry()
        metrics = PrometheusMetrics("kolibri", registry=registry)

        metrics.gauge("xtz.price", 2.5, ["network:mainnet"])
        metrics.gauge("xtz.price", 3.0, ["network:testnet"])

        assert registry.get_sample_value("kolibri_xtz_price", {"network": "mainnet"}) == 2.5
        assert registry.get_sample_value("kolibri_xtz_price", {"network": "testnet"}) == 3.0

    def test_counter(self) -> None:
        registry = CollectorRegistry()
        metrics = PrometheusMetrics("kolibri", registry=registry)

        metrics.increment("updateData.called", 1, ["network:mainnet"])
        metrics.increment("updateData.called", 1, ["network:mainnet"])

        assert (
            registry.get_sample_value("kolibri_updateData_called_total", {"network": "mainnet"})
            == 2
        )

    def test_mismatched_labels(self) -> None:
        metrics = PrometheusMetrics("kolibri", registry=CollectorRegistry())
        metrics.gauge("tvl", 1.0, ["network:mainnet"])

        with pytest.raises(SinkError, match="kolibri_tvl"):
            metrics.gauge("tvl", 1.0, ["region:eu"])


# ---------------------------------------------------------------------------
# S3
# ---------------------------------------------------------------------------


class TestS3BlobStorage:
    @pytest.mark.asyncio
    async def test_put_object(self) -> None:
        client = MagicMock()
        storage = S3BlobStorage(StorageConfig(bucket="kolibri-data"), client=client)

        await storage.write_named_blob({"apy": "1"}, "mainnet/apy.json")

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "kolibri-data"
        assert kwargs["Key"] == "mainnet/apy.json"
        assert kwargs["ContentType"] == "application/json"
        assert kwargs["ACL"] == "public-read"
        assert json.loads(kwargs["Body"]) == {"apy": "1"}

    @pytest.mark.asyncio
    async def test_client_error_becomes_sink_error(self) -> None:
        client = MagicMock()
        client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        storage = S3BlobStorage(StorageConfig(bucket="kolibri-data"), client=client)

        with pytest.raises(SinkError, match="s3://kolibri-data/mainnet/apy.json"):
            await storage.write_named_blob({}, "mainnet/apy.json")

    def test_default_client(self) -> None:
        with patch("stats_watcher.sinks.s3.boto3.client") as mock_client:
            S3BlobStorage(StorageConfig(bucket="b", region="eu-west-1"))
        mock_client.assert_called_once_with("s3", region_name="eu-west-1")


# ---------------------------------------------------------------------------
# Test-mode sinks
# ---------------------------------------------------------------------------


class TestLoggingSinks:
    def test_gauge_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="stats_watcher.sinks.console"):
            LoggingMetrics().gauge("tvl", 1.0, ["network:mainnet"])
        assert "[TEST_MODE] Writing Gauge: [tvl, 1.0]" in caplog.text

    @pytest.mark.asyncio
    async def test_blob_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="stats_watcher.sinks.console"):
            await LoggingBlobStorage().write_named_blob({"apy": "1"}, "mainnet/apy.json")
        assert "Putbucket called for file mainnet/apy.json" in caplog.text


# ---------------------------------------------------------------------------
# Sentry
# ---------------------------------------------------------------------------


class TestSentryErrorReporter:
    def test_disabled_without_dsn(self) -> None:
        with patch("stats_watcher.sinks.sentry.sentry_sdk") as sdk:
            reporter = SentryErrorReporter(ErrorReportingConfig(dsn=""))
            reporter.capture_exception(RuntimeError("x"))
            reporter.flush()

        assert reporter.enabled is False
        sdk.init.assert_not_called()
        sdk.capture_exception.assert_not_called()

    def test_enabled_with_dsn(self) -> None:
        error = RuntimeError("x")
        with patch("stats_watcher.sinks.sentry.sentry_sdk") as sdk:
            reporter = SentryErrorReporter(
                ErrorReportingConfig(dsn="https://key@sentry.example.com/1", environment="test")
            )
            reporter.capture_exception(error)

        sdk.init.assert_called_once_with(
            dsn="https://key@sentry.example.com/1", environment="test"
        )
        sdk.capture_exception.assert_called_once_with(error)
