"""
Integration tests for origin_tracker/observability.py

Tests structured logging, correlation IDs, log context and metrics collection.
"""
import asyncio
import logging
import json
import pytest
import time as time_module

from origin_tracker.observability import (
    add_log_context,
    clear_log_context,
    correlation_context,
    generate_correlation_id,
    set_correlation_id,
    get_correlation_id,
    timed,
    Timer,
    MetricsCollector,
    HumanReadableFormatter,
    StructuredFormatter,
    get_logger,
    metrics,
)


def _record(msg: str = "Test", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationId:
    """Tests for correlation ID management."""

    def test_generate_correlation_id(self):
        """Generated IDs are short and unique."""
        first = generate_correlation_id()
        second = generate_correlation_id()
        assert len(first) == 8
        assert first != second

    def test_set_and_get_correlation_id(self):
        """Can set and retrieve correlation ID."""
        set_correlation_id("report-123")
        assert get_correlation_id() == "report-123"

    def test_correlation_context_restores_previous(self):
        """The previous ID is restored when the block exits."""
        set_correlation_id("outer")
        with correlation_context("inner") as corr_id:
            assert corr_id == "inner"
            assert get_correlation_id() == "inner"
        assert get_correlation_id() == "outer"

    def test_correlation_context_generates_id(self):
        """Without an explicit ID one is generated."""
        with correlation_context() as corr_id:
            assert corr_id
            assert get_correlation_id() == corr_id


class TestTimer:
    """Tests for Timer context manager."""

    def test_measures_elapsed_time(self):
        """Timer measures elapsed time correctly."""
        with Timer("aggregate_origins") as timer:
            time_module.sleep(0.05)

        assert timer.elapsed_ms >= 45
        assert timer.name == "aggregate_origins"

    def test_logs_when_logger_given(self, caplog):
        """Completion is logged at DEBUG for fast operations."""
        logger = get_logger("test.timer")
        with caplog.at_level(logging.DEBUG, logger="test.timer"):
            with Timer("fetch_attribution", logger):
                pass
        assert any("fetch_attribution completed" in r.getMessage() for r in caplog.records)


class TestTimedDecorator:
    """Tests for the timed decorator."""

    def setup_method(self):
        metrics.reset()

    def test_sync_function(self):
        """Sync functions keep their return value and record timing."""
        @timed("sync_op")
        def add(a, b):
            return a + b

        assert add(1, 2) == 3
        assert metrics.get_stats()["timing"]["sync_op"]["count"] == 1

    @pytest.mark.asyncio
    async def test_async_function(self):
        """Coroutine functions stay awaitable."""
        @timed()
        async def slow_report():
            await asyncio.sleep(0)
            return "done"

        assert await slow_report() == "done"
        assert "slow_report" in metrics.get_stats()["timing"]

    def test_records_timing_on_error(self):
        """Timing is recorded even when the call raises."""
        @timed("failing_op")
        def fail():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            fail()
        assert metrics.get_stats()["timing"]["failing_op"]["count"] == 1


class TestMetricsCollector:
    """Tests for MetricsCollector class."""

    def test_record_request(self):
        """Records request counts by endpoint."""
        collector = MetricsCollector()
        collector.record_request("/api/report")
        collector.record_request("/api/report")
        collector.record_request("/api/health")

        stats = collector.get_stats()
        assert stats["requests"]["/api/report"] == 2
        assert stats["requests"]["/api/health"] == 1

    def test_record_error(self):
        """Records error counts by type."""
        collector = MetricsCollector()
        collector.record_error("StoreError")
        collector.record_error("StoreError")
        collector.record_error("QueryTimeoutError")

        stats = collector.get_stats()
        assert stats["errors"]["StoreError"] == 2
        assert stats["errors"]["QueryTimeoutError"] == 1

    def test_record_scheme(self):
        """Counts how often each storage scheme was selected."""
        collector = MetricsCollector()
        collector.record_scheme("wc_attribution")
        collector.record_scheme("legacy_origin")
        collector.record_scheme("wc_attribution")

        assert collector.get_stats()["schemes"] == {"wc_attribution": 2, "legacy_origin": 1}

    def test_record_timing(self):
        """Records timing statistics."""
        collector = MetricsCollector()
        collector.record_timing("build_origin_report", 100.0)
        collector.record_timing("build_origin_report", 200.0)
        collector.record_timing("build_origin_report", 150.0)

        timings = collector.get_stats()["timing"]["build_origin_report"]
        assert timings["count"] == 3
        assert timings["avg_ms"] == 150.0
        assert timings["min_ms"] == 100.0
        assert timings["max_ms"] == 200.0
        assert timings["p95_ms"] is None

    def test_timing_samples_capped(self):
        """Only the most recent samples are kept."""
        collector = MetricsCollector(max_samples=5)
        for value in range(10):
            collector.record_timing("op", float(value))

        timings = collector.get_stats()["timing"]["op"]
        assert timings["count"] == 5
        assert timings["min_ms"] == 5.0

    def test_reset_stats(self):
        """Reset clears all statistics."""
        collector = MetricsCollector()
        collector.record_request("/api/report")
        collector.record_error("Error")
        collector.record_scheme("post_meta")
        collector.record_timing("op", 100.0)

        collector.reset()
        stats = collector.get_stats()

        assert stats == {"requests": {}, "errors": {}, "schemes": {}, "timing": {}}


class TestStructuredFormatter:
    """Tests for JSON log formatter."""

    def setup_method(self):
        clear_log_context()

    def test_formats_as_json(self):
        """Outputs valid JSON with timestamp, level and logger."""
        parsed = json.loads(StructuredFormatter().format(_record("Test message")))

        assert parsed["message"] == "Test message"
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "test.logger"
        assert parsed["timestamp"].endswith("Z")

    def test_includes_correlation_id(self):
        """JSON includes correlation ID when set."""
        with correlation_context("corr-456"):
            parsed = json.loads(StructuredFormatter().format(_record()))
        assert parsed["correlation_id"] == "corr-456"

    def test_includes_extra_fields(self):
        """Fields passed through extra= appear in the output."""
        parsed = json.loads(StructuredFormatter().format(_record(duration_ms=12.5)))
        assert parsed["duration_ms"] == 12.5

    def test_includes_log_context(self):
        """Context fields are attached until cleared."""
        add_log_context(scheme="pys_enrich")
        parsed = json.loads(StructuredFormatter().format(_record()))
        assert parsed["scheme"] == "pys_enrich"

        clear_log_context()
        parsed = json.loads(StructuredFormatter().format(_record()))
        assert "scheme" not in parsed


class TestHumanReadableFormatter:
    """Tests for console formatter."""

    def setup_method(self):
        clear_log_context()

    def test_format(self):
        """Line carries level, logger, correlation ID and extras."""
        with correlation_context("abc12345"):
            line = HumanReadableFormatter().format(_record("Report built", total=7))

        assert "INFO" in line
        assert "test.logger [abc12345]" in line
        assert "Report built" in line
        assert "'total': 7" in line


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_logger(self):
        """Returns a logger instance with the given name."""
        logger = get_logger("origin_tracker.test")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "origin_tracker.test"
