"""Tests for stage timing and structured log formatting."""

import logging

from app.core.logging import StructuredFormatter, log_with_context
from app.core.metrics import _is_slow, timer, track_performance


class TestStructuredFormatter:
    def _record(self, **extra):
        record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "stage done", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_context_fields_promoted(self):
        line = StructuredFormatter().format(self._record(session_id="sess-1", generation=3))

        assert "level=INFO" in line
        assert "message=stage done" in line
        assert "session_id=sess-1" in line
        assert "generation=3" in line

    def test_extra_data_appended(self):
        line = StructuredFormatter().format(self._record(extra_data={"warnings": 2}))
        assert line.endswith("warnings=2")


class TestLogWithContext:
    def test_splits_context_and_extra(self, caplog):
        logger = logging.getLogger("app.test.context")
        with caplog.at_level(logging.INFO, logger="app.test.context"):
            log_with_context(logger, logging.INFO, "analysis applied", session_id="sess-1", warnings=1)

        record = caplog.records[-1]
        assert record.session_id == "sess-1"
        assert record.extra_data == {"warnings": 1}


class TestTimer:
    def test_slow_thresholds_by_prefix(self):
        assert _is_slow("analysis fan-out", 900) is True
        assert _is_slow("analysis fan-out", 100) is False
        assert _is_slow("export - docx", 900) is False
        assert _is_slow("unrelated", 10_000) is False

    def test_timer_logs_duration(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="app.core.metrics"):
            with timer("catalog parse", "sess-1", log_level="debug"):
                pass

        record = caplog.records[-1]
        assert record.operation == "catalog parse"
        assert record.session_id == "sess-1"
        assert "took" in record.getMessage()

    def test_tracker_counts(self, caplog):
        with caplog.at_level(logging.INFO, logger="app.core.metrics"):
            with track_performance("document generation", "sess-1") as perf:
                perf.record_analyzer_run(4)
                perf.record_cache_hit()
                perf.record_cache_miss(2)

        record = caplog.records[-1]
        assert record.analyzer_runs == 4
        assert record.cache_hits == 1
        assert record.cache_misses == 2
        assert "Cache: 1H/2M" in record.getMessage()
