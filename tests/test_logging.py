"""Tests for the logging context."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from gdlsp_proxy.logging import (
    TRACE,
    DroppingQueueHandler,
    LogContext,
    Verbosity,
    get_logger,
    logger,
    resolve_log_file,
)

RECORD_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z \[(\w+)\] ([\w.]+): (.*)$"
)


def _records(path: Path) -> list[tuple[str, str, str]]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [RECORD_PATTERN.match(line).groups() for line in lines]


class TestVerbosity:
    """Tests for Verbosity."""

    def test_from_count(self) -> None:
        """Counts map to levels and clamp at both ends."""
        assert Verbosity.from_count(0) is Verbosity.NONE
        assert Verbosity.from_count(1) is Verbosity.NORMAL
        assert Verbosity.from_count(2) is Verbosity.VERBOSE
        assert Verbosity.from_count(7) is Verbosity.VERY_VERBOSE
        assert Verbosity.from_count(-1) is Verbosity.NONE

    def test_levels(self) -> None:
        """Each verbosity has its threshold."""
        assert LogContext(Verbosity.NONE).level is None
        assert LogContext(Verbosity.NORMAL).level == logging.INFO
        assert LogContext(Verbosity.VERBOSE).level == logging.DEBUG
        assert LogContext(Verbosity.VERY_VERBOSE).level == TRACE


class TestLogContext:
    """Tests for LogContext."""

    def test_none_writes_nothing(self, tmp_path: Path) -> None:
        """Verbosity NONE installs no handler and creates no file."""
        path = tmp_path / "proxy.log"
        with LogContext(Verbosity.NONE, path) as log:
            log.get_logger("proxy").error("ignored")
            assert not log.enabled

        assert not path.exists()

    def test_records_formatted_in_utc(self, tmp_path: Path) -> None:
        """Records carry a UTC millisecond timestamp, level and logger name."""
        path = tmp_path / "proxy.log"
        with LogContext(Verbosity.NORMAL, path) as log:
            log.get_logger("proxy").info("hello %s", "world")

        records = _records(path)
        assert ("INFO", "gdlsp_proxy.proxy", "hello world") in records

    def test_threshold_filters(self, tmp_path: Path) -> None:
        """NORMAL keeps INFO and drops DEBUG and TRACE."""
        path = tmp_path / "proxy.log"
        with LogContext(Verbosity.NORMAL, path):
            get_logger("t").debug("debug line")
            get_logger("t").log(TRACE, "trace line")
            get_logger("t").warning("warn line")

        messages = [message for _, _, message in _records(path)]
        assert "warn line" in messages
        assert "debug line" not in messages
        assert "trace line" not in messages

    def test_very_verbose_keeps_trace(self, tmp_path: Path) -> None:
        """VERY_VERBOSE persists TRACE records."""
        path = tmp_path / "proxy.log"
        with LogContext(Verbosity.VERY_VERBOSE, path):
            get_logger("t").log(TRACE, "payload dump")

        assert ("TRACE", "gdlsp_proxy.t", "payload dump") in _records(path)

    def test_close_flushes_and_detaches(self, tmp_path: Path) -> None:
        """Closing writes pending records and removes the queue handler."""
        path = tmp_path / "nested" / "proxy.log"
        log = LogContext(Verbosity.VERBOSE, path, flush_every=1000).start()
        get_logger().debug("buffered")
        log.close()

        assert "buffered" in path.read_text(encoding="utf-8")
        assert not any(isinstance(h, DroppingQueueHandler) for h in logger.handlers)

    def test_appends_across_runs(self, tmp_path: Path) -> None:
        """The file is opened in append mode."""
        path = tmp_path / "proxy.log"
        for run in ("first", "second"):
            with LogContext(Verbosity.NORMAL, path):
                get_logger().info(run)

        messages = [message for _, _, message in _records(path)]
        assert "first" in messages
        assert "second" in messages

    def test_close_twice_is_safe(self, tmp_path: Path) -> None:
        """close() may be called more than once."""
        log = LogContext(Verbosity.NORMAL, tmp_path / "p.log").start()
        log.close()
        log.close()


class TestDroppingQueueHandler:
    """Tests for the bounded queue handler."""

    def test_drops_when_full(self) -> None:
        """Records beyond capacity are counted, not blocked on."""
        import queue

        handler = DroppingQueueHandler(queue.Queue(maxsize=2))
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "m", None, None)
        for _ in range(5):
            handler.enqueue(record)

        assert handler.dropped == 3


class TestResolveLogFile:
    """Tests for resolve_log_file."""

    def test_precedence(self, monkeypatch) -> None:
        """Configured value, then env var, then default."""
        monkeypatch.setenv("GDLSP_PROXY_LOG", "env.log")
        assert resolve_log_file("cfg.log") == "cfg.log"
        assert resolve_log_file(None) == "env.log"
        monkeypatch.delenv("GDLSP_PROXY_LOG")
        assert resolve_log_file(None) == "gdlsp-proxy.log"
