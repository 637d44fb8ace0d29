"""Logging configuration for gdlsp-proxy.

Uses Python's standard logging module with:
- An explicit `LogContext` created once at startup and closed at exit
- Verbosity levels: none(0), normal(1), verbose(2), very verbose(3)
- A bounded queue in front of the file so the proxy loops never block
  on disk I/O; records are dropped (and counted) when it overflows
- A single drain thread writing batched UTC timestamped records

Stdout carries protocol traffic, so nothing is ever logged there.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import queue
import time
from enum import IntEnum
from pathlib import Path

# Custom log level for full payload dumps
TRACE = 5

logging.addLevelName(TRACE, "TRACE")

# Package logger
logger = logging.getLogger("gdlsp_proxy")
logger.addHandler(logging.NullHandler())

LOG_FILE_ENV = "GDLSP_PROXY_LOG"
DEFAULT_LOG_FILE = "gdlsp-proxy.log"

RECORD_FORMAT = "%(asctime)s.%(msecs)03dZ [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


class Verbosity(IntEnum):
    """How much the proxy writes to its log file."""

    NONE = 0
    NORMAL = 1
    VERBOSE = 2
    VERY_VERBOSE = 3

    @classmethod
    def from_count(cls, count: int) -> Verbosity:
        """Clamp a repeated -v count to a verbosity."""
        return cls(max(0, min(count, cls.VERY_VERBOSE)))


# Map verbosity to the lowest level that gets persisted
_VERBOSITY_LEVELS = {
    Verbosity.NORMAL: logging.INFO,
    Verbosity.VERBOSE: logging.DEBUG,
    Verbosity.VERY_VERBOSE: TRACE,
}


class _UTCFormatter(logging.Formatter):
    """Formatter emitting UTC timestamps with millisecond precision."""

    converter = time.gmtime


class DroppingQueueHandler(logging.handlers.QueueHandler):
    """Queue handler that drops records instead of blocking when full."""

    def __init__(self, log_queue: queue.Queue[logging.LogRecord]) -> None:
        super().__init__(log_queue)
        self.dropped = 0

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self.dropped += 1


class LogContext:
    """Logging sink for one proxy run.

    Producers (both forwarding loops, every transform) log through
    loggers obtained from `get_logger`. Records go through a bounded
    queue to one drain thread that appends them to the log file,
    flushing every `flush_every` records or immediately on errors.

    With `Verbosity.NONE` nothing is installed and logging is a no-op.

    Example:
        >>> with LogContext(Verbosity.VERBOSE, "proxy.log") as log:
        ...     log.get_logger("proxy").info("started")
    """

    def __init__(
        self,
        verbosity: Verbosity = Verbosity.NONE,
        log_file: str | os.PathLike[str] | None = None,
        *,
        queue_size: int = 10_000,
        flush_every: int = 16,
    ) -> None:
        self.verbosity = Verbosity(verbosity)
        self.log_file = Path(os.path.expanduser(log_file or DEFAULT_LOG_FILE))
        self.queue_size = queue_size
        self.flush_every = flush_every
        self._queue_handler: DroppingQueueHandler | None = None
        self._listener: logging.handlers.QueueListener | None = None
        self._target: logging.Handler | None = None
        self._file_handler: logging.FileHandler | None = None

    @property
    def enabled(self) -> bool:
        return self.verbosity is not Verbosity.NONE

    @property
    def level(self) -> int | None:
        return _VERBOSITY_LEVELS.get(self.verbosity)

    @property
    def dropped(self) -> int:
        return self._queue_handler.dropped if self._queue_handler else 0

    def start(self) -> LogContext:
        """Open the log file and start the drain thread."""
        if not self.enabled or self._listener is not None:
            return self

        level = self.level or logging.INFO
        formatter = _UTCFormatter(RECORD_FORMAT, datefmt=DATE_FORMAT)

        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        self._file_handler = logging.FileHandler(self.log_file, mode="a", encoding="utf-8")
        self._file_handler.setFormatter(formatter)

        # Batch writes; errors are flushed right away
        self._target = logging.handlers.MemoryHandler(
            capacity=self.flush_every,
            flushLevel=logging.ERROR,
            target=self._file_handler,
            flushOnClose=True,
        )

        log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=self.queue_size)
        self._queue_handler = DroppingQueueHandler(log_queue)
        self._queue_handler.setLevel(level)
        self._listener = logging.handlers.QueueListener(log_queue, self._target)

        logger.setLevel(level)
        logger.addHandler(self._queue_handler)
        self._listener.start()

        logger.info("Logger initialized (verbosity=%s)", self.verbosity.name.lower())
        return self

    def close(self) -> None:
        """Stop accepting records, drain the queue and close the file."""
        if self._listener is None:
            return

        logger.removeHandler(self._queue_handler)
        self._listener.stop()
        self._listener = None

        if self.dropped:
            # Written directly; the queue is already drained
            self._target.handle(
                logger.makeRecord(
                    logger.name,
                    logging.WARNING,
                    __file__,
                    0,
                    "Dropped %d log records (queue full)",
                    (self.dropped,),
                    None,
                )
            )

        self._target.close()
        self._file_handler.close()
        self._target = None
        self._file_handler = None

    def get_logger(self, name: str | None = None) -> logging.Logger:
        return get_logger(name)

    def __enter__(self) -> LogContext:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def resolve_log_file(configured: str | None) -> str:
    """Pick the log file: explicit setting, then env var, then default."""
    return configured or os.environ.get(LOG_FILE_ENV) or DEFAULT_LOG_FILE


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Optional name for a child logger (e.g., "proxy", "pipeline").
              If None, returns the root gdlsp_proxy logger.
    """
    if name:
        return logger.getChild(name)
    return logger
