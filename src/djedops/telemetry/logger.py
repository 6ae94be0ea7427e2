"""
Queue-backed logging for the API process.

Request handlers, the background monitor and workflow runs all log from
the event loop; records are handed to a queue and written by a listener
thread so console and file output never block a request.
"""

import logging
import sys
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue

from djedops.config.constants import (
    LOG_FILE_BACKUPS,
    LOG_FILE_MAX_BYTES,
    LOG_FORMAT,
    MAX_LOG_QUEUE_SIZE,
)
from djedops.utils.time import format_timestamp_ms


# Third-party loggers that are too chatty below WARNING
NOISY_LOGGERS = ("aiohttp", "asyncio", "uvicorn.access", "httpx")


class UtcMillisFormatter(logging.Formatter):
    """Formatter stamping records in the same UTC millisecond form the API serves."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return format_timestamp_ms(int(record.created * 1000))


class LogPipeline:
    """
    Root-logger queue plus the listener draining it.

    Example:
        >>> pipeline = setup_logging("DEBUG")
        >>> logging.getLogger("djedops.feeds").info("hello")
        >>> pipeline.stop()
    """

    def __init__(self, level: int, log_file: Path | None = None) -> None:
        self._level = level
        self._log_file = log_file
        self._queue: Queue[logging.LogRecord] = Queue(maxsize=MAX_LOG_QUEUE_SIZE)
        self._handler = QueueHandler(self._queue)
        self._listener: QueueListener | None = None

    @property
    def running(self) -> bool:
        return self._listener is not None

    def _sinks(self) -> list[logging.Handler]:
        formatter = UtcMillisFormatter(LOG_FORMAT)

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(self._level)
        sinks: list[logging.Handler] = [console]

        if self._log_file is not None:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            # File keeps DEBUG regardless of the console level
            file_sink = RotatingFileHandler(
                self._log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS
            )
            file_sink.setLevel(logging.DEBUG)
            sinks.append(file_sink)

        for sink in sinks:
            sink.setFormatter(formatter)
        return sinks

    def start(self) -> None:
        """Attach the queue to the root logger and start draining it."""
        if self.running:
            return
        root = logging.getLogger()
        for existing in root.handlers[:]:
            root.removeHandler(existing)
        root.addHandler(self._handler)
        root.setLevel(logging.DEBUG if self._log_file else self._level)

        self._listener = QueueListener(self._queue, *self._sinks(), respect_handler_level=True)
        self._listener.start()

    def stop(self) -> None:
        """Flush queued records and detach from the root logger."""
        if self._listener is None:
            return
        self._listener.stop()
        for sink in self._listener.handlers:
            sink.close()
        self._listener = None
        logging.getLogger().removeHandler(self._handler)


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> LogPipeline:
    """
    Route every logger of the process through one queue.

    Args:
        level: Console level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional rotating log file, written at DEBUG.

    Returns:
        The started pipeline; call `stop()` on shutdown.
    """
    pipeline = LogPipeline(getattr(logging, level.upper(), logging.INFO), log_file)
    pipeline.start()

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return pipeline
