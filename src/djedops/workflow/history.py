"""
Persistent workflow execution history.

Stores execution logs newest first in a single JSON document under
the `workflow_executions` key. Each write goes to its own temporary
file that replaces the document, so a reader never sees a partial write.
Read-modify-write cycles are serialized per store.
"""

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

import orjson

from djedops.config.constants import DEFAULT_HISTORY_MAX_ENTRIES, HISTORY_STORAGE_KEY
from djedops.core.types import ExecutionLog


logger = logging.getLogger(__name__)


class ExecutionHistoryStore:
    """
    Bounded, file-backed list of execution logs.

    The store is synchronous; async callers should run it in a thread.
    Appends and clears from concurrent threads are serialized.
    """

    def __init__(self, path: Path | str, max_entries: int = DEFAULT_HISTORY_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._path = Path(path)
        self._max_entries = max_entries
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def load(self) -> list[ExecutionLog]:
        """
        Read the stored logs, newest first.

        A missing or unreadable document reads as empty. Entries that
        cannot be decoded are skipped.
        """
        raw = self._read_document()
        logs: list[ExecutionLog] = []
        for entry in raw:
            try:
                logs.append(ExecutionLog.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed execution log in {self._path}: {e}")
        return logs

    def append(self, log: ExecutionLog) -> list[ExecutionLog]:
        """Prepend a log, drop the oldest beyond capacity and persist."""
        with self._lock:
            logs = [log, *self.load()][: self._max_entries]
            self._write_document([entry.to_dict() for entry in logs])
        logger.debug(f"Stored execution {log.id} ({len(logs)}/{self._max_entries})")
        return logs

    def clear(self) -> None:
        """Remove every stored log."""
        with self._lock:
            self._path.unlink(missing_ok=True)
        logger.info(f"Cleared execution history at {self._path}")

    def _read_document(self) -> list[dict[str, Any]]:
        try:
            content = self._path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Cannot read execution history {self._path}: {e}")
            return []

        try:
            document = orjson.loads(content)
        except orjson.JSONDecodeError as e:
            logger.warning(f"Corrupt execution history {self._path}, starting empty: {e}")
            return []

        entries = document.get(HISTORY_STORAGE_KEY) if isinstance(document, dict) else None
        if not isinstance(entries, list):
            logger.warning(f"Execution history {self._path} has no {HISTORY_STORAGE_KEY!r} list")
            return []
        return [e for e in entries if isinstance(e, dict)]

    def _write_document(self, entries: list[dict[str, Any]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        content = orjson.dumps({HISTORY_STORAGE_KEY: entries}, option=orjson.OPT_INDENT_2)
        with tempfile.NamedTemporaryFile(
            dir=self._path.parent, prefix=f"{self._path.name}.", suffix=".tmp", delete=False
        ) as tmp:
            tmp.write(content)
        try:
            os.replace(tmp.name, self._path)
        except OSError:
            Path(tmp.name).unlink(missing_ok=True)
            raise
