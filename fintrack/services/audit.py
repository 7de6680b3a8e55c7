"""
Audit log for user-visible activity history.

The audit logger:
- Never blocks the caller: entries go into a bounded queue
- Persists entries from a single background worker thread
- Gracefully handles failures (a failed or dropped entry never reaches the
  caller, and never rolls back the mutation that produced it)
"""

import logging
import queue
import threading
from typing import Any, Callable, Optional

from fintrack.config import AUDIT_QUEUE_SIZE, AUDIT_SHUTDOWN_TIMEOUT

logger = logging.getLogger(__name__)

AuditSink = Callable[[str, str], Any]

_STOP = object()


class AuditLogger:
    """Fire-and-forget writer of ``(user_id, message)`` entries."""

    def __init__(self, sink: AuditSink, maxsize: int = AUDIT_QUEUE_SIZE):
        """
        Initialize the audit logger.

        Args:
            sink: Callable persisting one entry, e.g. ``LogRepository.insert``
            maxsize: Queue capacity; entries beyond it are dropped
        """
        self._sink = sink
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self):
        """Start the background worker if it is not running."""
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run, name="fintrack-audit", daemon=True
                )
                self._worker.start()
                logger.info("Audit log worker started")

    def log(self, user_id: str, message: str) -> None:
        """
        Enqueue an entry and return immediately.

        Args:
            user_id: Owner the entry belongs to
            message: Human-readable description of the activity
        """
        if self._worker is None or not self._worker.is_alive():
            self.start()
        try:
            self._queue.put_nowait((user_id, message))
        except queue.Full:
            logger.warning(f"Audit queue full, dropping entry for user {user_id}: {message}")

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                user_id, message = item
                try:
                    self._sink(user_id, message)
                except Exception as e:
                    logger.error(
                        f"Failed to write audit entry for user {user_id}: {e}",
                        exc_info=True,
                    )
            finally:
                self._queue.task_done()

    def flush(self):
        """Block until every queued entry has been handled."""
        if self._worker is not None:
            self._queue.join()

    def close(self, timeout: float = AUDIT_SHUTDOWN_TIMEOUT):
        """Drain the queue and stop the worker."""
        worker = self._worker
        if worker is None or not worker.is_alive():
            return
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("Audit queue still full at shutdown, entries may be lost")
            return
        worker.join(timeout)
        logger.info("Audit log worker stopped")
