"""Background worker that garbage-collects dead refresh tokens."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from authcore.services.session_manager import SessionManager

logger = logging.getLogger(__name__)


class TokenPurgeWorker:
    """Periodically deletes revoked and expired refresh-token rows."""

    def __init__(self, sessions: SessionManager, interval_seconds: float = 3600.0) -> None:
        self.sessions = sessions
        self.interval_seconds = interval_seconds
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._heartbeat: float = 0.0
        self._run_count: int = 0
        self._purged_count: int = 0
        self._error_count: int = 0
        self._lock = threading.Lock()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="token-purge-worker", daemon=True)
        self._thread.start()
        logger.info("Token purge worker started (interval %.1fs)", self.interval_seconds)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)
        logger.info("Token purge worker stopped")

    def status(self) -> dict:
        with self._lock:
            return {
                "running": self.is_running(),
                "last_heartbeat": self._heartbeat,
                "run_count": self._run_count,
                "purged_count": self._purged_count,
                "error_count": self._error_count,
            }

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as exc:
                logger.exception("Token purge failed: %s", exc)
                with self._lock:
                    self._error_count += 1
            self._heartbeat = time.time()
            self._stop_event.wait(max(0.1, self.interval_seconds))

    def run_once(self) -> int:
        """Run a single purge pass and return the number of rows removed."""
        purged = self.sessions.purge_expired()
        with self._lock:
            self._run_count += 1
            self._purged_count += purged
        return purged
