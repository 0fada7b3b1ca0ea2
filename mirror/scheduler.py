"""
Background refresh of the web UI mirror.

A single daemon thread calls MirrorSynchronizer.refresh() on a fixed interval.
Because there is only one thread, a slow refresh delays the next tick rather
than overlapping with it.
"""

import logging
import threading
from typing import Optional

from .sync import MirrorSynchronizer, RefreshResult

logger = logging.getLogger(__name__)


class RefreshScheduler:

    def __init__(self, synchronizer: MirrorSynchronizer, interval: float,
                 name: str = "mirror-refresh"):
        self.synchronizer = synchronizer
        self.interval = interval
        self.name = name
        self.last_result: Optional[RefreshResult] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the refresh thread (no-op if running or the interval is 0)"""
        if self.interval <= 0:
            logger.info("Mirror refresh disabled (interval is 0)")
            return
        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"Mirror refresh started. Interval: {self.interval} seconds.")

    def stop(self, timeout: Optional[float] = None):
        """Signal the thread to stop and wait for the current refresh to finish"""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Mirror refresh stopped.")

    def run_once(self) -> Optional[RefreshResult]:
        try:
            self.last_result = self.synchronizer.refresh()
        except Exception as e:
            # refresh() reports its own failures; keep the loop alive regardless
            logger.exception(f"Mirror refresh raised: {e}")
            return None
        return self.last_result

    def _run(self):
        while not self._stop_event.wait(self.interval):
            self.run_once()
