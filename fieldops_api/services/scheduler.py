import logging
import os
import threading
from typing import Optional

log = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = int(os.getenv("SUMMARY_REFRESH_SECONDS", "300"))


class RefreshScheduler:
    """
    Background re-validation of the summary cache: a fixed timer plus
    on-demand `trigger()` (app came back to the foreground). Ledger writes do
    not invalidate anything; the next tick picks them up.
    """

    def __init__(self, service, interval_s: Optional[int] = None, user_email: Optional[str] = None):
        self.service = service
        self.interval_s = interval_s or DEFAULT_INTERVAL_S
        self.user_email = user_email
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, daemon: bool = True):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, daemon=daemon, name="SummaryRefresh")
        self._thread.start()
        log.info("RefreshScheduler started (interval=%ss)", self.interval_s)

    def stop(self):
        self._stop.set()
        self._wake.set()
        if self._thread:
            self._thread.join(timeout=5)

    def trigger(self):
        """Refresh now instead of waiting for the next tick."""
        self._wake.set()

    def tick(self):
        try:
            self.service.refresh_all_engineer_summaries()
            if self.user_email:
                self.service.refresh_user_summary_for_email(self.user_email)
        except Exception as e:
            # keep the loop alive; the cache still holds the last good value
            log.warning("scheduled summary refresh failed: %s", e)

    def run_forever(self):
        while not self._stop.is_set():
            self.tick()
            self._wake.wait(self.interval_s)
            self._wake.clear()
