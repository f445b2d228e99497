# FILE: ehutano/services/pending_poller.py
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import List, Optional

from ehutano.core.errors import PharmacyApiError
from ehutano.schemas.dispensing import PendingPrescription
from ehutano.services.pharmacy_api import PharmacyApiClient
from ehutano.utils.retry import with_backoff

logger = logging.getLogger(__name__)


class PendingPrescriptionPoller:
    """
    Keeps the "awaiting dispensing" list fresh on a fixed interval.

    A failed cycle is retried with backoff and then skipped; the last good
    snapshot stays visible until the next successful refresh.
    """

    def __init__(
        self,
        api: PharmacyApiClient,
        interval: float = 30.0,
        *,
        attempts: int = 3,
        base_delay: float = 1.0,
    ):
        self.api = api
        self.interval = interval
        self.attempts = attempts
        self.base_delay = base_delay

        self._lock = threading.Lock()
        self._items: List[PendingPrescription] = []
        self._refreshed_at: Optional[datetime] = None
        self._last_error: Optional[str] = None

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ---------------- snapshot ----------------

    def snapshot(self) -> List[PendingPrescription]:
        with self._lock:
            return list(self._items)

    @property
    def refreshed_at(self) -> Optional[datetime]:
        return self._refreshed_at

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def find(self, prescription_id: int) -> Optional[PendingPrescription]:
        for p in self.snapshot():
            if p.id == prescription_id:
                return p
        return None

    # ---------------- refresh ----------------

    def refresh_now(self) -> List[PendingPrescription]:
        """One refresh with backoff; raises PharmacyApiError when every attempt failed."""
        try:
            items = with_backoff(
                self.api.pending_prescriptions,
                attempts=self.attempts,
                base_delay=self.base_delay,
                retry_on=(PharmacyApiError, ),
                sleep=self._stop.wait,
                context="pending-dispensing refresh",
            )
        except PharmacyApiError as e:
            self._last_error = e.msg
            raise

        with self._lock:
            self._items = items
            self._refreshed_at = datetime.now(timezone.utc)
            self._last_error = None
        logger.info("Pending prescriptions refreshed: %d awaiting dispensing", len(items))
        return items

    def _run(self) -> None:
        logger.info("Pending prescription poller started (every %.0fs)", self.interval)
        while not self._stop.is_set():
            try:
                self.refresh_now()
            except PharmacyApiError as e:
                logger.error("Pending prescriptions refresh failed: %s", e.msg)
            self._stop.wait(self.interval)
        logger.info("Pending prescription poller stopped.")

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run,
                                        name="pending-prescriptions",
                                        daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
