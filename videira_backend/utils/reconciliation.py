"""
Debounced reconciliation refetch.

After an optimistic create the local cache may disagree with the server
(ordering, server-side defaults). A single delayed refetch per collection
heals that; scheduling again before it fires pushes the deadline back instead
of queueing another refetch.
"""
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_RECONCILE_DELAY = 1.0


class ReconciliationTrigger:
    """One pending delayed callback at a time, restartable"""

    def __init__(self, callback: Callable[[], None], delay: float = DEFAULT_RECONCILE_DELAY,
                 name: str = 'collection', timer_factory=threading.Timer):
        self.callback = callback
        self.delay = delay
        self.name = name
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self):
        """Schedule the refetch, cancelling any refetch still waiting"""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.delay, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()
        logger.debug(f"Reconciliation for '{self.name}' scheduled in {self.delay}s")

    def cancel(self) -> bool:
        """Cancel the pending refetch. Returns True if one was pending."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return False
        timer.cancel()
        return True

    def flush(self) -> bool:
        """Run the pending refetch now. Returns True if one was pending."""
        if not self.cancel():
            return False
        self._run()
        return True

    def _fire(self):
        with self._lock:
            # A timer replaced by schedule() may already be running
            if self._timer is not threading.current_thread():
                return
            self._timer = None
        self._run()

    def _run(self):
        try:
            self.callback()
            logger.info(f"Reconciled '{self.name}' with server state")
        except Exception as e:
            logger.error(f"Reconciliation of '{self.name}' failed: {e}")
