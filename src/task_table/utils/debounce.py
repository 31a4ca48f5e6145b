"""
Trailing-edge debounce on a timer thread.
"""

import logging
import threading
from typing import Callable, Optional

log = logging.getLogger(__name__)


class Debouncer:
    """
    Coalesce bursts of trigger() calls into one call of ``fn``.

    ``fn`` runs on a timer thread ``wait`` seconds after the last trigger.
    """

    def __init__(self, fn: Callable[[], object], wait: float) -> None:
        self._fn = fn
        self._wait = wait
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._wait, self._run)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _run(self) -> None:
        with self._lock:
            self._timer = None
        try:
            self._fn()
        except Exception:
            log.exception("Debounced call failed")
