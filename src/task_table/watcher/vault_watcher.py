"""
Vault file system watcher (polling-based).

Network and container volume mounts often do not forward filesystem events,
so the watcher compares periodic snapshots instead of relying on inotify.

The watcher runs a daemon thread that:
1. Snapshots the host's documents every POLL_INTERVAL seconds
2. Compares (mtime, size) pairs against the previous snapshot
3. Pairs a vanished path with a new path of identical (mtime, size) as a rename
4. Reports created / modified / renamed / deleted documents through the host
"""

import logging
import os
import threading
from typing import Dict, List, Optional, Tuple

from task_table.host.base import ChangeKind

log = logging.getLogger(__name__)

# Default polling interval in seconds (configurable via POLL_INTERVAL env var)
_DEFAULT_POLL_INTERVAL = 5.0


class VaultWatcher:
    """
    Polling-based document watcher.

    Usage:
        watcher = VaultWatcher(host)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(self, host, poll_interval: Optional[float] = None) -> None:
        self._host = host
        self._poll_interval = poll_interval or float(
            os.environ.get("POLL_INTERVAL", _DEFAULT_POLL_INTERVAL)
        )
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

        # Known documents and their (mtime, size) from the last poll cycle
        self._known: Dict[str, Tuple[int, int]] = {}

    def start(self) -> None:
        """Start the polling thread (daemon)."""
        log.info("Starting vault watcher (polling every %.1fs)", self._poll_interval)
        with self._lock:
            self._known = self._host.snapshot()

        self._thread = threading.Thread(
            target=self._poll_loop, daemon=True, name="vault-watcher"
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the poll thread to stop and wait for it."""
        log.info("Stopping vault watcher")
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self._poll_interval + 2)

    def record(self, path: str, signature: Tuple[int, int]) -> None:
        """Record a write made through the host so it is not reported again."""
        with self._lock:
            self._known[path] = signature

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _poll_loop(self) -> None:
        """Main polling loop, runs until stop_event is set."""
        while not self._stop_event.is_set():
            self._stop_event.wait(self._poll_interval)
            if self._stop_event.is_set():
                break
            try:
                self.check_for_changes()
            except Exception:
                log.exception("Error during poll cycle")

    def check_for_changes(self) -> List[Tuple[str, ChangeKind, Optional[str]]]:
        """
        Single poll cycle: compare the current snapshot against the known one.

        Returns the reported changes, in the order they were delivered.
        """
        current = self._host.snapshot()

        with self._lock:
            previous = self._known
            self._known = current

        created = [p for p in current if p not in previous]
        deleted = [p for p in previous if p not in current]
        modified = [
            p for p, sig in current.items()
            if p in previous and sig != previous[p]
        ]

        changes: List[Tuple[str, ChangeKind, Optional[str]]] = []

        # A rename keeps mtime and size; pair each vanished path with one new path
        for old in list(deleted):
            match = next((new for new in created if current[new] == previous[old]), None)
            if match is None:
                continue
            deleted.remove(old)
            created.remove(match)
            changes.append((match, ChangeKind.RENAMED, old))

        changes.extend((p, ChangeKind.CREATED, None) for p in created)
        changes.extend((p, ChangeKind.MODIFIED, None) for p in modified)
        changes.extend((p, ChangeKind.DELETED, None) for p in deleted)

        for path, kind, old_path in changes:
            if old_path:
                log.debug("Renamed document: %s -> %s", old_path, path)
            else:
                log.debug("%s document: %s", kind.value.capitalize(), path)
            self._host.notify(path, kind, old_path)

        return changes
