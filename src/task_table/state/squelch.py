"""
Squelch: a reentrant advisory counter for programmatic writes.

Code that writes documents holds the squelch for the duration of the write so
that change listeners can tell self-inflicted notifications from external
edits. Sections nest (a move holds it around two writes, and its caller may
hold it around the whole move), so this is a depth counter rather than a flag.

    with squelch:
        host.write_lines(path, lines)
"""

import threading


class Squelch:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._depth = 0

    @property
    def depth(self) -> int:
        with self._lock:
            return self._depth

    @property
    def active(self) -> bool:
        return self.depth > 0

    def acquire(self) -> None:
        with self._lock:
            self._depth += 1

    def release(self) -> None:
        with self._lock:
            self._depth = max(0, self._depth - 1)

    def __enter__(self) -> "Squelch":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
