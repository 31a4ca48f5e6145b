"""
Thread-safe parse cache keyed by (path, modification timestamp).

Design:
    Store: Dict[str, ParsedDocument]   (one entry per document path)

A lookup whose timestamp matches the stored entry returns the stored
ParsedDocument object itself, without reading the document. Any other
timestamp re-reads and re-scans the document and replaces the entry.

Writes performed by the core happen out-of-band from the change notifications
they trigger, so every writer must call invalidate() for the paths it touched.
A process-wide default cache is available via get_parse_cache(); change
listeners invalidate it through invalidate_cached_file().
"""

import logging
import threading
from typing import Dict, Iterable, Optional

from task_table.host.base import DocumentRef
from task_table.models.task import ParsedDocument
from task_table.parsers.hierarchy import scan_lines

log = logging.getLogger(__name__)


class ParseCache:
    """Memoized hierarchy scans, one entry per document path."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: Dict[str, ParsedDocument] = {}
        self._hits = 0
        self._misses = 0

    def get_or_parse(self, document: DocumentRef) -> ParsedDocument:
        """
        Return the scan for a document, parsing it only if its timestamp changed.

        Raises:
            DocumentIOError: if the document has to be read and cannot be
        """
        with self._lock:
            cached = self._entries.get(document.path)
            if cached is not None and cached.mtime == document.mtime:
                self._hits += 1
                return cached

            lines = document.read_lines()
            parsed = scan_lines(document.path, lines, mtime=document.mtime)
            self._entries[document.path] = parsed
            self._misses += 1
            log.debug("Parsed %s: %d tasks", document.path, len(parsed.nodes))
            return parsed

    def get(self, path: str) -> Optional[ParsedDocument]:
        """Return the cached scan for a path without checking freshness."""
        with self._lock:
            return self._entries.get(path)

    def invalidate(self, path: str) -> None:
        """Drop the cached scan for a path."""
        with self._lock:
            if self._entries.pop(path, None) is not None:
                log.debug("Invalidated %s", path)

    def prune(self, live_paths: Iterable[str]) -> int:
        """Drop entries for documents that no longer exist. Returns the count dropped."""
        live = set(live_paths)
        with self._lock:
            stale = [p for p in self._entries if p not in live]
            for path in stale:
                del self._entries[path]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._entries

    def stats(self) -> dict:
        with self._lock:
            return {
                "documents_cached": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
            }


_default_cache = ParseCache()


def get_parse_cache() -> ParseCache:
    """Return the process-wide parse cache."""
    return _default_cache


def invalidate_cached_file(path: str) -> None:
    """Invalidate a path in the process-wide parse cache."""
    _default_cache.invalidate(path)
