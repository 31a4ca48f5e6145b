"""
Document host contract.

The core never touches storage directly. A host lists candidate documents,
reads and writes their lines, and notifies subscribers of changes. Paths are
host-relative POSIX strings ("Projects/Planner/week.md").

Lines are the document content split on "\\n"; a trailing newline shows up as
a final empty string and survives a read/write round trip.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

log = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    RENAMED = "renamed"
    DELETED = "deleted"


# callback(path, kind, old_path); old_path is only set for renames
ChangeCallback = Callable[[str, ChangeKind, Optional[str]], None]


@dataclass
class DocumentRef:
    """A document known to the host, with content available on demand."""

    path: str
    mtime: int
    host: Optional["DocumentHost"] = field(default=None, repr=False, compare=False)

    def read_lines(self) -> List[str]:
        if self.host is None:
            raise RuntimeError(f"Document '{self.path}' is not bound to a host")
        return self.host.read_lines(self.path)

    @property
    def display_name(self) -> str:
        """File name without directories or a trailing .md extension."""
        name = self.path.rsplit("/", 1)[-1]
        if name.lower().endswith(".md"):
            name = name[:-3]
        return name


class DocumentHost(ABC):
    """
    Abstract interface for document storage.

    Subscriber bookkeeping is shared; storage access is left to subclasses.
    """

    def __init__(self) -> None:
        self._subscribers: List[ChangeCallback] = []
        self._subscribers_lock = threading.Lock()

    @abstractmethod
    def list_documents(self) -> List[DocumentRef]:
        """Return all candidate documents with their modification timestamps."""

    @abstractmethod
    def read_lines(self, path: str) -> List[str]:
        """
        Read a document's lines.

        Raises:
            DocumentIOError: if the document cannot be read
        """

    @abstractmethod
    def write_lines(self, path: str, lines: List[str]) -> None:
        """
        Replace a document's content with the given lines.

        Raises:
            DocumentIOError: if the document cannot be written
        """

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register a change callback. Returns an unsubscribe function."""
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, path: str, kind: ChangeKind, old_path: Optional[str] = None) -> None:
        """Deliver a change notification to every subscriber."""
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(path, kind, old_path)
            except Exception:
                log.exception("Change subscriber failed for %s (%s)", path, kind.value)
