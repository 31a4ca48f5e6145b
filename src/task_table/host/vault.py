"""
Filesystem document host over a vault directory.

Every ``*.md`` file under the vault root is a candidate document, except those
inside excluded directory names (".git", ".obsidian", ...). Modification
timestamps are ``st_mtime_ns`` so that two writes within the same second
still produce distinct cache keys.

Lines are returned without their line endings. A document read with CRLF
endings is written back with CRLF; everything else is written with LF.

Writes made through this host are reported to subscribers synchronously as
``modified`` (or ``created``) notifications, and recorded with the attached
watcher so the next poll does not report them a second time.
"""

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from task_table.errors import DocumentIOError
from task_table.host.base import ChangeKind, DocumentHost, DocumentRef

log = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".md"

# (mtime_ns, size) per document path
Snapshot = Dict[str, Tuple[int, int]]


class VaultHost(DocumentHost):
    """
    Document host backed by a directory tree.

    Usage:
        host = VaultHost(vault_root, {".git", ".obsidian"})
        host.start_watching(poll_interval=5.0)
        ...
        host.stop_watching()
    """

    def __init__(self, root: Path, exclude_dirs: Optional[Set[str]] = None) -> None:
        super().__init__()
        self._root = Path(root)
        self._exclude_dirs = set(exclude_dirs or ())
        self._watcher = None
        # Line ending seen on the last read of each document
        self._newlines: Dict[str, str] = {}

    @property
    def root(self) -> Path:
        return self._root

    @property
    def exclude_dirs(self) -> Set[str]:
        return set(self._exclude_dirs)

    @property
    def watcher(self):
        return self._watcher

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def _resolve(self, path: str) -> Path:
        """Map a vault-relative path to a filesystem path inside the vault."""
        full = (self._root / path).resolve()
        try:
            full.relative_to(self._root.resolve())
        except ValueError:
            raise DocumentIOError(path, "resolve", ValueError("path escapes the vault root"))
        return full

    def _relative(self, full: Path) -> str:
        return full.relative_to(self._root).as_posix()

    def _iter_document_paths(self) -> Iterator[Path]:
        """Yield all markdown files under the root, respecting exclusions."""
        for path in self._root.rglob(f"*{DOCUMENT_SUFFIX}"):
            try:
                rel = path.relative_to(self._root)
            except ValueError:
                continue
            if any(part in self._exclude_dirs for part in rel.parts[:-1]):
                continue
            if path.is_file():
                yield path

    # ------------------------------------------------------------------
    # DocumentHost
    # ------------------------------------------------------------------

    def list_documents(self) -> List[DocumentRef]:
        docs: List[DocumentRef] = []
        for path in self._iter_document_paths():
            try:
                mtime = path.stat().st_mtime_ns
            except OSError:
                # Vanished between listing and stat
                continue
            docs.append(DocumentRef(path=self._relative(path), mtime=mtime, host=self))
        docs.sort(key=lambda d: d.path)
        return docs

    def read_lines(self, path: str) -> List[str]:
        full = self._resolve(path)
        try:
            with full.open(encoding="utf-8", newline="") as f:
                content = f.read()
        except OSError as e:
            raise DocumentIOError(path, "read", e) from e
        if "\r\n" in content:
            self._newlines[path] = "\r\n"
            content = content.replace("\r\n", "\n")
        else:
            self._newlines.pop(path, None)
        return content.split("\n")

    def write_lines(self, path: str, lines: List[str]) -> None:
        full = self._resolve(path)
        existed = full.exists()
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            newline = self._newlines.get(path, "\n")
            full.write_text(newline.join(lines), encoding="utf-8", newline="")
            stat = full.stat()
        except OSError as e:
            raise DocumentIOError(path, "write", e) from e

        log.debug("Wrote %s (%d lines)", path, len(lines))
        if self._watcher is not None:
            self._watcher.record(path, (stat.st_mtime_ns, stat.st_size))
        self.notify(path, ChangeKind.MODIFIED if existed else ChangeKind.CREATED)

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        """Return {path: (mtime_ns, size)} for all documents."""
        snap: Snapshot = {}
        try:
            for path in self._iter_document_paths():
                try:
                    stat = path.stat()
                except OSError:
                    continue
                snap[self._relative(path)] = (stat.st_mtime_ns, stat.st_size)
        except OSError:
            log.exception("Error walking vault for documents")
        return snap

    def start_watching(self, poll_interval: Optional[float] = None) -> None:
        """Start a polling watcher that reports external edits to subscribers."""
        from task_table.watcher.vault_watcher import VaultWatcher

        if self._watcher is not None:
            return
        self._watcher = VaultWatcher(self, poll_interval=poll_interval)
        self._watcher.start()

    def stop_watching(self) -> None:
        if self._watcher is None:
            return
        self._watcher.stop()
        self._watcher = None
