"""
Single-line task edits: checkbox toggles, text edits, new tasks.

Edits rewrite one line at a time through build_line(), which keeps the
original indentation and bullet. Each document is read and written once per
call, under the squelch, and invalidated in the parse cache afterwards.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from task_table.cache.parse_cache import ParseCache, get_parse_cache
from task_table.host.base import DocumentHost
from task_table.mutations.blocks import ensure_trailing_newline, find_end_insertion_index
from task_table.parsers.task_line import build_line
from task_table.state.squelch import Squelch
from task_table.utils.ids import node_id

log = logging.getLogger(__name__)


@dataclass
class LineEdit:
    """New checked state and text for the task at ``path:line_index``."""

    path: str
    line_index: int
    original_line: str
    checked: bool
    text: str

    @property
    def new_line(self) -> str:
        return build_line(self.original_line, self.checked, self.text.strip())


class LineEditor:
    """Applies line edits through a document host."""

    def __init__(
        self,
        host: DocumentHost,
        cache: Optional[ParseCache] = None,
        squelch: Optional[Squelch] = None,
    ) -> None:
        self._host = host
        self._cache = cache if cache is not None else get_parse_cache()
        self._squelch = squelch if squelch is not None else Squelch()

    def save_line(self, edit: LineEdit) -> bool:
        """
        Write a single edit immediately.

        Returns:
            True if the document was written, False if the index is out of
            range or the line already has the requested content
        """
        with self._squelch:
            lines = self._host.read_lines(edit.path)
            if edit.line_index < 0 or edit.line_index >= len(lines):
                return False
            new_line = edit.new_line
            if lines[edit.line_index] == new_line:
                return False
            lines[edit.line_index] = new_line
            try:
                self._host.write_lines(edit.path, lines)
            finally:
                self._cache.invalidate(edit.path)
        return True

    def save_edits(self, edits: Iterable[LineEdit]) -> int:
        """
        Apply a batch of edits, one read and one write per document.

        Edits with an out-of-range line index are skipped.

        Returns:
            Number of documents written
        """
        by_path: Dict[str, List[LineEdit]] = {}
        for edit in edits:
            by_path.setdefault(edit.path, []).append(edit)

        written = 0
        with self._squelch:
            for path, file_edits in by_path.items():
                file_edits.sort(key=lambda e: e.line_index)
                lines = self._host.read_lines(path)
                changed = False
                for edit in file_edits:
                    if 0 <= edit.line_index < len(lines):
                        new_line = edit.new_line
                        if lines[edit.line_index] != new_line:
                            lines[edit.line_index] = new_line
                            changed = True
                if not changed:
                    continue
                try:
                    self._host.write_lines(path, lines)
                finally:
                    self._cache.invalidate(path)
                written += 1

        log.info("Saved edits to %d document(s)", written)
        return written

    def create_task_at_end(self, path: str, text: str) -> str:
        """
        Append ``- [ ] text`` at the end of a document.

        Returns:
            Id of the new task in the next scan
        """
        with self._squelch:
            lines = self._host.read_lines(path)
            if lines == [""]:
                lines = []
            insert_at = find_end_insertion_index(lines)
            lines.insert(insert_at, build_line("", False, text.strip()))
            ensure_trailing_newline(lines)
            try:
                self._host.write_lines(path, lines)
            finally:
                self._cache.invalidate(path)

        log.info("Created task at %s:%d", path, insert_at)
        return node_id(path, insert_at)
