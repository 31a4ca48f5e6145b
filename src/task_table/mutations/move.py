"""
Subtree relocation and deletion.

Every operation re-reads the current document content before acting and
locates the block from the node's line index. Node ids from a scan taken
before an external edit may point at the wrong line; callers must re-scan
after any external change before moving.

A move reads the destination first, so an unreadable destination fails
before anything is written. It then makes two writes, each under the squelch:
1. Splice the block out of the source document and write it
2. Splice the depth-adjusted block into the destination and write it

When source and destination are the same document the second step works on
the already-spliced lines, so the insertion index is shifted to account for
the removed block. Both paths are invalidated in the parse cache afterwards,
including when the second write fails.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from task_table.cache.parse_cache import ParseCache, get_parse_cache
from task_table.errors import StaleNodeError
from task_table.host.base import DocumentHost
from task_table.models.task import TaskNode
from task_table.mutations.blocks import (
    adjust_block_depth,
    ensure_trailing_newline,
    extract_block,
    find_end_insertion_index,
)
from task_table.parsers.task_line import indent_depth, is_task_line
from task_table.state.squelch import Squelch
from task_table.utils.ids import node_id

log = logging.getLogger(__name__)


@dataclass
class MoveOutcome:
    """Where a moved block ended up."""

    source_path: str
    dest_path: str
    line_index: int
    line_count: int
    depth: int

    @property
    def node_id(self) -> str:
        """Id of the moved node in the next scan."""
        return node_id(self.dest_path, self.line_index)


def neighbor_depth(
    anchor: TaskNode, after: bool, file_nodes: Sequence[TaskNode]
) -> int:
    """
    Depth for a node dropped before/after ``anchor``.

    The larger of the depths of the nodes directly above and below the
    insertion point, and never less than 1. ``file_nodes`` are the anchor
    document's nodes in line order.
    """
    index = next((i for i, n in enumerate(file_nodes) if n.id == anchor.id), None)
    if index is None:
        return max(anchor.depth, 1)

    if after:
        above: Optional[TaskNode] = anchor
        below = file_nodes[index + 1] if index + 1 < len(file_nodes) else None
    else:
        above = file_nodes[index - 1] if index > 0 else None
        below = anchor

    return max(above.depth if above else 1, below.depth if below else 1, 1)


class RelocationEngine:
    """
    Moves and deletes task subtrees through a document host.

    All writes are made while holding the squelch; callers may hold it too.
    """

    def __init__(
        self,
        host: DocumentHost,
        cache: Optional[ParseCache] = None,
        squelch: Optional[Squelch] = None,
    ) -> None:
        self._host = host
        self._cache = cache if cache is not None else get_parse_cache()
        self._squelch = squelch if squelch is not None else Squelch()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def move_as_first_child(self, source: TaskNode, parent: TaskNode) -> MoveOutcome:
        """Move ``source`` (with its subtree) to be the first child of ``parent``."""
        return self._relocate(
            source,
            parent.document_path,
            parent.line_index + 1,
            parent.depth + 1,
        )

    def move_beside(
        self,
        source: TaskNode,
        anchor: TaskNode,
        after: bool,
        file_nodes: Sequence[TaskNode],
    ) -> MoveOutcome:
        """
        Move ``source`` directly before or after ``anchor``.

        The moved node takes the larger depth of its new neighbours, so it
        never ends up shallower than the rows around it.
        """
        new_depth = neighbor_depth(anchor, after, file_nodes)
        insert_at = anchor.line_index + 1 if after else anchor.line_index
        return self._relocate(source, anchor.document_path, insert_at, new_depth)

    def move_to_document_end(
        self, source: TaskNode, dest_path: str, depth: int = 1
    ) -> MoveOutcome:
        """Append ``source`` at the end of ``dest_path`` at a fixed depth."""
        return self._relocate(source, dest_path, None, depth)

    def delete_subtree(self, node: TaskNode) -> int:
        """
        Remove a node and its descendant block.

        Returns:
            Number of lines removed
        """
        lines, start, end = self._read_block(node)
        count = end - start + 1
        try:
            with self._squelch:
                del lines[start:end + 1]
                self._host.write_lines(node.document_path, lines)
        finally:
            self._cache.invalidate(node.document_path)

        log.info("Deleted %d line(s) at %s", count, node.id)
        return count

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _read_block(self, node: TaskNode) -> Tuple[List[str], int, int]:
        """Read the node's document and locate its block in the current content."""
        lines = self._host.read_lines(node.document_path)
        start = node.line_index
        if start < 0 or start >= len(lines) or not is_task_line(lines[start]):
            raise StaleNodeError(
                f"Line {start} of '{node.document_path}' no longer holds task {node.id}"
            )
        start, end = extract_block(lines, start)
        return lines, start, end

    def _relocate(
        self,
        source: TaskNode,
        dest_path: str,
        insert_at: Optional[int],
        new_depth: int,
    ) -> MoveOutcome:
        """
        Shared move procedure.

        ``insert_at`` is an index into the destination as it was before the
        move; None means the end of the destination document.
        """
        src_path = source.document_path
        lines, start, end = self._read_block(source)
        block_len = end - start + 1
        delta = new_depth - indent_depth(lines[start])
        block = adjust_block_depth(lines[start:end + 1], delta)

        try:
            # Destination must be readable before the source loses the block
            if dest_path != src_path:
                dest_lines = self._host.read_lines(dest_path)

            with self._squelch:
                del lines[start:end + 1]
                self._host.write_lines(src_path, lines)

                if dest_path == src_path:
                    dest_lines = lines
                    if insert_at is not None:
                        if insert_at > end:
                            insert_at -= block_len
                        elif insert_at > start:
                            # Dropped inside its own block: stays at the block start
                            insert_at = start

                append = insert_at is None
                if append:
                    insert_at = find_end_insertion_index(dest_lines)
                insert_at = max(0, min(len(dest_lines), insert_at))

                dest_lines[insert_at:insert_at] = block
                if append:
                    ensure_trailing_newline(dest_lines)
                self._host.write_lines(dest_path, dest_lines)
        finally:
            self._cache.invalidate(src_path)
            self._cache.invalidate(dest_path)

        log.info(
            "Moved %d line(s) from %s to %s:%d (depth %d)",
            block_len, source.id, dest_path, insert_at, max(1, new_depth),
        )
        return MoveOutcome(
            source_path=src_path,
            dest_path=dest_path,
            line_index=insert_at,
            line_count=block_len,
            depth=max(1, new_depth),
        )
