"""
Core task data models.

Nodes are positional views over a document's lines: a TaskNode is identified
by ``(document_path, line_index)`` and is only meaningful for the scan that
produced it. Every write to a document invalidates all of its nodes, so these
objects are rebuilt from scratch on each scan rather than mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from task_table.utils.ids import split_node_id


@dataclass
class TaskNode:
    """
    A single checkbox task line parsed from a document.

    ``depth`` is 1-based; ``parent_id`` points at the nearest preceding node
    with a strictly smaller depth in the same document.
    """

    document_path: str
    line_index: int
    raw_line: str
    depth: int
    root_group_id: str
    root_token: str
    id: str
    parent_id: Optional[str] = None

    @property
    def checked(self) -> bool:
        from task_table.parsers.task_line import classify

        return classify(self.raw_line).checked

    @property
    def text(self) -> str:
        from task_table.parsers.task_line import classify

        return classify(self.raw_line).text


@dataclass
class ParsedDocument:
    """Scanner output for one document: nodes in line order plus children index."""

    path: str
    mtime: int
    nodes: List[TaskNode] = field(default_factory=list)
    children: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class FileBucket:
    path: str
    display_name: str
    items: List[TaskNode] = field(default_factory=list)


@dataclass
class GroupBucket:
    key: str
    name: str
    files: List[FileBucket] = field(default_factory=list)


@dataclass
class ScanResult:
    """
    Result of a grouping pass over the vault.

    ``tasks_by_file`` and the ``items`` of every FileBucket share the same
    node lists (one parse per document, referenced from each bucket).
    """

    groups: List[GroupBucket] = field(default_factory=list)
    tasks_by_file: Dict[str, List[TaskNode]] = field(default_factory=dict)
    children_by_id: Dict[str, List[str]] = field(default_factory=dict)
    has_groups: bool = False

    def all_nodes(self) -> List[TaskNode]:
        """Return every node across all documents, document by document."""
        result: List[TaskNode] = []
        for nodes in self.tasks_by_file.values():
            result.extend(nodes)
        return result

    def find_by_id(self, node_id: str) -> Optional[TaskNode]:
        """Find a node by its id."""
        try:
            path, _ = split_node_id(node_id)
        except ValueError:
            return None
        for node in self.tasks_by_file.get(path, []):
            if node.id == node_id:
                return node
        return None
