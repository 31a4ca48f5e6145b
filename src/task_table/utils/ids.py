"""
Node ID utilities.

Ids are positional: they embed the document path and line index, so they are
globally unique across a scan but only valid until the document changes.
"""

from typing import Tuple

ID_SEPARATOR = "::"

PLACEHOLDER_ROOT_TOKEN = "untitled-root"


def node_id(path: str, line_index: int) -> str:
    """
    Build the id for the task on a given line.

    Returns:
        String like "Proj/x.md::3"
    """
    return f"{path}{ID_SEPARATOR}{line_index}"


def placeholder_root_id(path: str) -> str:
    """Root group id for tasks that precede any depth-1 task in a document."""
    return f"{path}{ID_SEPARATOR}first"


def split_node_id(value: str) -> Tuple[str, int]:
    """
    Split a node id back into (path, line_index).

    Raises:
        ValueError: if the id does not end with a line index
    """
    path, sep, index = value.rpartition(ID_SEPARATOR)
    if not sep or not index.isdigit():
        raise ValueError(f"Malformed node id: {value!r}")
    return path, int(index)
