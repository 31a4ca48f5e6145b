"""
Hierarchy scanner.

Turns a document's flat line list into an ordered forest of TaskNodes.

Main API:
    scan_lines(path, lines, mtime=0)  → ParsedDocument

Parentage comes from indentation alone: a node's parent is the nearest
preceding node with a strictly smaller depth. Depth jumps of more than one
level are tolerated, so a parent may sit several levels above its child.
"""

from typing import Dict, List, Sequence

from task_table.models.task import ParsedDocument, TaskNode
from task_table.parsers.task_line import indent_depth, is_task_line, root_token
from task_table.utils.ids import PLACEHOLDER_ROOT_TOKEN, node_id, placeholder_root_id


def _collect_nodes(path: str, lines: Sequence[str]) -> List[TaskNode]:
    """First pass: task lines with depth, id and root group."""
    nodes: List[TaskNode] = []
    current_root_id = ""
    current_root_token = ""

    for i, line in enumerate(lines):
        if not is_task_line(line):
            continue

        depth = indent_depth(line)
        nid = node_id(path, i)

        if depth == 1:
            current_root_id = nid
            current_root_token = root_token(line)
        elif not current_root_id:
            # Document opens with an indented task
            current_root_id = placeholder_root_id(path)
            current_root_token = PLACEHOLDER_ROOT_TOKEN

        nodes.append(
            TaskNode(
                document_path=path,
                line_index=i,
                raw_line=line,
                depth=depth,
                root_group_id=current_root_id,
                root_token=current_root_token,
                id=nid,
            )
        )
    return nodes


def _link_parents(nodes: List[TaskNode]) -> Dict[str, List[str]]:
    """Second pass: parent links via a depth stack, plus the children index."""
    children: Dict[str, List[str]] = {}
    stack: List[TaskNode] = []

    for node in nodes:
        # Pop stack to find parent
        while stack and stack[-1].depth >= node.depth:
            stack.pop()

        if stack:
            node.parent_id = stack[-1].id
            children.setdefault(node.parent_id, []).append(node.id)

        stack.append(node)
    return children


def scan_lines(path: str, lines: Sequence[str], mtime: int = 0) -> ParsedDocument:
    """
    Parse a document's lines into nodes and a children index.

    Args:
        path: Document path (embedded in every node id)
        lines: Document content split on newlines
        mtime: Modification timestamp the lines were read at

    Returns:
        ParsedDocument with nodes in line order
    """
    nodes = _collect_nodes(path, lines)
    children = _link_parents(nodes)
    return ParsedDocument(path=path, mtime=mtime, nodes=nodes, children=children)


def walk_depth_first(parsed: ParsedDocument) -> List[TaskNode]:
    """
    Flatten the forest back into a list by depth-first traversal.

    For any well-formed scan this reproduces line order.
    """
    by_id = {n.id: n for n in parsed.nodes}
    result: List[TaskNode] = []

    def visit(node: TaskNode) -> None:
        result.append(node)
        for child_id in parsed.children.get(node.id, []):
            visit(by_id[child_id])

    for node in parsed.nodes:
        if node.parent_id is None:
            visit(node)
    return result
