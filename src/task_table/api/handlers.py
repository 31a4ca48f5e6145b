"""Handler functions shared by MCP tools and the REST API."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from task_table.config import save_rules
from task_table.models.rule import RuleSpec
from task_table.models.task import FileBucket, GroupBucket, TaskNode

log = logging.getLogger(__name__)


def node_to_dict(node: TaskNode) -> dict:
    """Serialize a TaskNode to a JSON-serializable dict."""
    return {
        "id": node.id,
        "path": node.document_path,
        "line_index": node.line_index,
        "depth": node.depth,
        "checked": node.checked,
        "text": node.text,
        "parent_id": node.parent_id,
        "root_group_id": node.root_group_id,
        "root_token": node.root_token,
    }


def _file_to_dict(bucket: FileBucket) -> dict:
    return {
        "path": bucket.path,
        "display_name": bucket.display_name,
        "items": [node_to_dict(n) for n in bucket.items],
    }


def _group_to_dict(group: GroupBucket) -> dict:
    return {
        "key": group.key,
        "name": group.name,
        "files": [_file_to_dict(f) for f in group.files],
    }


def _tree(nodes: List[TaskNode], children: Dict[str, List[str]]) -> List[dict]:
    by_id = {n.id: n for n in nodes}

    def build(node: TaskNode) -> dict:
        d = node_to_dict(node)
        d["children"] = [build(by_id[cid]) for cid in children.get(node.id, []) if cid in by_id]
        return d

    return [build(n) for n in nodes if n.parent_id is None]


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def handle_groups(store) -> dict:
    result = store.result
    return {
        "has_groups": result.has_groups,
        "groups": [_group_to_dict(g) for g in result.groups],
    }


def handle_scan(store) -> dict:
    result = store.refresh()
    return {
        "scanned": True,
        "documents": len(result.tasks_by_file),
        "tasks": sum(len(n) for n in result.tasks_by_file.values()),
        "groups": [g.name or g.key for g in result.groups],
    }


def handle_task_list(store, *, path: Optional[str] = None) -> List[dict]:
    if path:
        nodes = store.file_nodes(path)
    else:
        nodes = store.result.all_nodes()
    return [node_to_dict(n) for n in nodes]


def handle_task_get(store, *, node_id: str) -> dict:
    node = store.result.find_by_id(node_id)
    if node is None:
        return {"error": f"Task '{node_id}' not found"}
    result = node_to_dict(node)
    result["raw_line"] = node.raw_line
    result["children"] = [c.id for c in store.children_of(node_id)]
    return result


def handle_task_tree(store, *, path: str) -> dict:
    result = store.result
    nodes = result.tasks_by_file.get(path)
    if nodes is None:
        return {"error": f"Document '{path}' has no indexed tasks"}
    return {"path": path, "tasks": _tree(nodes, result.children_by_id)}


# ---------------------------------------------------------------------------
# Mutations (exceptions propagate; callers map them to transport errors)
# ---------------------------------------------------------------------------


def handle_task_move(store, *, source_id: str, target_id: str, position: str) -> dict:
    outcome = store.move(source_id, target_id, position)
    return {
        "moved": outcome.node_id,
        "path": outcome.dest_path,
        "line_index": outcome.line_index,
        "line_count": outcome.line_count,
        "depth": outcome.depth,
    }


def handle_task_move_to_end(store, *, source_id: str, dest_path: str, depth: int = 1) -> dict:
    outcome = store.move_to_end(source_id, dest_path, depth)
    return {
        "moved": outcome.node_id,
        "path": outcome.dest_path,
        "line_index": outcome.line_index,
        "line_count": outcome.line_count,
        "depth": outcome.depth,
    }


def handle_task_delete(store, *, node_id: str) -> dict:
    removed = store.delete(node_id)
    return {"deleted": node_id, "lines_removed": removed}


def handle_task_save(
    store,
    *,
    node_id: str,
    checked: Optional[bool] = None,
    text: Optional[str] = None,
) -> dict:
    if text is not None and not text.strip():
        raise ValueError("Task text must not be empty")
    changed = store.save(node_id, checked=checked, text=text)
    return {"changed": changed, "task": node_to_dict(store.get_node(node_id))}


def handle_task_create(store, *, path: str, text: str) -> dict:
    if not text.strip():
        raise ValueError("Task text must not be empty")
    return node_to_dict(store.create_task(path, text))


# ---------------------------------------------------------------------------
# Rules / status
# ---------------------------------------------------------------------------


def handle_rules_get(store) -> dict:
    return {"rules": [r.model_dump() for r in store.rules]}


def handle_rules_set(store, *, rules: List[dict], rules_file: Optional[Path] = None) -> dict:
    specs = [RuleSpec.model_validate(r) for r in rules]
    compiled = store.set_rules(specs)
    if rules_file is not None:
        save_rules(rules_file, specs)
        log.info("Saved %d rules to %s", len(specs), rules_file)
    store.refresh()
    return {
        "rules": [r.model_dump() for r in specs],
        "valid": len(compiled),
        "dropped": len(specs) - len(compiled),
    }


def handle_cache_status(store) -> dict:
    return store.status()
