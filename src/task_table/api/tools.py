"""MCP tool registration for task-table."""

import json
import logging
from pathlib import Path
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from task_table.api.handlers import (
    handle_cache_status,
    handle_groups,
    handle_rules_get,
    handle_rules_set,
    handle_task_create,
    handle_task_delete,
    handle_task_list,
    handle_task_move,
    handle_task_move_to_end,
    handle_task_save,
    handle_task_tree,
)

log = logging.getLogger(__name__)


def register_tools(mcp: FastMCP, store, rules_file: Optional[Path] = None) -> None:
    """Register all MCP tools onto the FastMCP instance."""

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @mcp.tool()
    def task_groups() -> str:
        """
        Show the grouped task table.

        Documents are bucketed by the grouping rules. With only unnamed rules
        there is a single group with key "__ALL__"; otherwise one group per
        rule name, sorted case-insensitively.

        Returns:
            JSON object {"has_groups", "groups": [{"key", "name", "files": [...]}]}
        """
        return json.dumps(handle_groups(store), indent=2)

    @mcp.tool()
    def task_list(path: Optional[str] = None) -> str:
        """
        List tasks in line order.

        Ids look like "Projects/Planner/week.md::3" (document path and line
        index). They change whenever the document is edited, so list again
        after any move or delete.

        Args:
            path: Restrict to one document (vault-relative path)

        Returns:
            JSON array of task objects
        """
        return json.dumps(handle_task_list(store, path=path), indent=2)

    @mcp.tool()
    def task_tree(path: str) -> str:
        """
        Show a document's tasks as a nested tree.

        Args:
            path: Vault-relative document path

        Returns:
            JSON object {"path", "tasks": [{..., "children": [...]}]}
        """
        return json.dumps(handle_task_tree(store, path=path), indent=2)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @mcp.tool()
    def task_move(source_id: str, target_id: str, position: str = "child") -> str:
        """
        Move a task, with all of its subtasks, relative to another task.

        Args:
            source_id: Id of the task to move
            target_id: Id of the task to drop on
            position: "child" (first child of target), "before" or "after".
                      Before/after takes the larger depth of the new neighbours.

        Returns:
            JSON object with the moved task's new id, path and depth
        """
        try:
            return json.dumps(
                handle_task_move(store, source_id=source_id, target_id=target_id, position=position),
                indent=2,
            )
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def task_move_to_end(source_id: str, dest_path: str, depth: int = 1) -> str:
        """
        Move a task, with all of its subtasks, to the end of a document.

        Args:
            source_id: Id of the task to move
            dest_path: Vault-relative path of the destination document
            depth: Depth of the moved task in the destination (default 1)

        Returns:
            JSON object with the moved task's new id, path and depth
        """
        try:
            return json.dumps(
                handle_task_move_to_end(store, source_id=source_id, dest_path=dest_path, depth=depth),
                indent=2,
            )
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def task_delete(task_id: str) -> str:
        """
        Delete a task together with all of its subtasks.

        Args:
            task_id: Id of the task to delete

        Returns:
            JSON object {"deleted", "lines_removed"}
        """
        try:
            return json.dumps(handle_task_delete(store, node_id=task_id), indent=2)
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def task_save(
        task_id: str,
        checked: Optional[bool] = None,
        text: Optional[str] = None,
    ) -> str:
        """
        Update a task's checkbox and/or text in place.

        Only fields you pass will be changed. Indentation and bullet are kept.

        Args:
            task_id: Id of the task to update
            checked: New checkbox state
            text: New task text

        Returns:
            JSON object {"changed", "task"}
        """
        try:
            return json.dumps(
                handle_task_save(store, node_id=task_id, checked=checked, text=text),
                indent=2,
            )
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def task_create(path: str, text: str) -> str:
        """
        Append a new unchecked top-level task to the end of a document.

        Args:
            path: Vault-relative document path
            text: Task text

        Returns:
            JSON object with the new task
        """
        try:
            return json.dumps(handle_task_create(store, path=path, text=text), indent=2)
        except Exception as e:
            return json.dumps({"error": str(e)})

    # ------------------------------------------------------------------
    # Rules / status
    # ------------------------------------------------------------------

    @mcp.tool()
    def rules_get() -> str:
        """
        Show the grouping rules.

        Returns:
            JSON object {"rules": [{"name", "re"}]}
        """
        return json.dumps(handle_rules_get(store), indent=2)

    @mcp.tool()
    def rules_set(rules: List[dict]) -> str:
        """
        Replace the grouping rules and rescan.

        Each rule is {"name": ..., "re": ...}. The pattern is searched
        anywhere in the vault-relative path. Rules with an invalid pattern
        are dropped. If every name is empty the table is a single flat group.

        Args:
            rules: List of rule objects

        Returns:
            JSON object with the stored rules and the count of valid ones
        """
        try:
            return json.dumps(
                handle_rules_set(store, rules=rules, rules_file=rules_file),
                indent=2,
            )
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def cache_status() -> str:
        """
        Diagnostic: show scan, cache and autoscan status.

        Returns:
            JSON object with index sizes, scan count and cache hit/miss counts
        """
        return json.dumps(handle_cache_status(store), indent=2)
