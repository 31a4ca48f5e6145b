"""
Command-line access to a vault's task table.

Usage:
    task-table --vault ~/notes scan
    task-table --vault ~/notes tree Projects/Planner/week.md
    task-table --vault ~/notes move "Planner/a.md::4" "Planner/a.md::0" --position child
    task-table --vault ~/notes move-to-end "Planner/a.md::4" Planner/b.md --depth 2
    task-table --vault ~/notes delete "Planner/a.md::4"
    task-table serve

Rules come from <vault>/.task-table/rules.json unless --rules is given.
"""

import argparse
import logging
import sys
from pathlib import Path

from task_table.config import DEFAULT_EXCLUDE_DIRS, RULES_FILE_NAME, load_rules, parse_exclude_dirs
from task_table.errors import TaskTableError
from task_table.host.vault import VaultHost
from task_table.parsers.hierarchy import walk_depth_first
from task_table.state.store import MOVE_POSITIONS, TaskStore


def _format_node(node) -> str:
    box = "x" if node.checked else " "
    return f"{'  ' * (node.depth - 1)}[{box}] {node.text}  ({node.id})"


def _open_store(args) -> TaskStore:
    vault = Path(args.vault)
    if not vault.is_dir():
        print(f"Error: Vault not found: {vault}")
        sys.exit(1)

    rules_file = Path(args.rules) if args.rules else vault / RULES_FILE_NAME
    host = VaultHost(vault, parse_exclude_dirs(args.exclude))
    store = TaskStore(host, rules=load_rules(rules_file))
    store.refresh()
    return store


# --- scan ---

def scan_cmd(args):
    """Print the grouped table: groups, documents and task counts."""
    store = _open_store(args)
    result = store.result

    if not result.groups:
        print("No documents matched the grouping rules.")
        return

    for group in result.groups:
        if result.has_groups:
            print(group.name)
        for bucket in group.files:
            print(f"  {bucket.display_name}  ({bucket.path}, {len(bucket.items)} task(s))")

    total = sum(len(nodes) for nodes in result.tasks_by_file.values())
    print(f"\n{len(result.tasks_by_file)} document(s), {total} task(s) indexed.")


# --- tree ---

def tree_cmd(args):
    """Print a document's tasks as an indented tree."""
    store = _open_store(args)
    parsed = store.parsed(args.path)
    if parsed is None or not parsed.nodes:
        print(f"No tasks found in {args.path}.")
        return

    print(args.path)
    for node in walk_depth_first(parsed):
        print(f"  {_format_node(node)}")


# --- move ---

def move_cmd(args):
    store = _open_store(args)
    outcome = store.move(args.source, args.target, args.position)
    print(f"Moved {outcome.line_count} line(s) to {outcome.node_id} (depth {outcome.depth})")


def move_to_end_cmd(args):
    store = _open_store(args)
    outcome = store.move_to_end(args.source, args.dest, args.depth)
    print(f"Moved {outcome.line_count} line(s) to {outcome.node_id} (depth {outcome.depth})")


# --- delete ---

def delete_cmd(args):
    store = _open_store(args)
    removed = store.delete(args.id)
    print(f"Deleted {args.id} ({removed} line(s))")


# --- serve ---

def serve_cmd(args):
    """Run the MCP/REST server (configured from the environment)."""
    from task_table.server import main as server_main

    server_main()


# --- main ---

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="task-table",
        description="Hierarchical checkbox task table over a markdown vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--vault", default=".", help="Vault root directory")
    parser.add_argument("--rules", help="Rules file (default: <vault>/.task-table/rules.json)")
    parser.add_argument("--exclude", default=DEFAULT_EXCLUDE_DIRS,
                        help="Comma-separated directory names to skip")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_p = subparsers.add_parser("scan", help="Scan and show the grouped table")
    scan_p.set_defaults(func=scan_cmd)

    tree_p = subparsers.add_parser("tree", help="Show a document's task tree")
    tree_p.add_argument("path", help="Vault-relative document path")
    tree_p.set_defaults(func=tree_cmd)

    move_p = subparsers.add_parser("move", help="Move a task and its subtasks")
    move_p.add_argument("source", help="Id of the task to move")
    move_p.add_argument("target", help="Id of the task to drop on")
    move_p.add_argument("--position", choices=MOVE_POSITIONS, default="child",
                        help="Where to drop relative to the target (default: child)")
    move_p.set_defaults(func=move_cmd)

    end_p = subparsers.add_parser("move-to-end", help="Move a task to the end of a document")
    end_p.add_argument("source", help="Id of the task to move")
    end_p.add_argument("dest", help="Vault-relative destination document")
    end_p.add_argument("--depth", type=int, default=1, help="Depth in the destination (default: 1)")
    end_p.set_defaults(func=move_to_end_cmd)

    delete_p = subparsers.add_parser("delete", help="Delete a task and its subtasks")
    delete_p.add_argument("id", help="Id of the task to delete")
    delete_p.set_defaults(func=delete_cmd)

    serve_p = subparsers.add_parser("serve", help="Run the MCP and REST server")
    serve_p.set_defaults(func=serve_cmd)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        args.func(args)
    except TaskTableError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
