"""
task-table: a live, editable hierarchical view over checkbox tasks in
markdown documents.

Main API:
    from task_table.host.vault import VaultHost
    from task_table.state.store import TaskStore

    store = TaskStore(VaultHost(vault_root), rules=[{"name": "", "re": r"\\.md$"}])
    result = store.refresh()
    store.move(source_id, target_id, "child")
"""

__version__ = "0.1.0"
