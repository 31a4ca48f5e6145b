"""
task-table server entry point.

Startup sequence:
1. Read settings from the environment (VAULT_ROOT, EXCLUDE_DIRS, ...)
2. Load grouping rules from the rules file
3. Build the vault host and task store, run the initial scan
4. Start the polling watcher and autoscan
5. Start REST API server in background thread (if API_ENABLED)
6. Register MCP tools and run the MCP server (stdio transport)
"""

import logging
import sys
import threading

from mcp.server.fastmcp import FastMCP

from task_table.api.tools import register_tools
from task_table.config import Settings, load_rules, load_settings
from task_table.host.vault import VaultHost
from task_table.state.store import TaskStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger(__name__)


def _start_api_server(store: TaskStore, settings: Settings) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from task_table.api.app import create_app

    app = create_app(store, settings.rules_file)
    log.info("Starting REST API on port %d", settings.api_port)
    uvicorn.run(app, host="0.0.0.0", port=settings.api_port, log_level="warning")


def build_store(host: VaultHost, settings: Settings) -> TaskStore:
    """Create the store for a vault host and run the initial scan."""
    rules = load_rules(settings.rules_file)
    store = TaskStore(host, rules=rules)
    log.info("Scanning vault...")
    store.refresh()
    return store


def main() -> None:
    try:
        settings = load_settings()
    except ValueError as e:
        log.error("%s", e)
        sys.exit(1)

    if not settings.vault_root.is_dir():
        log.error("VAULT_ROOT does not exist or is not a directory: %s", settings.vault_root)
        sys.exit(1)

    log.info("Vault root: %s", settings.vault_root)
    log.info("Excluded dirs: %s", settings.exclude_dirs)
    log.info("Rules file: %s", settings.rules_file)

    host = VaultHost(settings.vault_root, settings.exclude_dirs)
    store = build_store(host, settings)

    # External edits arrive through the watcher, own writes are squelched
    host.start_watching(settings.poll_interval)
    store.start_autoscan(settings.autoscan_debounce)

    if settings.api_enabled:
        api_thread = threading.Thread(
            target=_start_api_server, args=(store, settings), daemon=True
        )
        api_thread.start()

    mcp = FastMCP("task-table")
    register_tools(mcp, store, settings.rules_file)

    log.info("Starting task-table server")
    try:
        mcp.run(transport="stdio")
    finally:
        store.stop_autoscan()
        host.stop_watching()


if __name__ == "__main__":
    main()
