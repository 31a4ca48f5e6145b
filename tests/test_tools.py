"""
Tests for api/tools.py.

Uses a real TaskStore backed by a temporary vault on disk.
Exercises the MCP tool functions directly (bypasses transport).
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from task_table.api.tools import register_tools
from task_table.cache.parse_cache import ParseCache
from task_table.config import load_rules
from task_table.host.vault import VaultHost
from task_table.state.store import TaskStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    planner = vault / "Work" / "Planner"
    planner.mkdir(parents=True)
    (planner / "week.md").write_text(
        "# Week\n\n"
        "- [ ] Ship release\n"
        "\t- [ ] Write notes\n"
        "\t- [x] Tag build\n"
        "- [ ] Review PRs\n",
        encoding="utf-8",
    )
    (planner / "later.md").write_text("- [ ] Someday\n", encoding="utf-8")
    (vault / "Journal.md").write_text("- [ ] Not planned\n", encoding="utf-8")
    return vault


class _FakeMCP:
    """Minimal fake to capture tool registrations."""

    def __init__(self):
        self._tools = {}

    def tool(self, *args, **kwargs):
        """Decorator that records functions by name."""
        def decorator(fn):
            self._tools[fn.__name__] = fn
            return fn
        return decorator

    def get(self, name: str):
        return self._tools[name]


@pytest.fixture
def setup(tmp_path):
    vault = _make_vault(tmp_path)
    rules_file = tmp_path / "rules.json"
    store = TaskStore(VaultHost(vault), rules=load_rules(rules_file), cache=ParseCache())
    store.refresh()

    mcp = _FakeMCP()
    register_tools(mcp, store, rules_file)

    return mcp, store, vault, rules_file


WEEK = "Work/Planner/week.md"
LATER = "Work/Planner/later.md"


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def test_all_tools_registered(setup):
    mcp, store, vault, rules_file = setup
    assert set(mcp._tools) == {
        "task_groups", "task_list", "task_tree",
        "task_move", "task_move_to_end", "task_delete", "task_save", "task_create",
        "rules_get", "rules_set", "cache_status",
    }


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class TestViews:
    def test_groups_use_default_planner_rule(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_groups")())
        assert data["has_groups"] is True
        assert [g["name"] for g in data["groups"]] == ["Planner"]
        files = data["groups"][0]["files"]
        assert [f["display_name"] for f in files] == ["later", "week"]

    def test_task_list(self, setup):
        mcp, store, vault, rules_file = setup
        assert len(json.loads(mcp.get("task_list")())) == 5
        tasks = json.loads(mcp.get("task_list")(path=WEEK))
        assert [t["line_index"] for t in tasks] == [2, 3, 4, 5]
        assert [t["depth"] for t in tasks] == [1, 2, 2, 1]
        assert tasks[2]["checked"] is True
        assert tasks[1]["root_token"] == tasks[0]["root_token"]

    def test_task_tree(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_tree")(path=WEEK))
        top = data["tasks"]
        assert [t["text"] for t in top] == ["Ship release", "Review PRs"]
        assert [c["text"] for c in top[0]["children"]] == ["Write notes", "Tag build"]

    def test_task_tree_unknown(self, setup):
        mcp, store, vault, rules_file = setup
        assert "error" in json.loads(mcp.get("task_tree")(path="Journal.md"))

    def test_cache_status(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("cache_status")())
        assert data["documents_indexed"] == 2
        assert data["tasks_indexed"] == 5


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

class TestMutations:
    def test_move_after(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_move")(
            source_id=f"{WEEK}::5", target_id=f"{WEEK}::3", position="after",
        ))
        assert data["moved"] == f"{WEEK}::4"
        assert data["depth"] == 2
        assert (vault / WEEK).read_text() == (
            "# Week\n\n"
            "- [ ] Ship release\n"
            "\t- [ ] Write notes\n"
            "  - [ ] Review PRs\n"
            "\t- [x] Tag build\n"
        )

    def test_move_across_documents(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_move")(
            source_id=f"{WEEK}::2", target_id=f"{LATER}::0",
        ))
        assert data["moved"] == f"{LATER}::1"
        assert (vault / LATER).read_text() == (
            "- [ ] Someday\n"
            "  - [ ] Ship release\n"
            "    - [ ] Write notes\n"
            "    - [x] Tag build\n"
        )
        assert (vault / WEEK).read_text() == "# Week\n\n- [ ] Review PRs\n"

    def test_move_to_end(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_move_to_end")(source_id=f"{LATER}::0", dest_path=WEEK))
        assert data["moved"] == f"{WEEK}::6"
        assert (vault / WEEK).read_text().endswith("- [ ] Review PRs\n- [ ] Someday\n")

    def test_move_error_returned_as_json(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_move")(
            source_id=f"{WEEK}::0", target_id=f"{WEEK}::2",
        ))
        assert "not found" in data["error"]

    def test_delete(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_delete")(task_id=f"{WEEK}::2"))
        assert data["lines_removed"] == 3
        assert (vault / WEEK).read_text() == "# Week\n\n- [ ] Review PRs\n"

    def test_save(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_save")(task_id=f"{WEEK}::3", checked=True, text="Write notes v2"))
        assert data["changed"] is True
        assert data["task"]["text"] == "Write notes v2"
        assert "\t- [x] Write notes v2\n" in (vault / WEEK).read_text()

    def test_save_empty_text(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_save")(task_id=f"{WEEK}::3", text=""))
        assert "error" in data

    def test_create(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_create")(path=LATER, text="Plan trip"))
        assert data["id"] == f"{LATER}::1"
        assert data["checked"] is False

    def test_create_unmatched(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("task_create")(path="Journal.md", text="x"))
        assert "error" in data
        assert (vault / "Journal.md").read_text() == "- [ ] Not planned\n"


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

class TestRules:
    def test_rules_get(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("rules_get")())
        assert data == {"rules": [{"name": "Planner", "re": r".*/Planner/.*\.md$"}]}

    def test_rules_set_flat(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("rules_set")(rules=[{"name": "", "re": r"\.md$"}]))
        assert data["valid"] == 1
        groups = json.loads(mcp.get("task_groups")())
        assert groups["has_groups"] is False
        assert len(groups["groups"][0]["files"]) == 3
        assert load_rules(rules_file)[0].re == r"\.md$"

    def test_rules_set_invalid_entry(self, setup):
        mcp, store, vault, rules_file = setup
        data = json.loads(mcp.get("rules_set")(rules=[{"name": 5, "re": "x"}]))
        assert "error" in data
        assert not rules_file.exists()
