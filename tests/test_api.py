"""
Tests for the REST API (api/app.py, api/routes.py, api/handlers.py).

Drives the FastAPI app through TestClient against a store over a
temporary vault.

Covers:
- View endpoints: groups, tasks, tree, get
- Mutations and their status codes (201, 400, 404, 409)
- Rules endpoints, including persistence to the rules file
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from task_table.api.app import create_app
from task_table.cache.parse_cache import ParseCache
from task_table.host.vault import VaultHost
from task_table.state.store import TaskStore


RULES = [{"name": "", "re": r"^Proj/"}]


def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    (vault / "Proj").mkdir(parents=True)
    (vault / "Other").mkdir()
    (vault / "Proj" / "A.md").write_text(
        "- [ ] Buy milk\n  - [ ] 2% milk\n- [ ] Walk dog\n", encoding="utf-8"
    )
    (vault / "Proj" / "B.md").write_text("- [ ] Other\n", encoding="utf-8")
    (vault / "Other" / "C.md").write_text("- [ ] Not indexed\n", encoding="utf-8")
    return vault


@pytest.fixture
def setup(tmp_path):
    vault = _make_vault(tmp_path)
    store = TaskStore(VaultHost(vault), rules=RULES, cache=ParseCache())
    store.refresh()
    rules_file = tmp_path / "rules.json"
    client = TestClient(create_app(store, rules_file))
    return client, store, vault, rules_file


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


class TestViews:
    def test_groups(self, setup):
        client, store, vault, rules_file = setup
        resp = client.get("/api/groups")
        assert resp.status_code == 200
        data = resp.json()
        assert data["has_groups"] is False
        assert data["groups"][0]["key"] == "__ALL__"
        files = data["groups"][0]["files"]
        assert [f["display_name"] for f in files] == ["A", "B"]
        assert [t["text"] for t in files[0]["items"]] == ["Buy milk", "2% milk", "Walk dog"]

    def test_list_tasks(self, setup):
        client, store, vault, rules_file = setup
        assert len(client.get("/api/tasks").json()) == 4
        tasks = client.get("/api/tasks", params={"path": "Proj/A.md"}).json()
        assert [t["id"] for t in tasks] == ["Proj/A.md::0", "Proj/A.md::1", "Proj/A.md::2"]
        assert tasks[1]["parent_id"] == "Proj/A.md::0"
        assert tasks[1]["root_group_id"] == "Proj/A.md::0"
        assert client.get("/api/tasks", params={"path": "Other/C.md"}).json() == []

    def test_tree(self, setup):
        client, store, vault, rules_file = setup
        data = client.get("/api/tasks/tree", params={"path": "Proj/A.md"}).json()
        assert [t["text"] for t in data["tasks"]] == ["Buy milk", "Walk dog"]
        assert [c["text"] for c in data["tasks"][0]["children"]] == ["2% milk"]
        assert data["tasks"][1]["children"] == []

    def test_tree_unknown_document(self, setup):
        client, store, vault, rules_file = setup
        assert client.get("/api/tasks/tree", params={"path": "Other/C.md"}).status_code == 404

    def test_get_task(self, setup):
        client, store, vault, rules_file = setup
        data = client.get("/api/tasks/get", params={"id": "Proj/A.md::0"}).json()
        assert data["raw_line"] == "- [ ] Buy milk"
        assert data["children"] == ["Proj/A.md::1"]
        assert client.get("/api/tasks/get", params={"id": "Proj/A.md::8"}).status_code == 404

    def test_scan_and_status(self, setup):
        client, store, vault, rules_file = setup
        (vault / "Proj" / "D.md").write_text("- [ ] Fresh\n", encoding="utf-8")
        data = client.post("/api/scan").json()
        assert data["documents"] == 3
        assert data["tasks"] == 5
        status = client.get("/api/cache/status").json()
        assert status["documents_indexed"] == 3
        assert status["scan_count"] == 2


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


class TestMutations:
    def test_move(self, setup):
        client, store, vault, rules_file = setup
        resp = client.post("/api/tasks/move", json={
            "source_id": "Proj/A.md::2", "target_id": "Proj/A.md::0",
        })
        assert resp.status_code == 200
        assert resp.json()["moved"] == "Proj/A.md::1"
        assert resp.json()["depth"] == 2
        assert (vault / "Proj" / "A.md").read_text() == (
            "- [ ] Buy milk\n  - [ ] Walk dog\n  - [ ] 2% milk\n"
        )

    def test_move_bad_position(self, setup):
        client, store, vault, rules_file = setup
        resp = client.post("/api/tasks/move", json={
            "source_id": "Proj/A.md::2", "target_id": "Proj/A.md::0", "position": "under",
        })
        assert resp.status_code == 400

    def test_move_unknown_source(self, setup):
        client, store, vault, rules_file = setup
        resp = client.post("/api/tasks/move", json={
            "source_id": "Proj/A.md::9", "target_id": "Proj/A.md::0",
        })
        assert resp.status_code == 404

    def test_move_to_end(self, setup):
        client, store, vault, rules_file = setup
        resp = client.post("/api/tasks/move-to-end", json={
            "source_id": "Proj/B.md::0", "dest_path": "Proj/A.md",
        })
        assert resp.json()["moved"] == "Proj/A.md::3"
        assert (vault / "Proj" / "B.md").read_text() == ""

    def test_move_to_end_missing_destination(self, setup):
        client, store, vault, rules_file = setup
        resp = client.post("/api/tasks/move-to-end", json={
            "source_id": "Proj/A.md::0", "dest_path": "Proj/missing.md",
        })
        assert resp.status_code == 500
        assert (vault / "Proj" / "A.md").read_text() == (
            "- [ ] Buy milk\n  - [ ] 2% milk\n- [ ] Walk dog\n"
        )

    def test_delete(self, setup):
        client, store, vault, rules_file = setup
        resp = client.post("/api/tasks/delete", json={"id": "Proj/A.md::0"})
        assert resp.json() == {"deleted": "Proj/A.md::0", "lines_removed": 2}

    def test_delete_stale(self, setup):
        client, store, vault, rules_file = setup
        (vault / "Proj" / "A.md").write_text("Rewritten by hand\n", encoding="utf-8")
        resp = client.post("/api/tasks/delete", json={"id": "Proj/A.md::0"})
        assert resp.status_code == 409
        assert (vault / "Proj" / "A.md").read_text() == "Rewritten by hand\n"

    def test_save(self, setup):
        client, store, vault, rules_file = setup
        resp = client.post("/api/tasks/save", json={"id": "Proj/B.md::0", "checked": True})
        data = resp.json()
        assert data["changed"] is True
        assert data["task"]["checked"] is True
        assert (vault / "Proj" / "B.md").read_text() == "- [x] Other\n"

    def test_save_empty_text(self, setup):
        client, store, vault, rules_file = setup
        resp = client.post("/api/tasks/save", json={"id": "Proj/B.md::0", "text": "  "})
        assert resp.status_code == 400

    def test_create(self, setup):
        client, store, vault, rules_file = setup
        resp = client.post("/api/tasks", json={"path": "Proj/B.md", "text": "New one"})
        assert resp.status_code == 201
        assert resp.json()["id"] == "Proj/B.md::1"
        assert (vault / "Proj" / "B.md").read_text() == "- [ ] Other\n- [ ] New one\n"

    def test_create_outside_rules(self, setup):
        client, store, vault, rules_file = setup
        resp = client.post("/api/tasks", json={"path": "Other/C.md", "text": "Nope"})
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class TestRules:
    def test_get_rules(self, setup):
        client, store, vault, rules_file = setup
        assert client.get("/api/rules").json() == {"rules": RULES}

    def test_put_rules(self, setup):
        client, store, vault, rules_file = setup
        resp = client.put("/api/rules", json={"rules": [
            {"name": "Work", "re": "^Proj/"},
            {"name": "Bad", "re": "["},
        ]})
        assert resp.status_code == 200
        assert resp.json()["valid"] == 1
        assert resp.json()["dropped"] == 1

        groups = client.get("/api/groups").json()
        assert groups["has_groups"] is True
        assert [g["name"] for g in groups["groups"]] == ["Work"]

        saved = json.loads(rules_file.read_text(encoding="utf-8"))
        assert [r["name"] for r in saved["rules"]] == ["Work", "Bad"]

    def test_put_rules_malformed(self, setup):
        client, store, vault, rules_file = setup
        resp = client.put("/api/rules", json={"rules": "everything"})
        assert resp.status_code == 422
        assert not rules_file.exists()
