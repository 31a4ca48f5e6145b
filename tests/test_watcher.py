"""
Tests for host/vault.py and watcher/vault_watcher.py.

Polls are driven by calling check_for_changes() directly; the background
thread is started with a long interval and stopped straight away.

Covers:
- VaultHost listing, exclusions, reads, writes and notifications
- Path escape protection
- Watcher: created / modified / deleted / renamed detection
- Writes made through the host are not reported twice
"""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from task_table.errors import DocumentIOError
from task_table.host.base import ChangeKind, DocumentRef
from task_table.host.vault import VaultHost
from task_table.watcher.vault_watcher import VaultWatcher


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    (vault / "Proj").mkdir(parents=True)
    (vault / ".obsidian").mkdir()
    (vault / "Proj" / "A.md").write_text("- [ ] a\n", encoding="utf-8")
    (vault / "Top.md").write_text("- [ ] top\n", encoding="utf-8")
    (vault / "Proj" / "notes.txt").write_text("not markdown\n", encoding="utf-8")
    (vault / ".obsidian" / "hidden.md").write_text("- [ ] hidden\n", encoding="utf-8")
    return vault


@pytest.fixture
def host(tmp_path):
    return VaultHost(_make_vault(tmp_path), {".obsidian"})


@pytest.fixture
def watcher(host):
    w = VaultWatcher(host, poll_interval=60)
    w.start()
    w.stop()
    return w


# ---------------------------------------------------------------------------
# VaultHost
# ---------------------------------------------------------------------------

class TestVaultHost:
    def test_list_documents(self, host):
        docs = host.list_documents()
        assert [d.path for d in docs] == ["Proj/A.md", "Top.md"]
        assert all(d.mtime > 0 for d in docs)
        assert docs[0].read_lines() == ["- [ ] a", ""]

    def test_display_name(self):
        assert DocumentRef("Proj/Week Plan.MD", 1).display_name == "Week Plan"
        assert DocumentRef("README", 1).display_name == "README"

    def test_read_missing(self, host):
        with pytest.raises(DocumentIOError):
            host.read_lines("Proj/missing.md")

    def test_path_escape_rejected(self, host):
        with pytest.raises(DocumentIOError):
            host.read_lines("../outside.md")
        with pytest.raises(DocumentIOError):
            host.write_lines("../outside.md", ["- [ ] x"])

    def test_write_notifies(self, host):
        events = []
        host.subscribe(lambda path, kind, old: events.append((path, kind)))
        host.write_lines("Proj/A.md", ["- [x] a", ""])
        host.write_lines("New/B.md", ["- [ ] b", ""])
        assert events == [("Proj/A.md", ChangeKind.MODIFIED), ("New/B.md", ChangeKind.CREATED)]
        assert (host.root / "New" / "B.md").read_text() == "- [ ] b\n"

    def test_crlf_document_keeps_line_endings(self, host):
        doc = host.root / "Proj" / "Win.md"
        doc.write_bytes(b"intro\r\n- [ ] a\r\n- [ ] b\r\n")
        lines = host.read_lines("Proj/Win.md")
        assert lines == ["intro", "- [ ] a", "- [ ] b", ""]
        lines[1] = "- [x] a"
        host.write_lines("Proj/Win.md", lines)
        assert doc.read_bytes() == b"intro\r\n- [x] a\r\n- [ ] b\r\n"

    def test_lf_document_written_with_lf(self, host):
        host.write_lines("Proj/A.md", host.read_lines("Proj/A.md") + ["- [ ] b", ""])
        assert (host.root / "Proj" / "A.md").read_bytes() == b"- [ ] a\n\n- [ ] b\n"

    def test_unsubscribe(self, host):
        events = []
        unsubscribe = host.subscribe(lambda path, kind, old: events.append(path))
        unsubscribe()
        host.write_lines("Proj/A.md", ["x"])
        assert events == []

    def test_failing_subscriber_does_not_block_others(self, host):
        events = []

        def broken(path, kind, old):
            raise RuntimeError("boom")

        host.subscribe(broken)
        host.subscribe(lambda path, kind, old: events.append(path))
        host.write_lines("Proj/A.md", ["x"])
        assert events == ["Proj/A.md"]


# ---------------------------------------------------------------------------
# Watcher
# ---------------------------------------------------------------------------

class TestWatcher:
    def test_no_changes(self, watcher):
        assert watcher.check_for_changes() == []

    def test_created(self, host, watcher):
        (host.root / "Proj" / "New.md").write_text("- [ ] new task here\n", encoding="utf-8")
        assert watcher.check_for_changes() == [("Proj/New.md", ChangeKind.CREATED, None)]

    def test_modified(self, host, watcher):
        (host.root / "Top.md").write_text("- [ ] top\n- [ ] more\n", encoding="utf-8")
        assert watcher.check_for_changes() == [("Top.md", ChangeKind.MODIFIED, None)]

    def test_deleted(self, host, watcher):
        (host.root / "Top.md").unlink()
        assert watcher.check_for_changes() == [("Top.md", ChangeKind.DELETED, None)]

    def test_renamed(self, host, watcher):
        os.rename(host.root / "Top.md", host.root / "Proj" / "Moved.md")
        assert watcher.check_for_changes() == [("Proj/Moved.md", ChangeKind.RENAMED, "Top.md")]

    def test_excluded_and_non_markdown_ignored(self, host, watcher):
        (host.root / ".obsidian" / "other.md").write_text("x\n", encoding="utf-8")
        (host.root / "Proj" / "notes.txt").write_text("changed a lot\n", encoding="utf-8")
        assert watcher.check_for_changes() == []

    def test_changes_reach_subscribers(self, host, watcher):
        events = []
        host.subscribe(lambda path, kind, old: events.append((path, kind, old)))
        (host.root / "Top.md").unlink()
        watcher.check_for_changes()
        assert events == [("Top.md", ChangeKind.DELETED, None)]

    def test_own_writes_not_reported_again(self, host):
        host.start_watching(poll_interval=60)
        try:
            host.write_lines("Proj/A.md", ["- [x] a", "- [ ] b", ""])
            assert host.watcher.check_for_changes() == []
        finally:
            host.stop_watching()
        assert host.watcher is None
