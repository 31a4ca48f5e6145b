"""
Task store: the live, editable view over all matched documents.

Design:
    Host         : DocumentHost           (read/write/list/notify)
    Parse cache  : ParseCache             (per-document scans keyed by mtime)
    Rules        : List[CompiledRule]     (recompiled on set_rules)
    Result       : ScanResult             (latest published scan)
    Squelch      : Squelch                (held around every programmatic write)

All scans and mutations acquire _lock (threading.RLock). Every mutation is
followed by a refresh, because node ids are positional and a write
invalidates every id in the written document.

Autoscan subscribes to host change notifications. Notifications that arrive
while the squelch is held are self-inflicted and ignored; anything else that
concerns a matched markdown document invalidates that document and schedules
a debounced refresh.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from task_table.cache.parse_cache import ParseCache, get_parse_cache
from task_table.errors import NodeNotFoundError
from task_table.grouping.engine import scan_documents
from task_table.grouping.rules import RawRule, compile_rules
from task_table.host.base import ChangeKind, DocumentHost
from task_table.models.rule import CompiledRule, RuleSpec
from task_table.models.task import ParsedDocument, ScanResult, TaskNode
from task_table.mutations.move import MoveOutcome, RelocationEngine
from task_table.mutations.save import LineEdit, LineEditor
from task_table.state.squelch import Squelch
from task_table.utils.debounce import Debouncer

log = logging.getLogger(__name__)

MOVE_POSITIONS = ("child", "before", "after")


class TaskStore:
    """
    Thread-safe task store over a document host.

    Call refresh() once after construction, then optionally start_autoscan().
    """

    def __init__(
        self,
        host: DocumentHost,
        rules: Optional[List[RawRule]] = None,
        cache: Optional[ParseCache] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._host = host
        self._cache = cache if cache is not None else get_parse_cache()
        self.squelch = Squelch()
        self._relocation = RelocationEngine(host, self._cache, self.squelch)
        self._editor = LineEditor(host, self._cache, self.squelch)
        self._rules: List[RuleSpec] = []
        self._compiled: List[CompiledRule] = []
        self._result = ScanResult()
        self._last_scan: Optional[datetime] = None
        self._scan_count = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._debouncer: Optional[Debouncer] = None
        self.set_rules(rules or [])

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    @property
    def rules(self) -> List[RuleSpec]:
        with self._lock:
            return list(self._rules)

    def set_rules(self, raw_rules: List[RawRule]) -> List[CompiledRule]:
        """Replace the rule set. Does not rescan; call refresh() afterwards."""
        specs = [
            r if isinstance(r, RuleSpec) else RuleSpec(name=r.get("name") or "", re=r.get("re") or "")
            for r in raw_rules
        ]
        compiled = compile_rules(specs)
        with self._lock:
            self._rules = specs
            self._compiled = compiled
        log.info("Rules set: %d given, %d valid", len(specs), len(compiled))
        return compiled

    def is_indexed(self, path: str) -> bool:
        """True if a path is a markdown document matched by the current rules."""
        if not path.lower().endswith(".md"):
            return False
        with self._lock:
            return any(rule.matches(path) for rule in self._compiled)

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def refresh(self) -> ScanResult:
        """
        Rescan all documents and publish the new result.

        The previous result stays published if listing or parsing fails.
        """
        with self._lock:
            documents = self._host.list_documents()
            result = scan_documents(documents, self._compiled, self._cache)
            self._cache.prune(d.path for d in documents)
            self._result = result
            self._last_scan = datetime.now()
            self._scan_count += 1
            log.info(
                "Scan complete: %d documents, %d tasks, %d groups",
                len(result.tasks_by_file),
                sum(len(nodes) for nodes in result.tasks_by_file.values()),
                len(result.groups),
            )
            return result

    @property
    def result(self) -> ScanResult:
        with self._lock:
            return self._result

    def get_node(self, node_id: str) -> TaskNode:
        """
        Return a node from the current scan.

        Raises:
            NodeNotFoundError: if the id is not in the current scan
        """
        with self._lock:
            node = self._result.find_by_id(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def file_nodes(self, path: str) -> List[TaskNode]:
        with self._lock:
            return list(self._result.tasks_by_file.get(path, []))

    def parsed(self, path: str) -> Optional[ParsedDocument]:
        """The cached scan of a document, as of the last refresh."""
        return self._cache.get(path)

    def children_of(self, node_id: str) -> List[TaskNode]:
        with self._lock:
            return [
                self._result.find_by_id(child_id)
                for child_id in self._result.children_by_id.get(node_id, [])
            ]

    # ------------------------------------------------------------------
    # Mutations (write-through, then rescan)
    # ------------------------------------------------------------------

    def move(self, source_id: str, target_id: str, position: str) -> MoveOutcome:
        """
        Move a node with its subtree relative to another node.

        Args:
            source_id: Node to move
            target_id: Node to move next to / under
            position: "child" (first child of target), "before" or "after"
        """
        if position not in MOVE_POSITIONS:
            raise ValueError(f"Unknown position '{position}', expected one of {MOVE_POSITIONS}")

        with self._lock:
            source = self.get_node(source_id)
            target = self.get_node(target_id)
            with self.squelch:
                if position == "child":
                    outcome = self._relocation.move_as_first_child(source, target)
                else:
                    outcome = self._relocation.move_beside(
                        source,
                        target,
                        after=position == "after",
                        file_nodes=self.file_nodes(target.document_path),
                    )
            self.refresh()
            return outcome

    def move_to_end(self, source_id: str, dest_path: str, depth: int = 1) -> MoveOutcome:
        """Move a node with its subtree to the end of a document."""
        with self._lock:
            source = self.get_node(source_id)
            with self.squelch:
                outcome = self._relocation.move_to_document_end(source, dest_path, depth)
            self.refresh()
            return outcome

    def delete(self, node_id: str) -> int:
        """Delete a node with its subtree. Returns the number of lines removed."""
        with self._lock:
            node = self.get_node(node_id)
            with self.squelch:
                removed = self._relocation.delete_subtree(node)
            self.refresh()
            return removed

    def save(self, node_id: str, *, checked: Optional[bool] = None, text: Optional[str] = None) -> bool:
        """
        Update a task's checkbox and/or text.

        Returns:
            True if the document changed
        """
        with self._lock:
            node = self.get_node(node_id)
            edit = LineEdit(
                path=node.document_path,
                line_index=node.line_index,
                original_line=node.raw_line,
                checked=node.checked if checked is None else checked,
                text=node.text if text is None else text,
            )
            changed = self._editor.save_line(edit)
            if changed:
                self.refresh()
            return changed

    def toggle(self, node_id: str, checked: bool) -> bool:
        return self.save(node_id, checked=checked)

    def edit(self, node_id: str, text: str) -> bool:
        return self.save(node_id, text=text)

    def save_all(self, edits: List[LineEdit]) -> int:
        """Apply a batch of line edits. Returns the number of documents written."""
        with self._lock:
            written = self._editor.save_edits(edits)
            if written:
                self.refresh()
            return written

    def create_task(self, path: str, text: str) -> TaskNode:
        """Append a new unchecked task to a document and return its node."""
        with self._lock:
            if not self.is_indexed(path):
                raise ValueError(f"Document '{path}' is not matched by the grouping rules")
            new_id = self._editor.create_task_at_end(path, text)
            self.refresh()
            return self.get_node(new_id)

    @property
    def is_saving(self) -> bool:
        """True while a programmatic write is in progress."""
        return self.squelch.active

    # ------------------------------------------------------------------
    # Autoscan
    # ------------------------------------------------------------------

    def start_autoscan(self, debounce_seconds: float = 0.3) -> None:
        """Rescan automatically when matched documents change outside the store."""
        if self._unsubscribe is not None:
            return
        self._debouncer = Debouncer(self.refresh, debounce_seconds)
        self._unsubscribe = self._host.subscribe(self.on_document_changed)
        log.info("Autoscan enabled (debounce %.2fs)", debounce_seconds)

    def stop_autoscan(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._debouncer is not None:
            self._debouncer.cancel()
            self._debouncer = None

    def on_document_changed(
        self, path: str, kind: ChangeKind, old_path: Optional[str] = None
    ) -> bool:
        """
        Change listener. Returns True if a rescan was scheduled.
        """
        if self.squelch.active:
            return False

        relevant = self.is_indexed(path) or (old_path is not None and self.is_indexed(old_path))
        if not relevant:
            return False

        self._cache.invalidate(path)
        if old_path is not None:
            self._cache.invalidate(old_path)
        log.debug("External %s: %s", kind.value, path)

        if self._debouncer is not None:
            self._debouncer.trigger()
        return True

    # ------------------------------------------------------------------
    # Status / diagnostics
    # ------------------------------------------------------------------

    def status(self) -> Dict[str, object]:
        with self._lock:
            return {
                "documents_indexed": len(self._result.tasks_by_file),
                "tasks_indexed": sum(len(n) for n in self._result.tasks_by_file.values()),
                "groups": len(self._result.groups),
                "has_groups": self._result.has_groups,
                "rules": len(self._rules),
                "valid_rules": len(self._compiled),
                "scan_count": self._scan_count,
                "last_scan": self._last_scan.isoformat() if self._last_scan else None,
                "autoscan": self._unsubscribe is not None,
                "autoscan_pending": self._debouncer is not None and self._debouncer.pending,
                "squelch_depth": self.squelch.depth,
                "cache": self._cache.stats(),
            }
