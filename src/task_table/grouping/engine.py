"""
Grouping engine.

Buckets documents by rule matches:
- If every rule name is empty, the result is a single pseudo-group holding
  each matched document once (flat mode).
- Otherwise each document lands in every distinct named group whose rules
  match it, at most once per group (grouped mode).

Each matched document is parsed once through the parse cache and the same
node list is referenced from every bucket it appears in.
"""

import logging
from typing import Dict, Iterable, List, Optional

from task_table.cache.parse_cache import ParseCache, get_parse_cache
from task_table.host.base import DocumentRef
from task_table.models.rule import CompiledRule
from task_table.models.task import FileBucket, GroupBucket, ScanResult
from task_table.grouping.rules import has_named_groups

log = logging.getLogger(__name__)

FLAT_GROUP_KEY = "__ALL__"


def _sort_key(name: str):
    return (name.casefold(), name)


def _sorted_files(files: Iterable[FileBucket]) -> List[FileBucket]:
    return sorted(files, key=lambda f: _sort_key(f.display_name))


def scan_documents(
    documents: Iterable[DocumentRef],
    compiled: List[CompiledRule],
    cache: Optional[ParseCache] = None,
) -> ScanResult:
    """
    Parse and bucket all documents matched by at least one rule.

    Args:
        documents: Candidate documents from the host
        compiled: Output of compile_rules()
        cache: Parse cache to use (defaults to the process-wide cache)

    Returns:
        ScanResult with groups, per-file nodes and the merged children index

    Raises:
        DocumentIOError: if a matched document cannot be read
    """
    result = ScanResult()
    if not compiled:
        return result

    if cache is None:
        cache = get_parse_cache()
    result.has_groups = has_named_groups(compiled)

    # Grouped mode: group name -> path -> FileBucket
    groups: Dict[str, Dict[str, FileBucket]] = {}
    # Flat mode: path -> FileBucket
    flat: Dict[str, FileBucket] = {}

    for doc in documents:
        matched = [rule for rule in compiled if rule.matches(doc.path)]
        if not matched:
            continue

        parsed = cache.get_or_parse(doc)
        nodes = parsed.nodes

        for parent_id, child_ids in parsed.children.items():
            result.children_by_id.setdefault(parent_id, []).extend(child_ids)
        if nodes:
            result.tasks_by_file[doc.path] = nodes

        if not result.has_groups:
            if doc.path not in flat:
                flat[doc.path] = FileBucket(doc.path, doc.display_name, nodes)
            continue

        group_names = {rule.name for rule in matched if rule.name}
        for name in group_names:
            files = groups.setdefault(name, {})
            if doc.path not in files:
                files[doc.path] = FileBucket(doc.path, doc.display_name, nodes)

    if not result.has_groups:
        result.groups = [GroupBucket(FLAT_GROUP_KEY, "", _sorted_files(flat.values()))]
    else:
        for name in sorted(groups, key=_sort_key):
            result.groups.append(GroupBucket(name, name, _sorted_files(groups[name].values())))

    log.debug(
        "Grouped %d documents into %d groups",
        len({f.path for g in result.groups for f in g.files}),
        len(result.groups),
    )
    return result
