from .task import TaskNode, ParsedDocument, FileBucket, GroupBucket, ScanResult
from .rule import RuleSpec, CompiledRule

__all__ = [
    "TaskNode",
    "ParsedDocument",
    "FileBucket",
    "GroupBucket",
    "ScanResult",
    "RuleSpec",
    "CompiledRule",
]
