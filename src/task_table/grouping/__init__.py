from .rules import compile_rules, has_named_groups
from .engine import FLAT_GROUP_KEY, scan_documents

__all__ = ["compile_rules", "has_named_groups", "FLAT_GROUP_KEY", "scan_documents"]
