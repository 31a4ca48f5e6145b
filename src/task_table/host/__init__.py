from .base import ChangeCallback, ChangeKind, DocumentHost, DocumentRef
from .vault import VaultHost

__all__ = [
    "ChangeCallback",
    "ChangeKind",
    "DocumentHost",
    "DocumentRef",
    "VaultHost",
]
