"""Exceptions raised by the task table core."""


class TaskTableError(Exception):
    """Base class for task table errors."""


class DocumentIOError(TaskTableError):
    """A document could not be read or written."""

    def __init__(self, path: str, action: str, cause: Exception) -> None:
        super().__init__(f"Failed to {action} '{path}': {cause}")
        self.path = path
        self.action = action


class NodeNotFoundError(TaskTableError, KeyError):
    """No node with the given id exists in the current scan."""

    def __str__(self) -> str:
        return f"Task '{self.args[0]}' not found"


class StaleNodeError(TaskTableError):
    """A node's line no longer holds a task; the caller must re-scan."""
