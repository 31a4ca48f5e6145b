from .task_line import (
    TASK_RE,
    LineInfo,
    build_line,
    classify,
    indent_depth,
    is_task_line,
    line_with_depth,
    root_token,
)
from .hierarchy import scan_lines, walk_depth_first

__all__ = [
    "TASK_RE",
    "LineInfo",
    "build_line",
    "classify",
    "indent_depth",
    "is_task_line",
    "line_with_depth",
    "root_token",
    "scan_lines",
    "walk_depth_first",
]
