"""
Checkbox task line classifier.

Wire format of a task line:

    <indent><bullet><ws>[<space|x|X>]<ws><payload>

where ``<indent>`` is any run of tabs and spaces and ``<bullet>`` is ``-`` or
``*``. Anything else is not a task line.

Depth is 1-based: one level per leading tab plus one level per two other
leading whitespace characters. Depth rewrites always emit two spaces per
level.
"""

import re
from typing import NamedTuple

TASK_RE = re.compile(
    r"^(?P<indent>\s*)(?P<bullet>[-*]\s)\[(?P<box>[ xX])\](?P<sep>\s)(?P<text>.+)$"
)

# Prefix only; the payload is not required for depth computation
_PREFIX_RE = re.compile(r"^(\s*)[-*]\s\[[ xX]\]\s")

INDENT_UNIT = "  "


class LineInfo(NamedTuple):
    is_task: bool
    checked: bool
    text: str


_NOT_A_TASK = LineInfo(False, False, "")


def is_task_line(line: str) -> bool:
    return TASK_RE.match(line) is not None


def classify(line: str) -> LineInfo:
    """Return (is_task, checked, text) for a single line."""
    m = TASK_RE.match(line)
    if not m:
        return _NOT_A_TASK
    return LineInfo(True, m.group("box") in ("x", "X"), m.group("text"))


def indent_depth(line: str) -> int:
    """
    Return the 1-based depth of a task line.

    Each leading tab counts as one level; the remaining leading whitespace
    counts one level per two characters. Lines without a task prefix are
    depth 1.
    """
    m = _PREFIX_RE.match(line)
    if not m:
        return 1
    lead = m.group(1)
    tabs = lead.count("\t")
    others = len(lead) - tabs
    return 1 + tabs + others // 2


def root_token(line: str) -> str:
    """Case-folded, trimmed payload used as a stable display key."""
    m = TASK_RE.match(line)
    text = m.group("text") if m else line
    return text.strip().casefold()


def build_line(original_line: str, checked: bool, text: str) -> str:
    """
    Rebuild a task line with a new checked state and payload.

    The original indentation and bullet are kept. A non-task original yields
    a fresh top-level task.
    """
    box = "x" if checked else " "
    m = TASK_RE.match(original_line)
    if m:
        return f"{m.group('indent')}{m.group('bullet')}[{box}] {text}"
    return f"- [{box}] {text}"


def line_with_depth(line: str, depth: int) -> str:
    """Rewrite a task line's indentation for the given depth."""
    indent = INDENT_UNIT * max(0, depth - 1)
    m = TASK_RE.match(line)
    if m:
        return indent + line[m.end("indent"):]
    # Not a task: promote the bare text to an unchecked task at this depth
    return f"{indent}- [ ] {line.strip()}"
