"""
Block extraction and depth adjustment.

A block is a task line plus the contiguous run of deeper task lines below it.
The run ends at the first non-task line or the first task at the same or a
shallower depth.
"""

from typing import List, Sequence, Tuple

from task_table.parsers.task_line import indent_depth, is_task_line, line_with_depth


def extract_block(lines: Sequence[str], start: int) -> Tuple[int, int]:
    """
    Return the inclusive line range (start, end) of the block at ``start``.

    The block's depth is taken from the current content of ``lines[start]``.
    """
    depth = indent_depth(lines[start])
    end = start
    for i in range(start + 1, len(lines)):
        line = lines[i]
        if not is_task_line(line):
            break
        if indent_depth(line) <= depth:
            break
        end = i
    return start, end


def adjust_block_depth(block: Sequence[str], delta: int) -> List[str]:
    """
    Shift every task line in a block by ``delta`` levels (never above depth 1).

    Checkbox state and payload are kept verbatim; only the indentation is
    rewritten, and only on lines whose depth actually changes. Non-task lines
    pass through unchanged.
    """
    adjusted: List[str] = []
    for line in block:
        if not is_task_line(line):
            adjusted.append(line)
            continue
        depth = indent_depth(line)
        new_depth = max(1, depth + delta)
        adjusted.append(line if new_depth == depth else line_with_depth(line, new_depth))
    return adjusted


def find_end_insertion_index(lines: Sequence[str]) -> int:
    """End of the document, but before a single trailing empty line."""
    index = len(lines)
    if index > 0 and lines[index - 1] == "":
        index -= 1
    return index


def ensure_trailing_newline(lines: List[str]) -> List[str]:
    """Make sure the joined document ends with a newline."""
    if not lines or lines[-1] != "":
        lines.append("")
    return lines
