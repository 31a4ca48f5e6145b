from .blocks import adjust_block_depth, extract_block
from .move import MoveOutcome, RelocationEngine, neighbor_depth
from .save import LineEdit, LineEditor

__all__ = [
    "adjust_block_depth",
    "extract_block",
    "MoveOutcome",
    "RelocationEngine",
    "neighbor_depth",
    "LineEdit",
    "LineEditor",
]
