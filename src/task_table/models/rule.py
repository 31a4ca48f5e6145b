"""
Grouping rule models.

A rule pairs a group name with a path pattern. Rules with an empty name
contribute to the flat (ungrouped) view.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pydantic import BaseModel


class RuleSpec(BaseModel):
    """A user-supplied rule as stored in the rules file."""

    name: str = ""
    re: str = ""


@dataclass
class CompiledRule:
    name: str
    pattern: re.Pattern

    def matches(self, path: str) -> bool:
        return self.pattern.search(path) is not None
