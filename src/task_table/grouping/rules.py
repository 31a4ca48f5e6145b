"""
Rule compiler.

Rules map document paths to group names. Each rule's pattern is a regular
expression searched (not anchored) against the document path. A pattern that
fails to compile is dropped: one typo must not break the remaining rules.
"""

import logging
import re
from typing import Iterable, List, Mapping, Union

from task_table.models.rule import CompiledRule, RuleSpec

log = logging.getLogger(__name__)

RawRule = Union[RuleSpec, Mapping[str, str]]


def _unpack(rule: RawRule):
    if isinstance(rule, RuleSpec):
        return rule.name, rule.re
    return rule.get("name") or "", rule.get("re") or ""


def compile_rules(raw_rules: Iterable[RawRule]) -> List[CompiledRule]:
    """
    Compile raw rules into matchers, silently skipping invalid patterns.

    Args:
        raw_rules: RuleSpec objects or {"name": ..., "re": ...} mappings

    Returns:
        Compiled rules in input order; group names are trimmed
    """
    compiled: List[CompiledRule] = []
    for rule in raw_rules:
        name, pattern = _unpack(rule)
        try:
            compiled.append(CompiledRule(name=name.strip(), pattern=re.compile(pattern)))
        except re.error as e:
            log.debug("Dropping rule %r: invalid pattern %r (%s)", name, pattern, e)
    return compiled


def has_named_groups(compiled: Iterable[CompiledRule]) -> bool:
    """True if any rule declares a non-empty group name."""
    return any(rule.name for rule in compiled)
