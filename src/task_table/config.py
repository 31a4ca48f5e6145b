"""
Configuration from environment variables and the rules file.

Environment:
    VAULT_ROOT          Vault directory (required by the server)
    EXCLUDE_DIRS        Comma-separated directory names to skip
    POLL_INTERVAL       Watcher polling interval in seconds
    AUTOSCAN_DEBOUNCE   Seconds to coalesce change notifications before rescanning
    API_ENABLED         Start the REST API ("true"/"false")
    API_PORT            REST API port
    RULES_FILE          Path of the JSON rules file

Rules file format:
    {"rules": [{"name": "Planner", "re": ".*/Planner/.*\\\\.md$"}]}
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Mapping, Optional, Set

from pydantic import BaseModel, Field, ValidationError

from task_table.models.rule import RuleSpec

log = logging.getLogger(__name__)

DEFAULT_EXCLUDE_DIRS = ".git,.obsidian,node_modules,.trash"
DEFAULT_RULES = [RuleSpec(name="Planner", re=r".*/Planner/.*\.md$")]
RULES_FILE_NAME = Path(".task-table") / "rules.json"


class RulesFile(BaseModel):
    rules: List[RuleSpec] = Field(default_factory=list)


class Settings(BaseModel):
    vault_root: Path
    exclude_dirs: Set[str] = Field(default_factory=set)
    poll_interval: float = 5.0
    autoscan_debounce: float = 0.3
    api_enabled: bool = True
    api_port: int = 9400
    rules_file: Path


def parse_exclude_dirs(raw: str) -> Set[str]:
    """Parse a comma-separated list of directory names to exclude."""
    return {part.strip() for part in raw.split(",") if part.strip()}


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from the environment.

    Raises:
        ValueError: if VAULT_ROOT is unset
    """
    env = os.environ if environ is None else environ
    vault_root_env = env.get("VAULT_ROOT", "")
    if not vault_root_env:
        raise ValueError("VAULT_ROOT environment variable is not set")

    vault_root = Path(vault_root_env)
    rules_file = env.get("RULES_FILE") or str(vault_root / RULES_FILE_NAME)

    return Settings(
        vault_root=vault_root,
        exclude_dirs=parse_exclude_dirs(env.get("EXCLUDE_DIRS", DEFAULT_EXCLUDE_DIRS)),
        poll_interval=float(env.get("POLL_INTERVAL", "5.0")),
        autoscan_debounce=float(env.get("AUTOSCAN_DEBOUNCE", "0.3")),
        api_enabled=_env_flag(env.get("API_ENABLED", "true")),
        api_port=int(env.get("API_PORT", "9400")),
        rules_file=Path(rules_file),
    )


def load_rules(path: Path) -> List[RuleSpec]:
    """
    Load rules from a JSON file.

    A missing file yields the default rule set. An unreadable or invalid file
    is logged and also yields the defaults.
    """
    if not path.exists():
        return [rule.model_copy() for rule in DEFAULT_RULES]
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return RulesFile.model_validate(data).rules
    except (OSError, ValueError, ValidationError):
        log.exception("Failed to load rules from %s; using defaults", path)
        return [rule.model_copy() for rule in DEFAULT_RULES]


def save_rules(path: Path, rules: List[RuleSpec]) -> None:
    """Write rules to a JSON file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = RulesFile(rules=list(rules)).model_dump()
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
