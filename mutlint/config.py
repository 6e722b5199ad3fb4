"""
Configuration loading.

Reads the [tool.mutlint] table of a pyproject.toml into a NamingPolicy.
A missing file or table means defaults; anything malformed is a
ConfigError.
"""
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from .data_structures import Rule
from .policy import DEFAULT_POLICY, DEFAULT_VALUE_TYPES, NamingPolicy

logger = logging.getLogger(__name__)

CONFIG_FILE = "pyproject.toml"

_STRING_LISTS = {
    "value-types", "extra-value-types", "override-decorators",
    "entry-points", "mutating-verbs", "disable", "exclude",
}
_BOOLEANS = {"exempt-accessors", "exempt-operators"}
_STRINGS = {"suffix"}
KNOWN_KEYS = _STRING_LISTS | _BOOLEANS | _STRINGS


class ConfigError(ValueError):
    """Raised for an unreadable or invalid [tool.mutlint] table."""


def find_config(start: Path) -> Optional[Path]:
    """Nearest pyproject.toml at or above start."""
    current = Path(start).resolve()
    if current.is_file():
        current = current.parent
    for directory in [current, *current.parents]:
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def _validate(table: Dict[str, Any], path: Path) -> None:
    unknown = sorted(set(table) - KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"{path}: unknown [tool.mutlint] key(s): {', '.join(unknown)}")

    for key, value in table.items():
        if key in _STRING_LISTS:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"{path}: '{key}' must be a list of strings")
        elif key in _BOOLEANS:
            if not isinstance(value, bool):
                raise ConfigError(f"{path}: '{key}' must be true or false")
        elif key in _STRINGS:
            if not isinstance(value, str) or not value:
                raise ConfigError(f"{path}: '{key}' must be a non-empty string")


def policy_from_table(table: Dict[str, Any], path: Path = Path(CONFIG_FILE)) -> NamingPolicy:
    _validate(table, path)

    try:
        disabled = frozenset(Rule.from_id(rule_id) for rule_id in table.get("disable", []))
    except ValueError as e:
        raise ConfigError(f"{path}: {e}") from e

    value_types = frozenset(table.get("value-types", DEFAULT_VALUE_TYPES))
    value_types |= frozenset(table.get("extra-value-types", []))

    return NamingPolicy(
        suffix=table.get("suffix", DEFAULT_POLICY.suffix),
        value_types=value_types,
        override_decorators=frozenset(
            table.get("override-decorators", DEFAULT_POLICY.override_decorators)
        ),
        entry_points=frozenset(table.get("entry-points", DEFAULT_POLICY.entry_points)),
        exempt_accessors=table.get("exempt-accessors", DEFAULT_POLICY.exempt_accessors),
        exempt_operators=table.get("exempt-operators", DEFAULT_POLICY.exempt_operators),
        mutating_verbs=tuple(table.get("mutating-verbs", DEFAULT_POLICY.mutating_verbs)),
        disabled_rules=disabled,
        exclude=tuple(table.get("exclude", ())),
    )


def load_policy(path: Optional[Path]) -> NamingPolicy:
    """
    Build the policy from a pyproject.toml.

    Returns the default policy when path is None or the file has no
    [tool.mutlint] table.
    """
    if path is None:
        return DEFAULT_POLICY

    path = Path(path)
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    table = data.get("tool", {}).get("mutlint")
    if table is None:
        logger.debug("No [tool.mutlint] table in %s, using defaults", path)
        return DEFAULT_POLICY
    if not isinstance(table, dict):
        raise ConfigError(f"{path}: [tool.mutlint] must be a table")

    logger.debug("Loaded policy from %s", path)
    return policy_from_table(table, path)
