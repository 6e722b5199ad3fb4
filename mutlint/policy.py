"""
Naming and exemption policy.

Everything the engine treats as convention rather than logic lives here:
the marker suffix, which annotations count as pass-by-value, which
declarations are exempt, and the verb list used to excuse calls into code
that cannot be renamed. A policy is frozen after construction and can be
shared between concurrent file analyses.
"""
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Optional, Tuple

from .data_structures import Rule

DEFAULT_SUFFIX = "Mut"

DEFAULT_VALUE_TYPES: FrozenSet[str] = frozenset({
    "bool", "int", "float", "complex", "str", "bytes", "None",
    "Decimal", "Fraction",
    "date", "datetime", "time", "timedelta",
    "tuple", "frozenset",
})

DEFAULT_OVERRIDE_DECORATORS: FrozenSet[str] = frozenset({"override"})

DEFAULT_ENTRY_POINTS: FrozenSet[str] = frozenset({"main"})

DEFAULT_MUTATING_VERBS = (
    "create", "update", "delete", "add", "remove", "clear", "insert",
    "append", "extend", "pop", "discard", "sort",
)


@dataclass(frozen=True)
class NamingPolicy:
    suffix: str = DEFAULT_SUFFIX
    value_types: FrozenSet[str] = DEFAULT_VALUE_TYPES
    override_decorators: FrozenSet[str] = DEFAULT_OVERRIDE_DECORATORS
    entry_points: FrozenSet[str] = DEFAULT_ENTRY_POINTS
    exempt_accessors: bool = True
    exempt_operators: bool = True
    mutating_verbs: Tuple[str, ...] = DEFAULT_MUTATING_VERBS
    disabled_rules: FrozenSet[Rule] = field(default_factory=frozenset)
    exclude: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.suffix:
            raise ValueError("Marker suffix must not be empty")

    def is_marked(self, name: Optional[str]) -> bool:
        """Check if a name carries the marker suffix."""
        if not name:
            return False
        return name.endswith(self.suffix)

    def looks_mutating(self, name: Optional[str]) -> bool:
        """
        Lexical guess that a callee mutates, from its leading verb.

        Only used to avoid flagging a marker as unnecessary when the
        marked code calls APIs like `list.append` or `dict.update`.
        """
        if not name:
            return False
        lowered = name.lstrip("_").lower()
        return any(lowered.startswith(verb) for verb in self.mutating_verbs)

    def is_enabled(self, rule: Rule) -> bool:
        return rule not in self.disabled_rules

    def with_disabled(self, *rules: Rule) -> "NamingPolicy":
        return replace(self, disabled_rules=self.disabled_rules | frozenset(rules))


DEFAULT_POLICY = NamingPolicy()
