"""
Data structures for the mutation analysis.

Tokens and diagnostics are immutable. Scopes and bound symbols are
mutated in place while one file is being walked and discarded afterwards.
"""
import ast
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set


class Severity(Enum):
    WARNING = "warning"
    ERROR   = "error"


class Rule(Enum):
    MUT_INFECT             = "mut_infect"
    MUT_OUT_OF_SCOPE       = "mut_out_of_scope"
    MUT_PARAM              = "mut_param"
    UNNECESSARY_MUT_INFECT = "unnecessary_mut_infect"

    @property
    def severity(self) -> Severity:
        return _SEVERITY[self]

    @classmethod
    def from_id(cls, rule_id: str) -> "Rule":
        """Look up a rule by its id, raising ValueError for unknown ids."""
        for rule in cls:
            if rule.value == rule_id:
                return rule
        known = ", ".join(r.value for r in cls)
        raise ValueError(f"Unknown rule id '{rule_id}' (known: {known})")


_SEVERITY = {
    Rule.MUT_INFECT:             Severity.WARNING,
    Rule.MUT_OUT_OF_SCOPE:       Severity.WARNING,
    Rule.MUT_PARAM:              Severity.ERROR,
    Rule.UNNECESSARY_MUT_INFECT: Severity.WARNING,
}


@dataclass(frozen=True)
class NameToken:
    """A captured identifier occurrence: its text and where it starts."""

    lexeme: str
    line: int    # 1-based, as reported by ast
    column: int  # 0-based

    @property
    def end_column(self) -> int:
        return self.column + len(self.lexeme)


@dataclass
class BoundSymbol:
    """A parameter or local bound inside one scope."""

    name: NameToken
    is_value_type: bool
    should_be_mut: bool = False


@dataclass
class Scope:
    """
    One node of the scope tree.

    Scopes live in the ScopeTree arena and point at each other by index,
    so the parent link is never an owning reference.
    """

    index: int
    declaration: Optional[ast.AST] = None
    name: Optional[NameToken] = None
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)
    locals: Dict[str, BoundSymbol] = field(default_factory=dict)
    parameters: Dict[str, BoundSymbol] = field(default_factory=dict)
    invoked_names: Set[str] = field(default_factory=set)
    foreign_names: Set[str] = field(default_factory=set)
    # Subset of foreign_names declared `global`: never owned by an ancestor
    global_names: Set[str] = field(default_factory=set)
    marked_mut_evidence_found: bool = False
    is_marked: bool = False
    is_exempt: bool = False
    closed: bool = False

    @property
    def is_root(self) -> bool:
        return self.declaration is None


@dataclass(frozen=True)
class Diagnostic:
    """A single rule violation, anchored at a name in the source."""

    rule: Rule
    token: NameToken
    message: str
    correction: str
    file_path: str = "<unknown>"

    @property
    def severity(self) -> Severity:
        return self.rule.severity

    @property
    def line(self) -> int:
        return self.token.line

    @property
    def column(self) -> int:
        return self.token.column
