"""
Quick fixes.

Purely mechanical text edits anchored at a diagnostic's name token:
append the marker suffix, or strip it for unnecessary markers. No check
is made that the new name is unique. Edits are applied to a string in
memory; nothing here writes files.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from .data_structures import Diagnostic, Rule
from .policy import DEFAULT_POLICY, NamingPolicy


@dataclass(frozen=True)
class MarkerInsertion:
    line: int
    column: int
    text: str

    def describe(self) -> str:
        return f"insert '{self.text}' at {self.line}:{self.column + 1}"


@dataclass(frozen=True)
class MarkerRemoval:
    line: int
    column: int
    length: int

    def describe(self) -> str:
        return f"remove {self.length} character(s) at {self.line}:{self.column + 1}"


Fix = Union[MarkerInsertion, MarkerRemoval]


def suggest_fix(diagnostic: Diagnostic, policy: NamingPolicy = DEFAULT_POLICY) -> Optional[Fix]:
    token = diagnostic.token
    if diagnostic.rule is Rule.UNNECESSARY_MUT_INFECT:
        if not policy.is_marked(token.lexeme):
            return None
        return MarkerRemoval(
            line=token.line,
            column=token.end_column - len(policy.suffix),
            length=len(policy.suffix),
        )
    return MarkerInsertion(line=token.line, column=token.end_column, text=policy.suffix)


def apply_fixes(source: str, fixes: Iterable[Fix]) -> str:
    """
    Apply edits to the source text.

    Edits are applied right-to-left within a line so earlier columns stay
    valid. Two edits at the same position are applied once.
    """
    lines: List[str] = source.splitlines(keepends=True)
    unique = sorted(set(fixes), key=lambda f: (f.line, f.column), reverse=True)

    for fix in unique:
        if not 0 < fix.line <= len(lines):
            continue
        text = lines[fix.line - 1]
        if isinstance(fix, MarkerInsertion):
            text = text[:fix.column] + fix.text + text[fix.column:]
        else:
            text = text[:fix.column] + text[fix.column + fix.length:]
        lines[fix.line - 1] = text

    return "".join(lines)
