"""
Explanation Layer

Rule messages and the human/JSON rendering of diagnostics.
Two sentences per finding: what is wrong, how to fix it.
"""
from typing import Dict, List, Optional

from .data_structures import Diagnostic, Rule

_PROBLEM = {
    Rule.MUT_INFECT:             "`{suffix}` method invoked but not marked `{suffix}`",
    Rule.MUT_OUT_OF_SCOPE:       "An out of scope variable is mutated but method is not marked `{suffix}`",
    Rule.MUT_PARAM:              "Parameter is mutated but not marked `{suffix}`",
    Rule.UNNECESSARY_MUT_INFECT: "Method is marked `{suffix}` but mutates nothing",
}

_CORRECTION = {
    Rule.MUT_INFECT:             "Add `{suffix}` to end of method name",
    Rule.MUT_OUT_OF_SCOPE:       "Add `{suffix}` to end of method name",
    Rule.MUT_PARAM:              "Add `{suffix}` to end of parameter name",
    Rule.UNNECESSARY_MUT_INFECT: "Remove `{suffix}` from end of method name",
}


def problem_message(rule: Rule, suffix: str) -> str:
    return _PROBLEM[rule].format(suffix=suffix)


def correction_message(rule: Rule, suffix: str) -> str:
    return _CORRECTION[rule].format(suffix=suffix)


def format_text(diagnostic: Diagnostic, fix_hint: Optional[str] = None) -> str:
    """
    One line per finding, in the familiar compiler layout:

        path:line:col: warning[mut_infect] message (correction)
    """
    line = (
        f"{diagnostic.file_path}:{diagnostic.line}:{diagnostic.column + 1}: "
        f"{diagnostic.severity.value}[{diagnostic.rule.value}] "
        f"{diagnostic.message} ({diagnostic.correction})"
    )
    if fix_hint:
        line += f"\n    fix: {fix_hint}"
    return line


def to_dict(diagnostic: Diagnostic, fix_hint: Optional[str] = None) -> Dict[str, object]:
    data: Dict[str, object] = {
        "path": diagnostic.file_path,
        "line": diagnostic.line,
        "column": diagnostic.column + 1,
        "end_column": diagnostic.token.end_column + 1,
        "rule": diagnostic.rule.value,
        "severity": diagnostic.severity.value,
        "name": diagnostic.token.lexeme,
        "message": diagnostic.message,
        "correction": diagnostic.correction,
    }
    if fix_hint:
        data["fix"] = fix_hint
    return data


def summarize(diagnostics: List[Diagnostic], files_analyzed: int) -> str:
    if not diagnostics:
        return f"Analyzed {files_analyzed} file(s): no findings."
    by_rule: Dict[str, int] = {}
    for diagnostic in diagnostics:
        by_rule[diagnostic.rule.value] = by_rule.get(diagnostic.rule.value, 0) + 1
    breakdown = ", ".join(f"{rule}: {count}" for rule, count in sorted(by_rule.items()))
    return f"Analyzed {files_analyzed} file(s): {len(diagnostics)} finding(s) ({breakdown})."
