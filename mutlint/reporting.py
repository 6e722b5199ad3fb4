"""
Diagnostic Sink

Receives findings from the analyzer and decides which ones surface.
Pipeline per finding: rule filter -> suppression comments.
Pipeline per run: dedup -> rank.
"""
import io
import logging
import re
import tokenize
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional

from .data_structures import Diagnostic, Rule
from .policy import DEFAULT_POLICY, NamingPolicy

logger = logging.getLogger(__name__)

_SUPPRESSION = re.compile(
    r"#\s*mutlint:\s*ignore(?P<file>-file)?(?:\[(?P<rules>[^\]]*)\])?"
)

# None means "every rule"
RuleSet = Optional[FrozenSet[str]]


def _merge(current: RuleSet, new: RuleSet, present: bool) -> RuleSet:
    if not present:
        return new
    if current is None or new is None:
        return None
    return current | new


@dataclass
class Suppressions:
    """Suppression comments found in one file."""

    by_line: Dict[int, RuleSet] = field(default_factory=dict)
    whole_file: RuleSet = frozenset()

    @classmethod
    def parse(cls, source: str) -> "Suppressions":
        suppressions = cls()
        for line, comment in _comments(source):
            for match in _SUPPRESSION.finditer(comment):
                rules = _parse_rules(match.group("rules"))
                if match.group("file"):
                    suppressions.whole_file = _merge(suppressions.whole_file, rules, True)
                else:
                    present = line in suppressions.by_line
                    suppressions.by_line[line] = _merge(
                        suppressions.by_line.get(line), rules, present
                    )
        return suppressions

    def is_suppressed(self, rule: Rule, line: int) -> bool:
        if self.whole_file is None or rule.value in self.whole_file:
            return True
        if line not in self.by_line:
            return False
        rules = self.by_line[line]
        return rules is None or rule.value in rules


def _parse_rules(raw: Optional[str]) -> RuleSet:
    if raw is None:
        return None
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


def _comments(source: str):
    """Yield (line, text) for every comment token in the source."""
    try:
        for token in tokenize.generate_tokens(io.StringIO(source).readline):
            if token.type == tokenize.COMMENT:
                yield token.start[0], token.string
    except (tokenize.TokenError, SyntaxError) as e:
        # Comments before the error were already yielded
        logger.debug("Stopped reading comments: %s", e)


class DiagnosticSink:
    """Collects the diagnostics of one file."""

    def __init__(
        self,
        policy: NamingPolicy = DEFAULT_POLICY,
        file_path: str = "<unknown>",
        source: str = "",
    ):
        self.policy = policy
        self.file_path = file_path
        self.suppressions = Suppressions.parse(source) if source else Suppressions()
        self.diagnostics: List[Diagnostic] = []
        self.suppressed_count = 0

    def report(self, diagnostic: Diagnostic) -> bool:
        """Record a finding. Returns False if it was filtered out."""
        if not self.policy.is_enabled(diagnostic.rule):
            return False
        if self.suppressions.is_suppressed(diagnostic.rule, diagnostic.line):
            self.suppressed_count += 1
            return False
        self.diagnostics.append(replace(diagnostic, file_path=self.file_path))
        return True


def _dedup(diagnostics: List[Diagnostic]) -> List[Diagnostic]:
    seen = set()
    unique = []
    for d in diagnostics:
        key = (d.file_path, d.rule, d.token)
        if key not in seen:
            seen.add(key)
            unique.append(d)
    return unique


_RULE_RANK = {rule: i for i, rule in enumerate(Rule)}


def _rank(diagnostics: List[Diagnostic]) -> List[Diagnostic]:
    return sorted(
        diagnostics,
        key=lambda d: (d.file_path, d.line, d.column, _RULE_RANK[d.rule]),
    )


def gate_diagnostics(diagnostics: List[Diagnostic]) -> List[Diagnostic]:
    deduped = _dedup(diagnostics)
    ranked  = _rank(deduped)
    return ranked
