"""
Unit tests for mutlint.reporting (Diagnostic Sink).

Structure follows the sink pipeline:
    1. Suppression comment parsing
    2. Per-finding filtering (disabled rules, suppressions)
    3. Deduplication
    4. Ranking (sort order)
"""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from mutlint.data_structures import Diagnostic, NameToken, Rule
from mutlint.policy import NamingPolicy
from mutlint.reporting import DiagnosticSink, Suppressions, gate_diagnostics

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _diag(rule=Rule.MUT_INFECT, name="save", line=1, column=4, path="<unknown>"):
    """Factory: produce a Diagnostic with sane defaults, override what you need."""
    return Diagnostic(
        rule=rule,
        token=NameToken(name, line, column),
        message="message",
        correction="correction",
        file_path=path,
    )


# ===========================================================================
# 1. Suppression comments
# ===========================================================================

class TestSuppressionParsing:

    def test_line_suppression_for_all_rules(self):
        s = Suppressions.parse("def save():  # mutlint: ignore\n    pass\n")
        assert s.is_suppressed(Rule.MUT_INFECT, 1)
        assert s.is_suppressed(Rule.MUT_PARAM, 1)
        assert not s.is_suppressed(Rule.MUT_INFECT, 2)

    def test_line_suppression_for_listed_rules(self):
        s = Suppressions.parse("def save(x):  # mutlint: ignore[mut_param, mut_infect]\n")
        assert s.is_suppressed(Rule.MUT_PARAM, 1)
        assert s.is_suppressed(Rule.MUT_INFECT, 1)
        assert not s.is_suppressed(Rule.MUT_OUT_OF_SCOPE, 1)

    def test_file_suppression(self):
        s = Suppressions.parse("# mutlint: ignore-file[unnecessary_mut_infect]\nx = 1\n")
        assert s.is_suppressed(Rule.UNNECESSARY_MUT_INFECT, 40)
        assert not s.is_suppressed(Rule.MUT_INFECT, 40)

    def test_bare_file_suppression_covers_everything(self):
        s = Suppressions.parse("# mutlint: ignore-file\n")
        for rule in Rule:
            assert s.is_suppressed(rule, 7)

    def test_marker_inside_string_is_not_a_comment(self):
        s = Suppressions.parse("text = '# mutlint: ignore'\n")
        assert not s.is_suppressed(Rule.MUT_INFECT, 1)

    def test_unterminated_source_keeps_earlier_comments(self):
        s = Suppressions.parse("x = 1  # mutlint: ignore\ny = (\n")
        assert s.is_suppressed(Rule.MUT_INFECT, 1)

    def test_repeated_comments_on_one_line_merge(self):
        s = Suppressions.parse("x = 1  # mutlint: ignore[mut_param] # mutlint: ignore[mut_infect]\n")
        assert s.is_suppressed(Rule.MUT_PARAM, 1)
        assert s.is_suppressed(Rule.MUT_INFECT, 1)


# ===========================================================================
# 2. Sink filtering
# ===========================================================================

class TestDiagnosticSink:

    def test_records_and_stamps_path(self):
        sink = DiagnosticSink(file_path="pkg/mod.py")
        assert sink.report(_diag())
        assert sink.diagnostics[0].file_path == "pkg/mod.py"

    def test_disabled_rule_is_dropped(self):
        policy = NamingPolicy().with_disabled(Rule.MUT_INFECT)
        sink = DiagnosticSink(policy=policy)
        assert not sink.report(_diag(rule=Rule.MUT_INFECT))
        assert sink.report(_diag(rule=Rule.MUT_PARAM))
        assert [d.rule for d in sink.diagnostics] == [Rule.MUT_PARAM]
        # Disabled rules are not counted as suppressed
        assert sink.suppressed_count == 0

    def test_suppressed_finding_is_counted(self):
        source = "def save():  # mutlint: ignore[mut_infect]\n    pass\n"
        sink = DiagnosticSink(source=source)
        assert not sink.report(_diag(line=1))
        assert sink.diagnostics == []
        assert sink.suppressed_count == 1


# ===========================================================================
# 3 + 4. Deduplication and ranking
# ===========================================================================

class TestGate:

    def test_empty(self):
        assert gate_diagnostics([]) == []

    def test_exact_duplicates_collapse(self):
        result = gate_diagnostics([_diag(), _diag()])
        assert len(result) == 1

    def test_same_token_different_rules_are_kept(self):
        result = gate_diagnostics([
            _diag(rule=Rule.MUT_INFECT),
            _diag(rule=Rule.MUT_OUT_OF_SCOPE),
        ])
        assert len(result) == 2

    def test_order_is_path_line_column_rule(self):
        result = gate_diagnostics([
            _diag(path="b.py", line=1),
            _diag(path="a.py", line=9),
            _diag(path="a.py", line=2, column=8),
            _diag(path="a.py", line=2, column=4, rule=Rule.MUT_PARAM),
            _diag(path="a.py", line=2, column=4, rule=Rule.MUT_INFECT),
        ])
        assert [(d.file_path, d.line, d.column, d.rule) for d in result] == [
            ("a.py", 2, 4, Rule.MUT_INFECT),
            ("a.py", 2, 4, Rule.MUT_PARAM),
            ("a.py", 2, 8, Rule.MUT_INFECT),
            ("a.py", 9, 4, Rule.MUT_INFECT),
            ("b.py", 1, 4, Rule.MUT_INFECT),
        ]
