"""
Unit tests for mutlint.analyzer (scope building + mutation propagation).

Each test feeds a small module through analyze_source and asserts on
(rule, name) pairs only. Wording is covered in test_explanation.py.
"""
import ast
import sys
import textwrap
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from mutlint.analyzer import MutationAnalyzer, analyze_source
from mutlint.data_structures import NameToken, Rule
from mutlint.policy import NamingPolicy
from mutlint.reporting import DiagnosticSink


def findings(code: str, policy: NamingPolicy = NamingPolicy()) -> list[tuple[str, str]]:
    """Analyze code and return sorted (rule id, reported name) pairs."""
    diagnostics = analyze_source(textwrap.dedent(code), policy)
    return sorted((d.rule.value, d.token.lexeme) for d in diagnostics)


# ---------------------------------------------------------------------------
# At most one diagnostic per rule and identity
# ---------------------------------------------------------------------------

class TestOnePerIdentity:

    def test_three_global_writes_yield_one_diagnostic(self):
        code = """
        COUNTER = 0

        def bump():
            global COUNTER
            COUNTER = 1
            COUNTER = 2
            COUNTER += 3
        """
        assert findings(code) == [("mut_out_of_scope", "bump")]

    def test_repeated_member_writes_to_one_parameter(self):
        code = """
        def fill(obj):
            obj.a = 1
            obj.b = 2
            obj.items[0] = 3
        """
        assert findings(code) == [("mut_param", "obj")]

    def test_each_parameter_reported_separately(self):
        code = """
        def link(left, right):
            left.next = right
            right.prev = left
        """
        assert findings(code) == [("mut_param", "left"), ("mut_param", "right")]

    def test_repeated_marked_calls_yield_one_infection(self):
        code = """
        def sync():
            saveMut()
            saveMut()
            store.flushMut()
        """
        assert findings(code) == [("mut_infect", "sync")]

    def test_running_twice_is_idempotent(self):
        code = """
        def sync():
            saveMut()

        def computeMut(values):
            return sum(values)
        """
        assert findings(code) == findings(code)
        assert findings(code) == [
            ("mut_infect", "sync"),
            ("unnecessary_mut_infect", "computeMut"),
        ]


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

class TestParameterMutation:

    def test_member_write_on_unmarked_parameter(self):
        code = """
        def f(obj):
            obj.field = 5
        """
        assert findings(code) == [("mut_param", "obj")]

    def test_bare_reassignment_is_not_mutation(self):
        code = """
        def f(obj):
            obj = new_obj()
        """
        assert findings(code) == []

    def test_marked_parameter_may_be_mutated(self):
        code = """
        def f(targetMut):
            targetMut.field = 5
            targetMut["key"] = 6
        """
        assert findings(code) == []

    def test_value_type_parameter_reassigned(self):
        code = """
        def f(count: int):
            count = count + 1
            count += 1
            return count
        """
        assert findings(code) == []

    def test_value_type_parameter_member_write(self):
        code = """
        def f(label: str, when: "datetime | None", flag: Optional[bool]):
            label.x = 1
            when.y = 2
            flag.z = 3
        """
        assert findings(code) == []

    def test_unannotated_parameter_is_not_value_type(self):
        code = """
        def f(count):
            count.value = 1
        """
        assert findings(code) == [("mut_param", "count")]

    def test_subscript_and_delete_count_as_member_writes(self):
        code = """
        def drop(cache, key):
            del cache[key]
        """
        assert findings(code) == [("mut_param", "cache")]

    def test_keyword_and_variadic_parameters(self):
        code = """
        def f(*items, options=None, **extra):
            options.debug = True
            extra["seen"] = 1
        """
        assert findings(code) == [("mut_param", "extra"), ("mut_param", "options")]

    def test_rebound_parameter_is_shadowed_by_local(self):
        code = """
        def reset(obj):
            obj = Thing()
            obj.field = 5
        """
        assert findings(code) == []

    def test_augmented_member_write(self):
        code = """
        def tally(stats):
            stats.total += 1
        """
        assert findings(code) == [("mut_param", "stats")]

    def test_unpacking_targets(self):
        code = """
        def swap(pair):
            pair.left, pair.right = pair.right, pair.left
        """
        assert findings(code) == [("mut_param", "pair")]


# ---------------------------------------------------------------------------
# Out-of-scope mutation
# ---------------------------------------------------------------------------

class TestOutOfScopeMutation:

    def test_member_write_to_module_name(self):
        code = """
        registry = {}

        def register(name, value):
            registry[name] = value
        """
        assert findings(code) == [("mut_out_of_scope", "register")]

    def test_receiver_field_write_in_method(self):
        code = """
        class Counter:
            def __init__(self):
                self.count = 0

            def increment(self):
                self.count += 1

            def incrementMut(self):
                self.count += 1
        """
        assert findings(code) == [("mut_out_of_scope", "increment")]

    def test_classmethod_receiver(self):
        code = """
        class Config:
            @classmethod
            def configure(cls, level):
                cls.level = level
        """
        assert findings(code) == [("mut_out_of_scope", "configure")]

    def test_staticmethod_first_parameter_is_a_parameter(self):
        code = """
        class Util:
            @staticmethod
            def fill(buffer):
                buffer.data = 1
        """
        assert findings(code) == [("mut_param", "buffer")]

    def test_local_declaration_is_not_foreign(self):
        code = """
        def build():
            result = Result()
            result.value = 1
            items: list = []
            items.append(result)
            return items
        """
        assert findings(code) == []

    def test_inner_function_with_pure_locals(self):
        code = """
        def outer():
            def inner():
                total = []
                total.append(1)
                total.count = 3
            inner()
        """
        assert findings(code) == []

    def test_nonlocal_capture_of_enclosing_local(self):
        code = """
        def outer():
            count = 0
            def bump():
                nonlocal count
                count += 1
            bump()
            return count
        """
        assert findings(code) == []

    def test_member_write_to_enclosing_local(self):
        code = """
        def outer():
            cache = {}
            def fill():
                cache["k"] = 1
            fill()
            return cache
        """
        assert findings(code) == []

    def test_nested_function_writing_global_is_flagged_itself(self):
        code = """
        def outer():
            def inner():
                SETTINGS.debug = True
            inner()
        """
        assert findings(code) == [("mut_out_of_scope", "inner")]

    def test_global_is_not_captured_by_same_named_enclosing_local(self):
        code = """
        def outer():
            state = None
            def inner():
                global state
                state = 1
            inner()
            return state
        """
        assert findings(code) == [("mut_out_of_scope", "inner")]

    def test_match_capture_names_are_locals(self):
        code = """
        def handle(event):
            match event:
                case Click() as click:
                    click.handled = True
                case [first, *rest]:
                    first.seen = True
                    rest[0] = first
                case {"kind": kind, **extra}:
                    extra["kind"] = kind
        """
        assert findings(code) == []

    def test_match_wildcard_binds_nothing(self):
        code = """
        def handle(event):
            match event:
                case _:
                    event.handled = True
        """
        assert findings(code) == [("mut_param", "event")]

    def test_module_level_code_is_never_reported(self):
        code = """
        CONFIG.debug = True
        saveMut()
        for item in items:
            item.seen = True
        """
        assert findings(code) == []

    def test_write_through_call_result_is_skipped(self):
        code = """
        def poke():
            make().value = 3
            handlers[0]()
            (lambda: 1)()
        """
        assert findings(code) == []


# ---------------------------------------------------------------------------
# Infection
# ---------------------------------------------------------------------------

class TestInfection:

    def test_unmarked_caller_of_marked_function(self):
        code = """
        def a():
            bMut()

        def bMut():
            pass
        """
        assert findings(code) == [("mut_infect", "a")]

    def test_marking_the_caller_resolves_it(self):
        code = """
        def aMut():
            bMut()

        def bMut():
            pass
        """
        assert findings(code) == []

    def test_method_invocation_on_any_receiver(self):
        code = """
        class Service:
            def handle(self, request):
                self.repo.saveMut(request)
        """
        assert findings(code) == [("mut_infect", "handle")]

    def test_async_function_and_await(self):
        code = """
        async def push():
            await sendMut()
        """
        assert findings(code) == [("mut_infect", "push")]

    def test_call_in_default_argument_belongs_to_enclosing_scope(self):
        code = """
        def outer():
            def inner(value=createMut()):
                return value
            return inner
        """
        assert findings(code) == [("mut_infect", "outer")]

    def test_custom_suffix(self):
        code = """
        def a():
            b_mut()
        """
        policy = NamingPolicy(suffix="_mut")
        assert findings(code, policy) == [("mut_infect", "a")]


# ---------------------------------------------------------------------------
# Exemptions
# ---------------------------------------------------------------------------

class TestExemptions:

    def test_entry_point(self):
        code = """
        def main():
            global STATE
            STATE = 1
            saveMut()
        """
        assert findings(code) == []

    def test_override_decorator(self):
        code = """
        class Child(Base):
            @override
            def run(self):
                self.count = 1
                saveMut()

            @typing.override
            def stop(self):
                self.count = 0
        """
        assert findings(code) == []

    def test_accessors(self):
        code = """
        class Box:
            @property
            def size(self):
                refreshMut()
                return self._size

            @size.setter
            def size(self, value):
                self._size = value
        """
        assert findings(code) == []

    def test_operator_methods(self):
        code = """
        class Bag:
            def __setitem__(self, key, value):
                self.items[key] = value

            def __iadd__(self, other):
                self.mergeMut(other)
                return self
        """
        assert findings(code) == []

    def test_exemption_does_not_cover_parameters(self):
        code = """
        class Node:
            def __init__(self, parent):
                parent.children.append(self)
                parent.last = self
        """
        assert findings(code) == [("mut_param", "parent")]

    def test_accessor_exemption_can_be_disabled(self):
        code = """
        class Box:
            @property
            def size(self):
                refreshMut()
                return 1
        """
        policy = NamingPolicy(exempt_accessors=False)
        assert findings(code, policy) == [("mut_infect", "size")]

    def test_main_method_is_not_an_entry_point(self):
        code = """
        class App:
            def main(self):
                self.started = True
        """
        assert findings(code) == [("mut_out_of_scope", "main")]


# ---------------------------------------------------------------------------
# Unnecessary marker
# ---------------------------------------------------------------------------

class TestUnnecessaryMarker:

    def test_marked_function_without_mutation(self):
        code = """
        def computeMut(values):
            total = 0
            for v in values:
                total = total + v
            return total
        """
        assert findings(code) == [("unnecessary_mut_infect", "computeMut")]

    def test_mutating_verb_call_is_evidence(self):
        code = """
        def computeMut(values):
            total = 0
            for v in values:
                total = total + v
            values.append(total)
            return total
        """
        assert findings(code) == []

    def test_marked_callee_is_evidence(self):
        code = """
        def outerMut():
            innerMut()
        """
        assert findings(code) == []

    def test_foreign_write_is_evidence(self):
        code = """
        def resetMut():
            global STATE
            STATE = None
        """
        assert findings(code) == []

    def test_receiver_write_is_evidence(self):
        code = """
        class Counter:
            def resetMut(self):
                self.count = 0
        """
        assert findings(code) == []

    def test_parameter_write_is_evidence(self):
        code = """
        def fillMut(bufferMut):
            bufferMut.data = 1
        """
        assert findings(code) == []

    def test_marked_local_write_is_evidence(self):
        code = """
        def buildMut():
            itemsMut = Items()
            itemsMut.extra = 1
            return itemsMut
        """
        assert findings(code) == []

    def test_marked_local_declaration_alone_is_not_evidence(self):
        code = """
        def buildMut():
            itemsMut = Items()
            return itemsMut
        """
        assert findings(code) == [("unnecessary_mut_infect", "buildMut")]

    def test_marked_child_scope_is_evidence(self):
        code = """
        def setupMut():
            def helperMut():
                pass
            return helperMut
        """
        assert findings(code) == []

    def test_child_scope_with_evidence(self):
        code = """
        def configureMut():
            def apply():
                SETTINGS.debug = True
            apply()
        """
        assert findings(code) == [("mut_out_of_scope", "apply")]

    def test_stub_bodies_are_not_reported(self):
        code = """
        class Repo:
            def saveMut(self, item):
                \"\"\"Persist an item.\"\"\"
                raise NotImplementedError

            def loadMut(self):
                ...
        """
        assert findings(code) == []

    def test_can_be_disabled(self):
        code = """
        def computeMut(values):
            return sum(values)
        """
        policy = NamingPolicy().with_disabled(Rule.UNNECESSARY_MUT_INFECT)
        assert findings(code, policy) == []


# ---------------------------------------------------------------------------
# Positions, suppression, robustness
# ---------------------------------------------------------------------------

class TestReportingDetails:

    def test_declaration_token_position(self):
        diagnostics = analyze_source("def first():\n    saveMut()\n")
        assert diagnostics[0].token == NameToken("first", 1, 4)

    def test_async_and_decorated_declaration_position(self):
        source = "@traced\nasync def go():\n    await sendMut()\n"
        diagnostics = analyze_source(source)
        assert diagnostics[0].token == NameToken("go", 2, 10)

    def test_parameter_token_position(self):
        diagnostics = analyze_source("def f(a, obj):\n    obj.x = 1\n")
        assert diagnostics[0].rule is Rule.MUT_PARAM
        assert diagnostics[0].token == NameToken("obj", 1, 9)

    def test_suppression_comment(self):
        source = (
            "def sync():  # mutlint: ignore[mut_infect]\n"
            "    saveMut()\n"
        )
        assert analyze_source(source) == []

    def test_file_path_is_attached(self):
        diagnostics = analyze_source("def sync():\n    saveMut()\n", file_path="pkg/mod.py")
        assert diagnostics[0].file_path == "pkg/mod.py"

    def test_analyzer_without_source_lines(self):
        """Without source text, names fall back to the statement position."""
        module = ast.parse("def sync():\n    saveMut()\n")
        sink = DiagnosticSink()
        diagnostics = MutationAnalyzer(sink=sink).analyze(module)
        assert [(d.rule, d.token.lexeme) for d in diagnostics] == [(Rule.MUT_INFECT, "sync")]

    def test_synthetic_nodes_without_positions(self):
        func = ast.FunctionDef(
            name="sync",
            args=ast.arguments(
                posonlyargs=[], args=[ast.arg(arg="obj")], vararg=None,
                kwonlyargs=[], kw_defaults=[], kwarg=None, defaults=[],
            ),
            body=[ast.Expr(value=ast.Call(func=ast.Name(id="saveMut", ctx=ast.Load()), args=[], keywords=[]))],
            decorator_list=[],
            returns=None,
        )
        module = ast.Module(body=[func], type_ignores=[])
        # No positions anywhere: nothing can be anchored, nothing crashes
        assert MutationAnalyzer().analyze(module) == []

    def test_scope_tree_mirrors_nesting(self):
        source = textwrap.dedent("""
        def outer():
            def inner():
                pass

        class C:
            def method(self):
                pass
        """)
        analyzer = MutationAnalyzer(source_lines=source.splitlines())
        analyzer.analyze(ast.parse(source))
        tree = analyzer.tree

        names = [s.name.lexeme for s in tree.scopes[1:]]
        assert names == ["outer", "inner", "method"]
        assert tree.scopes[2].parent == 1
        assert tree.root.children == [1, 3]
        assert all(s.closed for s in tree.scopes[1:])
