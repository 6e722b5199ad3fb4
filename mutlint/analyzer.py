"""
Mutation Propagation Analyzer

Single-pass walk over one module. Scopes are opened as declarations are
reached, so every assignment and call can be classified against the scope
chain built so far:

- write through an unmarked parameter        -> mut_param
- write to something no enclosing function owns -> mut_out_of_scope
- call to a marked name from an unmarked one  -> mut_infect
- marked declaration with no evidence at all  -> unnecessary_mut_infect

Each rule fires at most once per declaration or parameter.
"""
import ast
import logging
from typing import Dict, List, Optional, Sequence, Set

from .data_structures import Diagnostic, NameToken, Rule, Scope
from .detectors import DetectorContext, has_stub_body, is_exempt, is_static_method, is_value_type
from .detectors.utils import (
    Target,
    assignment_targets,
    callee_name,
    declaration_token,
    first_positional,
    iter_parameters,
    name_token,
    parameter_token,
    target_root,
)
from .explanation import correction_message, problem_message
from .policy import DEFAULT_POLICY, NamingPolicy
from .reporting import DiagnosticSink
from .scopes import Resolution, ScopeTree, scope_label

logger = logging.getLogger(__name__)


class MutationAnalyzer(ast.NodeVisitor):
    """
    Builds the scope tree and reports violations in the same walk.

    One instance analyzes one module; its scope tree and the sets of
    already-reported nodes are discarded with it.
    """

    def __init__(
        self,
        policy: NamingPolicy = DEFAULT_POLICY,
        sink: Optional[DiagnosticSink] = None,
        source_lines: Sequence[str] = (),
    ):
        self.policy = policy
        self.sink = sink if sink is not None else DiagnosticSink(policy)
        self.lines = source_lines
        self.tree = ScopeTree(policy)
        self._reported: Dict[Rule, Set[int]] = {rule: set() for rule in Rule}
        self._parameter_nodes: Dict[int, Dict[str, ast.arg]] = {}
        # Set only while directly inside a class body
        self._class_node: Optional[ast.ClassDef] = None

    def analyze(self, module: ast.AST) -> List[Diagnostic]:
        self.visit(module)
        return self.sink.diagnostics

    # Declarations

    def _visit_declaration(self, node):
        context = DetectorContext(class_node=self._class_node, policy=self.policy)
        token = declaration_token(node, self.lines)

        # Decorators, defaults and annotations run in the enclosing scope
        self._bind_name(node.name, token)
        for decorator in node.decorator_list:
            self.visit(decorator)
        self.visit(node.args)
        if node.returns is not None:
            self.visit(node.returns)

        scope = self.tree.enter_declaration(node, token, is_exempt(node, context))
        if scope is None:
            return

        saved_class = self._class_node
        self._class_node = None
        self._declare_parameters(scope, node, context)

        for statement in node.body:
            self.visit(statement)

        self._check_unnecessary_marker(scope, node, context)
        self.tree.exit_declaration()
        self._class_node = saved_class

    visit_FunctionDef = _visit_declaration
    visit_AsyncFunctionDef = _visit_declaration

    def _declare_parameters(self, scope: Scope, node, context: DetectorContext) -> None:
        receiver = None
        if context.in_class and not is_static_method(node, context):
            receiver = first_positional(node)

        nodes = self._parameter_nodes.setdefault(scope.index, {})
        for param in iter_parameters(node):
            if param is receiver:
                # self/cls writes are field writes, not parameter writes
                continue
            token = parameter_token(param, self.lines)
            if token is None:
                logger.debug("Skipping parameter without a name in %s", node.name)
                continue
            self.tree.declare_parameter(token, is_value_type(param.annotation, context))
            nodes[token.lexeme] = param

    def visit_ClassDef(self, node: ast.ClassDef):
        self._bind_name(node.name, None, node)
        for expression in node.decorator_list + node.bases + [k.value for k in node.keywords]:
            self.visit(expression)

        saved_class = self._class_node
        self._class_node = node
        for statement in node.body:
            self.visit(statement)
        self._class_node = saved_class

    def visit_Global(self, node: ast.Global):
        for name in node.names:
            self.tree.declare_foreign(name, is_global=True)

    def visit_Nonlocal(self, node: ast.Nonlocal):
        for name in node.names:
            self.tree.declare_foreign(name)

    # Assignment-like constructs

    def _visit_assignment(self, node):
        annotation = node.annotation if isinstance(node, ast.AnnAssign) else None
        # `x += ...` updates the object x already names, it does not rebind
        rebinds = not isinstance(node, ast.AugAssign)
        for leaf in assignment_targets(node):
            self._classify_write(leaf, annotation, rebinds)
        self.generic_visit(node)

    visit_Assign = _visit_assignment
    visit_AugAssign = _visit_assignment
    visit_NamedExpr = _visit_assignment
    visit_For = _visit_assignment
    visit_AsyncFor = _visit_assignment
    visit_withitem = _visit_assignment

    def visit_AnnAssign(self, node: ast.AnnAssign):
        if node.value is None and isinstance(node.target, ast.Name):
            # `x: int` declares without writing
            self._declare_local(node.target, node.annotation)
        self._visit_assignment(node)

    def visit_Delete(self, node: ast.Delete):
        for leaf in assignment_targets(node):
            target = target_root(leaf)
            if target is None:
                continue
            if target.has_member_chain:
                self._classify_write(leaf, None)
            else:
                self._record_rebinding(target)
        self.generic_visit(node)

    def visit_ExceptHandler(self, node: ast.ExceptHandler):
        if node.name and not self.tree.active.is_root:
            lineno = getattr(node, "lineno", None)
            if lineno is not None:
                self._bind_name(node.name, NameToken(node.name, lineno, node.col_offset))
        self.generic_visit(node)

    def _visit_import(self, node):
        for alias in node.names:
            bound = alias.asname or alias.name.split(".")[0]
            if bound != "*":
                self._bind_name(bound, None, node)

    visit_Import = _visit_import
    visit_ImportFrom = _visit_import

    def _visit_capture_pattern(self, node):
        # `case Click() as click`, `case [first, *rest]`, `case {**extra}`
        name = node.rest if isinstance(node, ast.MatchMapping) else node.name
        if name:
            self._bind_name(name, None, node)
        self.generic_visit(node)

    visit_MatchAs = _visit_capture_pattern
    visit_MatchStar = _visit_capture_pattern
    visit_MatchMapping = _visit_capture_pattern

    def _classify_write(
        self,
        leaf: ast.AST,
        annotation: Optional[ast.AST],
        rebinds: bool = True,
    ) -> None:
        scope = self.tree.active
        if scope.is_root:
            return

        target = target_root(leaf)
        if target is None:
            logger.debug("Skipping write with no simple target at line %s",
                         getattr(leaf, "lineno", "?"))
            return

        if not target.has_member_chain and target.name not in scope.foreign_names:
            resolution = self.tree.resolve(target.name)
            if resolution is Resolution.UNRESOLVED:
                # First binding of a bare name declares a local
                self._declare_local(target.root, annotation)
                return
            self._record_rebinding(target)
            if resolution is Resolution.PARAMETER and rebinds:
                # The parameter now names a new object owned by this scope
                self._declare_local(target.root, annotation)
            return

        resolution = self.tree.resolve(target.name)
        if resolution is Resolution.PARAMETER:
            self._on_parameter_write(scope, target)
        elif resolution is Resolution.LOCAL:
            self._on_local_write(scope, target)
        else:
            self._on_foreign_write(scope, target)

    def _record_rebinding(self, target: Target) -> None:
        """A bare name is rebound or deleted."""
        scope = self.tree.active
        if scope.is_root:
            return
        resolution = self.tree.resolve(target.name)
        if resolution is Resolution.PARAMETER:
            self._on_parameter_write(scope, target)
        elif resolution is Resolution.LOCAL:
            self._on_local_write(scope, target)
        elif target.name in scope.foreign_names:
            self._on_foreign_write(scope, target)

    def _on_parameter_write(self, scope: Scope, target: Target) -> None:
        symbol = scope.parameters[target.name]
        if symbol.is_value_type or not target.has_member_chain:
            # Not observable by the caller
            symbol.should_be_mut = True
            return
        if not self.policy.is_marked(target.name):
            param = self._parameter_nodes.get(scope.index, {}).get(target.name)
            if param is not None:
                self._report(Rule.MUT_PARAM, param, symbol.name)
        symbol.should_be_mut = True

    def _on_local_write(self, scope: Scope, target: Target) -> None:
        symbol = scope.locals[target.name]
        if self.policy.is_marked(target.name):
            symbol.should_be_mut = True

    def _on_foreign_write(self, scope: Scope, target: Target) -> None:
        if self.tree.crawl_contains(target.name):
            logger.debug("[%s] Write to captured '%s' is owned by an enclosing function",
                         scope_label(scope), target.name)
            return
        scope.marked_mut_evidence_found = True
        if scope.is_marked or scope.is_exempt:
            return
        self._report(Rule.MUT_OUT_OF_SCOPE, scope.declaration, scope.name)

    # Call-like constructs

    def visit_Call(self, node: ast.Call):
        scope = self.tree.active
        name = callee_name(node)
        if name is not None and not scope.is_root:
            scope.invoked_names.add(name)
            if self.policy.is_marked(name):
                scope.marked_mut_evidence_found = True
                if not scope.is_marked and not scope.is_exempt:
                    self._report(Rule.MUT_INFECT, scope.declaration, scope.name)
        self.generic_visit(node)

    # Unnecessary marker

    def _check_unnecessary_marker(self, scope: Scope, node, context: DetectorContext) -> None:
        if not scope.is_marked:
            return
        if has_stub_body(node, context):
            return
        if self.tree.contains_evidence(scope):
            return
        self._report(Rule.UNNECESSARY_MUT_INFECT, node, scope.name)

    # Helpers

    def _bind_name(self, name: str, token: Optional[NameToken], node: Optional[ast.AST] = None) -> None:
        """Bind a name introduced by def/class/import/except in the active scope."""
        scope = self.tree.active
        if scope.is_root or self._class_node is not None:
            return
        if name in scope.foreign_names:
            return
        if token is None:
            lineno = getattr(node, "lineno", 0)
            token = NameToken(name, lineno, getattr(node, "col_offset", 0))
        self.tree.declare_local(token)

    def _declare_local(self, name_node: ast.Name, annotation: Optional[ast.AST]) -> None:
        scope = self.tree.active
        if scope.is_root or self._class_node is not None:
            return
        token = name_token(name_node, self.lines)
        if token is None:
            return
        context = DetectorContext(policy=self.policy)
        self.tree.declare_local(token, is_value_type(annotation, context))

    def _report(self, rule: Rule, identity: Optional[ast.AST], token: Optional[NameToken]) -> None:
        if identity is None or token is None:
            return
        reported = self._reported[rule]
        if id(identity) in reported:
            return
        reported.add(id(identity))

        logger.debug("[%s] Reporting %s", token.lexeme, rule.value)
        self.sink.report(Diagnostic(
            rule=rule,
            token=token,
            message=problem_message(rule, self.policy.suffix),
            correction=correction_message(rule, self.policy.suffix),
        ))


def analyze_source(
    source: str,
    policy: NamingPolicy = DEFAULT_POLICY,
    file_path: str = "<unknown>",
) -> List[Diagnostic]:
    """
    Parse and analyze one module.

    Raises SyntaxError for unparsable source; the caller decides whether
    that skips the file.
    """
    module = ast.parse(source, filename=file_path)
    sink = DiagnosticSink(policy, file_path=file_path, source=source)
    analyzer = MutationAnalyzer(policy, sink, source.splitlines())
    return analyzer.analyze(module)
