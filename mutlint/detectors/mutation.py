"""
Mutation-related detectors.

Decides whether a parameter's annotation makes it pass-by-value and
whether a declaration has a body worth inspecting.

Each detector is a pure function: (node, context) -> bool
"""
import ast

from . import DetectorContext
from .utils import FunctionNode, decorator_names

_UNION_WRAPPERS = {"Optional", "Union"}


def _annotation_base(node: ast.AST) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def _subscript_elements(node: ast.Subscript) -> list[ast.AST]:
    inner = node.slice
    if isinstance(inner, ast.Tuple):
        return list(inner.elts)
    return [inner]


def is_value_type(node: ast.AST | None, context: DetectorContext) -> bool:
    """
    Detect whether an annotation names a copied-on-assignment type.

    Matches:
    - int, bool, str, ... (and dotted forms like decimal.Decimal)
    - "int" (string annotations)
    - int | None, Optional[int], Union[int, str]
    - Annotated[int, ...]
    - tuple[int, ...], frozenset[str]

    Missing or unrecognised annotations are not value types.
    """
    if node is None:
        return False
    value_types = context.policy.value_types

    if isinstance(node, ast.Constant):
        if node.value is None:
            return "None" in value_types
        if isinstance(node.value, str):
            try:
                parsed = ast.parse(node.value, mode="eval")
            except SyntaxError:
                return False
            return is_value_type(parsed.body, context)
        return False

    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return is_value_type(node.left, context) and is_value_type(node.right, context)

    if isinstance(node, ast.Subscript):
        base = _annotation_base(node.value)
        elements = _subscript_elements(node)
        if base in _UNION_WRAPPERS:
            return bool(elements) and all(is_value_type(e, context) for e in elements)
        if base == "Annotated":
            return bool(elements) and is_value_type(elements[0], context)
        return base in value_types

    base = _annotation_base(node)
    return base is not None and base in value_types


def is_static_method(node: ast.AST, context: DetectorContext) -> bool:
    """Detect @staticmethod on a method (no receiver parameter)."""
    if not isinstance(node, FunctionNode) or not context.in_class:
        return False
    return "staticmethod" in decorator_names(node)


def has_stub_body(node: ast.AST, context: DetectorContext) -> bool:
    """
    Detect bodies that only declare a contract.

    Stub = only a docstring, `pass`, `...` or `raise` statements.
    """
    if not isinstance(node, FunctionNode):
        return False

    for statement in node.body:
        if isinstance(statement, (ast.Pass, ast.Raise)):
            continue
        if isinstance(statement, ast.Expr) and isinstance(statement.value, ast.Constant):
            if isinstance(statement.value.value, str) or statement.value.value is Ellipsis:
                continue
        return False

    return True
