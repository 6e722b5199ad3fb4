"""
Exemption detectors.

Detects declarations that are never asked to carry the marker suffix.

Each detector is a pure function: (node, context) -> bool

IMPORTANT: exemptions only silence mut_infect and mut_out_of_scope.
Parameter mutation and unnecessary markers are still checked.
"""
import ast
import re

from . import DetectorContext
from .utils import FunctionNode, decorator_names

_DUNDER = re.compile(r"^__\w+__$")

_ACCESSOR_DECORATORS = {"property", "cached_property"}
_ACCESSOR_SUFFIXES = {"setter", "getter", "deleter"}


def is_override(node: ast.AST, context: DetectorContext) -> bool:
    """Detect @override (bare or module-qualified)."""
    if not isinstance(node, FunctionNode):
        return False
    overrides = context.policy.override_decorators
    return any(name in overrides for name in decorator_names(node))


def is_entry_point(node: ast.AST, context: DetectorContext) -> bool:
    """
    Detect reserved entry-point names such as `main`.

    Methods named `main` are ordinary methods, so only functions match.
    """
    if not isinstance(node, FunctionNode):
        return False
    if context.in_class:
        return False
    return node.name in context.policy.entry_points


def is_accessor(node: ast.AST, context: DetectorContext) -> bool:
    """Detect property getters, setters and deleters."""
    if not isinstance(node, FunctionNode) or not context.policy.exempt_accessors:
        return False
    for decorator in node.decorator_list:
        if isinstance(decorator, ast.Name) and decorator.id in _ACCESSOR_DECORATORS:
            return True
        if isinstance(decorator, ast.Attribute):
            if decorator.attr in _ACCESSOR_SUFFIXES or decorator.attr in _ACCESSOR_DECORATORS:
                return True
    return False


def is_operator(node: ast.AST, context: DetectorContext) -> bool:
    """
    Detect operator-kind methods: dunders such as __add__ or __setitem__.

    __init__ is included; it only assigns fields of the value under
    construction.
    """
    if not isinstance(node, FunctionNode) or not context.policy.exempt_operators:
        return False
    if not context.in_class:
        return False
    return bool(_DUNDER.match(node.name))


def is_exempt(node: ast.AST, context: DetectorContext) -> bool:
    return (
        is_override(node, context)
        or is_entry_point(node, context)
        or is_accessor(node, context)
        or is_operator(node, context)
    )
