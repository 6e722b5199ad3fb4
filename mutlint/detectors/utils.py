"""
Stateless extraction helpers over AST nodes.

Each helper handles one node kind the engine cares about (declaration,
parameter, assignment target, call) and returns None when the node has no
simple name to offer. Callers treat None as "skip this construct".
"""
import ast
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from ..data_structures import NameToken

FunctionNode = (ast.FunctionDef, ast.AsyncFunctionDef)

_DEF_KEYWORD = re.compile(rb"(?:async\s+)?def\s+")


# Position utilities

def _char_column(lines: Sequence[str], lineno: int, byte_col: int) -> int:
    """
    Convert an ast byte offset into a character column.

    ast reports col_offset in UTF-8 bytes; editors count characters.
    """
    if not 0 < lineno <= len(lines):
        return byte_col
    prefix = lines[lineno - 1].encode("utf-8")[:byte_col]
    return len(prefix.decode("utf-8", errors="replace"))


# Declaration utilities

def declaration_token(node: ast.AST, lines: Sequence[str] = ()) -> Optional[NameToken]:
    """
    Locate the name of a function or method declaration.

    ast only records where `def` starts, so the name is found by skipping
    the keyword(s) in the source line. Without source lines the token
    falls back to the position of the statement itself.
    """
    if not isinstance(node, FunctionNode):
        return None
    name = getattr(node, "name", None)
    lineno = getattr(node, "lineno", None)
    if not name or lineno is None:
        return None

    byte_col = getattr(node, "col_offset", 0) or 0
    if 0 < lineno <= len(lines):
        raw = lines[lineno - 1].encode("utf-8")
        match = _DEF_KEYWORD.match(raw, byte_col)
        if match and raw[match.end():].startswith(name.encode("utf-8")):
            byte_col = match.end()

    return NameToken(name, lineno, _char_column(lines, lineno, byte_col))


def decorator_name(decorator: ast.AST) -> Optional[str]:
    """
    Last dotted component of a decorator expression.

    Examples:
        @override             -> "override"
        @typing.override      -> "override"
        @value.setter         -> "setter"
        @functools.lru_cache()-> "lru_cache"
    """
    if isinstance(decorator, ast.Call):
        return decorator_name(decorator.func)
    if isinstance(decorator, ast.Name):
        return decorator.id
    if isinstance(decorator, ast.Attribute):
        return decorator.attr
    return None


def decorator_names(node: ast.AST) -> List[str]:
    names = []
    for decorator in getattr(node, "decorator_list", []):
        name = decorator_name(decorator)
        if name:
            names.append(name)
    return names


# Parameter utilities

def iter_parameters(func_node: ast.AST) -> Iterator[ast.arg]:
    """Yield every parameter of a function in declaration order."""
    args = getattr(func_node, "args", None)
    if not isinstance(args, ast.arguments):
        return
    yield from args.posonlyargs
    yield from args.args
    if args.vararg is not None:
        yield args.vararg
    yield from args.kwonlyargs
    if args.kwarg is not None:
        yield args.kwarg


def first_positional(func_node: ast.AST) -> Optional[ast.arg]:
    args = getattr(func_node, "args", None)
    if not isinstance(args, ast.arguments):
        return None
    positional = list(args.posonlyargs) + list(args.args)
    return positional[0] if positional else None


def parameter_token(param: ast.AST, lines: Sequence[str] = ()) -> Optional[NameToken]:
    if not isinstance(param, ast.arg) or not param.arg:
        return None
    lineno = getattr(param, "lineno", None)
    if lineno is None:
        return None
    column = _char_column(lines, lineno, getattr(param, "col_offset", 0) or 0)
    return NameToken(param.arg, lineno, column)


def name_token(node: ast.AST, lines: Sequence[str] = ()) -> Optional[NameToken]:
    if not isinstance(node, ast.Name) or getattr(node, "lineno", None) is None:
        return None
    column = _char_column(lines, node.lineno, node.col_offset)
    return NameToken(node.id, node.lineno, column)


# Assignment target utilities

@dataclass(frozen=True)
class Target:
    """
    The name an assignment ultimately writes through.

    `obj.items[0].name = x` has root `obj` and a member chain;
    `obj = x` has root `obj` and no member chain.
    """
    root: ast.Name
    has_member_chain: bool

    @property
    def name(self) -> str:
        return self.root.id


def leaf_targets(target: ast.AST) -> Iterator[ast.AST]:
    """
    Flatten unpacking targets.

    Examples:
        a, (b.x, *c) = ...  -> a, b.x, c
    """
    if isinstance(target, (ast.Tuple, ast.List)):
        for element in target.elts:
            yield from leaf_targets(element)
    elif isinstance(target, ast.Starred):
        yield from leaf_targets(target.value)
    else:
        yield target


def target_root(target: ast.AST) -> Optional[Target]:
    """
    Walk an attribute/subscript chain down to its root name.

    Returns None when the chain is rooted in something other than a name,
    e.g. a call result: `make().x = 1`.
    """
    has_member_chain = False
    current = target
    while isinstance(current, (ast.Attribute, ast.Subscript)):
        has_member_chain = True
        current = current.value
    if isinstance(current, ast.Name):
        return Target(root=current, has_member_chain=has_member_chain)
    return None


def assignment_targets(node: ast.AST) -> List[ast.AST]:
    """Leaf targets written by an assignment-like statement or expression."""
    if isinstance(node, ast.Assign):
        raw = list(node.targets)
    elif isinstance(node, ast.AugAssign):
        raw = [node.target]
    elif isinstance(node, ast.AnnAssign):
        raw = [node.target] if node.value is not None else []
    elif isinstance(node, ast.Delete):
        raw = list(node.targets)
    elif isinstance(node, ast.NamedExpr):
        raw = [node.target]
    elif isinstance(node, (ast.For, ast.AsyncFor)):
        raw = [node.target]
    elif isinstance(node, ast.withitem):
        raw = [node.optional_vars] if node.optional_vars is not None else []
    else:
        raw = []

    leaves = []
    for target in raw:
        leaves.extend(leaf_targets(target))
    return leaves


# Call utilities

def callee_name(call: ast.AST) -> Optional[str]:
    """
    Name of the function or method a call invokes.

    Examples:
        saveMut(x)          -> "saveMut"
        self.repo.saveMut() -> "saveMut"
        handlers[0]()       -> None
    """
    if not isinstance(call, ast.Call):
        return None
    func = call.func
    if isinstance(func, ast.Name):
        return func.id
    if isinstance(func, ast.Attribute):
        return func.attr
    return None
