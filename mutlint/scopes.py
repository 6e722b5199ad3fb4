"""
Scope Tree Builder

One scope per function or method, built top-down during a single walk.
Scopes are stored in an arena and refer to each other by index: the
arena owns every scope, a scope only names its parent and children.
"""
import ast
import logging
from enum import Enum
from typing import Iterator, List, Optional, Set

from .data_structures import BoundSymbol, NameToken, Scope
from .policy import NamingPolicy

logger = logging.getLogger(__name__)


class Resolution(Enum):
    PARAMETER  = "parameter"
    LOCAL      = "local"
    UNRESOLVED = "unresolved"


class ScopeTree:
    """Arena of scopes plus the stack of currently open ones."""

    def __init__(self, policy: NamingPolicy):
        self.policy = policy
        self.scopes: List[Scope] = [Scope(index=0)]
        self._stack: List[int] = [0]
        self._entered: Set[int] = set()

    # Navigation

    @property
    def root(self) -> Scope:
        return self.scopes[0]

    @property
    def active(self) -> Scope:
        return self.scopes[self._stack[-1]]

    def parent_of(self, scope: Scope) -> Optional[Scope]:
        if scope.parent is None:
            return None
        return self.scopes[scope.parent]

    def children_of(self, scope: Scope) -> Iterator[Scope]:
        for index in scope.children:
            yield self.scopes[index]

    def path_to_root(self, scope: Optional[Scope] = None) -> Iterator[Scope]:
        """Yield a scope and then each of its ancestors, ending at the root."""
        current = scope if scope is not None else self.active
        while current is not None:
            yield current
            current = self.parent_of(current)

    # Construction

    def enter_declaration(
        self,
        node: ast.AST,
        name: Optional[NameToken],
        is_exempt: bool = False,
    ) -> Optional[Scope]:
        """
        Open a child scope for a function or method declaration.

        Returns None if this node was already entered; the caller must
        then not walk it again.
        """
        if id(node) in self._entered:
            return None
        self._entered.add(id(node))

        parent = self.active
        scope = Scope(
            index=len(self.scopes),
            declaration=node,
            name=name,
            parent=parent.index,
            is_marked=self.policy.is_marked(name.lexeme if name else None),
            is_exempt=is_exempt,
        )
        self.scopes.append(scope)
        parent.children.append(scope.index)
        self._stack.append(scope.index)

        logger.debug("[%s] Opened scope %d", scope_label(scope), scope.index)
        return scope

    def exit_declaration(self) -> Scope:
        if len(self._stack) == 1:
            raise RuntimeError("Cannot exit the root scope")
        scope = self.scopes[self._stack.pop()]
        scope.closed = True
        logger.debug("[%s] Closed scope %d", scope_label(scope), scope.index)
        return scope

    def declare_local(self, token: NameToken, is_value_type: bool = False) -> BoundSymbol:
        """Bind a local in the active scope; a later binding shadows an earlier one."""
        symbol = BoundSymbol(name=token, is_value_type=is_value_type)
        self.active.locals[token.lexeme] = symbol
        return symbol

    def declare_parameter(self, token: NameToken, is_value_type: bool = False) -> BoundSymbol:
        symbol = BoundSymbol(name=token, is_value_type=is_value_type)
        self.active.parameters[token.lexeme] = symbol
        return symbol

    def declare_foreign(self, lexeme: str, is_global: bool = False) -> None:
        """Record a `global` or `nonlocal` declaration in the active scope."""
        self.active.foreign_names.add(lexeme)
        if is_global:
            self.active.global_names.add(lexeme)

    # Lookup

    def resolve(self, lexeme: str) -> Resolution:
        """
        Classify a name against the active scope only.

        Parameters are bound on entry, before any local, so a local with
        the same name can only be a later re-declaration and shadows it.
        """
        scope = self.active
        if lexeme in scope.foreign_names:
            return Resolution.UNRESOLVED
        if lexeme in scope.locals:
            return Resolution.LOCAL
        if lexeme in scope.parameters:
            return Resolution.PARAMETER
        return Resolution.UNRESOLVED

    def crawl_contains(self, lexeme: str) -> bool:
        """
        Is the name bound by some strictly-enclosing function?

        Only an existence check: the ancestor's symbol is not returned.
        The root holds no bindings and is skipped.
        """
        if lexeme in self.active.global_names:
            # Module-level by declaration, whatever the ancestors bind
            return False
        ancestors = self.path_to_root(self.active)
        next(ancestors)
        for scope in ancestors:
            if scope.is_root:
                break
            if lexeme in scope.foreign_names:
                continue
            if lexeme in scope.parameters or lexeme in scope.locals:
                return True
        return False

    def contains_evidence(self, scope: Scope) -> bool:
        """
        Does anything inside this scope justify a marker?

        Evidence is a marked local or parameter that was written, a call to
        a marked or mutating-looking name, foreign mutation recorded on the
        scope, or a child scope that is marked or has evidence itself.
        """
        if scope.marked_mut_evidence_found:
            return True
        for symbol in list(scope.parameters.values()) + list(scope.locals.values()):
            if symbol.should_be_mut:
                return True
        for name in scope.invoked_names:
            if self.policy.is_marked(name) or self.policy.looks_mutating(name):
                return True
        for child in self.children_of(scope):
            if child.is_marked or self.contains_evidence(child):
                return True
        return False


def scope_label(scope: Scope) -> str:
    return scope.name.lexeme if scope.name else "<anonymous>"
