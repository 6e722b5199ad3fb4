"""
AST Detectors and Extractors

Detectors are pure functions that answer: "Does this pattern exist here?"
Extractors pull a name token or a target out of a node, or return None.

Design principles:
- Detectors return bool only
- Extractors return Optional, never raise on odd nodes
- Stateless (everything they need is in the node and the context)
- If uncertain -> return False / None
"""
import ast
from dataclasses import dataclass
from typing import Callable, Optional

from ..policy import DEFAULT_POLICY, NamingPolicy


@dataclass(frozen=True)
class DetectorContext:
    """
    Minimal context provided to detectors.

    class_node is the class whose body directly holds the declaration,
    so it is set for methods and None for plain or nested functions.
    """
    class_node: Optional[ast.ClassDef] = None
    policy: NamingPolicy = DEFAULT_POLICY

    @property
    def in_class(self) -> bool:
        return self.class_node is not None


# Detector type signature
# Pure function: (node, context) -> bool
Detector = Callable[[ast.AST, DetectorContext], bool]


from .exemptions import is_accessor, is_entry_point, is_exempt, is_operator, is_override
from .mutation import has_stub_body, is_static_method, is_value_type

__all__ = [
    'DetectorContext',
    'Detector',
    'is_accessor',
    'is_entry_point',
    'is_exempt',
    'is_operator',
    'is_override',
    'has_stub_body',
    'is_static_method',
    'is_value_type',
]
