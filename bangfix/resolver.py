"""Pick the single node that should receive a non-null assertion.

The resolver is read-only: it walks the tree and the binder's declarations
and returns a ``Resolution`` describing what to edit, or ``None`` when there
is no safe place to put the assertion.

Priority, always taking the deepest matching node of a tier:

1. element access (``x[i]``)
2. return statement (never wrapped; resolution fails)
3. identifier, escalated through its value declaration
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Optional

from .binder import binding_declaration, initializer_of, value_declaration
from .syntax import NodeKind, SyntaxNode

logger = logging.getLogger(__name__)

NodePredicate = Callable[[SyntaxNode], bool]


class AssertionAction(Enum):
    APPEND = "append"
    EXPAND_SHORTHAND = "expand_shorthand"


@dataclass(frozen=True)
class Resolution:
    """Where to insert the assertion and how."""
    node: SyntaxNode
    action: AssertionAction


def is_wrapped(node: SyntaxNode) -> bool:
    """True if *node* is already the operand of a non-null assertion."""
    parent = node.parent
    return parent is not None and parent.kind is NodeKind.NON_NULL_EXPRESSION


def not_wrapped(node: SyntaxNode) -> bool:
    return not is_wrapped(node)


def at_offset(offset: int) -> NodePredicate:
    """Predicate for nodes starting at *offset* that are not yet asserted."""
    return lambda node: node.start == offset and not is_wrapped(node)


def find_deepest(root: SyntaxNode, where: NodePredicate) -> Optional[SyntaxNode]:
    """Return the most nested node under *root* (inclusive) matching *where*.

    Ties on depth go to the node visited last in pre-order.
    """
    best: Optional[SyntaxNode] = None
    best_depth = -1
    for node, depth in root.walk():
        if depth >= best_depth and where(node):
            best, best_depth = node, depth
    return best


class NodeResolver:
    """Deterministically choose the insertion point for one diagnostic."""

    def resolve(self, root: SyntaxNode, is_target: NodePredicate) -> Optional[Resolution]:
        return self._resolve(root, is_target, frozenset())

    def _resolve(
        self,
        root: SyntaxNode,
        is_target: NodePredicate,
        visiting: FrozenSet[SyntaxNode],
    ) -> Optional[Resolution]:
        element = find_deepest(
            root, lambda n: n.kind is NodeKind.ELEMENT_ACCESS and is_target(n)
        )
        if element is not None:
            return Resolution(element, AssertionAction.APPEND)

        statement = find_deepest(
            root, lambda n: n.kind is NodeKind.RETURN_STATEMENT and is_target(n)
        )
        if statement is not None:
            logger.warning(
                "Not wrapping return statement at %s:%d", statement.source.path, statement.line
            )
            return None

        ident = find_deepest(root, lambda n: n.kind is NodeKind.IDENTIFIER and is_target(n))
        if ident is None:
            return None
        return self._resolve_identifier(ident, visiting)

    def _resolve_identifier(
        self,
        ident: SyntaxNode,
        visiting: FrozenSet[SyntaxNode],
    ) -> Optional[Resolution]:
        declaration = value_declaration(ident)
        if declaration is None:
            logger.warning("no value declaration on %s (%s:%d)", ident.text, ident.source.path, ident.line)
            return None

        node, kind = declaration.node, declaration.kind
        if node in visiting:
            logger.warning("declaration of %s already visited, giving up", ident.text)
            return None
        visiting = visiting | {node}

        if kind in (NodeKind.PROPERTY_ASSIGNMENT, NodeKind.JSX_ATTRIBUTE):
            # bar: arr[0]
            initializer = initializer_of(node)
            if initializer is None:
                logger.warning("no initializer on %s", node.text)
                return None
            return self._resolve(initializer, not_wrapped, visiting)

        if kind in (NodeKind.BINDING_ELEMENT, NodeKind.PARAMETER):
            if binding_declaration(ident) is not None:
                # `const {foo!} = bar` and `function f(x!)` do not parse.
                logger.warning("%s is a binding name, not a use site", ident.text)
                return None
            return Resolution(ident, AssertionAction.APPEND)

        if kind is NodeKind.SHORTHAND_PROPERTY:
            return Resolution(node, AssertionAction.EXPAND_SHORTHAND)

        return self._resolve(node, not_wrapped, visiting)
