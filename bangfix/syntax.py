"""Tree-sitter backed syntax trees for TypeScript sources.

Wraps tree-sitter nodes in ``SyntaxNode`` handles that remember which
generation of their ``SourceFile`` they were read from. Every edit to a
file bumps its generation and re-parses it, so a handle obtained before
the edit raises ``StaleNodeError`` instead of silently pointing at the
wrong text.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import tree_sitter_typescript
from tree_sitter import Language, Parser as TSParser

from .errors import StaleNodeError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Language <-> file-extension mapping
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "tsx",
    ".mjs": "tsx",
    ".cjs": "tsx",
    ".jsx": "tsx",
}

_GRAMMARS = {
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}

BOM = "\ufeff"

_parsers: Dict[str, TSParser] = {}


def get_parser(language: str) -> TSParser:
    """Return a cached tree-sitter parser for *language*."""
    parser = _parsers.get(language)
    if parser is None:
        grammar = _GRAMMARS.get(language)
        if grammar is None:
            raise ValueError(f"No grammar mapped for language '{language}'")
        parser = TSParser(Language(grammar()))
        _parsers[language] = parser
        logger.debug("Loaded tree-sitter parser for %s", language)
    return parser


def language_for(path: Path) -> str:
    return LANGUAGE_MAP.get(path.suffix.lower(), "typescript")


# ---------------------------------------------------------------------------
# Node kinds
# ---------------------------------------------------------------------------

class NodeKind(Enum):
    """Closed vocabulary of node kinds the resolver dispatches on."""

    ELEMENT_ACCESS = "element_access"
    RETURN_STATEMENT = "return_statement"
    IDENTIFIER = "identifier"
    PROPERTY_ASSIGNMENT = "property_assignment"
    JSX_ATTRIBUTE = "jsx_attribute"
    BINDING_ELEMENT = "binding_element"
    PARAMETER = "parameter"
    SHORTHAND_PROPERTY = "shorthand_property"
    VARIABLE_DECLARATION = "variable_declaration"
    NON_NULL_EXPRESSION = "non_null_expression"
    OTHER = "other"


IDENTIFIER_TYPES = frozenset({
    "identifier",
    "property_identifier",
    "shorthand_property_identifier",
    "shorthand_property_identifier_pattern",
})

_KIND_BY_TYPE: Dict[str, NodeKind] = {
    "subscript_expression": NodeKind.ELEMENT_ACCESS,
    "return_statement": NodeKind.RETURN_STATEMENT,
    "pair": NodeKind.PROPERTY_ASSIGNMENT,
    "jsx_attribute": NodeKind.JSX_ATTRIBUTE,
    "pair_pattern": NodeKind.BINDING_ELEMENT,
    "object_assignment_pattern": NodeKind.BINDING_ELEMENT,
    "required_parameter": NodeKind.PARAMETER,
    "optional_parameter": NodeKind.PARAMETER,
    "variable_declarator": NodeKind.VARIABLE_DECLARATION,
    "non_null_expression": NodeKind.NON_NULL_EXPRESSION,
}
_KIND_BY_TYPE.update({t: NodeKind.IDENTIFIER for t in IDENTIFIER_TYPES})


def kind_of_type(node_type: str) -> NodeKind:
    return _KIND_BY_TYPE.get(node_type, NodeKind.OTHER)


# ---------------------------------------------------------------------------
# Node handles
# ---------------------------------------------------------------------------

class SyntaxNode:
    """A tree-sitter node pinned to one generation of its source file."""

    __slots__ = ("_node", "source", "generation")

    def __init__(self, node: Any, source: "SourceFile", generation: int) -> None:
        self._node = node
        self.source = source
        self.generation = generation

    def _live(self) -> Any:
        if self.generation != self.source.generation:
            raise StaleNodeError(self.source.path, self.generation, self.source.generation)
        return self._node

    def _wrap(self, node: Any) -> Optional["SyntaxNode"]:
        if node is None:
            return None
        return SyntaxNode(node, self.source, self.generation)

    @property
    def type(self) -> str:
        return self._live().type

    @property
    def kind(self) -> NodeKind:
        return kind_of_type(self._live().type)

    @property
    def start(self) -> int:
        """Start byte offset."""
        return self._live().start_byte

    @property
    def end(self) -> int:
        return self._live().end_byte

    @property
    def line(self) -> int:
        return self._live().start_point[0] + 1

    @property
    def text(self) -> str:
        node = self._live()
        return self.source.slice(node.start_byte, node.end_byte)

    @property
    def parent(self) -> Optional["SyntaxNode"]:
        return self._wrap(self._live().parent)

    @property
    def children(self) -> List["SyntaxNode"]:
        return [SyntaxNode(c, self.source, self.generation) for c in self._live().children]

    @property
    def named_children(self) -> List["SyntaxNode"]:
        return [SyntaxNode(c, self.source, self.generation) for c in self._live().named_children]

    def child_by_field_name(self, name: str) -> Optional["SyntaxNode"]:
        return self._wrap(self._live().child_by_field_name(name))

    def is_field(self, name: str) -> bool:
        """True if this node is its parent's *name* field."""
        parent = self.parent
        return parent is not None and parent.child_by_field_name(name) == self

    def ancestors(self) -> Iterator["SyntaxNode"]:
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def walk(self) -> Iterator[Tuple["SyntaxNode", int]]:
        """Pre-order traversal yielding ``(node, depth)``, self at depth 0."""
        stack: List[Tuple[Any, int]] = [(self._live(), 0)]
        while stack:
            node, depth = stack.pop()
            yield SyntaxNode(node, self.source, self.generation), depth
            for child in reversed(node.children):
                stack.append((child, depth + 1))

    @property
    def key(self) -> Tuple[Path, int, int, int, str]:
        node = self._live()
        return (self.source.path, self.generation, node.start_byte, node.end_byte, node.type)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SyntaxNode):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return (
            f"SyntaxNode({self._node.type} {self.source.path.name}"
            f"@{self._node.start_byte}:{self._node.end_byte} gen={self.generation})"
        )


# ---------------------------------------------------------------------------
# Source files
# ---------------------------------------------------------------------------

class SourceFile:
    """Mutable source text plus its current parse tree.

    A leading byte order mark is kept out of ``text`` (tsc does not count
    it in columns) and restored by ``on_disk`` when the file is written.
    """

    def __init__(self, path: Path, text: str, language: Optional[str] = None) -> None:
        self.path = path
        self.language = language or language_for(path)
        self.bom = text.startswith(BOM)
        if self.bom:
            text = text[len(BOM):]
        self.saved_text = text
        self.generation = 0
        self._bytes = text.encode("utf-8")
        self._tree = get_parser(self.language).parse(self._bytes)

    @classmethod
    def read(cls, path: Path) -> "SourceFile":
        return cls(path, path.read_text(encoding="utf-8"))

    def on_disk(self, text: str) -> str:
        """*text* as it should be written, with the BOM restored."""
        return BOM + text if self.bom else text

    @property
    def text(self) -> str:
        return self._bytes.decode("utf-8")

    @property
    def dirty(self) -> bool:
        return self.text != self.saved_text

    def root(self) -> SyntaxNode:
        return SyntaxNode(self._tree.root_node, self, self.generation)

    def slice(self, start: int, end: int) -> str:
        return self._bytes[start:end].decode("utf-8")

    def byte_offset(self, char_offset: int) -> int:
        """Convert a character offset in ``text`` to a byte offset."""
        return len(self.text[:char_offset].encode("utf-8"))

    def replace_span(self, node: SyntaxNode, new_text: str) -> None:
        """Replace *node*'s span with *new_text* and start a new generation."""
        if node.source is not self:
            raise ValueError(f"{node!r} does not belong to {self.path}")
        start, end = node.start, node.end
        self._bytes = self._bytes[:start] + new_text.encode("utf-8") + self._bytes[end:]
        self.generation += 1
        self._tree = get_parser(self.language).parse(self._bytes)

