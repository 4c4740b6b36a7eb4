"""Resolve identifiers to the declaration that introduces their value.

This is a lexical approximation of the compiler's symbol table that works
on a single file's tree: it follows enclosing scopes for plain names and
object literal members for ``obj.prop`` accesses. Anything it cannot see
(imports from other files, types, ``this``) resolves to the nearest local
declaration or to ``None``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from .syntax import NodeKind, SyntaxNode

logger = logging.getLogger(__name__)

FUNCTION_TYPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
})

SCOPE_TYPES = frozenset({"program", "statement_block", "class_body", "switch_body"})

NAMED_DECLARATION_TYPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "class_declaration",
    "abstract_class_declaration",
    "class",
    "enum_declaration",
})

MEMBER_DECLARATION_TYPES = frozenset({
    "property_signature",
    "public_field_definition",
    "method_definition",
    "method_signature",
    "abstract_method_signature",
    "pair_pattern",
})

IMPORT_BINDING_TYPES = frozenset({"import_specifier", "namespace_import", "import_clause"})

# Expression wrappers looked through when following an initializer.
_TRANSPARENT_TYPES = frozenset({
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
})


@dataclass(frozen=True)
class Declaration:
    """The value declaration of a symbol and its kind."""
    node: SyntaxNode
    kind: NodeKind


def value_declaration(ident: SyntaxNode) -> Optional[Declaration]:
    """Return the value declaration for identifier *ident*, if any."""
    if ident.type == "shorthand_property_identifier":
        # `{nice}` in an object literal declares the property `nice`.
        return Declaration(ident, NodeKind.SHORTHAND_PROPERTY)

    parent = ident.parent
    if parent is not None and parent.type == "jsx_attribute":
        # Attribute names parse as identifier or property_identifier by grammar version.
        return Declaration(parent, NodeKind.JSX_ATTRIBUTE)

    if ident.type == "property_identifier":
        return _property_declaration(ident)

    own = binding_declaration(ident)
    if own is not None:
        return own
    return _lookup(ident, ident.text)


def binding_declaration(name: SyntaxNode) -> Optional[Declaration]:
    """Return the declaration *name* introduces when it is a binding name."""
    parent = name.parent
    if parent is None:
        return None

    if name.type == "shorthand_property_identifier_pattern":
        if parent.type == "object_assignment_pattern":
            return Declaration(parent, NodeKind.BINDING_ELEMENT)
        return Declaration(name, NodeKind.BINDING_ELEMENT)

    ptype = parent.type
    if ptype == "variable_declarator" and name.is_field("name"):
        return Declaration(parent, NodeKind.VARIABLE_DECLARATION)
    if ptype in ("required_parameter", "optional_parameter") and name.is_field("pattern"):
        return Declaration(parent, NodeKind.PARAMETER)
    if ptype == "arrow_function" and name.is_field("parameter"):
        return Declaration(name, NodeKind.PARAMETER)
    if ptype == "pair_pattern" and name.is_field("value"):
        return Declaration(parent, NodeKind.BINDING_ELEMENT)
    if ptype == "array_pattern":
        return Declaration(name, NodeKind.BINDING_ELEMENT)
    if ptype in ("assignment_pattern", "object_assignment_pattern") and name.is_field("left"):
        return Declaration(parent, NodeKind.BINDING_ELEMENT)
    if ptype == "rest_pattern":
        return Declaration(parent, NodeKind.BINDING_ELEMENT)
    if ptype in NAMED_DECLARATION_TYPES and name.is_field("name"):
        return Declaration(parent, NodeKind.OTHER)
    if ptype in IMPORT_BINDING_TYPES:
        return Declaration(parent, NodeKind.OTHER)
    # Loop and catch variables have no initializer of their own; the
    # declaration is the name, never the enclosing statement.
    if ptype == "catch_clause" and name.is_field("parameter"):
        return Declaration(name, NodeKind.BINDING_ELEMENT)
    if ptype == "for_in_statement" and name.is_field("left"):
        return Declaration(name, NodeKind.BINDING_ELEMENT)
    return None


def initializer_of(declaration: SyntaxNode) -> Optional[SyntaxNode]:
    """Return the value expression of a ``key: value`` style declaration."""
    if declaration.type == "jsx_attribute":
        named = declaration.named_children
        return named[-1] if len(named) > 1 else None
    return declaration.child_by_field_name("value")


# ---------------------------------------------------------------------------
# Scope lookup
# ---------------------------------------------------------------------------

def _lookup(ident: SyntaxNode, name: str) -> Optional[Declaration]:
    for scope in ident.ancestors():
        stype = scope.type
        if stype in FUNCTION_TYPES:
            for binding in _parameter_bindings(scope):
                if binding.text == name:
                    return binding_declaration(binding)
            own_name = scope.child_by_field_name("name")
            if stype != "method_definition" and own_name is not None and own_name.text == name:
                return Declaration(scope, NodeKind.OTHER)
        elif stype in SCOPE_TYPES:
            for statement in scope.named_children:
                for binding in _declared_names(statement):
                    if binding.text == name:
                        return binding_declaration(binding)
        elif stype in ("for_statement", "for_in_statement"):
            head = scope.child_by_field_name("initializer") or scope.child_by_field_name("left")
            if head is not None:
                for binding in _declared_names(head):
                    if binding.text == name:
                        return binding_declaration(binding)
                if head.type != "lexical_declaration":
                    for binding in _bindings(head):
                        if binding.text == name:
                            return binding_declaration(binding)
        elif stype == "catch_clause":
            param = scope.child_by_field_name("parameter")
            if param is not None:
                for binding in _bindings(param):
                    if binding.text == name:
                        return binding_declaration(binding)
    logger.debug("No declaration in scope for '%s'", name)
    return None


def _parameter_bindings(function: SyntaxNode) -> Iterator[SyntaxNode]:
    single = function.child_by_field_name("parameter")
    if single is not None:
        yield single
        return
    params = function.child_by_field_name("parameters")
    if params is None:
        return
    for param in params.named_children:
        yield from _bindings(param)


def _declared_names(statement: SyntaxNode) -> Iterator[SyntaxNode]:
    """Yield binding-name nodes introduced by a statement."""
    stype = statement.type
    if stype in ("lexical_declaration", "variable_declaration"):
        for declarator in statement.named_children:
            if declarator.type == "variable_declarator":
                name = declarator.child_by_field_name("name")
                if name is not None:
                    yield from _bindings(name)
    elif stype in NAMED_DECLARATION_TYPES:
        name = statement.child_by_field_name("name")
        if name is not None:
            yield name
    elif stype == "export_statement":
        declaration = statement.child_by_field_name("declaration")
        if declaration is not None:
            yield from _declared_names(declaration)
    elif stype == "ambient_declaration":
        for child in statement.named_children:
            yield from _declared_names(child)
    elif stype == "import_statement":
        for clause in statement.named_children:
            if clause.type == "import_clause":
                yield from _import_bindings(clause)


def _import_bindings(clause: SyntaxNode) -> Iterator[SyntaxNode]:
    for child in clause.named_children:
        if child.type == "identifier":
            yield child
        elif child.type == "namespace_import":
            yield from (c for c in child.named_children if c.type == "identifier")
        elif child.type == "named_imports":
            for specifier in child.named_children:
                if specifier.type != "import_specifier":
                    continue
                local = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
                if local is not None:
                    yield local


def _bindings(pattern: SyntaxNode) -> Iterator[SyntaxNode]:
    """Yield every binding-name node inside a (possibly nested) pattern."""
    ptype = pattern.type
    if ptype in ("identifier", "shorthand_property_identifier_pattern"):
        yield pattern
    elif ptype in ("required_parameter", "optional_parameter"):
        inner = pattern.child_by_field_name("pattern")
        if inner is not None:
            yield from _bindings(inner)
    elif ptype == "pair_pattern":
        value = pattern.child_by_field_name("value")
        if value is not None:
            yield from _bindings(value)
    elif ptype in ("assignment_pattern", "object_assignment_pattern"):
        left = pattern.child_by_field_name("left")
        if left is not None:
            yield from _bindings(left)
    elif ptype in ("object_pattern", "array_pattern", "rest_pattern"):
        for child in pattern.named_children:
            yield from _bindings(child)


# ---------------------------------------------------------------------------
# Property names
# ---------------------------------------------------------------------------

def _property_declaration(prop: SyntaxNode) -> Optional[Declaration]:
    parent = prop.parent
    if parent is None:
        return None
    if parent.type == "pair" and prop.is_field("key"):
        return Declaration(parent, NodeKind.PROPERTY_ASSIGNMENT)
    if parent.type == "member_expression" and prop.is_field("property"):
        target = parent.child_by_field_name("object")
        literal = _object_literal_of(target) if target is not None else None
        if literal is None:
            return None
        return _member_of(literal, prop.text)
    if parent.type in MEMBER_DECLARATION_TYPES:
        return Declaration(parent, NodeKind.OTHER)
    return None


def _object_literal_of(expression: SyntaxNode) -> Optional[SyntaxNode]:
    """Follow *expression* back to the object literal that produced it."""
    if expression.type in ("identifier", "property_identifier"):
        declaration = value_declaration(expression)
        if declaration is None:
            return None
        if declaration.kind is NodeKind.VARIABLE_DECLARATION:
            value = declaration.node.child_by_field_name("value")
        elif declaration.kind is NodeKind.PROPERTY_ASSIGNMENT:
            value = initializer_of(declaration.node)
        else:
            return None
    elif expression.type == "member_expression":
        prop = expression.child_by_field_name("property")
        return _object_literal_of(prop) if prop is not None else None
    else:
        value = expression

    while value is not None and value.type in _TRANSPARENT_TYPES:
        named = value.named_children
        value = named[0] if named else None
    if value is not None and value.type == "object":
        return value
    return None


def _member_of(literal: SyntaxNode, name: str) -> Optional[Declaration]:
    for member in literal.named_children:
        if member.type == "pair":
            key = member.child_by_field_name("key")
            if key is not None and _key_text(key) == name:
                return Declaration(member, NodeKind.PROPERTY_ASSIGNMENT)
        elif member.type == "shorthand_property_identifier" and member.text == name:
            return Declaration(member, NodeKind.SHORTHAND_PROPERTY)
        elif member.type == "method_definition":
            key = member.child_by_field_name("name")
            if key is not None and _key_text(key) == name:
                return Declaration(member, NodeKind.OTHER)
    return None


def _key_text(key: SyntaxNode) -> str:
    text = key.text
    if key.type == "string" and len(text) >= 2:
        return text[1:-1]
    return text
