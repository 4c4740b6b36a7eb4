"""Tests for the lexical value-declaration binder."""

from bangfix.binder import binding_declaration, initializer_of, value_declaration
from bangfix.syntax import NodeKind

from conftest import offset_of


def _ident_at(source, needle, occurrence=0, types=None):
    """Deepest identifier-like node starting at the given occurrence."""
    offset = source.byte_offset(offset_of(source.text, needle, occurrence))
    found = None
    for node, _ in source.root().walk():
        if node.start == offset and node.kind is NodeKind.IDENTIFIER:
            if types is None or node.type in types:
                found = node
    assert found is not None, f"no identifier at {needle!r}"
    return found


class TestVariables:

    def test_use_resolves_to_declarator(self, parse):
        source = parse("const total = 1;\nconsole.log(total);\n")
        declaration = value_declaration(_ident_at(source, "total", 1))
        assert declaration.kind is NodeKind.VARIABLE_DECLARATION
        assert declaration.node.text == "total = 1"

    def test_inner_scope_shadows_outer(self, parse):
        source = parse(
            "const v = 1;\n"
            "function f() {\n"
            "  const v = 2;\n"
            "  return v;\n"
            "}\n"
        )
        declaration = value_declaration(_ident_at(source, "v", 2))
        assert declaration.node.text == "v = 2"

    def test_unknown_name(self, parse):
        source = parse("console.log(missing);\n")
        assert value_declaration(_ident_at(source, "missing")) is None


class TestParameters:

    def test_function_parameter(self, parse):
        source = parse("function f(x?: string) {\n  return x;\n}\n")
        declaration = value_declaration(_ident_at(source, "x", 1))
        assert declaration.kind is NodeKind.PARAMETER
        assert declaration.node.type == "optional_parameter"

    def test_arrow_single_parameter(self, parse):
        source = parse("const g = y => y.length;\n")
        declaration = value_declaration(_ident_at(source, "y", 1))
        assert declaration.kind is NodeKind.PARAMETER

    def test_parameter_name_is_a_binding(self, parse):
        source = parse("function f(x?: string) {}\n")
        assert binding_declaration(_ident_at(source, "x")) is not None


class TestDestructuring:

    def test_shorthand_pattern(self, parse):
        source = parse("const {foo} = bar;\nfoo.length;\n")
        declaration = value_declaration(_ident_at(source, "foo", 1))
        assert declaration.kind is NodeKind.BINDING_ELEMENT

    def test_renamed_pattern(self, parse):
        source = parse("const {a: renamed} = bar;\nrenamed.length;\n")
        declaration = value_declaration(_ident_at(source, "renamed", 1))
        assert declaration.kind is NodeKind.BINDING_ELEMENT
        assert declaration.node.type == "pair_pattern"

    def test_array_pattern(self, parse):
        source = parse("const [first] = list;\nfirst.length;\n")
        declaration = value_declaration(_ident_at(source, "first", 1))
        assert declaration.kind is NodeKind.BINDING_ELEMENT

    def test_use_site_is_not_a_binding(self, parse):
        source = parse("const {foo} = bar;\nfoo.length;\n")
        assert binding_declaration(_ident_at(source, "foo", 1)) is None


class TestProperties:

    def test_shorthand_property(self, parse):
        source = parse("const nice = 1;\nconst o = {nice};\n")
        ident = _ident_at(source, "nice", 1)
        declaration = value_declaration(ident)
        assert declaration.kind is NodeKind.SHORTHAND_PROPERTY
        assert declaration.node == ident

    def test_member_access_follows_object_literal(self, parse):
        source = parse("const o = {y: arr[0]};\no.y;\n")
        declaration = value_declaration(_ident_at(source, "y", 1))
        assert declaration.kind is NodeKind.PROPERTY_ASSIGNMENT
        assert initializer_of(declaration.node).text == "arr[0]"

    def test_member_access_on_unknown_object(self, parse):
        source = parse("external.y;\n")
        assert value_declaration(_ident_at(source, "y")) is None

    def test_pair_key(self, parse):
        source = parse("const o = {key: value};\n")
        declaration = value_declaration(_ident_at(source, "key"))
        assert declaration.kind is NodeKind.PROPERTY_ASSIGNMENT

    def test_jsx_attribute(self, parse):
        source = parse("const el = <C bar={x} />;\n", name="view.tsx")
        declaration = value_declaration(_ident_at(source, "bar"))
        assert declaration.kind is NodeKind.JSX_ATTRIBUTE
        assert initializer_of(declaration.node).text == "{x}"

    def test_jsx_attribute_without_value(self, parse):
        source = parse("const el = <C disabled />;\n", name="view.tsx")
        declaration = value_declaration(_ident_at(source, "disabled"))
        assert initializer_of(declaration.node) is None


class TestLoopAndCatch:

    def test_for_of_variable_is_its_own_declaration(self, parse):
        source = parse("for (const x of xs) {\n  const y = arr[0];\n  x.trim();\n}\n")
        declaration = value_declaration(_ident_at(source, "x.trim"))
        assert declaration.kind is NodeKind.BINDING_ELEMENT
        assert declaration.node.text == "x"

    def test_catch_parameter_is_its_own_declaration(self, parse):
        source = parse("try {\n  run();\n} catch (err) {\n  err.message;\n}\n")
        declaration = value_declaration(_ident_at(source, "err", 1))
        assert declaration.kind is NodeKind.BINDING_ELEMENT
        assert declaration.node.text == "err"
