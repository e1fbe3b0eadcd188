"""Tests for the libclang backend."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from headernim.backends import is_backend_available
from headernim.backends.libclang import (
    LibclangBackend,
    _is_anonymous_name,
    _tag_name,
    is_system_libclang_available,
)
from headernim.errors import ParseError
from headernim.ir import (
    Atomic,
    AtomicKind,
    Compound,
    EnumType,
    Function,
    IntegerLiteral,
    Pointer,
    TagDeclaration,
    Typedef,
    TypedefRef,
    UnaryNegate,
    UnaryNot,
    Variable,
)
from headernim.writers.nim import header_to_nim

# Mark all tests that require libclang
libclang = pytest.mark.libclang
requires_libclang = pytest.mark.skipif(not is_backend_available("libclang"), reason="libclang not available")


def _parse(code: str, filename: str = "test.h"):
    return LibclangBackend().parse(code, filename)


class TestImportability:
    """Tests that the module can be imported and basic functions work."""

    def test_is_system_libclang_available_returns_bool(self):
        assert isinstance(is_system_libclang_available(), bool)

    def test_backend_name(self):
        assert LibclangBackend().name == "libclang"


class TestHelperFunctions:
    """Tests for helper functions that don't require libclang."""

    @pytest.mark.parametrize("name", [None, "", "struct (unnamed at test.h:1:9)", "(anonymous union at x.h:3:5)"])
    def test_anonymous_names(self, name):
        assert _is_anonymous_name(name)

    @pytest.mark.parametrize("name", ["Point", "struct_node", "unnamed"])
    def test_real_names(self, name):
        assert not _is_anonymous_name(name)

    @staticmethod
    def _cursor(spelling, *tokens):
        cursor = MagicMock()
        cursor.spelling = spelling
        cursor.get_tokens.return_value = iter([MagicMock(spelling=t) for t in tokens])
        return cursor

    def test_tag_name_named(self):
        assert _tag_name(self._cursor("Point", "struct", "Point", "{")) == "Point"

    def test_tag_name_forward_declaration(self):
        assert _tag_name(self._cursor("opaque", "struct", "opaque", ";")) == "opaque"

    def test_tag_name_spelled_after_typedef(self):
        assert _tag_name(self._cursor("Point", "struct", "{", "int")) is None

    def test_tag_name_unnamed_spelling(self):
        assert _tag_name(self._cursor("enum (unnamed at test.h:1:1)", "enum", "{")) is None


@libclang
@requires_libclang
class TestParseTypes:
    def test_atomic_variable(self):
        unit = _parse("unsigned long counter;")
        (var,) = unit.entities
        assert isinstance(var, Variable)
        assert var.name == "counter"
        assert isinstance(var.type, Atomic)
        assert var.type.kind == AtomicKind.ULONG

    def test_pointer_variable(self):
        (var,) = _parse("const char *name;").entities
        assert isinstance(var.type, Pointer)
        assert var.type.pointee.kind == AtomicKind.CHAR

    def test_typedef_use_keeps_identity(self):
        unit = _parse("typedef struct { int x; int y; } Point;\nPoint origin;")
        point, origin = unit.entities
        assert isinstance(point, Typedef)
        assert isinstance(origin.type, TypedefRef)
        assert origin.type.typedef is point

    def test_anonymous_struct_has_no_name(self):
        (point,) = _parse("typedef struct { int x; } Point;").entities
        assert isinstance(point.type, Compound)
        assert point.type.name is None
        assert [m.name for m in point.type.members] == ["x"]

    def test_distinct_anonymous_structs_are_distinct_objects(self):
        a, b = _parse("typedef struct { int x; } A;\ntypedef struct { int x; } B;").entities
        assert a.type is not b.type

    def test_self_referencing_struct(self):
        unit = _parse("struct node { struct node *next; int value; };")
        (tag,) = unit.entities
        assert isinstance(tag, TagDeclaration)
        node = tag.type
        assert node.name == "node"
        assert node.members[0].type.pointee is node

    def test_union(self):
        (tag,) = _parse("union value { int i; float f; };").entities
        assert tag.type.is_union

    def test_forward_declared_struct_is_opaque(self):
        unit = _parse("struct opaque;\nstruct opaque *handle;")
        var = unit.entities[-1]
        assert isinstance(var, Variable)
        assert var.type.pointee.members is None


@libclang
@requires_libclang
class TestParseEnums:
    def test_enum_values(self):
        (tag,) = _parse("enum Color { RED, GREEN = 5, BLUE };").entities
        assert isinstance(tag.type, EnumType)
        values = tag.type.values
        assert [v.name for v in values] == ["RED", "GREEN", "BLUE"]
        assert values[0].value is None
        assert values[1].value == IntegerLiteral("5")

    def test_unary_initializers(self):
        (tag,) = _parse("enum E { A = -1, B = ~0 };").entities
        a, b = tag.type.values
        assert a.value == UnaryNegate(IntegerLiteral("1"))
        assert b.value == UnaryNot(IntegerLiteral("0"))

    def test_compound_initializer_uses_evaluated_value(self):
        (tag,) = _parse("enum E { C = 1 << 2 };").entities
        assert tag.type.values[0].value == IntegerLiteral("4")

    def test_logical_not_uses_evaluated_value(self):
        (tag,) = _parse("enum E { A = !0, B = !5 };").entities
        a, b = tag.type.values
        assert a.value == IntegerLiteral("1")
        assert b.value == IntegerLiteral("0")


@libclang
@requires_libclang
class TestParseFunctions:
    def test_prototype(self):
        (fn,) = _parse("int add(int a, int b);").entities
        assert isinstance(fn, Function)
        assert [p.name for p in fn.parameters] == ["a", "b"]
        assert not fn.type.is_variadic
        assert not fn.has_body

    def test_variadic(self):
        (fn,) = _parse("int log_msg(const char *fmt, ...);").entities
        assert fn.type.is_variadic

    def test_unnamed_parameters(self):
        (fn,) = _parse("void g(int, double);").entities
        assert [p.name for p in fn.parameters] == [None, None]

    def test_definition(self):
        (fn,) = _parse("int twice(int n) { return n * 2; }").entities
        assert fn.has_body

    def test_prototype_then_definition(self):
        unit = _parse("int twice(int n);\nint twice(int n) { return n * 2; }")
        (fn,) = unit.entities
        assert fn.has_body


@libclang
@requires_libclang
class TestParseErrors:
    def test_syntax_error_raises(self):
        with pytest.raises(ParseError, match="Failed to parse test.h"):
            _parse("int x = ;")

    def test_parse_error_keeps_diagnostics(self):
        with pytest.raises(ParseError) as excinfo:
            _parse("int x = ;")
        assert excinfo.value.filename == "test.h"
        assert excinfo.value.diagnostics


@libclang
@requires_libclang
class TestEndToEnd:
    def test_point_example(self):
        code = "typedef struct { int x; int y; } Point;\nPoint origin;\nint add(int a, int b);\n"
        assert header_to_nim(_parse(code)) == (
            "# WARNING: Automatically generated file\n"
            "type Point = distinct object\n"
            "type Point = object\n"
            "  x: cint\n"
            "  y: cint\n"
            "\n"
            "var origin: Point\n"
            'proc add*(a: cint, b: cint): cint {.importc: "add".}\n'
        )

    def test_color_enum(self):
        output = header_to_nim(_parse("enum Color { RED, GREEN = 5, BLUE };"))
        assert "type Color = enum\n  RED,\n  GREEN = 5,\n  BLUE\n" in output

    def test_enum_expressions(self):
        output = header_to_nim(_parse("enum E { A = -1, B = ~0, C = 1 << 2 };"))
        assert "type E = enum\n  A = -1,\n  B = not 0,\n  C = 4\n" in output

    def test_logical_not_keeps_c_value(self):
        output = header_to_nim(_parse("enum F { A = !0, B = ~0 };"))
        assert "type F = enum\n  A = 1,\n  B = not 0\n" in output

    def test_variadic_function(self):
        output = header_to_nim(_parse("int log_msg(const char *fmt, ...);"))
        assert 'proc log_msg*(fmt: cstring #[ cchar* ]#): cint {.importc: "log_msg", varargs.}\n' in output

    def test_unnamed_parameters(self):
        output = header_to_nim(_parse("void g(int, double);"))
        assert 'proc g*(param0: cint, param1: cdouble) {.importc: "g".}\n' in output

    def test_function_body_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="headernim.writers.nim"):
            output = header_to_nim(_parse("int twice(int n) { return n * 2; }"))
        assert 'proc twice*(n: cint): cint {.importc: "twice".}' in output
        assert any("twice" in r.getMessage() for r in caplog.records)
