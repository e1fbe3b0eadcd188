"""Tests for the IR module."""

from headernim.ir import (
    ArrayType,
    Atomic,
    AtomicKind,
    ComplexType,
    Compound,
    EnumType,
    EnumValue,
    Function,
    FunctionType,
    IntegerLiteral,
    Member,
    OtherExpression,
    Parameter,
    ParserBackend,
    Pointer,
    TagDeclaration,
    TranslationUnit,
    Typedef,
    TypedefRef,
    UnaryNegate,
    UnaryNot,
    UnsupportedType,
    Variable,
    Void,
)

INT = Atomic(AtomicKind.INT)


class TestAtomic:
    def test_str_is_c_spelling(self):
        assert str(Atomic(AtomicKind.ULONGLONG)) == "unsigned long long"
        assert str(Atomic(AtomicKind.BOOL)) == "_Bool"

    def test_identity_equality(self):
        assert Atomic(AtomicKind.INT) != Atomic(AtomicKind.INT)
        assert INT == INT


class TestPointer:
    def test_simple_pointer(self):
        assert str(Pointer(INT)) == "int*"

    def test_pointer_to_pointer(self):
        assert str(Pointer(Pointer(Atomic(AtomicKind.CHAR)))) == "char**"


class TestCompound:
    def test_struct(self):
        assert str(Compound("point")) == "struct point"

    def test_anonymous_union(self):
        assert str(Compound(None, is_union=True)) == "union (anonymous)"

    def test_default_members_are_not_shared(self):
        a, b = Compound("a"), Compound("b")
        a.members.append(Member("x", INT))
        assert b.members == []

    def test_opaque(self):
        assert Compound("handle", members=None).members is None

    def test_same_shape_different_identity(self):
        assert Compound(None, [Member("x", INT)]) != Compound(None, [Member("x", INT)])


class TestEnumType:
    def test_str(self):
        assert str(EnumType("color")) == "enum color"
        assert str(EnumType(None)) == "enum (anonymous)"

    def test_enum_value(self):
        assert str(EnumValue("RED")) == "RED"
        assert str(EnumValue("GREEN", IntegerLiteral("5"))) == "GREEN = 5"


class TestTypedefRef:
    def test_str_uses_typedef_name(self):
        td = Typedef("size_t", Atomic(AtomicKind.ULONG))
        assert str(TypedefRef(td)) == "size_t"

    def test_unresolved(self):
        assert str(TypedefRef(None)) == "(unresolved typedef)"


class TestFunctionType:
    def test_str(self):
        fn = FunctionType(INT, [Parameter("a", INT), Parameter(None, Atomic(AtomicKind.DOUBLE))])
        assert str(fn) == "int (int a, double)"

    def test_variadic(self):
        assert str(FunctionType(INT, [Parameter("fmt", Pointer(Atomic(AtomicKind.CHAR)))], True)) == (
            "int (char* fmt, ...)"
        )
        assert str(FunctionType(Void(), [], is_variadic=True)) == "void (...)"


class TestOtherTypes:
    def test_array(self):
        assert str(ArrayType(INT, 4)) == "int[4]"
        assert str(ArrayType(INT)) == "int[]"

    def test_complex(self):
        assert str(ComplexType(Atomic(AtomicKind.DOUBLE))) == "_Complex double"

    def test_unsupported(self):
        assert str(UnsupportedType("__m128")) == "__m128"


class TestExpressions:
    def test_literal_keeps_spelling(self):
        assert str(IntegerLiteral("0x1F")) == "0x1F"

    def test_unary(self):
        assert str(UnaryNegate(IntegerLiteral("1"))) == "-1"
        assert str(UnaryNot(IntegerLiteral("0"))) == "~0"

    def test_other(self):
        assert str(OtherExpression("binary")) == "<binary>"

    def test_value_equality(self):
        assert UnaryNegate(IntegerLiteral("1")) == UnaryNegate(IntegerLiteral("1"))


class TestEntities:
    def test_typedef(self):
        assert str(Typedef("myint", INT)) == "typedef int myint"

    def test_variable(self):
        assert str(Variable("count", INT)) == "int count"

    def test_function_parameters(self):
        params = [Parameter("a", INT)]
        fn = Function("f", FunctionType(INT, params))
        assert fn.parameters is params
        assert not fn.has_body
        assert str(fn) == "f: int (int a)"

    def test_member(self):
        assert str(Member("x", INT)) == "int x"
        assert str(Member(None, INT)) == "int"

    def test_tag_declaration_name(self):
        color = EnumType("color")
        tag = TagDeclaration(color)
        assert tag.name == "color"
        assert str(tag) == "enum color"
        assert TagDeclaration(Compound(None)).name is None


class TestTranslationUnit:
    def test_empty(self):
        unit = TranslationUnit(path="empty.h")
        assert len(unit) == 0
        assert list(unit) == []

    def test_iteration_keeps_order(self):
        td = Typedef("t", INT)
        var = Variable("v", INT)
        unit = TranslationUnit(path="x.h", entities=[var, td])
        assert list(unit) == [var, td]
        assert len(unit) == 2

    def test_typedefs(self):
        a, b = Typedef("a", INT), Typedef("b", INT)
        unit = TranslationUnit(path="x.h", entities=[a, Variable("v", INT), b])
        assert unit.typedefs == [a, b]


class TestParserBackendProtocol:
    def test_structural_check(self):
        class Backend:
            @property
            def name(self):
                return "fake"

            def parse(self, code, filename, include_dirs=None, extra_args=None):
                return TranslationUnit(path=filename)

        assert isinstance(Backend(), ParserBackend)
