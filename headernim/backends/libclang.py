"""libclang parser backend.

Parses C source with ``clang.cindex`` and builds a
:class:`~headernim.ir.TranslationUnit`.

Type objects are cached per declaration so that every use of a struct,
union, enum or typedef refers to one shared IR object. Writers depend on
that identity to recover typedef names for anonymous types.
"""

from __future__ import annotations

import itertools
import logging
import os
import re
from typing import Any

from clang import cindex
from clang.cindex import CursorKind, TypeKind

from headernim.errors import ParseError
from headernim.ir import (
    ArrayType,
    Atomic,
    AtomicKind,
    Compound,
    ComplexType,
    EnumType,
    EnumValue,
    Expression,
    Function,
    FunctionType,
    IntegerLiteral,
    Member,
    Parameter,
    Pointer,
    TagDeclaration,
    TranslationUnit,
    Typedef,
    TypedefRef,
    TypeExpr,
    UnaryNegate,
    UnaryNot,
    UnsupportedType,
    Variable,
    Void,
)

logger = logging.getLogger(__name__)

LIBCLANG_FILE_ENV = "HEADERNIM_LIBCLANG_FILE"

# TypeKind name -> AtomicKind. Looked up by name because older cindex
# releases lack some kinds.
_ATOMIC_KIND_NAMES: dict[str, AtomicKind] = {
    "CHAR_U": AtomicKind.CHAR,
    "CHAR_S": AtomicKind.CHAR,
    "SCHAR": AtomicKind.SCHAR,
    "UCHAR": AtomicKind.UCHAR,
    "SHORT": AtomicKind.SHORT,
    "USHORT": AtomicKind.USHORT,
    "INT": AtomicKind.INT,
    "UINT": AtomicKind.UINT,
    "LONG": AtomicKind.LONG,
    "ULONG": AtomicKind.ULONG,
    "LONGLONG": AtomicKind.LONGLONG,
    "ULONGLONG": AtomicKind.ULONGLONG,
    "FLOAT": AtomicKind.FLOAT,
    "DOUBLE": AtomicKind.DOUBLE,
    "LONGDOUBLE": AtomicKind.LONG_DOUBLE,
    "BOOL": AtomicKind.BOOL,
    "WCHAR": AtomicKind.WCHAR,
    "INT128": AtomicKind.INT128,
    "UINT128": AtomicKind.UINT128,
    "FLOAT128": AtomicKind.FLOAT128,
}

ATOMIC_TYPE_KINDS: dict[Any, AtomicKind] = {
    getattr(TypeKind, name): kind for name, kind in _ATOMIC_KIND_NAMES.items() if hasattr(TypeKind, name)
}

_ARRAY_TYPE_KINDS = (
    TypeKind.CONSTANTARRAY,
    TypeKind.INCOMPLETEARRAY,
    TypeKind.VARIABLEARRAY,
    TypeKind.DEPENDENTSIZEDARRAY,
)

_TAG_CURSOR_KINDS = (CursorKind.STRUCT_DECL, CursorKind.UNION_DECL, CursorKind.ENUM_DECL)

_INTEGER_LITERAL_RE = re.compile(r"^(0[xX][0-9a-fA-F]+|0[bB][01]+|[0-9]+)[uUlL]*$")


def _is_anonymous_name(name: str | None) -> bool:
    """Check if a name is empty or a synthesized anonymous name from libclang."""
    if not name:
        return True
    return "(unnamed" in name or "(anonymous" in name


def _tag_name(decl: cindex.Cursor) -> str | None:
    """Tag name of a struct, union or enum declaration, or None if it has none.

    libclang 16+ spells an anonymous tag after the typedef that names it,
    so a definition opening with ``struct {`` is anonymous whatever its
    spelling says.
    """
    if _is_anonymous_name(decl.spelling):
        return None
    tokens = [tok.spelling for tok in itertools.islice(decl.get_tokens(), 2)]
    if len(tokens) == 2 and tokens[1] == "{":
        return None
    return decl.spelling


def _configure_library() -> None:
    """Point cindex at ``$HEADERNIM_LIBCLANG_FILE`` if set and not yet loaded."""
    lib_file = os.environ.get(LIBCLANG_FILE_ENV)
    if lib_file and not cindex.Config.loaded:
        cindex.Config.set_library_file(lib_file)


def is_system_libclang_available() -> bool:
    """Check whether the libclang shared library can be loaded."""
    try:
        _configure_library()
        cindex.conf.lib  # noqa: B018 (forces the library load)
    except cindex.LibclangError:
        return False
    return True


class _UnitBuilder:
    """Converts one clang translation unit into IR.

    Caches are per parse, keyed by cursor USR, so identity is preserved
    within a unit and never shared across units.
    """

    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.entities: list[Any] = []
        self._compounds: dict[str, Compound] = {}
        self._enums: dict[str, EnumType] = {}
        self._typedefs: dict[str, Typedef] = {}
        self._functions: dict[str, Function] = {}
        self._seen: set[str] = set()

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _key(cursor: cindex.Cursor) -> str:
        return cursor.get_usr() or f"#{cursor.hash}"

    def in_main_file(self, cursor: cindex.Cursor) -> bool:
        location_file = cursor.location.file
        return location_file is not None and location_file.name == self.filename

    def _add_once(self, key: str, entity: Any) -> None:
        if key in self._seen:
            return
        self._seen.add(key)
        self.entities.append(entity)

    # -- types --------------------------------------------------------------

    def convert_type(self, t: cindex.Type) -> TypeExpr:
        kind = t.kind
        if kind == TypeKind.ELABORATED:
            return self.convert_type(t.get_named_type())
        if kind == TypeKind.VOID:
            return Void()
        if kind in ATOMIC_TYPE_KINDS:
            return Atomic(ATOMIC_TYPE_KINDS[kind])
        if kind == TypeKind.POINTER:
            return Pointer(self.convert_type(t.get_pointee()))
        if kind == TypeKind.RECORD:
            return self._convert_record(t.get_declaration())
        if kind == TypeKind.ENUM:
            return self._convert_enum(t.get_declaration())
        if kind == TypeKind.TYPEDEF:
            return TypedefRef(self._convert_typedef(t.get_declaration()))
        if kind in (TypeKind.FUNCTIONPROTO, TypeKind.FUNCTIONNOPROTO):
            return self._convert_function_type(t)
        if kind in _ARRAY_TYPE_KINDS:
            size = t.element_count if kind == TypeKind.CONSTANTARRAY else None
            return ArrayType(self.convert_type(t.element_type), size)
        if kind == TypeKind.COMPLEX:
            element = self.convert_type(t.element_type)
            if isinstance(element, Atomic):
                return ComplexType(element)
            return UnsupportedType(t.spelling)

        canonical = t.get_canonical()
        if canonical.kind != kind:
            return self.convert_type(canonical)
        logger.debug("No IR mapping for %s (%s)", t.spelling, kind)
        return UnsupportedType(t.spelling)

    def _convert_function_type(self, t: cindex.Type) -> FunctionType:
        is_proto = t.kind == TypeKind.FUNCTIONPROTO
        parameters = [Parameter(None, self.convert_type(a)) for a in t.argument_types()] if is_proto else []
        return FunctionType(
            return_type=self.convert_type(t.get_result()),
            parameters=parameters,
            is_variadic=is_proto and t.is_function_variadic(),
        )

    def _convert_record(self, decl: cindex.Cursor) -> Compound:
        definition = decl.get_definition()
        source = definition if definition is not None else decl
        key = self._key(source)
        if key in self._compounds:
            return self._compounds[key]

        compound = Compound(name=_tag_name(decl), members=None, is_union=decl.kind == CursorKind.UNION_DECL)
        # Cache before converting members so self-referencing structs resolve.
        self._compounds[key] = compound
        if definition is not None:
            compound.members = [
                Member(child.spelling or None, self.convert_type(child.type))
                for child in definition.get_children()
                if child.kind == CursorKind.FIELD_DECL
            ]
        return compound

    def _convert_enum(self, decl: cindex.Cursor) -> EnumType:
        definition = decl.get_definition()
        source = definition if definition is not None else decl
        key = self._key(source)
        if key in self._enums:
            return self._enums[key]

        enum_type = EnumType(name=_tag_name(decl))
        self._enums[key] = enum_type
        for child in source.get_children():
            if child.kind == CursorKind.ENUM_CONSTANT_DECL:
                enum_type.values.append(EnumValue(child.spelling, self._convert_initializer(child)))
        return enum_type

    def _convert_typedef(self, decl: cindex.Cursor) -> Typedef:
        key = self._key(decl)
        if key in self._typedefs:
            return self._typedefs[key]
        typedef = Typedef(decl.spelling, Void())
        self._typedefs[key] = typedef
        typedef.type = self.convert_type(decl.underlying_typedef_type)
        return typedef

    # -- enum initializers --------------------------------------------------

    def _convert_initializer(self, constant: cindex.Cursor) -> Expression | None:
        """Build the initializer of an enumerator, or None if it has none.

        Literals and their negations/complements keep their source spelling.
        Anything else becomes the value clang evaluated for the enumerator.
        """
        children = list(constant.get_children())
        if not children:
            return None
        expr = self._convert_expr(children[0])
        if expr is None:
            return IntegerLiteral(str(constant.enum_value))
        return expr

    def _convert_expr(self, cursor: cindex.Cursor) -> Expression | None:
        kind = cursor.kind
        children = list(cursor.get_children())
        if kind == CursorKind.INTEGER_LITERAL:
            tokens = [tok.spelling for tok in cursor.get_tokens()]
            if len(tokens) == 1 and _INTEGER_LITERAL_RE.match(tokens[0]):
                return IntegerLiteral(tokens[0])
            return None
        if kind in (CursorKind.PAREN_EXPR, CursorKind.UNEXPOSED_EXPR) and len(children) == 1:
            return self._convert_expr(children[0])
        if kind == CursorKind.UNARY_OPERATOR and len(children) == 1:
            tokens = [tok.spelling for tok in cursor.get_tokens()]
            operand = self._convert_expr(children[0])
            if not tokens or operand is None:
                return None
            if tokens[0] == "-":
                return UnaryNegate(operand)
            if tokens[0] == "~":
                return UnaryNot(operand)
        return None

    # -- declarations -------------------------------------------------------

    def visit(self, cursor: cindex.Cursor) -> None:
        kind = cursor.kind
        if kind == CursorKind.TYPEDEF_DECL:
            self._add_once(self._key(cursor), self._convert_typedef(cursor))
        elif kind in _TAG_CURSOR_KINDS:
            if kind == CursorKind.ENUM_DECL:
                tag_type: Compound | EnumType = self._convert_enum(cursor)
            else:
                tag_type = self._convert_record(cursor)
            if tag_type.name is not None:
                self._add_once(f"tag:{id(tag_type)}", TagDeclaration(tag_type))
        elif kind == CursorKind.VAR_DECL:
            self._add_once(self._key(cursor), Variable(cursor.spelling, self.convert_type(cursor.type)))
        elif kind == CursorKind.FUNCTION_DECL:
            self._visit_function(cursor)

    def _visit_function(self, cursor: cindex.Cursor) -> None:
        has_body = any(child.kind == CursorKind.COMPOUND_STMT for child in cursor.get_children())
        key = self._key(cursor)
        if key in self._functions:
            # Redeclaration, possibly the definition of an earlier prototype.
            if has_body:
                self._functions[key].has_body = True
            return

        fn_type = cursor.type
        is_proto = fn_type.kind == TypeKind.FUNCTIONPROTO
        parameters = [Parameter(arg.spelling or None, self.convert_type(arg.type)) for arg in cursor.get_arguments()]
        signature = FunctionType(
            return_type=self.convert_type(cursor.result_type),
            parameters=parameters,
            is_variadic=is_proto and fn_type.is_function_variadic(),
        )
        function = Function(cursor.spelling, signature, has_body=has_body)
        self._functions[key] = function
        self._add_once(key, function)


class LibclangBackend:
    """Parser backend using libclang.

    Example
    -------
    ::

        from headernim.backends.libclang import LibclangBackend

        unit = LibclangBackend().parse(open("mylib.h").read(), "mylib.h")
    """

    def parse(
        self,
        code: str,
        filename: str,
        include_dirs: list[str] | None = None,
        extra_args: list[str] | None = None,
    ) -> TranslationUnit:
        """Parse C source into a translation unit.

        Only declarations located in ``filename`` itself are collected;
        declarations from included headers are still used to resolve types.

        :raises ParseError: If clang reports error-severity diagnostics.
        """
        _configure_library()
        args = ["-x", "c"]
        for include_dir in include_dirs or []:
            args.append(f"-I{include_dir}")
        args.extend(extra_args or [])

        index = cindex.Index.create()
        tu = index.parse(filename, args=args, unsaved_files=[(filename, code)])

        errors: list[str] = []
        for diag in tu.diagnostics:
            if diag.severity >= cindex.Diagnostic.Error:
                loc = diag.location
                errors.append(f"{loc.line}:{loc.column}: {diag.spelling}")
            elif diag.severity >= cindex.Diagnostic.Warning:
                logger.debug("%s: %s", filename, diag.spelling)
        if errors:
            raise ParseError(filename, errors)

        builder = _UnitBuilder(filename)
        for cursor in tu.cursor.get_children():
            if builder.in_main_file(cursor):
                builder.visit(cursor)
        return TranslationUnit(path=filename, entities=builder.entities)

    @property
    def name(self) -> str:
        return "libclang"


# Register only when the shared library actually loads.
from headernim.backends import register_backend  # noqa: E402

if is_system_libclang_available():
    register_backend("libclang", LibclangBackend, is_default=True)
