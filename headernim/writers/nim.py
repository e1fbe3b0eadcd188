"""Generate Nim FFI binding modules from headernim IR.

This module converts a :class:`~headernim.ir.TranslationUnit` into Nim
source: ``type`` declarations for typedefs, structs, unions and enums,
``var`` declarations for globals, and ``{.importc.}`` procs for functions.

Output is written in four passes over the unit's top-level entities so that
every declaration only references names emitted before it:

1. typedefs as ``distinct`` wrappers
2. struct/union/enum bodies
3. global variables
4. function signatures

Types are rendered by :func:`render_type`, enum initializers by
:func:`render_expr`. Anonymous structs and enums get their name back from
:func:`find_typedef`, which matches typedefs by object identity.
"""

from __future__ import annotations

import io
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TextIO

from headernim.errors import (
    UnsupportedAtomicKindError,
    UnsupportedConstructError,
    UnsupportedExpressionError,
)
from headernim.ir import (
    Atomic,
    AtomicKind,
    Compound,
    EnumType,
    Expression,
    Function,
    FunctionType,
    IntegerLiteral,
    Pointer,
    TagDeclaration,
    TranslationUnit,
    Typedef,
    TypedefRef,
    TypeExpr,
    UnaryNegate,
    UnaryNot,
    Variable,
    Void,
)

logger = logging.getLogger(__name__)

WARNING_HEADER = "# WARNING: Automatically generated file"

# Stand-in for a struct/enum with no recoverable name.
PLACEHOLDER_OBJECT = "object"

# Stand-in for void and for every type shape without a Nim mapping.
OPAQUE_POINTER = "pointer"

# Maps C scalar kinds to their Nim FFI types.
NIM_ATOMIC_MAP: dict[AtomicKind, str] = {
    AtomicKind.CHAR: "cchar",
    AtomicKind.SCHAR: "cschar",
    AtomicKind.UCHAR: "cuchar",
    AtomicKind.SHORT: "cshort",
    AtomicKind.USHORT: "cushort",
    AtomicKind.INT: "cint",
    AtomicKind.UINT: "cuint",
    AtomicKind.LONG: "clong",
    AtomicKind.ULONG: "culong",
    AtomicKind.LONGLONG: "clonglong",
    AtomicKind.ULONGLONG: "culonglong",
    AtomicKind.FLOAT: "cfloat",
    AtomicKind.DOUBLE: "cdouble",
    AtomicKind.LONG_DOUBLE: "clongdouble",
    AtomicKind.BOOL: "bool",
}

# Pointers to char types become cstring; the comment keeps the C shape.
NIM_CHAR_POINTER_MAP: dict[AtomicKind, str] = {
    AtomicKind.CHAR: "cstring #[ cchar* ]#",
    AtomicKind.SCHAR: "cstring #[ cschar* ]#",
    AtomicKind.UCHAR: "cstring #[ cuchar* ]#",
}

NIM_KEYWORDS: frozenset[str] = frozenset(
    {
        "addr", "and", "as", "asm", "bind", "block", "break", "case", "cast",
        "concept", "const", "continue", "converter", "defer", "discard",
        "distinct", "div", "do", "elif", "else", "end", "enum", "except",
        "export", "finally", "for", "from", "func", "if", "import", "in",
        "include", "interface", "is", "isnot", "iterator", "let", "macro",
        "method", "mixin", "mod", "nil", "not", "notin", "object", "of", "or",
        "out", "proc", "ptr", "raise", "ref", "return", "shl", "shr", "static",
        "template", "try", "tuple", "type", "using", "var", "when", "while",
        "xor", "yield",
    }
)  # fmt: skip

_NIM_COMMENT_RE = re.compile(r"#\[.*?\]#")
_NON_IDENT_RE = re.compile(r"[^0-9A-Za-z]+")


@dataclass(frozen=True)
class GenerationContext:
    """State bound once per generation call.

    :param unit: The translation unit being written.
    :param typedef_index: ``id(type)`` to the first typedef declaring that
        exact type object, in scope order.
    """

    unit: TranslationUnit
    typedef_index: dict[int, Typedef] = field(default_factory=dict)

    @classmethod
    def for_unit(cls, unit: TranslationUnit) -> GenerationContext:
        index: dict[int, Typedef] = {}
        for entity in unit.entities:
            if isinstance(entity, Typedef):
                index.setdefault(id(entity.type), entity)
        return cls(unit=unit, typedef_index=index)


# =============================================================================
# Typedef resolution
# =============================================================================


def find_typedef(ctx: GenerationContext, t: TypeExpr) -> Typedef | None:
    """Find the first top-level typedef whose declared type is ``t`` itself.

    Matching is by identity: a typedef of a structurally identical but
    distinct type object does not match.
    """
    typedef = ctx.typedef_index.get(id(t))
    if typedef is not None and typedef.type is t:
        return typedef
    return None


# =============================================================================
# Type rendering
# =============================================================================


def _ident(name: str) -> str:
    """Quote ``name`` with backticks if it is a Nim keyword."""
    if name in NIM_KEYWORDS:
        return f"`{name}`"
    return name


def _atomic_to_nim(kind: AtomicKind, is_pointer: bool = False) -> str:
    if is_pointer and kind in NIM_CHAR_POINTER_MAP:
        return NIM_CHAR_POINTER_MAP[kind]
    try:
        return NIM_ATOMIC_MAP[kind]
    except KeyError:
        raise UnsupportedAtomicKindError(getattr(kind, "value", kind)) from None


def _pointer_to_nim(ctx: GenerationContext, t: Pointer) -> str:
    pointee = t.pointee
    if isinstance(pointee, Atomic):
        return _atomic_to_nim(pointee.kind, is_pointer=True)
    return f"ref {render_type(ctx, pointee)}"


def _named_to_nim(ctx: GenerationContext, t: Compound | EnumType) -> str:
    """Typedef name, else tag name, else the placeholder. Never the body."""
    typedef = find_typedef(ctx, t)
    if typedef is not None:
        return _ident(typedef.name)
    if t.name:
        return _ident(t.name)
    return PLACEHOLDER_OBJECT


def _synthesized_name(type_str: str, index: int) -> str:
    """Build ``<type>_<index>`` for an unnamed parameter of a proc type."""
    base = _NON_IDENT_RE.sub("_", _NIM_COMMENT_RE.sub("", type_str)).strip("_")
    return f"{base or 'type'}_{index}"


def _is_void(t: TypeExpr) -> bool:
    """True for ``void``, looking through typedefs of it."""
    while isinstance(t, TypedefRef) and t.typedef is not None:
        t = t.typedef.type
    return isinstance(t, Void)


def _function_type_to_nim(ctx: GenerationContext, t: FunctionType) -> str:
    params: list[str] = []
    for i, param in enumerate(t.parameters):
        type_str = render_type(ctx, param.type)
        name = _ident(param.name) if param.name else _synthesized_name(type_str, i)
        params.append(f"{name}: {type_str}")

    result = f"proc ({', '.join(params)})"
    if not _is_void(t.return_type):
        result += f": {render_type(ctx, t.return_type)}"
    pragmas = "cdecl, varargs" if t.is_variadic else "cdecl"
    return f"{result} {{.{pragmas}.}}"


def render_type(ctx: GenerationContext, t: TypeExpr) -> str:
    """Render a type expression as a Nim type.

    Total over every type shape except atomic kinds without a mapping,
    which raise :class:`~headernim.errors.UnsupportedAtomicKindError`.
    Void, complex, imaginary, array and unknown shapes all render as
    ``pointer``.
    """
    if isinstance(t, Atomic):
        return _atomic_to_nim(t.kind)
    if isinstance(t, Pointer):
        return _pointer_to_nim(ctx, t)
    if isinstance(t, (Compound, EnumType)):
        return _named_to_nim(ctx, t)
    if isinstance(t, TypedefRef):
        if t.typedef is not None:
            return _ident(t.typedef.name)
        return PLACEHOLDER_OBJECT
    if isinstance(t, FunctionType):
        return _function_type_to_nim(ctx, t)
    if isinstance(t, Void):
        return OPAQUE_POINTER
    # Complex, imaginary, arrays and anything else.
    return OPAQUE_POINTER


# =============================================================================
# Expression rendering
# =============================================================================


def render_expr(expr: Expression) -> str:
    """Render an enum initializer.

    Literals are copied verbatim. Anything other than a literal, a negation
    or a complement raises
    :class:`~headernim.errors.UnsupportedExpressionError`.
    """
    if isinstance(expr, IntegerLiteral):
        return expr.text
    if isinstance(expr, UnaryNegate):
        return f"-{render_expr(expr.operand)}"
    if isinstance(expr, UnaryNot):
        return f"not {render_expr(expr.operand)}"
    raise UnsupportedExpressionError(expr)


# =============================================================================
# Declarations
# =============================================================================


def _typedef_to_nim(ctx: GenerationContext, decl: Typedef) -> str:
    t = decl.type
    if isinstance(t, (Compound, EnumType)) and find_typedef(ctx, t) is decl:
        # This typedef owns the body, which pass 2 emits under the same name.
        underlying = PLACEHOLDER_OBJECT
    else:
        underlying = render_type(ctx, t)
    return f"type {_ident(decl.name)} = distinct {underlying}\n"


def _compound_to_nim(ctx: GenerationContext, name: str, t: Compound) -> str:
    """Render an object declaration with one field per member.

    Union members all start at offset 0; ``{.union.}`` tells Nim to lay
    them out that way.
    """
    union = " {.union.}" if t.is_union else ""
    lines = [f"type {_ident(name)}{union} = object"]
    for i, member in enumerate(t.members or []):
        member_name = _ident(member.name) if member.name else f"field{i}"
        lines.append(f"  {member_name}: {render_type(ctx, member.type)}")
    return "\n".join(lines) + "\n\n"


def _enum_to_nim(name: str, t: EnumType) -> str:
    entries: list[str] = []
    for value in t.values:
        entry = f"  {_ident(value.name)}"
        if value.value is not None:
            entry += f" = {render_expr(value.value)}"
        entries.append(entry)
    return f"type {_ident(name)} = enum\n" + ",\n".join(entries) + "\n"


def _body_to_nim(ctx: GenerationContext, name: str, t: Compound | EnumType) -> str:
    if isinstance(t, Compound):
        return _compound_to_nim(ctx, name, t)
    return _enum_to_nim(name, t)


def _variable_to_nim(ctx: GenerationContext, decl: Variable) -> str:
    return f"var {_ident(decl.name)}: {render_type(ctx, decl.type)}\n"


def _function_to_nim(ctx: GenerationContext, decl: Function) -> str:
    """Render a declaration-only proc bound to the native symbol."""
    fn_type = decl.type
    params: list[str] = []
    for i, param in enumerate(fn_type.parameters):
        name = _ident(param.name) if param.name else f"param{i}"
        params.append(f"{name}: {render_type(ctx, param.type)}")

    result = f"proc {_ident(decl.name)}*({', '.join(params)})"
    if not _is_void(fn_type.return_type):
        result += f": {render_type(ctx, fn_type.return_type)}"

    pragmas = f'importc: "{decl.name}"'
    if fn_type.is_variadic:
        pragmas += ", varargs"
    return f"{result} {{.{pragmas}.}}\n"


def _write_decl(
    out: TextIO,
    name: str | None,
    render: Callable[[], str],
    skip_unsupported: bool,
) -> None:
    """Render one declaration completely, then write it.

    With ``skip_unsupported`` an unsupported construct drops only this
    declaration; otherwise the error propagates and ends the run.
    """
    try:
        text = render()
    except UnsupportedConstructError as e:
        if not skip_unsupported:
            raise
        logger.warning("Skipping declaration %s: %s", name or "(anonymous)", e)
        return
    out.write(text)


def write_nim(out: TextIO, unit: TranslationUnit, *, skip_unsupported: bool = False) -> None:
    """Write the Nim binding for ``unit`` to ``out``.

    ``out`` belongs to the caller and is never closed here. Functions that
    carry a body are reported through this module's logger and emitted as
    declarations only.

    :param out: Text stream to write to.
    :param unit: Parsed translation unit.
    :param skip_unsupported: Drop declarations containing unsupported
        constructs (with a logged warning) instead of raising.
    :raises UnsupportedConstructError: On an unmapped atomic kind or
        enum initializer, unless ``skip_unsupported`` is set.
    """
    ctx = GenerationContext.for_unit(unit)
    out.write(WARNING_HEADER + "\n")

    # Pass 1: typedefs
    for entity in unit.entities:
        if isinstance(entity, Typedef):
            _write_decl(out, entity.name, lambda e=entity: _typedef_to_nim(ctx, e), skip_unsupported)

    # Pass 2: struct, union and enum bodies. Every typedef of a compound or
    # enum gets one; a tag gets one only when no typedef names its type.
    tagged: set[int] = set()
    for entity in unit.entities:
        if isinstance(entity, Typedef):
            body_type = entity.type
            name = entity.name
        elif isinstance(entity, TagDeclaration):
            body_type = entity.type
            if body_type.name is None or find_typedef(ctx, body_type) is not None or id(body_type) in tagged:
                continue
            tagged.add(id(body_type))
            name = body_type.name
        else:
            continue
        if not isinstance(body_type, (Compound, EnumType)):
            continue
        _write_decl(
            out,
            name,
            lambda n=name, t=body_type: _body_to_nim(ctx, n, t),
            skip_unsupported,
        )

    # Pass 3: global variables
    for entity in unit.entities:
        if isinstance(entity, Variable):
            _write_decl(out, entity.name, lambda e=entity: _variable_to_nim(ctx, e), skip_unsupported)

    # Pass 4: functions
    for entity in unit.entities:
        if isinstance(entity, Function):
            if entity.has_body:
                logger.warning("Can't convert function bodies (at %s)", entity.name)
            _write_decl(out, entity.name, lambda e=entity: _function_to_nim(ctx, e), skip_unsupported)


def header_to_nim(unit: TranslationUnit, *, skip_unsupported: bool = False) -> str:
    """Convert a translation unit to the text of a Nim binding module.

    :param unit: Parsed translation unit.
    :param skip_unsupported: See :func:`write_nim`.
    :returns: The complete Nim source.
    """
    buf = io.StringIO()
    write_nim(buf, unit, skip_unsupported=skip_unsupported)
    return buf.getvalue()


class NimWriter:
    """Writer that generates Nim FFI bindings from headernim IR.

    Example
    -------
    ::

        from headernim.writers import get_writer

        writer = get_writer("nim")
        nim_source = writer.write(unit)

        # Keep going past declarations that cannot be mapped:
        writer = get_writer("nim", skip_unsupported=True)
    """

    def __init__(self, skip_unsupported: bool = False) -> None:
        self.skip_unsupported = skip_unsupported

    def write(self, unit: TranslationUnit) -> str:
        """Convert a translation unit to a Nim binding module."""
        return header_to_nim(unit, skip_unsupported=self.skip_unsupported)

    @property
    def name(self) -> str:
        return "nim"

    @property
    def format_description(self) -> str:
        return "Nim FFI bindings"


# Uses bottom-of-module self-registration; headernim.writers imports this
# module lazily to populate its registry.
from headernim.writers import register_writer  # noqa: E402

register_writer("nim", NimWriter, description="Nim FFI bindings")
