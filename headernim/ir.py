"""Intermediate Representation for parsed C translation units.

A front end (see :mod:`headernim.backends`) turns C source into these
objects; writers (see :mod:`headernim.writers`) turn them into binding
source text. Writers treat the tree as frozen: nothing in this package
mutates it after the front end hands it over.

Type objects compare and hash by identity (``eq=False``). Two entities that
reference "the same" type reference the same object, which is how an
anonymous ``struct { ... }`` gets its name back from the typedef that
declares it. Two structurally identical but separately declared anonymous
structs are different objects and never unify.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Protocol, Union, runtime_checkable

# =============================================================================
# Type expressions
# =============================================================================


class AtomicKind(enum.Enum):
    """Scalar built-in C types.

    The value is the C spelling. The last four members exist so a front end
    can represent them; writers are not required to map them.
    """

    CHAR = "char"
    SCHAR = "signed char"
    UCHAR = "unsigned char"
    SHORT = "short"
    USHORT = "unsigned short"
    INT = "int"
    UINT = "unsigned int"
    LONG = "long"
    ULONG = "unsigned long"
    LONGLONG = "long long"
    ULONGLONG = "unsigned long long"
    FLOAT = "float"
    DOUBLE = "double"
    LONG_DOUBLE = "long double"
    BOOL = "_Bool"
    WCHAR = "wchar_t"
    INT128 = "__int128"
    UINT128 = "unsigned __int128"
    FLOAT128 = "__float128"


@dataclass(eq=False)
class Atomic:
    """A scalar built-in type such as ``int`` or ``double``."""

    kind: AtomicKind

    def __str__(self) -> str:
        return self.kind.value


@dataclass(eq=False)
class Pointer:
    """Pointer to another type.

    Example: ``char *`` is ``Pointer(Atomic(AtomicKind.CHAR))``.
    """

    pointee: TypeExpr

    def __str__(self) -> str:
        return f"{self.pointee}*"


@dataclass(eq=False)
class Compound:
    """A ``struct`` or ``union`` type.

    :param name: Tag name, or None for an anonymous compound.
    :param members: Members in declaration order, or None when the type is
        incomplete (declared but never defined).
    :param is_union: True for ``union``.
    """

    name: str | None
    members: list[Member] | None = field(default_factory=list)
    is_union: bool = False

    def __str__(self) -> str:
        kind = "union" if self.is_union else "struct"
        return f"{kind} {self.name or '(anonymous)'}"


@dataclass(eq=False)
class EnumType:
    """An ``enum`` type.

    :param name: Tag name, or None for an anonymous enum.
    :param values: Enumerators in source order.
    """

    name: str | None
    values: list[EnumValue] = field(default_factory=list)

    def __str__(self) -> str:
        return f"enum {self.name or '(anonymous)'}"


@dataclass(eq=False)
class TypedefRef:
    """A use of a typedef name, e.g. ``size_t`` in ``size_t len``.

    :param typedef: The declaring entity. May be None when the front end
        could not resolve the declaration.
    """

    typedef: Typedef | None

    def __str__(self) -> str:
        return self.typedef.name if self.typedef is not None else "(unresolved typedef)"


@dataclass(eq=False)
class FunctionType:
    """A function signature.

    Used as the declared type of :class:`Function` entities and, behind a
    :class:`Pointer`, for callbacks and function-pointer typedefs.
    """

    return_type: TypeExpr
    parameters: list[Parameter] = field(default_factory=list)
    is_variadic: bool = False

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        if self.is_variadic:
            params = f"{params}, ..." if params else "..."
        return f"{self.return_type} ({params})"


@dataclass(eq=False)
class Void:
    """The ``void`` type."""

    def __str__(self) -> str:
        return "void"


@dataclass(eq=False)
class ComplexType:
    """``_Complex`` floating type."""

    element: Atomic

    def __str__(self) -> str:
        return f"_Complex {self.element}"


@dataclass(eq=False)
class ImaginaryType:
    """``_Imaginary`` floating type."""

    element: Atomic

    def __str__(self) -> str:
        return f"_Imaginary {self.element}"


@dataclass(eq=False)
class ArrayType:
    """Fixed or flexible array. ``size`` is None for ``T[]``."""

    element: TypeExpr
    size: int | None = None

    def __str__(self) -> str:
        size_str = str(self.size) if self.size is not None else ""
        return f"{self.element}[{size_str}]"


@dataclass(eq=False)
class UnsupportedType:
    """Any other type shape the front end met (vectors, atomics, ...)."""

    spelling: str

    def __str__(self) -> str:
        return self.spelling


TypeExpr = Union[
    Atomic,
    Pointer,
    Compound,
    EnumType,
    TypedefRef,
    FunctionType,
    Void,
    ComplexType,
    ImaginaryType,
    ArrayType,
    UnsupportedType,
]

# =============================================================================
# Constant expressions (enum initializers)
# =============================================================================


@dataclass
class IntegerLiteral:
    """Integer literal, kept exactly as spelled in the source (``0x1F``, ``10u``)."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass
class UnaryNegate:
    """Arithmetic negation, ``-x``."""

    operand: Expression

    def __str__(self) -> str:
        return f"-{self.operand}"


@dataclass
class UnaryNot:
    """Complement, ``~x``. Rendered with Nim's ``not``, which is bitwise on integers."""

    operand: Expression

    def __str__(self) -> str:
        return f"~{self.operand}"


@dataclass
class OtherExpression:
    """Placeholder for any other expression kind (binary ops, casts, calls...)."""

    kind: str

    def __str__(self) -> str:
        return f"<{self.kind}>"


Expression = Union[IntegerLiteral, UnaryNegate, UnaryNot, OtherExpression]

# =============================================================================
# Entities
# =============================================================================


@dataclass(eq=False)
class Typedef:
    """``typedef <type> <name>;``"""

    name: str
    type: TypeExpr

    def __str__(self) -> str:
        return f"typedef {self.type} {self.name}"


@dataclass(eq=False)
class Variable:
    """Global variable declaration."""

    name: str
    type: TypeExpr

    def __str__(self) -> str:
        return f"{self.type} {self.name}"


@dataclass(eq=False)
class Function:
    """Function declaration.

    :param name: Symbol name in the native library.
    :param type: Signature. Parameter names live on ``type.parameters``.
    :param has_body: True when the source also defines the function.
    """

    name: str
    type: FunctionType
    has_body: bool = False

    @property
    def parameters(self) -> list[Parameter]:
        return self.type.parameters

    def __str__(self) -> str:
        return f"{self.name}: {self.type}"


@dataclass(eq=False)
class EnumValue:
    """One enumerator, with its explicit initializer if it has one."""

    name: str
    value: Expression | None = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.name} = {self.value}"
        return self.name


@dataclass(eq=False)
class Parameter:
    """Function parameter. ``name`` is None for unnamed parameters."""

    name: str | None
    type: TypeExpr

    def __str__(self) -> str:
        if self.name:
            return f"{self.type} {self.name}"
        return str(self.type)


@dataclass(eq=False)
class Member:
    """Struct/union member. ``name`` is None for anonymous members."""

    name: str | None
    type: TypeExpr

    def __str__(self) -> str:
        if self.name:
            return f"{self.type} {self.name}"
        return str(self.type)


@dataclass(eq=False)
class TagDeclaration:
    """Top-level declaration of a tagged type: ``struct Foo { ... };``.

    ``type`` is the same :class:`Compound` or :class:`EnumType` object every
    use of ``struct Foo`` refers to.
    """

    type: Compound | EnumType

    @property
    def name(self) -> str | None:
        return self.type.name

    def __str__(self) -> str:
        return str(self.type)


Entity = Union[Typedef, Variable, Function, EnumValue, Parameter, Member, TagDeclaration]

# =============================================================================
# Container
# =============================================================================


@dataclass
class TranslationUnit:
    """All top-level entities of one parsed source file, in source order.

    :param path: Path or name of the parsed file.
    :param entities: Top-level entities. This is also the scope searched
        when recovering names for anonymous types.
    """

    path: str
    entities: list[Entity] = field(default_factory=list)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)

    @property
    def typedefs(self) -> list[Typedef]:
        return [e for e in self.entities if isinstance(e, Typedef)]


# =============================================================================
# Parser protocol
# =============================================================================


@runtime_checkable
class ParserBackend(Protocol):
    """Interface every front end implements.

    Example
    -------
    ::

        from headernim.backends import get_backend

        backend = get_backend()
        unit = backend.parse("int add(int a, int b);", "math.h")
    """

    def parse(
        self,
        code: str,
        filename: str,
        include_dirs: list[str] | None = None,
        extra_args: list[str] | None = None,
    ) -> TranslationUnit:
        """Parse C source text into a :class:`TranslationUnit`.

        :param code: Source text.
        :param filename: Name used for the main file; only declarations
            located in it are collected.
        :param include_dirs: Extra ``-I`` directories.
        :param extra_args: Extra raw compiler arguments.
        """
        ...

    @property
    def name(self) -> str:
        """Backend name, e.g. ``"libclang"``."""
        ...
