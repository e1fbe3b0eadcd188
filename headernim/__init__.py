"""headernim - generate Nim FFI bindings from C headers."""

from headernim.backends import get_backend, is_backend_available, list_backends
from headernim.errors import (
    HeaderNimError,
    ParseError,
    UnsupportedAtomicKindError,
    UnsupportedConstructError,
    UnsupportedExpressionError,
)
from headernim.ir import (
    ArrayType,
    Atomic,
    AtomicKind,
    ComplexType,
    Compound,
    Entity,
    EnumType,
    EnumValue,
    Expression,
    Function,
    FunctionType,
    ImaginaryType,
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
    TypeExpr,
    UnaryNegate,
    UnaryNot,
    UnsupportedType,
    Variable,
    Void,
)
from headernim.writers import (
    WriterBackend,
    get_default_writer,
    get_writer,
    get_writer_info,
    is_writer_available,
    list_writers,
    register_writer,
)

__all__ = [
    # Types
    "AtomicKind",
    "Atomic",
    "Pointer",
    "Compound",
    "EnumType",
    "TypedefRef",
    "FunctionType",
    "Void",
    "ComplexType",
    "ImaginaryType",
    "ArrayType",
    "UnsupportedType",
    "TypeExpr",
    # Expressions
    "IntegerLiteral",
    "UnaryNegate",
    "UnaryNot",
    "OtherExpression",
    "Expression",
    # Entities
    "Typedef",
    "Variable",
    "Function",
    "EnumValue",
    "Parameter",
    "Member",
    "TagDeclaration",
    "Entity",
    # Container
    "TranslationUnit",
    # Errors
    "HeaderNimError",
    "ParseError",
    "UnsupportedConstructError",
    "UnsupportedAtomicKindError",
    "UnsupportedExpressionError",
    # Parser Protocol
    "ParserBackend",
    # Backend API
    "get_backend",
    "list_backends",
    "is_backend_available",
    # Writer Protocol
    "WriterBackend",
    # Writer API
    "get_default_writer",
    "get_writer",
    "get_writer_info",
    "is_writer_available",
    "list_writers",
    "register_writer",
]
