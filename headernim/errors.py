"""Exceptions raised by headernim."""

from __future__ import annotations


class HeaderNimError(Exception):
    """Base class for headernim errors."""


class ParseError(HeaderNimError):
    """The front end could not parse the input.

    :param diagnostics: Formatted error diagnostics reported by the parser.
    """

    def __init__(self, filename: str, diagnostics: list[str]) -> None:
        self.filename = filename
        self.diagnostics = diagnostics
        joined = "; ".join(diagnostics) or "unknown error"
        super().__init__(f"Failed to parse {filename}: {joined}")


class UnsupportedConstructError(HeaderNimError):
    """The tree holds a construct the writer cannot map at all.

    These indicate a front end producing input the writer was never meant to
    see. They abort generation unless the writer is asked to skip the
    offending declaration.
    """


class UnsupportedAtomicKindError(UnsupportedConstructError):
    """An atomic type kind with no foreign-type mapping."""

    def __init__(self, kind: object) -> None:
        self.kind = kind
        super().__init__(f"unsupported atomic type: {kind}")


class UnsupportedExpressionError(UnsupportedConstructError):
    """An enum initializer that is not a literal, negation or complement."""

    def __init__(self, expression: object) -> None:
        self.expression = expression
        super().__init__(f"unsupported expression in enum initializer: {expression}")
