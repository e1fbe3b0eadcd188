"""Writers that convert headernim IR to binding source.

Available Writers
-----------------
nim
    Nim FFI binding module (``type``/``var``/``{.importc.}`` declarations).

Example
-------
::

    from headernim.writers import get_writer, list_writers

    # Get the default writer (nim)
    writer = get_writer()

    # Get a specific writer with options
    writer = get_writer("nim", skip_unsupported=True)

    # List available writers
    for name in list_writers():
        print(name)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from headernim.ir import TranslationUnit

__all__ = [
    "WriterBackend",
    "get_default_writer",
    "get_writer",
    "get_writer_info",
    "is_writer_available",
    "list_writers",
    "register_writer",
]

# =============================================================================
# Writer Protocol
# =============================================================================


@runtime_checkable
class WriterBackend(Protocol):
    """Protocol defining the interface for output writers.

    Writer-specific options are constructor parameters on the concrete
    class, not part of the write() signature.
    """

    def write(self, unit: TranslationUnit) -> str:
        """Convert a parsed translation unit to the target output format.

        :param unit: Parsed translation unit from a parser backend.
        :returns: String representation in the target format.
        """
        ...

    @property
    def name(self) -> str:
        """Human-readable name of this writer (e.g., ``"nim"``)."""
        ...

    @property
    def format_description(self) -> str:
        """Short description of the output format."""
        ...


# =============================================================================
# Writer Registry
# =============================================================================

# Writers are registered lazily, on first registry lookup.
_WRITER_REGISTRY: dict[str, type[WriterBackend]] = {}
_WRITER_DESCRIPTIONS: dict[str, str] = {}
_DEFAULT_WRITER: str | None = None
_WRITERS_LOADED: bool = False


def register_writer(
    name: str,
    writer_class: type[WriterBackend],
    is_default: bool = False,
    description: str | None = None,
) -> None:
    """Register an output writer.

    The first registered writer becomes the default unless ``is_default``
    is set on a later registration.

    :param name: Writer name used in :func:`get_writer` lookups.
    :param writer_class: The writer class implementing :class:`WriterBackend`.
    :param is_default: If True, this writer becomes the default.
    :param description: Optional short description for :func:`get_writer_info`.
        Falls back to the first line of the class docstring.
    :raises ValueError: If ``name`` is already registered.
    """
    global _DEFAULT_WRITER  # pylint: disable=global-statement
    if name in _WRITER_REGISTRY:
        raise ValueError(f"Writer already registered: {name!r}")
    _WRITER_REGISTRY[name] = writer_class
    if description is not None:
        _WRITER_DESCRIPTIONS[name] = description
    elif writer_class.__doc__:
        _WRITER_DESCRIPTIONS[name] = writer_class.__doc__.strip().split("\n")[0]
    if is_default or _DEFAULT_WRITER is None:
        _DEFAULT_WRITER = name


def list_writers() -> list[str]:
    """List names of all registered writers."""
    _ensure_writers_loaded()
    return list(_WRITER_REGISTRY.keys())


def is_writer_available(name: str) -> bool:
    """Check if a writer is registered under ``name``."""
    _ensure_writers_loaded()
    return name in _WRITER_REGISTRY


def get_writer_info() -> list[dict[str, str | bool]]:
    """Get information about all registered writers without instantiating them.

    :returns: List of dicts with keys: name, description, is_default.
    """
    _ensure_writers_loaded()

    result: list[dict[str, str | bool]] = []
    for name, writer_class in _WRITER_REGISTRY.items():
        desc = _WRITER_DESCRIPTIONS.get(name, "")
        if not desc and writer_class.__doc__:
            desc = writer_class.__doc__.strip().split("\n")[0]
        result.append(
            {
                "name": name,
                "description": desc,
                "is_default": name == _DEFAULT_WRITER,
            }
        )
    return result


def get_writer(name: str | None = None, **kwargs: object) -> WriterBackend:
    """Get a writer instance.

    Keyword arguments are forwarded to the writer constructor::

        writer = get_writer("nim", skip_unsupported=True)

    :param name: Writer name, or None for the default writer.
    :param kwargs: Forwarded to writer class constructor.
    :returns: New instance of the requested writer.
    :raises ValueError: If the requested writer is not available.
    """
    _ensure_writers_loaded()
    if name is None:
        if _DEFAULT_WRITER is None:
            raise ValueError("No writers available")
        name = _DEFAULT_WRITER
    if name not in _WRITER_REGISTRY:
        available = ", ".join(_WRITER_REGISTRY.keys()) or "(none)"
        raise ValueError(f"Unknown writer: {name!r}. Available: {available}")
    return _WRITER_REGISTRY[name](**kwargs)


def get_default_writer() -> str:
    """Get the name of the default writer.

    :raises ValueError: If no writers are available.
    """
    _ensure_writers_loaded()
    if _DEFAULT_WRITER is None:
        raise ValueError("No writers available")
    return _DEFAULT_WRITER


def _ensure_writers_loaded() -> None:
    """Lazily load writer modules to populate the registry.

    NOTE: Managed circular import. Writer modules import register_writer
    from here at load time, and this function imports the writer modules.
    """
    global _WRITERS_LOADED  # pylint: disable=global-statement

    if _WRITERS_LOADED:
        return

    _WRITERS_LOADED = True

    # Import triggers module-level registration
    import headernim.writers.nim  # noqa: F401
