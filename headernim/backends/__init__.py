"""Parser backends for headernim.

A backend turns C source into a :class:`~headernim.ir.TranslationUnit`.

Available Backends
------------------
libclang
    LLVM clang-based parser, through the ``clang.cindex`` bindings shipped
    by the ``libclang`` distribution.

Example
-------
::

    from headernim.backends import get_backend, list_backends

    # Get the default backend
    backend = get_backend()

    # Parse a header
    unit = backend.parse(code, "mylib.h")
"""

from __future__ import annotations

import warnings

from headernim.ir import ParserBackend

# Backends are registered lazily so a missing libclang does not break imports.
_BACKEND_REGISTRY: dict[str, type[ParserBackend]] = {}
_DEFAULT_BACKEND: str | None = None
_BACKENDS_LOADED: bool = False


def register_backend(name: str, backend_class: type[ParserBackend], is_default: bool = False) -> None:
    """Register a parser backend.

    Called by backend modules during import. The first registered backend
    becomes the default unless ``is_default`` is set on a later one.

    :param name: Unique name for the backend (e.g., ``"libclang"``).
    :param backend_class: Class implementing :class:`~headernim.ir.ParserBackend`.
    :param is_default: If True, this becomes the default backend.
    """
    global _DEFAULT_BACKEND  # pylint: disable=global-statement
    _BACKEND_REGISTRY[name] = backend_class
    if is_default or _DEFAULT_BACKEND is None:
        _DEFAULT_BACKEND = name


def list_backends() -> list[str]:
    """List names of all registered backends."""
    _ensure_backends_loaded()
    return list(_BACKEND_REGISTRY.keys())


def is_backend_available(name: str) -> bool:
    """Check if a backend is registered and usable."""
    _ensure_backends_loaded()
    return name in _BACKEND_REGISTRY


def get_backend(name: str | None = None) -> ParserBackend:
    """Get a parser backend instance.

    :param name: Backend name, or None for the default backend.
    :returns: New instance of the requested backend.
    :raises ValueError: If the requested backend is not available.
    """
    _ensure_backends_loaded()

    if name is None:
        if _DEFAULT_BACKEND is None:
            raise ValueError("No backends available")
        name = _DEFAULT_BACKEND

    if name not in _BACKEND_REGISTRY:
        available = ", ".join(_BACKEND_REGISTRY.keys()) or "(none)"
        raise ValueError(f"Unknown backend: {name!r}. Available: {available}")

    return _BACKEND_REGISTRY[name]()


def get_default_backend() -> str:
    """Get the name of the default backend.

    :raises ValueError: If no backends are available.
    """
    _ensure_backends_loaded()

    if _DEFAULT_BACKEND is None:
        raise ValueError("No backends available")
    return _DEFAULT_BACKEND


def _ensure_backends_loaded() -> None:
    """Lazily load backend modules to populate the registry.

    NOTE: Managed circular import. headernim.backends.libclang imports
    register_backend from here, and this function imports it lazily.
    The libclang module only registers itself when the shared library
    loads.
    """
    global _BACKENDS_LOADED  # pylint: disable=global-statement

    if _BACKENDS_LOADED:
        return

    _BACKENDS_LOADED = True

    try:
        import headernim.backends.libclang  # noqa: F401 (side effect import)
    except ImportError:
        pass

    if not _BACKEND_REGISTRY:
        warnings.warn(
            "No parser backends available. Install the libclang package "
            "(pip install libclang) or set HEADERNIM_LIBCLANG_FILE to a libclang shared library.",
            stacklevel=2,
        )
