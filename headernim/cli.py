"""Command line entry point.

Usage::

    headernim mylib.h -o mylib.nim [-I include] [-D FOO=1] [--skip-unsupported]

The binding goes to ``--output`` or stdout; warnings (such as functions whose
bodies cannot be translated) go to stderr.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from headernim.backends import get_backend
from headernim.errors import HeaderNimError
from headernim.writers import get_writer

logger = logging.getLogger("headernim")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="headernim",
        description="Generate a Nim FFI binding module from a C header.",
    )
    parser.add_argument("header", help="C header file to translate")
    parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    parser.add_argument(
        "-I",
        dest="include_dirs",
        action="append",
        default=[],
        metavar="DIR",
        help="Add a directory to the include search path",
    )
    parser.add_argument(
        "-D",
        dest="defines",
        action="append",
        default=[],
        metavar="MACRO",
        help="Define a preprocessor macro (NAME or NAME=VALUE)",
    )
    parser.add_argument("--backend", default=None, help="Parser backend (default: libclang)")
    parser.add_argument(
        "--skip-unsupported",
        action="store_true",
        help="Drop declarations that cannot be mapped instead of failing",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    header_path = Path(args.header)
    try:
        code = header_path.read_text()
    except OSError as e:
        logger.error("Cannot read %s: %s", header_path, e)
        return 1

    try:
        backend = get_backend(args.backend)
    except ValueError as e:
        logger.error("%s", e)
        return 1

    try:
        unit = backend.parse(
            code,
            str(header_path),
            include_dirs=args.include_dirs,
            extra_args=[f"-D{define}" for define in args.defines],
        )
        writer = get_writer("nim", skip_unsupported=args.skip_unsupported)
        output = writer.write(unit)
    except HeaderNimError as e:
        logger.error("%s", e)
        return 1

    if args.output:
        Path(args.output).write_text(output)
    else:
        sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
