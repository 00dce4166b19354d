#!/usr/bin/env python3
"""halts/main.py — CLI entry-point for the halting classifier.

Usage examples
--------------
    # Classify one or more functions
    python -m halts classify examples.py::loop_forever examples.py::Parser::parse

    # Machine-readable output
    python -m halts classify examples.py::g --format json

    # Show the lowered form of a function (debugging aid)
    python -m halts show examples.py::factorial

    # List every function the locator registers in a file
    python -m halts list examples.py

Exit codes
----------
    0   Every classified function halts.
    1   At least one function loops.
    2   Infrastructure failure (unreadable file, bad reference, limits).
    3   At least one request is a paradox (takes precedence over 1).

The module doubles as ``python -m halts`` via ``halts/__main__.py``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import textwrap
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO

from halts import __version__
from halts.classifier import Outcome, analyze
from halts.config import AnalysisConfig
from halts.errors import HaltsError, InversionParadox
from halts.locator import load_registry, locate_reference
from halts.printer import render

_log = logging.getLogger("halts")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_LOOPS: int = 1
EXIT_INFRA: int = 2
EXIT_PARADOX: int = 3


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``halts`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("halts")
    root.setLevel(level)
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)


def _open_output(dest: Optional[str]) -> TextIO:
    """Return a writable text stream.

    *dest* ``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path
    for writing (creating parent directories as needed).
    """
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _close_output(stream: TextIO) -> None:
    if stream is not sys.stdout:
        stream.close()


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def _classify_one(reference: str, config: AnalysisConfig) -> Dict[str, Any]:
    """Classify *reference*; failures become part of the result."""
    try:
        f, registry = locate_reference(reference)
        result = analyze(f, registry, config).to_dict()
    except InversionParadox as exc:
        _log.info("%s", exc)
        return {"reference": reference, "outcome": Outcome.PARADOX.value, "error": exc.message}
    except HaltsError as exc:
        _log.error("%s", exc)
        return {"reference": reference, "outcome": None, "error": exc.message, "code": str(exc.code)}
    result["reference"] = reference
    return result


def _exit_code(results: List[Dict[str, Any]]) -> int:
    outcomes = [r["outcome"] for r in results]
    if None in outcomes:
        return EXIT_INFRA
    if Outcome.PARADOX.value in outcomes:
        return EXIT_PARADOX
    if Outcome.LOOPS.value in outcomes:
        return EXIT_LOOPS
    return EXIT_OK


def cmd_classify(args: argparse.Namespace) -> int:
    """Classify every reference and report one outcome per line."""
    config = AnalysisConfig(max_visited=args.max_visited)
    for warning in config.validate():
        _log.error("invalid configuration: %s", warning)
        return EXIT_INFRA

    results = [_classify_one(ref, config) for ref in args.references]

    stream = _open_output(args.output)
    try:
        for result in results:
            if args.format == "json":
                stream.write(json.dumps(result) + "\n")
            elif result["outcome"] is None:
                stream.write(f"{result['reference']}: error: {result['error']} [{result['code']}]\n")
            else:
                stream.write(f"{result['reference']}: {result['outcome']}\n")
    finally:
        _close_output(stream)
    return _exit_code(results)


def cmd_show(args: argparse.Namespace) -> int:
    """Pretty-print the lowered form of one function."""
    try:
        f, _ = locate_reference(args.reference)
        text = render(f)
    except HaltsError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    stream = _open_output(args.output)
    try:
        stream.write(text)
    finally:
        _close_output(stream)
    return EXIT_OK


def cmd_list(args: argparse.Namespace) -> int:
    """List every function the locator registers in a file."""
    try:
        registry = load_registry(args.file)
    except HaltsError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    for name in sorted(registry, key=lambda n: registry[n].loc.line):
        sys.stdout.write(f"{args.file}::{name}\n")
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="halts",
        description=(
            "Ternary halting classifier.\n\n"
            "Decides, from the syntax of a Python function, whether it halts,\n"
            "loops forever, or asks a paradoxical question about itself."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              halts classify examples.py::loop_forever
              halts classify examples.py::g examples.py::unit -f json
              halts show examples.py::Parser::parse
              halts list examples.py
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    def _add_output_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "-o", "--output",
            default=None,
            help="Write output to FILE instead of stdout.",
        )

    # classify --------------------------------------------------------------
    p_classify = subparsers.add_parser(
        "classify",
        help="Classify functions as halts / loops / paradox.",
    )
    p_classify.add_argument(
        "references",
        nargs="+",
        metavar="REFERENCE",
        help="Function reference, e.g. path/to/file.py::Scope::name.",
    )
    p_classify.add_argument(
        "-f", "--format",
        choices=("text", "json"),
        default="text",
        help="Output format (default: text).",
    )
    p_classify.add_argument(
        "--max-visited",
        type=int,
        default=AnalysisConfig.max_visited,
        help="Maximum number of functions visited per query (default: %(default)s).",
    )
    _add_output_args(p_classify)
    p_classify.set_defaults(func=cmd_classify)

    # show ------------------------------------------------------------------
    p_show = subparsers.add_parser(
        "show",
        help="Pretty-print the lowered form of a function.",
    )
    p_show.add_argument("reference", metavar="REFERENCE")
    _add_output_args(p_show)
    p_show.set_defaults(func=cmd_show)

    # list ------------------------------------------------------------------
    p_list = subparsers.add_parser(
        "list",
        help="List the functions defined in a file.",
    )
    p_list.add_argument("file", metavar="FILE")
    p_list.set_defaults(func=cmd_list)

    return parser


# ===========================================================================
# Entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the halts CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    # No subcommand given → print help.
    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130  # Standard UNIX convention for SIGINT
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


# ---------------------------------------------------------------------------
# Module execution support
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    raise SystemExit(main())
