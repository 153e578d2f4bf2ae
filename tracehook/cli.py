"""cli.py - Command line entry point (``python -m tracehook``).

Commands:
    run SCRIPT [ARGS...]   Install the load hook, then run SCRIPT as
                           ``__main__`` with its own functions rewritten too.
    rewrite PATH           Print the rewritten source of PATH to stdout.

Examples:
    python -m tracehook run app.py --port 8000
    python -m tracehook --monotonic-depth rewrite app.py
"""

import argparse
import builtins
import logging
import os
import sys
import tokenize
from typing import List, Optional

from .hook import InstrumentationContext
from .rewriter import Rewriter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tracehook",
        description="Trace entry and exit of every function in loaded modules.",
    )
    parser.add_argument("--indent", default="  ", help="indentation per depth level (default: two spaces)")
    parser.add_argument("--monotonic-depth", action="store_true", help="indent by visit order instead of nesting")
    parser.add_argument("--trace-lambdas", action="store_true", help="also instrument lambda expressions")
    parser.add_argument("-v", "--verbose", action="store_true", help="log what gets instrumented")

    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("run", help="run a script with the load hook installed")
    run.add_argument(
        "--root",
        action="append",
        metavar="DIR",
        help="only rewrite modules below DIR (repeatable)",
    )
    run.add_argument("script")
    run.add_argument("args", nargs=argparse.REMAINDER)

    rewrite = commands.add_parser("rewrite", help="print the rewritten source of a file")
    rewrite.add_argument("path")
    return parser


def _read_source(path: str) -> str:
    # tokenize.open honours PEP 263 coding cookies.
    with tokenize.open(path) as f:
        return f.read()


def run_script(path: str, args: List[str], rewriter: Rewriter, roots=None) -> None:
    """Install the load hook and execute ``path`` as the main module."""
    path = os.path.abspath(path)
    code = compile(rewriter.rewrite(_read_source(path), path), path, "exec")

    if not InstrumentationContext(rewriter, roots=roots).install():
        logger.debug(
            "%s runs under the load hook that was already installed; its options apply to imports",
            path,
        )

    sys.argv = [path] + list(args)
    sys.path.insert(0, os.path.dirname(path))
    globs = {
        "__name__": "__main__",
        "__file__": path,
        "__package__": None,
        "__cached__": None,
        "__builtins__": builtins,
    }
    exec(code, globs)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    rewriter = Rewriter(
        indent_unit=args.indent,
        monotonic_depth=args.monotonic_depth,
        trace_lambdas=args.trace_lambdas,
    )

    path = args.script if args.command == "run" else args.path
    if not os.path.isfile(path):
        parser.error(f"no such file: {path}")

    if args.command == "rewrite":
        sys.stdout.write(rewriter.rewrite(_read_source(path), path))
        return 0

    logger.debug("running %s with load hook", path)
    run_script(path, args.args, rewriter, roots=args.root)
    return 0
