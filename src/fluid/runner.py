from __future__ import annotations

import logging
import sys
import traceback
from dataclasses import replace
from pathlib import Path
from typing import Iterator, Optional

from .config import ExpandOptions, debug_py_trace_enabled
from .errors import FluidSyntaxError
from .expand import expand, expand_source

USAGE = """\
usage: fluid-expand [--source] [--placeholder NAME] [--macro NAME] [-v] [PATH | - | TEXT]
       fluid-expand --repl

Expand a `seed, { steps }` invocation body (or, with --source, every
fluid!(...) call in a Rust file) and print the result.
"""


def run(src: str, source_mode: bool = False, options: Optional[ExpandOptions] = None) -> str:
    if source_mode:
        return expand_source(src, options)
    return expand(src, options)


def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    if candidate.exists():
        return candidate.read_text(encoding="utf-8")

    return arg


def _flag_value(token: str, flag: str, it: Iterator[str]) -> str:
    if token.startswith(flag + "="):
        return token.split("=", 1)[1]
    try:
        return next(it)
    except StopIteration:
        raise SystemExit(f"{flag} flag requires a value") from None


def main(argv: Optional[list[str]] = None) -> None:
    options = ExpandOptions.from_env()
    source_mode = False
    verbose = False
    arg = None
    it = iter(sys.argv[1:] if argv is None else argv)

    for token in it:
        if token in ("-h", "--help"):
            print(USAGE, end="")
            return

        if token == "--repl":
            from .repl import repl

            repl(options)
            return

        if token == "--source":
            source_mode = True
            continue

        if token in ("-v", "--verbose"):
            verbose = True
            continue

        if token == "--placeholder" or token.startswith("--placeholder="):
            placeholder = _flag_value(token, "--placeholder", it)
            try:
                options = replace(options, placeholder=placeholder)
            except ValueError as exc:
                raise SystemExit(str(exc)) from None
            continue

        if token == "--macro" or token.startswith("--macro="):
            macro_name = _flag_value(token, "--macro", it)
            try:
                options = replace(options, macro_name=macro_name)
            except ValueError as exc:
                raise SystemExit(str(exc)) from None
            continue

        if arg is None:
            arg = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    source = _load_source(arg)
    try:
        result = run(source, source_mode=source_mode, options=options)
    except FluidSyntaxError as exc:
        print(f"Error: {exc.format_error(source)}", file=sys.stderr)
        if debug_py_trace_enabled():
            print("\nPython traceback:", file=sys.stderr)
            print("".join(traceback.format_tb(exc.__traceback__)), file=sys.stderr, end="")
        raise SystemExit(1) from None

    print(result, end="" if source_mode else "\n")


if __name__ == "__main__":
    main()
