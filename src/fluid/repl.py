"""Interactive expansion REPL, powered by prompt_toolkit."""

from __future__ import annotations

import os
import re
import sys
import traceback
from dataclasses import replace
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .config import ENV_DEBUG_PY_TRACE, ExpandOptions, debug_py_trace_enabled
from .errors import FluidSyntaxError
from .expand import expand
from .lexer_rd import LexError, tokenize
from .repl_highlight import StepBlockLexer
from .token_types import OPEN_BRACKETS, CLOSE_BRACKETS

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/help": ("Show input syntax and commands", ""),
    "/placeholder": ("Show or set the closure parameter base name", "[NAME]"),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
}

_HELP = """\
Enter an invocation body and press Enter on a balanced line:

    Some(123), {
        unwrap_or_default();
        clamp(5, 100);
    }

Steps: name(args);  name(args) { steps }  [operator fragment];
"""


def _open_depth(text: str) -> Optional[int]:
    """Bracket depth at the end of *text*; None while a literal or comment is unterminated."""
    try:
        tokens = tokenize(text)
    except LexError:
        return None

    depth = 0
    for tok in tokens:
        if tok.type in OPEN_BRACKETS:
            depth += 1
        elif tok.type in CLOSE_BRACKETS:
            depth -= 1
    return depth


def _is_complete(text: str) -> bool:
    depth = _open_depth(text)
    # Over-closed input is complete; the parser will report it.
    return depth is not None and depth <= 0


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


def _handle_slash(line: str, options_box: list[ExpandOptions]) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1] if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/help":
        print(_HELP, end="")
        for name, (desc, hint) in _SLASH_CMDS.items():
            print(f"  {name} {hint}".ljust(28) + desc)
        return True

    if cmd == "/placeholder":
        if arg:
            try:
                options_box[0] = replace(options_box[0], placeholder=arg)
            except ValueError as exc:
                print(f"Error: {exc}", file=sys.stderr)
                return True
        print(f"Placeholder: {options_box[0].placeholder}")
        return True

    if cmd == "/py-traceback":
        if arg.lower() in ("on", "1", "true", "yes"):
            os.environ[ENV_DEBUG_PY_TRACE] = "1"
        elif arg.lower() in ("off", "0", "false", "no"):
            os.environ.pop(ENV_DEBUG_PY_TRACE, None)
        elif arg == "":
            # Toggle.
            if debug_py_trace_enabled():
                os.environ.pop(ENV_DEBUG_PY_TRACE, None)
            else:
                os.environ[ENV_DEBUG_PY_TRACE] = "1"
        else:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        state = "on" if debug_py_trace_enabled() else "off"
        print(f"Python traceback: {state}")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def _compute_indent(text: str) -> str:
    """Four spaces per open bracket for the next continuation line."""
    depth = _open_depth(text) or 0
    return " " * (4 * max(depth, 0))


def repl(options: Optional[ExpandOptions] = None) -> None:
    """Interactive read-expand-print loop with prompt_toolkit."""
    # Use a mutable box so /placeholder can swap the options.
    options_box: list[ExpandOptions] = [options or ExpandOptions.from_env()]

    bindings = KeyBindings()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer
        text = buf.text

        if text.strip().startswith("/") or _is_complete(text):
            buf.validate_and_handle()
            return

        buf.insert_text("\n" + _compute_indent(text))

    session: PromptSession[str] = PromptSession(
        history=InMemoryHistory(),
        lexer=StepBlockLexer(),
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=True,
        prompt_continuation="... ",
    )

    print("fluid repl (Ctrl-D to exit, /help for syntax)")

    while True:
        try:
            text = session.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        if _handle_slash(text, options_box):
            continue

        try:
            print(expand(text, options_box[0]))
        except FluidSyntaxError as exc:
            print(f"Error: {exc.format_error(text)}", file=sys.stderr)
            if debug_py_trace_enabled():
                print("\nPython traceback:", file=sys.stderr)
                print("".join(traceback.format_tb(exc.__traceback__)), file=sys.stderr, end="")
