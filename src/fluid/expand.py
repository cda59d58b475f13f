"""
Expansion entry points.

`expand` handles one invocation body (`seed, { steps }`); `expand_source`
rewrites every `fluid!( ... )` call site in a Rust source file.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set, Tuple

from lark import Tree

from .config import ExpandOptions
from .lexer_rd import tokenize
from .parser_rd import ParseError, Parser
from .printer import needs_grouping, render
from .rewriter import Placeholders, rewrite
from .steps import StepBuilder
from .token_types import TT, Tok, OPEN_BRACKETS, CLOSE_BRACKETS

logger: logging.Logger = logging.getLogger(__name__)

Replacement = Tuple[int, int, str]


def identifiers(tokens: List[Tok]) -> Set[str]:
    """Identifier names used in a token run (raw identifiers without their r# prefix)"""
    names = set()
    for tok in tokens:
        if tok.type == TT.IDENT:
            value = tok.value
            names.add(value[2:] if value.startswith("r#") else value)
    return names


def expand_tokens(tokens: List[Tok], source: str, options: Optional[ExpandOptions] = None) -> Tree:
    """Parse, classify and rewrite an already-lexed invocation body"""
    options = options or ExpandOptions()
    tree = Parser(tokens, source).parse_invocation()
    invocation = StepBuilder().transform(tree)
    placeholders = Placeholders(options.placeholder, reserved=identifiers(tokens))
    return rewrite(invocation.seed, invocation.steps, placeholders)


def expand_to_tree(text: str, options: Optional[ExpandOptions] = None) -> Tree:
    return expand_tokens(tokenize(text), text, options)


def expand(text: str, options: Optional[ExpandOptions] = None) -> str:
    """Expand one invocation body, e.g. `Some(1), { unwrap(); }` -> `Some(1).unwrap()`"""
    return render(expand_to_tree(text, options))


# ============================================================================
# Whole-file expansion
# ============================================================================

def expand_source(source: str, options: Optional[ExpandOptions] = None) -> str:
    """
    Replace every `<macro>!( ... )` invocation in `source` with its expansion.

    Invocations nested inside another invocation's arguments are copied through
    verbatim by the outer expansion and picked up on the next pass.
    """
    options = options or ExpandOptions()
    passes = 0

    while True:
        replacements = _find_invocations(source, options)
        if not replacements:
            logger.debug("expand_source finished after %d pass(es)", passes)
            return source

        passes += 1
        for start, end, text in reversed(replacements):
            source = source[:start] + text + source[end:]


def _find_invocations(source: str, options: ExpandOptions) -> List[Replacement]:
    tokens = tokenize(source)
    replacements: List[Replacement] = []
    idx = 0

    while idx < len(tokens):
        if not _is_call_site(tokens, idx, options.macro_name):
            idx += 1
            continue

        open_idx = idx + 2
        close_idx = _matching_close(tokens, open_idx)
        close_tok = tokens[close_idx]

        body = tokens[open_idx + 1:close_idx]
        body.append(Tok(TT.EOF, None, close_tok.line, close_tok.column, close_tok.start, close_tok.start))

        text = render(expand_tokens(body, source, options))
        if needs_grouping(text):
            text = f"({text})"

        start = tokens[_path_start(tokens, idx)].start
        logger.debug("expanded %s! at line %d", options.macro_name, tokens[idx].line)
        replacements.append((start, close_tok.end, text))
        idx = close_idx + 1

    return replacements


def _is_call_site(tokens: List[Tok], idx: int, macro_name: str) -> bool:
    if idx + 2 >= len(tokens):
        return False
    tok = tokens[idx]
    if tok.type != TT.IDENT or tok.value != macro_name:
        return False
    if idx > 0 and tokens[idx - 1].type == TT.DOT:
        return False
    return tokens[idx + 1].type == TT.NOT and tokens[idx + 2].type in OPEN_BRACKETS


def _path_start(tokens: List[Tok], idx: int) -> int:
    """Walk back over a `crate::path::` or `$crate::` prefix of the macro name"""
    start = idx
    while start >= 2 and tokens[start - 1].type == TT.PATHSEP and tokens[start - 2].type == TT.IDENT:
        start -= 2
    if start >= 1 and tokens[start - 1].type == TT.DOLLAR:
        start -= 1
    elif start >= 1 and tokens[start - 1].type == TT.PATHSEP:
        start -= 1
    return start


def _matching_close(tokens: List[Tok], open_idx: int) -> int:
    stack: List[Tok] = []
    for j in range(open_idx, len(tokens)):
        tok = tokens[j]
        if tok.type in OPEN_BRACKETS:
            stack.append(tok)
        elif tok.type in CLOSE_BRACKETS:
            if not stack:
                break
            opener = stack.pop()
            if OPEN_BRACKETS[opener.type] != tok.type:
                raise ParseError(f"Mismatched '{tok.value}' for '{opener.value}'", tok)
            if not stack:
                return j

    raise ParseError(f"Unclosed '{tokens[open_idx].value}'", tokens[open_idx])
