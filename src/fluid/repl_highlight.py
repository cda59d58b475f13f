"""prompt_toolkit lexer for live step-block highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .lexer_rd import Lexer as StepTokenizer, LexError
from .token_types import TT, Tok

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "lifetime": "italic ansiyellow",
    "identifier": "",
    "step": "bold ansiyellow",
    "operator": "",
    "punctuation": "",
}

_TT_GROUP = {
    TT.AS: "keyword",
    TT.KEYWORD: "keyword",
    TT.NUMBER: "number",
    TT.STRING: "string",
    TT.RAW_STRING: "string",
    TT.CHAR: "string",
    TT.LIFETIME: "lifetime",
    TT.IDENT: "identifier",
    TT.LPAR: "punctuation",
    TT.RPAR: "punctuation",
    TT.LSQB: "punctuation",
    TT.RSQB: "punctuation",
    TT.LBRACE: "punctuation",
    TT.RBRACE: "punctuation",
    TT.DOT: "punctuation",
    TT.COMMA: "punctuation",
    TT.COLON: "punctuation",
    TT.SEMI: "punctuation",
    TT.PATHSEP: "punctuation",
}

_STEP_OPENERS = {TT.LBRACE, TT.SEMI, TT.RBRACE}


def _is_step_name(tokens: list[Tok], idx: int) -> bool:
    """An identifier directly inside a block, followed by '(' starts a step"""
    if idx + 1 >= len(tokens) or tokens[idx + 1].type != TT.LPAR:
        return False
    return idx > 0 and tokens[idx - 1].type in _STEP_OPENERS


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    try:
        tokens = StepTokenizer(text).tokenize()
    except LexError:
        return [("", text)]

    result: StyleAndTextTuples = []
    pos = 0

    for i, tok in enumerate(tokens):
        if tok.type == TT.EOF:
            continue

        # Unstyled gap (whitespace, comments) before token.
        if tok.start > pos:
            result.append(("", text[pos:tok.start]))

        group = _TT_GROUP.get(tok.type, "operator")
        if tok.type == TT.IDENT and _is_step_name(tokens, i):
            group = "step"
        result.append((GROUP_STYLE.get(group, ""), text[tok.start:tok.end]))
        pos = tok.end

    # Trailing unstyled text.
    if pos < len(text):
        result.append(("", text[pos:]))

    return result if result else [("", text)]


class StepBlockLexer(Lexer):
    """prompt_toolkit Lexer that highlights invocation text using the RD lexer."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines

        # Pre-compute highlights for all lines.
        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
