"""
Token Types for the fluid front end

Shared between lexer, parser and REPL highlighter to avoid circular imports.
"""

from typing import Any
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types - the host-language terminals the step grammar cares about"""

    # Literals
    NUMBER = auto()
    STRING = auto()
    RAW_STRING = auto()
    CHAR = auto()
    LIFETIME = auto()
    IDENT = auto()

    # Keywords
    AS = auto()
    KEYWORD = auto()  # any other reserved word; kept opaque

    # Paths
    PATHSEP = auto()  # ::

    # Arithmetic / bitwise
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    CARET = auto()
    SHL = auto()
    SHR = auto()
    AMP = auto()
    PIPE = auto()

    # Comparison / logical
    EQ = auto()
    NEQ = auto()
    LT = auto()
    LTE = auto()
    GT = auto()
    GTE = auto()
    AND = auto()  # &&
    OR = auto()  # ||
    NOT = auto()  # !

    # Assignment
    ASSIGN = auto()
    OPASSIGN = auto()  # += -= *= ... <<= >>=

    # Ranges / arrows
    DOTDOT = auto()
    DOTDOTEQ = auto()
    ELLIPSIS = auto()
    ARROW = auto()  # ->
    FATARROW = auto()  # =>

    # Punctuation
    LPAR = auto()
    RPAR = auto()
    LSQB = auto()
    RSQB = auto()
    LBRACE = auto()
    RBRACE = auto()
    DOT = auto()
    COMMA = auto()
    COLON = auto()
    SEMI = auto()
    QMARK = auto()
    AT = auto()
    POUND = auto()
    DOLLAR = auto()
    TILDE = auto()

    # Special
    EOF = auto()


OPEN_BRACKETS = {TT.LPAR: TT.RPAR, TT.LSQB: TT.RSQB, TT.LBRACE: TT.RBRACE}
CLOSE_BRACKETS = {v: k for k, v in OPEN_BRACKETS.items()}


@dataclass
class Tok:
    """Token with position info; start/end are offsets into the source text"""

    type: TT
    value: Any
    line: int = 0
    column: int = 0
    start: int = 0
    end: int = 0

    def __repr__(self):
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"
