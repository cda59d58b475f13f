"""
Lexer for fluid - Recursive Descent front end

Tokenizes Rust-flavoured invocation text into a stream of tokens.

Features:
- Single-pass tokenization
- Position tracking (line, column, start/end offsets)
- Literal handling (suffixed numbers, raw/byte strings, chars vs lifetimes)
- Comments are skipped, nested block comments included
"""

from __future__ import annotations

import logging
from typing import List

from .errors import FluidSyntaxError
from .token_types import TT, Tok

logger: logging.Logger = logging.getLogger(__name__)

# ============================================================================
# Lexer Implementation
# ============================================================================

class LexError(FluidSyntaxError):
    """Lexical analysis error"""
    pass


class Lexer:
    """
    Host-language lexer.

    Only boundaries matter to the step grammar: argument and fragment text is
    later sliced straight out of the source using the token offsets, so the
    lexer never has to normalise a literal.
    """

    KEYWORDS = {
        'as': TT.AS,
        'async': TT.KEYWORD,
        'await': TT.KEYWORD,
        'break': TT.KEYWORD,
        'const': TT.KEYWORD,
        'continue': TT.KEYWORD,
        'dyn': TT.KEYWORD,
        'else': TT.KEYWORD,
        'enum': TT.KEYWORD,
        'extern': TT.KEYWORD,
        'fn': TT.KEYWORD,
        'for': TT.KEYWORD,
        'if': TT.KEYWORD,
        'impl': TT.KEYWORD,
        'in': TT.KEYWORD,
        'let': TT.KEYWORD,
        'loop': TT.KEYWORD,
        'match': TT.KEYWORD,
        'mod': TT.KEYWORD,
        'move': TT.KEYWORD,
        'mut': TT.KEYWORD,
        'pub': TT.KEYWORD,
        'ref': TT.KEYWORD,
        'return': TT.KEYWORD,
        'static': TT.KEYWORD,
        'struct': TT.KEYWORD,
        'trait': TT.KEYWORD,
        'type': TT.KEYWORD,
        'unsafe': TT.KEYWORD,
        'use': TT.KEYWORD,
        'where': TT.KEYWORD,
        'while': TT.KEYWORD,
        'yield': TT.KEYWORD,
    }

    # Operator mapping: longest matches first to handle prefixes correctly
    OPERATORS = [
        # Three-character operators
        ('<<=', TT.OPASSIGN),
        ('>>=', TT.OPASSIGN),
        ('..=', TT.DOTDOTEQ),
        ('...', TT.ELLIPSIS),

        # Two-character operators
        ('::', TT.PATHSEP),
        ('->', TT.ARROW),
        ('=>', TT.FATARROW),
        ('==', TT.EQ),
        ('!=', TT.NEQ),
        ('<=', TT.LTE),
        ('>=', TT.GTE),
        ('&&', TT.AND),
        ('||', TT.OR),
        ('<<', TT.SHL),
        ('>>', TT.SHR),
        ('+=', TT.OPASSIGN),
        ('-=', TT.OPASSIGN),
        ('*=', TT.OPASSIGN),
        ('/=', TT.OPASSIGN),
        ('%=', TT.OPASSIGN),
        ('^=', TT.OPASSIGN),
        ('&=', TT.OPASSIGN),
        ('|=', TT.OPASSIGN),
        ('..', TT.DOTDOT),

        # Single-character operators
        ('+', TT.PLUS),
        ('-', TT.MINUS),
        ('*', TT.STAR),
        ('/', TT.SLASH),
        ('%', TT.PERCENT),
        ('^', TT.CARET),
        ('<', TT.LT),
        ('>', TT.GT),
        ('!', TT.NOT),
        ('=', TT.ASSIGN),
        ('&', TT.AMP),
        ('|', TT.PIPE),
        ('(', TT.LPAR),
        (')', TT.RPAR),
        ('[', TT.LSQB),
        (']', TT.RSQB),
        ('{', TT.LBRACE),
        ('}', TT.RBRACE),
        ('.', TT.DOT),
        (',', TT.COMMA),
        (':', TT.COLON),
        (';', TT.SEMI),
        ('?', TT.QMARK),
        ('@', TT.AT),
        ('#', TT.POUND),
        ('$', TT.DOLLAR),
        ('~', TT.TILDE),
    ]

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Tok] = []

        # Start of the token currently being scanned
        self.tok_pos = 0
        self.tok_line = 1
        self.tok_column = 1

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokenize(self) -> List[Tok]:
        """Tokenize entire source, return token list"""
        while self.pos < len(self.source):
            self.scan_token()

        self.mark()
        self.emit(TT.EOF, None)
        logger.debug("lexed %d tokens", len(self.tokens))
        return self.tokens

    def scan_token(self):
        """Scan next token"""
        if self.skip_whitespace():
            return

        self.mark()

        # Comments
        if self.source.startswith('//', self.pos):
            self.skip_line_comment()
            return
        if self.source.startswith('/*', self.pos):
            self.skip_block_comment()
            return

        ch = self.peek()

        if ch == '"':
            self.scan_string()
            return

        if ch == "'":
            self.scan_quote()
            return

        # Raw / byte string prefixes and raw identifiers
        if ch in ('r', 'b') and self.scan_prefixed_literal():
            return

        if ch.isdigit():
            self.scan_number()
            return

        if ch.isalpha() or ch == '_':
            self.scan_identifier()
            return

        self.scan_operator()

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_string(self):
        """Scan string literal "..." keeping escapes as-is"""
        self.advance()  # opening quote
        while self.pos < len(self.source) and self.peek() != '"':
            if self.peek() == '\\':
                self.advance(2)
            else:
                self.advance()

        if self.pos >= len(self.source):
            raise LexError("Unterminated string", self.tok_line, self.tok_column)

        self.advance()  # closing quote
        self.emit(TT.STRING, self.text())

    def scan_raw_string(self):
        """Scan raw string body after the r: #*"..."#*"""
        hashes = 0
        while self.peek() == '#':
            self.advance()
            hashes += 1

        if self.peek() != '"':
            raise LexError("Malformed raw string", self.tok_line, self.tok_column)
        self.advance()

        closer = '"' + '#' * hashes
        end = self.source.find(closer, self.pos)
        if end < 0:
            raise LexError("Unterminated raw string", self.tok_line, self.tok_column)

        self.advance(end + len(closer) - self.pos)
        self.emit(TT.RAW_STRING, self.text())

    def scan_prefixed_literal(self) -> bool:
        """Handle r"..", r#".."#, r#ident, b"..", b'.', br".."; False if plain identifier"""
        nxt = self.peek(1)

        if self.peek() == 'r':
            if nxt == '"' or (nxt == '#' and self.peek(2) in ('"', '#')):
                self.advance()
                self.scan_raw_string()
                return True
            if nxt == '#' and (self.peek(2).isalpha() or self.peek(2) == '_'):
                # Raw identifier r#type
                self.advance(2)
                while self.peek().isalnum() or self.peek() == '_':
                    self.advance()
                self.emit(TT.IDENT, self.text())
                return True
            return False

        # b prefix
        if nxt == '"':
            self.advance()
            self.scan_string()
            return True
        if nxt == "'":
            self.advance()
            self.scan_quote()
            return True
        if nxt == 'r' and self.peek(2) in ('"', '#'):
            self.advance(2)
            self.scan_raw_string()
            return True
        return False

    def scan_quote(self):
        """Scan a char literal ('a', '\\n') or a lifetime ('a)"""
        self.advance()  # opening quote

        if self.peek() == '\\':
            while self.pos < len(self.source) and self.peek() not in ("'", '\n'):
                if self.peek() == '\\':
                    self.advance(2)
                else:
                    self.advance()
            if self.peek() != "'":
                raise LexError("Unterminated char literal", self.tok_line, self.tok_column)
            self.advance()
            self.emit(TT.CHAR, self.text())
            return

        if self.peek(1) == "'" and self.peek() not in ('\0', '\n'):
            self.advance(2)
            self.emit(TT.CHAR, self.text())
            return

        if self.peek().isalpha() or self.peek() == '_':
            while self.peek().isalnum() or self.peek() == '_':
                self.advance()
            self.emit(TT.LIFETIME, self.text())
            return

        raise LexError("Unterminated char literal", self.tok_line, self.tok_column)

    def scan_number(self):
        """Scan number literal including radix prefixes and type suffixes (5i32, 1.5f64)"""
        if self.peek() == '0' and self.peek(1) in ('x', 'o', 'b'):
            self.advance(2)
            while self.peek().isalnum() or self.peek() == '_':
                self.advance()
            self.emit(TT.NUMBER, self.text())
            return

        self.scan_digits()

        # Decimal part; `1..2` and `5.to_string()` keep the dot for the next token
        if self.peek() == '.' and self.peek(1).isdigit():
            self.advance()
            self.scan_digits()

        # Scientific notation
        if self.peek() in ('e', 'E') and (
            self.peek(1).isdigit() or (self.peek(1) in ('+', '-') and self.peek(2).isdigit())
        ):
            self.advance()
            if self.peek() in ('+', '-'):
                self.advance()
            self.scan_digits()

        # Type suffix
        if self.peek().isalpha() or self.peek() == '_':
            while self.peek().isalnum() or self.peek() == '_':
                self.advance()

        self.emit(TT.NUMBER, self.text())

    def scan_digits(self):
        while self.peek().isdigit() or self.peek() == '_':
            self.advance()

    def scan_identifier(self):
        """Scan identifier or keyword"""
        while self.peek().isalnum() or self.peek() == '_':
            self.advance()

        value = self.text()
        self.emit(self.KEYWORDS.get(value, TT.IDENT), value)

    def scan_operator(self):
        """Scan operators and punctuation"""
        for op_str, op_type in self.OPERATORS:
            if self.source.startswith(op_str, self.pos):
                self.advance(len(op_str))
                self.emit(op_type, op_str)
                return

        ch = self.peek()
        raise LexError(f"Unexpected character {ch!r}", self.line, self.column)

    # ========================================================================
    # Utilities
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Look ahead at character"""
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def advance(self, n: int = 1) -> str:
        """Consume n characters and return them as a string"""
        if n < 0:
            raise ValueError(f"advance() requires n >= 0, got {n}")
        result = self.source[self.pos:self.pos + n]
        for ch in result:
            if ch == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        self.pos = min(self.pos + n, len(self.source))
        return result

    def mark(self):
        """Remember where the next token starts"""
        self.tok_pos = self.pos
        self.tok_line = self.line
        self.tok_column = self.column

    def text(self) -> str:
        return self.source[self.tok_pos:self.pos]

    def skip_whitespace(self) -> bool:
        """Skip whitespace including newlines, return True if any skipped"""
        skipped = False
        while self.pos < len(self.source) and self.peek().isspace():
            self.advance()
            skipped = True
        return skipped

    def skip_line_comment(self):
        while self.pos < len(self.source) and self.peek() != '\n':
            self.advance()

    def skip_block_comment(self):
        """Skip /* ... */, honouring nesting"""
        depth = 0
        while self.pos < len(self.source):
            if self.source.startswith('/*', self.pos):
                depth += 1
                self.advance(2)
            elif self.source.startswith('*/', self.pos):
                depth -= 1
                self.advance(2)
                if depth == 0:
                    return
            else:
                self.advance()

        raise LexError("Unterminated block comment", self.tok_line, self.tok_column)

    def emit(self, token_type: TT, value):
        """Emit a token spanning from the last mark to the current position"""
        tok = Tok(
            type=token_type,
            value=value,
            line=self.tok_line,
            column=self.tok_column,
            start=self.tok_pos,
            end=self.pos,
        )
        self.tokens.append(tok)


def tokenize(source: str) -> List[Tok]:
    """Convenience function to tokenize source"""
    lexer = Lexer(source)
    return lexer.tokenize()
