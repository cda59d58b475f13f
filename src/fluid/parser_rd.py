"""
Recursive Descent Parser for fluid step blocks

Classifies an invocation body `seed, { steps }` into a lark Tree:

    invocation
      expr          EXPR token (seed, verbatim source slice)
      steps
        plain_call     NAME, args(expr*)
        block_call     NAME, args(expr*), steps
        operator_form  FRAGMENT token

Argument expressions and operator fragments are never parsed; the parser only
tracks bracket depth to find where each one ends and slices the original text.
"""

from __future__ import annotations

import logging
from typing import Collection, List, Optional

from lark import Tree, Token

from .errors import FluidSyntaxError
from .lexer_rd import tokenize
from .token_types import TT, Tok, OPEN_BRACKETS, CLOSE_BRACKETS

logger: logging.Logger = logging.getLogger(__name__)

# Tokens after which a `|` closes an operand rather than opening closure params
_OPERAND_END = {
    TT.IDENT, TT.NUMBER, TT.STRING, TT.RAW_STRING, TT.CHAR, TT.LIFETIME,
    TT.RPAR, TT.RSQB, TT.RBRACE, TT.QMARK,
}

# Tokens that may continue a type after `as` or `->` (closers end it)
_TYPE_TOKENS = {
    TT.IDENT, TT.KEYWORD, TT.PATHSEP, TT.LT, TT.AMP, TT.AND, TT.STAR,
    TT.LIFETIME, TT.LPAR, TT.LSQB,
}


def _ends_operand(tok: Tok) -> bool:
    if tok.type == TT.KEYWORD:
        return tok.value == 'await'
    return tok.type in _OPERAND_END

# ============================================================================
# Parser
# ============================================================================

class ParseError(FluidSyntaxError):
    """Parse error with position info"""
    def __init__(self, message: str, token: Optional[Tok] = None):
        self.token = token
        if token is not None and token.line:
            super().__init__(message, token.line, token.column)
        else:
            super().__init__(message)


class Parser:
    """
    Step-block classifier.

    Grammar:
        invocation := expr ',' block ','? EOF
        block      := '{' step* '}'
        step       := NAME '(' args ')' ';'
                    | NAME '(' args ')' '{' step+ '}'
                    | '[' fragment ']' ';'
    """

    def __init__(self, tokens: List[Tok], source: str):
        self.tokens = tokens
        self.source = source
        self.pos = 0
        self.current = tokens[0] if tokens else Tok(TT.EOF, None, 0, 0)

    # ========================================================================
    # Token Navigation
    # ========================================================================

    def peek(self, offset: int = 0) -> Tok:
        """Look ahead at token"""
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self._eof()

    def advance(self) -> Tok:
        """Consume current token and move to next"""
        prev = self.current
        self.pos += 1
        if self.pos < len(self.tokens):
            self.current = self.tokens[self.pos]
        else:
            self.current = self._eof()
        return prev

    def check(self, *types: TT) -> bool:
        """Check if current token matches any of the given types"""
        return self.current.type in types

    def match(self, *types: TT) -> bool:
        """Check and consume if current token matches"""
        if self.check(*types):
            self.advance()
            return True
        return False

    def expect(self, token_type: TT, message: Optional[str] = None) -> Tok:
        """Consume token of expected type or raise error"""
        if not self.check(token_type):
            msg = message or f"Expected {token_type.name}, got {self.current.type.name}"
            raise ParseError(msg, self.current)
        return self.advance()

    def _eof(self) -> Tok:
        last = self.tokens[-1] if self.tokens else None
        if last is None:
            return Tok(TT.EOF, None, 0, 0)
        return Tok(TT.EOF, None, last.line, last.column, last.end, last.end)

    # ========================================================================
    # Top-Level Parsing
    # ========================================================================

    def parse_invocation(self) -> Tree:
        """Parse `seed, { steps }` with an optional trailing comma"""
        seed = self.parse_expr_slice({TT.COMMA}, what="seed expression")
        self.expect(TT.COMMA, "Expected ',' between the seed expression and the step block")

        open_tok = self.expect(TT.LBRACE, "Expected '{' to open the step block")
        steps = self.parse_step_list()
        self.expect_close(open_tok)

        self.match(TT.COMMA)
        if not self.check(TT.EOF):
            raise ParseError(f"Unexpected {self._describe(self.current)} after the step block", self.current)

        return Tree('invocation', [seed, steps])

    def parse_steps(self) -> Tree:
        """Parse a bare `{ steps }` block"""
        open_tok = self.expect(TT.LBRACE, "Expected '{' to open the step block")
        steps = self.parse_step_list()
        self.expect_close(open_tok)
        if not self.check(TT.EOF):
            raise ParseError(f"Unexpected {self._describe(self.current)} after the step block", self.current)
        return steps

    def parse_step_list(self) -> Tree:
        """Parse steps up to (not including) the closing brace"""
        steps = []
        while not self.check(TT.RBRACE, TT.EOF):
            steps.append(self.parse_step())
        return Tree('steps', steps)

    # ========================================================================
    # Steps
    # ========================================================================

    def parse_step(self) -> Tree:
        """
        Parse a single step.

        `name(...);`        plain call
        `name(...) { .. }`  block call, no separator after the brace
        `[ fragment ];`     operator form
        """
        if self.check(TT.LSQB):
            return self.parse_operator_form()

        if not self.check(TT.IDENT):
            raise ParseError(f"Expected a step, got {self._describe(self.current)}", self.current)

        name_tok = self.advance()
        if self.check(TT.PATHSEP):
            raise ParseError(
                f"Generic arguments on '{name_tok.value}' (turbofish) are not supported in a step",
                self.current,
            )

        self.expect(TT.LPAR, f"Expected '(' after step name '{name_tok.value}'")
        args = self.parse_args()
        name = Token('NAME', name_tok.value, start_pos=name_tok.start, line=name_tok.line,
                     column=name_tok.column, end_pos=name_tok.end)

        if self.check(TT.LBRACE):
            open_tok = self.advance()
            body = self.parse_step_list()
            if not body.children:
                raise ParseError(f"Nested block of '{name_tok.value}' must contain at least one step", open_tok)
            self.expect_close(open_tok)
            logger.debug("block_call %s with %d arg(s), %d nested step(s)", name, len(args.children), len(body.children))
            return Tree('block_call', [name, args, body])

        self.expect(TT.SEMI, f"Expected ';' after call to '{name_tok.value}'")
        logger.debug("plain_call %s with %d arg(s)", name, len(args.children))
        return Tree('plain_call', [name, args])

    def parse_args(self) -> Tree:
        """Parse comma-separated argument slices after '(' through ')'"""
        args = []
        if self.match(TT.RPAR):
            return Tree('args', args)

        while True:
            args.append(self.parse_expr_slice({TT.COMMA, TT.RPAR}, what="argument"))
            if self.match(TT.COMMA):
                if self.check(TT.RPAR):
                    raise ParseError("Expected argument after ','", self.current)
                continue
            self.expect(TT.RPAR, "Expected ',' or ')' in argument list")
            return Tree('args', args)

    def parse_operator_form(self) -> Tree:
        """Parse `[ fragment ];`"""
        open_tok = self.advance()
        # The accumulated expression sits in front of the fragment
        first, last = self.scan_balanced(set(), TT.RSQB, after_operand=True)
        if first is None:
            raise ParseError("Operator step '[...]' must not be empty", open_tok)
        self.expect_close(open_tok)
        self.expect(TT.SEMI, "Expected ';' after operator step")

        fragment = self._slice_token('FRAGMENT', first, last)
        logger.debug("operator_form %r", str(fragment))
        return Tree('operator_form', [fragment])

    # ========================================================================
    # Opaque slices
    # ========================================================================

    def parse_expr_slice(self, stops: Collection[TT], what: str) -> Tree:
        """Consume one opaque expression ending before a depth-0 stop token"""
        start = self.current
        first, last = self.scan_balanced(stops)
        if first is None:
            raise ParseError(f"Expected {what}, got {self._describe(start)}", start)
        return Tree('expr', [self._slice_token('EXPR', first, last)])

    def scan_balanced(self, stops: Collection[TT], closer: Optional[TT] = None, after_operand: bool = False):
        """
        Advance over a bracket-balanced token run.

        Stops before a depth-0 token in `stops`, or before the unmatched
        `closer`; returns the first and last consumed tokens (None, None when
        nothing was consumed).

        `after_operand` starts the scan as if an operand had just been read,
        so a leading `|` is bit-or rather than a closure parameter list.
        Commas inside `<...>` of a type after `as` or `->` are not stops.
        """
        first: Optional[Tok] = None
        last: Optional[Tok] = None
        stack: List[Tok] = []
        operand_end = after_operand

        # Type context opened by `as` / `->`
        in_type = False
        type_depth = 0
        angle = 0

        while True:
            tok = self.current

            if tok.type == TT.EOF:
                if stack:
                    raise ParseError(f"Unclosed '{stack[-1].value}'", stack[-1])
                if closer is not None:
                    raise ParseError("Unexpected end of input", tok)
                break

            if in_type and angle == 0 and (
                len(stack) < type_depth
                or (len(stack) == type_depth and tok.type not in _TYPE_TOKENS)
            ):
                in_type = False

            if not stack:
                if tok.type in stops and angle == 0:
                    break
                if tok.type == closer:
                    break
                if tok.type in CLOSE_BRACKETS:
                    raise ParseError(f"Unmatched '{tok.value}'", tok)

            closed_type = False
            if tok.type in OPEN_BRACKETS:
                stack.append(tok)
            elif tok.type in CLOSE_BRACKETS:
                opener = stack.pop()
                if OPEN_BRACKETS[opener.type] != tok.type:
                    raise ParseError(f"Mismatched '{tok.value}' for '{opener.value}'", tok)
            elif in_type and tok.type in (TT.LT, TT.GT, TT.SHR):
                angle += {TT.LT: 1, TT.GT: -1, TT.SHR: -2}[tok.type]
                if angle <= 0:
                    angle = 0
                    in_type = False
                    closed_type = True
            elif not stack and tok.type == TT.PIPE and not operand_end:
                # Closure parameter list: commas between the pipes are not separators
                first = first or tok
                last = self._skip_closure_params()
                operand_end = False
                continue
            elif tok.type == TT.PATHSEP and self.peek(1).type == TT.LT:
                first = first or tok
                last = self._skip_generic_args()
                operand_end = True
                continue
            elif tok.type in (TT.AS, TT.ARROW):
                in_type = True
                type_depth = len(stack)

            first = first or tok
            last = tok
            operand_end = closed_type or _ends_operand(tok)
            self.advance()

        return first, last

    def _skip_closure_params(self) -> Tok:
        self.advance()  # opening '|'
        while not self.check(TT.PIPE):
            if self.check(TT.EOF):
                raise ParseError("Unclosed closure parameter list", self.current)
            self.advance()
        return self.advance()

    def _skip_generic_args(self) -> Tok:
        """Skip `::<...>` inside an opaque expression, counting '>>' as two closers"""
        self.advance()  # '::'
        depth = 0
        while True:
            tok = self.advance()
            if tok.type == TT.EOF:
                raise ParseError("Unclosed generic argument list", tok)
            if tok.type == TT.LT:
                depth += 1
            elif tok.type == TT.GT:
                depth -= 1
            elif tok.type == TT.SHR:
                depth -= 2
            if depth <= 0:
                return tok

    def expect_close(self, open_tok: Tok) -> Tok:
        closer = OPEN_BRACKETS[open_tok.type]
        if self.check(TT.EOF):
            raise ParseError(f"Unclosed '{open_tok.value}'", open_tok)
        return self.expect(closer, f"Expected '{_CLOSE_TEXT[closer]}' to close '{open_tok.value}', got {self._describe(self.current)}")

    def _slice_token(self, kind: str, first: Tok, last: Tok) -> Token:
        text = self.source[first.start:last.end]
        return Token(kind, text, start_pos=first.start, line=first.line, column=first.column, end_pos=last.end)

    @staticmethod
    def _describe(tok: Tok) -> str:
        if tok.type == TT.EOF:
            return "end of input"
        return f"'{tok.value}'"


_CLOSE_TEXT = {TT.RPAR: ')', TT.RSQB: ']', TT.RBRACE: '}'}


def parse_invocation(source: str) -> Tree:
    """
    Parse an invocation body `seed, { steps }` to a lark Tree.

    Args:
        source: Text between the macro delimiters
    """
    tokens = tokenize(source)
    parser = Parser(tokens, source)
    return parser.parse_invocation()


def parse_steps(source: str) -> Tree:
    """Parse a bare step block `{ ... }` to a `steps` Tree"""
    tokens = tokenize(source)
    return Parser(tokens, source).parse_steps()
