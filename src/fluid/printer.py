"""Render rewritten expression trees back to host-language source text."""

from __future__ import annotations

from typing import List

from lark import Tree
from lark.visitors import Interpreter

from .lexer_rd import LexError, tokenize
from .token_types import TT, Tok, OPEN_BRACKETS, CLOSE_BRACKETS

_PRIMARY = {TT.IDENT, TT.NUMBER, TT.STRING, TT.RAW_STRING, TT.CHAR}
_MEMBER = {TT.IDENT, TT.NUMBER, TT.KEYWORD}


class Printer(Interpreter):
    """Pretty-printer for rewriter output; one method per node label."""

    def raw(self, tree: Tree) -> str:
        return str(tree.children[0])

    def placeholder(self, tree: Tree) -> str:
        return str(tree.children[0])

    def method_call(self, tree: Tree) -> str:
        receiver, name, args = tree.children
        rendered = ", ".join(self.visit(arg) for arg in args.children)
        return f"{self.receiver(receiver)}.{name}({rendered})"

    def closure(self, tree: Tree) -> str:
        param, body = tree.children
        return f"|{param}| {self.visit(body)}"

    def group(self, tree: Tree) -> str:
        receiver, fragment = tree.children
        return f"({self.receiver(receiver)} {fragment})"

    def receiver(self, node: Tree) -> str:
        """Render a node in receiver position, parenthesizing opaque compound seeds"""
        text = self.visit(node)
        if node.data == 'raw' and needs_grouping(text):
            return f"({text})"
        return text


def render(node: Tree) -> str:
    return Printer().visit(node)


def needs_grouping(text: str) -> bool:
    """
    True unless `text` is a primary followed only by postfix operations
    (field/method access, calls, indexing, `?`, paths, macro bangs), i.e.
    something `.name()` can bind to as a whole.
    """
    try:
        tokens = [tok for tok in tokenize(text) if tok.type != TT.EOF]
    except LexError:
        return True
    if not tokens:
        return False

    idx = _skip_primary(tokens, 0)
    if idx < 0:
        return True

    while idx < len(tokens):
        tok = tokens[idx]
        nxt = tokens[idx + 1] if idx + 1 < len(tokens) else None

        if tok.type == TT.DOT and nxt is not None and nxt.type in _MEMBER:
            if nxt.type == TT.KEYWORD and nxt.value != 'await':
                return True
            idx += 2
        elif tok.type == TT.PATHSEP and nxt is not None and nxt.type == TT.IDENT:
            idx += 2
        elif tok.type == TT.PATHSEP and nxt is not None and nxt.type == TT.LT:
            idx = _skip_angle(tokens, idx + 1)
            if idx < 0:
                return True
        elif tok.type in OPEN_BRACKETS:
            idx = _skip_group(tokens, idx)
            if idx < 0:
                return True
        elif tok.type == TT.QMARK:
            idx += 1
        elif tok.type == TT.NOT and nxt is not None and nxt.type in OPEN_BRACKETS:
            idx += 1
        else:
            return True

    return False


def _skip_primary(tokens: List[Tok], idx: int) -> int:
    tok = tokens[idx]
    if tok.type in _PRIMARY:
        return idx + 1
    if tok.type == TT.PATHSEP and idx + 1 < len(tokens) and tokens[idx + 1].type == TT.IDENT:
        return idx + 2
    if tok.type in OPEN_BRACKETS:
        return _skip_group(tokens, idx)
    return -1


def _skip_group(tokens: List[Tok], idx: int) -> int:
    """Index just past the bracket group opening at idx, -1 if unbalanced"""
    depth = 0
    for j in range(idx, len(tokens)):
        if tokens[j].type in OPEN_BRACKETS:
            depth += 1
        elif tokens[j].type in CLOSE_BRACKETS:
            depth -= 1
            if depth == 0:
                return j + 1
    return -1


def _skip_angle(tokens: List[Tok], idx: int) -> int:
    depth = 0
    for j in range(idx, len(tokens)):
        if tokens[j].type == TT.LT:
            depth += 1
        elif tokens[j].type == TT.GT:
            depth -= 1
        elif tokens[j].type == TT.SHR:
            depth -= 2
        if depth <= 0:
            return j + 1
    return -1
