"""
Typed step model built from the parser's lark Tree.

Seeds, arguments and fragments stay opaque `Expression` slices; only the step
variants themselves are structured.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple, Union

from lark import Token, Transformer, v_args
from typing_extensions import TypeAlias


@dataclass(frozen=True)
class Expression:
    """Unparsed host-language fragment, copied verbatim into the output."""

    text: str
    line: int = field(default=0, compare=False)
    column: int = field(default=0, compare=False)


@dataclass(frozen=True)
class PlainCall:
    name: str
    args: Tuple[Expression, ...] = ()


@dataclass(frozen=True)
class BlockCall:
    """Call whose final argument is a closure over the rewritten `body`."""

    name: str
    leading_args: Tuple[Expression, ...]
    body: StepList


@dataclass(frozen=True)
class OperatorForm:
    """Operator or cast suffix juxtaposed after the accumulated expression."""

    fragment: Expression


Step: TypeAlias = Union[PlainCall, BlockCall, OperatorForm]
StepList: TypeAlias = Tuple[Step, ...]


@dataclass(frozen=True)
class Invocation:
    seed: Expression
    steps: StepList


def _expression(tok: Token) -> Expression:
    return Expression(str(tok), tok.line or 0, tok.column or 0)


class StepBuilder(Transformer):
    """Turns `invocation`/`steps` trees from parser_rd into the dataclasses above."""

    def expr(self, children) -> Expression:
        return _expression(children[0])

    def args(self, children) -> Tuple[Expression, ...]:
        return tuple(children)

    def steps(self, children) -> StepList:
        return tuple(children)

    @v_args(inline=True)
    def plain_call(self, name: Token, args: Tuple[Expression, ...]) -> PlainCall:
        return PlainCall(str(name), args)

    @v_args(inline=True)
    def block_call(self, name: Token, args: Tuple[Expression, ...], body: StepList) -> BlockCall:
        return BlockCall(str(name), args, body)

    @v_args(inline=True)
    def operator_form(self, fragment: Token) -> OperatorForm:
        return OperatorForm(_expression(fragment))

    @v_args(inline=True)
    def invocation(self, seed: Expression, steps: StepList) -> Invocation:
        return Invocation(seed, steps)
