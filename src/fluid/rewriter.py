"""
Chain rewriter: folds a step list onto a seed, producing one nested expression.

Output nodes are lark Trees:

    raw          EXPR                      opaque seed / argument text
    placeholder  PARAM                     closure parameter reference
    method_call  receiver, NAME, args      receiver.name(args...)
    closure      PARAM, body               |param| body
    group        receiver, FRAGMENT        (receiver fragment)
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set, Union

from lark import Token, Tree

from .steps import BlockCall, Expression, OperatorForm, PlainCall, Step, StepList

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER = "b"


class Placeholders:
    """
    Supply of closure parameter names for one expansion.

    Names run `b`, `b_1`, `b_2`, ... and are never handed out twice, so sibling
    and nested blocks always bind distinct parameters. Names listed in
    `reserved` (identifiers already present in the invocation) are skipped, so
    a parameter can't capture a variable referenced from an argument.
    """

    def __init__(self, base: str = DEFAULT_PLACEHOLDER, reserved: Iterable[str] = ()):
        self.base = base
        self.taken: Set[str] = set(reserved)
        self.counter = 0

    def fresh(self) -> str:
        while True:
            name = self.base if self.counter == 0 else f"{self.base}_{self.counter}"
            self.counter += 1
            if name not in self.taken:
                self.taken.add(name)
                logger.debug("placeholder %s", name)
                return name


# ============================================================================
# Node constructors
# ============================================================================

def raw(expression: Union[Expression, str]) -> Tree:
    text = expression.text if isinstance(expression, Expression) else expression
    return Tree('raw', [Token('EXPR', text)])


def placeholder(name: str) -> Tree:
    return Tree('placeholder', [Token('PARAM', name)])


def method_call(receiver: Tree, name: str, args: List[Tree]) -> Tree:
    return Tree('method_call', [receiver, Token('NAME', name), Tree('args', list(args))])


def closure(param: str, body: Tree) -> Tree:
    return Tree('closure', [Token('PARAM', param), body])


def group(receiver: Tree, fragment: Union[Expression, str]) -> Tree:
    text = fragment.text if isinstance(fragment, Expression) else fragment
    return Tree('group', [receiver, Token('FRAGMENT', text)])


# ============================================================================
# Rewriting
# ============================================================================

def rewrite(
    seed: Union[Tree, Expression, str],
    steps: StepList,
    placeholders: Optional[Placeholders] = None,
) -> Tree:
    """
    Rewrite `seed` through `steps`.

    Equivalent to the structural recursion
    rewrite(e, []) = e; rewrite(e, [s, *rest]) = rewrite(apply(e, s), rest),
    written as a left fold so long flat chains don't grow the Python stack.
    Only nested block bodies recurse.
    """
    if placeholders is None:
        placeholders = Placeholders()

    node = seed if isinstance(seed, Tree) else raw(seed)
    for step in steps:
        node = apply_step(node, step, placeholders)
    return node


def apply_step(node: Tree, step: Step, placeholders: Placeholders) -> Tree:
    """Compute the next seed from one step"""
    match step:
        case PlainCall(name=name, args=args):
            return method_call(node, name, [raw(arg) for arg in args])

        case BlockCall(name=name, leading_args=leading, body=body):
            param = placeholders.fresh()
            inner = rewrite(placeholder(param), body, placeholders)
            args = [raw(arg) for arg in leading]
            args.append(closure(param, inner))
            return method_call(node, name, args)

        case OperatorForm(fragment=fragment):
            return group(node, fragment)

    raise TypeError(f"not a step: {step!r}")
