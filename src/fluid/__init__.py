"""
fluid - write long method chains as a flat list of steps.

    expand("Some(123), { unwrap_or_default(); clamp(5, 100); to_string(); }")
    # => 'Some(123).unwrap_or_default().clamp(5, 100).to_string()'
"""

from .errors import FluidSyntaxError
from .lexer_rd import LexError, tokenize
from .parser_rd import ParseError, parse_invocation, parse_steps
from .steps import (
    BlockCall,
    Expression,
    Invocation,
    OperatorForm,
    PlainCall,
    StepBuilder,
)
from .rewriter import Placeholders, rewrite
from .printer import needs_grouping, render
from .config import ExpandOptions
from .expand import expand, expand_source, expand_to_tree

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "FluidSyntaxError",
    "LexError",
    "ParseError",
    "tokenize",
    "parse_invocation",
    "parse_steps",
    "Expression",
    "PlainCall",
    "BlockCall",
    "OperatorForm",
    "Invocation",
    "StepBuilder",
    "Placeholders",
    "rewrite",
    "render",
    "needs_grouping",
    "ExpandOptions",
    "expand",
    "expand_source",
    "expand_to_tree",
]
