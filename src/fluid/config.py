from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .lexer_rd import Lexer
from .rewriter import DEFAULT_PLACEHOLDER

ENV_PLACEHOLDER = "FLUID_PLACEHOLDER"
ENV_MACRO = "FLUID_MACRO"
ENV_DEBUG_PY_TRACE = "FLUID_DEBUG_PY_TRACE"

DEFAULT_MACRO = "fluid"

# Names that cannot be bound as a closure parameter
RESERVED_NAMES = frozenset(Lexer.KEYWORDS) | {"_", "self", "Self", "super", "crate", "true", "false"}


@dataclass(frozen=True)
class ExpandOptions:
    """Knobs for one expansion run."""

    placeholder: str = DEFAULT_PLACEHOLDER
    macro_name: str = DEFAULT_MACRO

    def __post_init__(self) -> None:
        if not self.placeholder.isidentifier():
            raise ValueError(f"placeholder base must be an identifier, got {self.placeholder!r}")
        if self.placeholder in RESERVED_NAMES:
            raise ValueError(f"placeholder base must not be a reserved word, got {self.placeholder!r}")
        if not self.macro_name.isidentifier():
            raise ValueError(f"macro name must be an identifier, got {self.macro_name!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> ExpandOptions:
        env = os.environ if environ is None else environ
        return cls(
            placeholder=env.get(ENV_PLACEHOLDER) or DEFAULT_PLACEHOLDER,
            macro_name=env.get(ENV_MACRO) or DEFAULT_MACRO,
        )


def debug_py_trace_enabled() -> bool:
    """Python tracebacks on syntax errors are shown when FLUID_DEBUG_PY_TRACE is set."""
    return os.environ.get(ENV_DEBUG_PY_TRACE, "") not in ("", "0")
