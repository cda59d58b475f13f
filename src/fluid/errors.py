"""Syntax errors raised by the fluid front end."""

from __future__ import annotations

from typing import Optional


class FluidSyntaxError(Exception):
    """Malformed invocation text; carries the 1-based position of the offence."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(
            f"{message} at line {line}, col {column}" if line is not None else message
        )

    def format_error(self, source: str) -> str:
        """Return the message followed by the offending line and a caret under the column."""
        if self.line is None:
            return str(self)

        lines = source.splitlines()
        if not 1 <= self.line <= len(lines):
            return str(self)

        text = lines[self.line - 1]
        col = max((self.column or 1) - 1, 0)
        gutter = f"{self.line} | "
        return f"{self}\n{gutter}{text}\n{' ' * (len(gutter) + col)}^"
