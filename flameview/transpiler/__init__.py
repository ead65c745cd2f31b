"""Transpiler from PyX component source to plain Python.

PyX is Python whose expressions may contain tag-based markup. The
transpiler lowers that markup into calls of the ``h`` element factory,
drops import and export declarations and tidies blank lines. Its output
contains none of the constructs it rewrites, so running it twice gives
the same result as running it once.
"""

from __future__ import annotations

import ast
import textwrap
from dataclasses import dataclass
from typing import Optional

from flameview.errors import TranspileError

from .declarations import collapse_blank_lines, strip_declarations
from .markup import MarkupLowerer, clean_text_child, lower_markup


@dataclass(frozen=True)
class TranspiledBody:
    """Plain Python source ready to be bound against the capability set."""

    code: str
    element_count: int = 0

    def __str__(self) -> str:
        return self.code


def _check_syntax(code: str, path: Optional[str]) -> None:
    try:
        ast.parse(code, filename=path or "<dashboard>", mode="exec")
    except SyntaxError as exc:
        hint = f"Near: {exc.text.strip()}" if exc.text and exc.text.strip() else None
        raise TranspileError(
            f"Invalid component source: {exc.msg}",
            path=path,
            line=exc.lineno,
            column=exc.offset,
            hint=hint,
        ) from exc


def transpile(text: str, *, path: Optional[str] = None) -> TranspiledBody:
    """Turn PyX component source into a :class:`TranspiledBody`.

    Raises:
        TranspileError: if the markup is malformed or the lowered source
            is not valid Python.
    """
    if not isinstance(text, str):
        raise TranspileError(f"Component source must be text, got {type(text).__name__}")

    source = textwrap.dedent(text.replace("\r\n", "\n").replace("\r", "\n"))
    lowered, element_count = lower_markup(source, path=path)
    stripped = strip_declarations(lowered, path=path)
    code = collapse_blank_lines(stripped, path=path)
    _check_syntax(code, path)
    return TranspiledBody(code=code, element_count=element_count)


__all__ = [
    "MarkupLowerer",
    "TranspiledBody",
    "clean_text_child",
    "collapse_blank_lines",
    "lower_markup",
    "strip_declarations",
    "transpile",
]
