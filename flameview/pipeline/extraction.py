"""Extraction of component source from a generation response.

The expected response is an optional bullet summary followed by one
fenced block tagged ``pyx``. Models do not always comply, so when no
fenced block is present the text is searched, in order, for a bare
``def Dashboard`` block, a ``Dashboard = lambda`` assignment and finally
a bare markup fragment, which is wrapped into a ``Dashboard`` function.
"""

from __future__ import annotations

import re
import textwrap
from dataclasses import dataclass
from typing import List, Optional

from flameview.errors import ExtractionFailure, TranspileError
from flameview.transpiler import transpile

NO_CODE_MESSAGE = "No valid component code found in AI response."

PREFERRED_TAG = "pyx"
ACCEPTED_TAGS = ("pyx", "python", "py", "jsx")

_FENCE = re.compile(r"```[ \t]*([A-Za-z0-9_+-]*)[ \t]*\r?\n(.*?)```", re.DOTALL)
_FUNCTION_START = re.compile(r"^def[ \t]+Dashboard[ \t]*\(", re.MULTILINE)
_LAMBDA_START = re.compile(r"^Dashboard[ \t]*=[ \t]*lambda\b", re.MULTILINE)
_MARKUP = re.compile(r"<([A-Za-z][\w.]*)\b[^<>]*>.*</\1[ \t]*>|<([A-Za-z][\w.]*)\b[^<>]*/>", re.DOTALL)
_BULLET = re.compile(r"^[ \t]*(?:[-*•]|\d+[.)])[ \t]+(.+?)[ \t]*$")


@dataclass(frozen=True)
class ExtractedResponse:
    code: str
    summary: Optional[str] = None
    method: str = "fence"


def _indented_block(text: str, start: int) -> str:
    """Return the statement at ``start`` plus every following indented line."""
    lines = text[start:].split("\n")
    block: List[str] = [lines[0]]
    for line in lines[1:]:
        if line.strip() and not line[:1].isspace():
            break
        block.append(line)
    return "\n".join(block).rstrip()


def _complete_statement(text: str, start: int) -> str:
    """Return the shortest run of lines from ``start`` that transpiles.

    An expression statement may close its brackets on an unindented line,
    so the indented block is only a lower bound.
    """
    block = _indented_block(text, start)
    lines = text[start:].split("\n")
    for end in range(block.count("\n") + 1, len(lines) + 1):
        candidate = "\n".join(lines[:end]).rstrip()
        try:
            transpile(candidate)
        except TranspileError:
            continue
        return candidate
    return block


def _fenced(text: str) -> Optional[re.Match]:
    fences = [match for match in _FENCE.finditer(text) if match.group(2).strip()]
    for tag in ACCEPTED_TAGS:
        for match in fences:
            if match.group(1).lower() == tag:
                return match
    return None


def wrap_markup(fragment: str) -> str:
    body = textwrap.indent(textwrap.dedent(fragment).strip(), "        ")
    return f"def Dashboard(data):\n    return (\n{body}\n    )\n"


def extract_summary(preamble: str) -> Optional[str]:
    """Bullet lines before the code block, or the prose if there are none."""
    bullets = []
    for line in preamble.splitlines():
        match = _BULLET.match(line)
        if match:
            bullets.append(f"- {match.group(1)}")
    if bullets:
        return "\n".join(bullets)
    prose = preamble.strip()
    return prose or None


def extract_source(response: str) -> ExtractedResponse:
    """Pull component source (and a summary) out of ``response``.

    Raises:
        ExtractionFailure: when none of the patterns match.
    """
    if not isinstance(response, str) or not response.strip():
        raise ExtractionFailure(NO_CODE_MESSAGE, hint="The model returned an empty response.")

    text = response.replace("\r\n", "\n")
    fence = _fenced(text)
    if fence is not None:
        return ExtractedResponse(
            code=fence.group(2).strip("\n").rstrip(),
            summary=extract_summary(text[: fence.start()]),
            method="fence",
        )

    function = _FUNCTION_START.search(text)
    if function is not None:
        return ExtractedResponse(
            code=_indented_block(text, function.start()),
            summary=extract_summary(text[: function.start()]),
            method="function",
        )

    assignment = _LAMBDA_START.search(text)
    if assignment is not None:
        return ExtractedResponse(
            code=_complete_statement(text, assignment.start()),
            summary=extract_summary(text[: assignment.start()]),
            method="lambda",
        )

    markup = _MARKUP.search(text)
    if markup is not None:
        return ExtractedResponse(
            code=wrap_markup(markup.group(0)),
            summary=extract_summary(text[: markup.start()]),
            method="markup",
        )

    raise ExtractionFailure(NO_CODE_MESSAGE)


__all__ = [
    "ACCEPTED_TAGS",
    "ExtractedResponse",
    "NO_CODE_MESSAGE",
    "PREFERRED_TAG",
    "extract_source",
    "extract_summary",
    "wrap_markup",
]
