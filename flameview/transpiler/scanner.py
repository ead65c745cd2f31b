"""Lexical helpers shared by the markup lowerer and the declaration stripper.

The scanner only knows enough about Python to step over string literals
and comments; everything else is left to :func:`ast.parse`.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from flameview.errors import TranspileError

# A string literal start: optional prefix followed by the opening quote(s).
_STRING_START = re.compile(r"(?i)(?:rb|br|fr|rf|[rbuf])?('''|\"\"\"|'|\")")

_IDENTIFIER = re.compile(r"[^\W\d]\w*")
_NUMBER = re.compile(r"\d[\w.]*|\.\d[\w.]*")


def line_col(text: str, pos: int) -> Tuple[int, int]:
    """Return the 1-based (line, column) of ``pos`` in ``text``."""
    line = text.count("\n", 0, pos) + 1
    last_newline = text.rfind("\n", 0, pos)
    return line, pos - last_newline


def error_at(text: str, pos: int, message: str, *, path: Optional[str] = None, hint: Optional[str] = None) -> TranspileError:
    line, column = line_col(text, pos)
    return TranspileError(message, path=path, line=line, column=column, hint=hint)


def match_string_start(text: str, pos: int) -> Optional[re.Match]:
    return _STRING_START.match(text, pos)


def string_end(text: str, pos: int, *, path: Optional[str] = None) -> Optional[int]:
    """Return the offset just past the string literal starting at ``pos``.

    Returns ``None`` when no string literal starts at ``pos``.
    """
    match = _STRING_START.match(text, pos)
    if match is None:
        return None
    quote = match.group(1)
    index = match.end()
    length = len(text)
    while index < length:
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if text.startswith(quote, index):
            return index + len(quote)
        if char == "\n" and len(quote) == 1:
            break
        index += 1
    raise error_at(text, pos, "Unterminated string literal", path=path)


def read_identifier(text: str, pos: int) -> Optional[re.Match]:
    return _IDENTIFIER.match(text, pos)


def read_number(text: str, pos: int) -> Optional[re.Match]:
    return _NUMBER.match(text, pos)


def comment_end(text: str, pos: int) -> int:
    newline = text.find("\n", pos)
    return len(text) if newline < 0 else newline


def skip_whitespace(text: str, pos: int) -> int:
    length = len(text)
    while pos < length and text[pos].isspace():
        pos += 1
    return pos


def literal_spans(text: str, *, path: Optional[str] = None) -> List[Tuple[int, int]]:
    """Return ``(start, end)`` offsets of every string literal and comment.

    Only valid for plain Python; markup text would confuse it.
    """
    spans: List[Tuple[int, int]] = []
    pos = 0
    length = len(text)
    while pos < length:
        char = text[pos]
        if char == "#":
            end = comment_end(text, pos)
            spans.append((pos, end))
            pos = end
            continue
        if char.isalpha() or char == "_":
            if char in "rRbBuUfF":
                end = string_end(text, pos, path=path)
                if end is not None:
                    spans.append((pos, end))
                    pos = end
                    continue
            word = read_identifier(text, pos)
            pos = word.end() if word else pos + 1
            continue
        if char in "'\"":
            end = string_end(text, pos, path=path)
            spans.append((pos, end))
            pos = end
            continue
        pos += 1
    return spans


def inside_spans(spans: List[Tuple[int, int]], pos: int) -> bool:
    for start, end in spans:
        if start <= pos < end:
            return True
        if start > pos:
            break
    return False
