"""Removal of module-level import/export declarations.

Generated components receive every dependency through the capability
set, so import statements are dropped outright. Export declarations
(``__all__`` assignments, and ``export`` prefixes leaked from JavaScript
habits) are removed so the factory sees bare function definitions.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .scanner import comment_end, inside_spans, literal_spans, string_end

_IMPORT_STATEMENT = re.compile(r"[ \t]*(?:from[ \t]+\.*[\w.]*[ \t]+import\b|import\b)")
_NAMED_EXPORT = re.compile(r"[ \t]*(?:__all__\b|export[ \t]*\{)")
_EXPORT_PREFIX = re.compile(r"([ \t]*)export[ \t]+(?:default[ \t]+)?(?=[A-Za-z_])")
_BLANK_RUN = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")
_LEADING_BLANK_LINES = re.compile(r"\A(?:[ \t]*\n)+")


def _statement_end(text: str, pos: int, path: Optional[str]) -> int:
    """Offset just past the logical line that starts at ``pos``."""
    depth = 0
    length = len(text)
    while pos < length:
        char = text[pos]
        if char == "#":
            pos = comment_end(text, pos)
            continue
        if char in "'\"":
            pos = string_end(text, pos, path=path)
            continue
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth = max(depth - 1, 0)
        elif char == "\\" and text.startswith("\n", pos + 1):
            pos += 2
            continue
        elif char == "\n" and depth == 0:
            return pos + 1
        pos += 1
    return length


def strip_declarations(text: str, *, path: Optional[str] = None) -> str:
    """Drop import statements and export declarations, leaving strings alone."""
    spans = literal_spans(text, path=path)
    out: List[str] = []
    pos = 0
    length = len(text)
    while pos < length:
        newline = text.find("\n", pos)
        line_end = length if newline < 0 else newline + 1
        if not inside_spans(spans, pos):
            if _IMPORT_STATEMENT.match(text, pos) or _NAMED_EXPORT.match(text, pos):
                pos = _statement_end(text, pos, path)
                continue
            prefix = _EXPORT_PREFIX.match(text, pos)
            if prefix is not None:
                out.append(prefix.group(1))
                out.append(text[prefix.end() : line_end])
                pos = line_end
                continue
        out.append(text[pos:line_end])
        pos = line_end
    return "".join(out)


def collapse_blank_lines(text: str, *, path: Optional[str] = None) -> str:
    """Squeeze runs of blank lines to one and trim the edges."""
    spans = literal_spans(text, path=path)

    def _replace(match: re.Match) -> str:
        if inside_spans(spans, match.start()):
            return match.group(0)
        return "\n\n"

    collapsed = _BLANK_RUN.sub(_replace, text)
    return _LEADING_BLANK_LINES.sub("", collapsed).rstrip()
