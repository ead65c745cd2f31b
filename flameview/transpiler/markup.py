"""Lowering of tag-based markup into plain element-factory calls.

``<BarChart data={rows}><Bar dataKey="count" /></BarChart>`` becomes::

    h(BarChart, {'data': (rows)}, h(Bar, {'dataKey': 'count'}))

Lower-case tags are intrinsic elements and lower to their name as a
string; capitalised or dotted tags are references resolved against the
capability set (or a component defined by the generated code itself).
Text children follow the JSX whitespace rules.
"""

from __future__ import annotations

import html
import re
from typing import List, Optional, Tuple

from .scanner import (
    comment_end,
    error_at,
    read_identifier,
    read_number,
    skip_whitespace,
    string_end,
)

# Tokens after which a ``<`` opens markup instead of comparing.
_MARKUP_PREFIX_TOKENS = frozenset(
    {
        "(",
        "[",
        "{",
        ",",
        "=",
        ":",
        ";",
        "return",
        "yield",
        "else",
        "and",
        "or",
        "not",
        "in",
        "if",
    }
)

_TAG_NAME = re.compile(r"[A-Za-z_][\w\-]*(?:\.[A-Za-z_]\w*)*")
_ATTRIBUTE_NAME = re.compile(r"[A-Za-z_][\w\-:]*")
_LINE_SPLIT = re.compile(r"\r\n|\n|\r")

_OPENERS = "([{"
_CLOSERS = ")]}"


def clean_text_child(raw: str) -> str:
    """Collapse a markup text run the way JSX does.

    Lines are trimmed except at the outer edges, whitespace-only lines are
    dropped and the survivors are joined by a single space.
    """
    lines = _LINE_SPLIT.split(raw)
    last_non_empty = -1
    for index, line in enumerate(lines):
        if line.strip(" \t"):
            last_non_empty = index

    parts: List[str] = []
    for index, line in enumerate(lines):
        trimmed = line.replace("\t", " ")
        if index != 0:
            trimmed = trimmed.lstrip(" ")
        if index != len(lines) - 1:
            trimmed = trimmed.rstrip(" ")
        if trimmed:
            if index != last_non_empty:
                trimmed += " "
            parts.append(trimmed)
    return html.unescape("".join(parts))


def is_intrinsic(tag: str) -> bool:
    return tag[:1].islower() and "." not in tag


class MarkupLowerer:
    """Rewrites markup expressions inside Python source text."""

    def __init__(
        self,
        text: str,
        *,
        factory: str = "h",
        fragment: str = "Fragment",
        path: Optional[str] = None,
    ) -> None:
        self.text = text
        self.factory = factory
        self.fragment = fragment
        self.path = path
        self.element_count = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def lower(self) -> str:
        code, _ = self._lower_code(0, terminator=None)
        return code

    # ------------------------------------------------------------------
    # Python code regions
    # ------------------------------------------------------------------
    def _lower_code(self, pos: int, terminator: Optional[str]) -> Tuple[str, int]:
        """Copy Python code from ``pos``, lowering any markup found on the way.

        With a ``terminator`` the scan stops at the first unbalanced
        occurrence of it and returns its offset.
        """
        text = self.text
        length = len(text)
        out: List[str] = []
        depth = 0
        previous: Optional[str] = None
        start = pos

        while pos < length:
            char = text[pos]

            if char == "#":
                end = comment_end(text, pos)
                out.append(text[pos:end])
                pos = end
                continue

            if char.isspace() or char == "\\":
                out.append(char)
                pos += 1
                continue

            if char in "'\"" or char in "rRbBuUfF":
                end = string_end(text, pos, path=self.path)
                if end is not None:
                    out.append(text[pos:end])
                    previous = "<string>"
                    pos = end
                    continue

            if char.isalpha() or char == "_":
                word = read_identifier(text, pos)
                if word is not None:
                    out.append(word.group(0))
                    previous = word.group(0)
                    pos = word.end()
                    continue

            if char.isdigit() or (char == "." and text[pos + 1 : pos + 2].isdigit()):
                number = read_number(text, pos)
                out.append(number.group(0))
                previous = "<number>"
                pos = number.end()
                continue

            if char == "<" and self._opens_markup(previous, pos):
                lowered, pos = self._parse_element(pos)
                out.append(lowered)
                previous = ")"
                continue

            if char in _OPENERS:
                depth += 1
            elif char in _CLOSERS:
                if depth == 0 and terminator == char:
                    return "".join(out), pos
                depth = max(depth - 1, 0)

            out.append(char)
            previous = char
            pos += 1

        if terminator is not None:
            raise error_at(
                text,
                start - 1,
                f"Unterminated expression; expected '{terminator}'",
                path=self.path,
            )
        return "".join(out), pos

    def _opens_markup(self, previous: Optional[str], pos: int) -> bool:
        if previous is not None and previous not in _MARKUP_PREFIX_TOKENS:
            return False
        following = self.text[pos + 1 : pos + 2]
        return following == ">" or following.isalpha() or following == "_"

    # ------------------------------------------------------------------
    # Markup regions
    # ------------------------------------------------------------------
    def _parse_element(self, start: int) -> Tuple[str, int]:
        text = self.text
        pos = skip_whitespace(text, start + 1)

        if text.startswith(">", pos):
            children, pos = self._parse_children(pos + 1, None, start)
            return self._emit(None, [], children), pos

        tag_match = _TAG_NAME.match(text, pos)
        if tag_match is None:
            raise error_at(text, pos, "Expected a tag name after '<'", path=self.path)
        tag = tag_match.group(0)
        pos = tag_match.end()

        attributes: List[Tuple[Optional[str], str]] = []
        while True:
            pos = skip_whitespace(text, pos)
            if pos >= len(text):
                raise error_at(text, start, f"Unterminated <{tag}> tag", path=self.path)
            if text.startswith("/>", pos):
                return self._emit(tag, attributes, []), pos + 2
            if text[pos] == ">":
                children, pos = self._parse_children(pos + 1, tag, start)
                return self._emit(tag, attributes, children), pos
            if text[pos] == "{":
                spread, pos = self._parse_spread(pos, tag)
                attributes.append((None, spread))
                continue

            name_match = _ATTRIBUTE_NAME.match(text, pos)
            if name_match is None:
                raise error_at(
                    text,
                    pos,
                    f"Unexpected character {text[pos]!r} in <{tag}> tag",
                    path=self.path,
                )
            name = name_match.group(0)
            pos = skip_whitespace(text, name_match.end())
            if not text.startswith("=", pos):
                attributes.append((name, "True"))
                continue
            value, pos = self._parse_attribute_value(skip_whitespace(text, pos + 1), tag, name)
            attributes.append((name, value))

    def _parse_spread(self, pos: int, tag: str) -> Tuple[str, int]:
        text = self.text
        inner = skip_whitespace(text, pos + 1)
        if text.startswith("**", inner):
            inner += 2
        elif text.startswith("...", inner):
            inner += 3
        else:
            raise error_at(
                text,
                pos,
                f"Expected an attribute spread '{{**mapping}}' in <{tag}> tag",
                path=self.path,
            )
        expression, end = self._lower_code(inner, terminator="}")
        if not expression.strip():
            raise error_at(text, pos, "Attribute spread must not be empty", path=self.path)
        return f"({expression.strip()})", end + 1

    def _parse_attribute_value(self, pos: int, tag: str, name: str) -> Tuple[str, int]:
        text = self.text
        if pos >= len(text):
            raise error_at(text, pos, f"Missing value for attribute '{name}'", path=self.path)
        char = text[pos]
        if char in "'\"":
            close = text.find(char, pos + 1)
            if close < 0:
                raise error_at(
                    text,
                    pos,
                    f"Unterminated value for attribute '{name}' in <{tag}> tag",
                    path=self.path,
                )
            return repr(html.unescape(text[pos + 1 : close])), close + 1
        if char == "{":
            expression, end = self._lower_code(pos + 1, terminator="}")
            if not expression.strip():
                raise error_at(
                    text,
                    pos,
                    f"Attribute '{name}' must not be an empty expression",
                    path=self.path,
                )
            return f"({expression.strip()})", end + 1
        if char == "<":
            return self._parse_element(pos)
        raise error_at(
            text,
            pos,
            f"Attribute '{name}' needs a quoted string or a {{expression}} value",
            path=self.path,
        )

    def _parse_children(self, pos: int, tag: Optional[str], open_pos: int) -> Tuple[List[str], int]:
        text = self.text
        length = len(text)
        label = f"<{tag}>" if tag else "<>"
        children: List[str] = []

        while True:
            if pos >= length:
                raise error_at(
                    text,
                    open_pos,
                    f"Unterminated {label} element",
                    path=self.path,
                    hint=f"Close it with </{tag or ''}>",
                )

            if text.startswith("</", pos):
                return children, self._parse_closing_tag(pos, tag)

            char = text[pos]
            if char == "<":
                child, pos = self._parse_element(pos)
                children.append(child)
                continue

            if char == "{":
                inner = skip_whitespace(text, pos + 1)
                if text.startswith("/*", inner):
                    close = text.find("*/", inner + 2)
                    if close < 0:
                        raise error_at(text, inner, "Unterminated comment", path=self.path)
                    after = skip_whitespace(text, close + 2)
                    if not text.startswith("}", after):
                        raise error_at(text, after, "Expected '}' after comment", path=self.path)
                    pos = after + 1
                    continue
                expression, end = self._lower_code(pos + 1, terminator="}")
                pos = end + 1
                if expression.strip():
                    children.append(f"({expression.strip()})")
                continue

            end = pos
            while end < length and text[end] not in "<{":
                end += 1
            value = clean_text_child(text[pos:end])
            if value:
                children.append(repr(value))
            pos = end

    def _parse_closing_tag(self, pos: int, tag: Optional[str]) -> int:
        text = self.text
        inner = skip_whitespace(text, pos + 2)
        if tag is None:
            name = ""
            end = inner
        else:
            match = _TAG_NAME.match(text, inner)
            name = match.group(0) if match else ""
            end = match.end() if match else inner
        if name != (tag or ""):
            expected = f"</{tag}>" if tag else "</>"
            raise error_at(
                text,
                pos,
                f"Expected corresponding closing tag {expected}, found </{name}>",
                path=self.path,
            )
        end = skip_whitespace(text, end)
        if not text.startswith(">", end):
            raise error_at(text, end, f"Expected '>' to close </{name}>", path=self.path)
        return end + 1

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------
    def _emit(self, tag: Optional[str], attributes: List[Tuple[Optional[str], str]], children: List[str]) -> str:
        self.element_count += 1
        if tag is None:
            type_source = self.fragment
        elif is_intrinsic(tag):
            type_source = repr(tag)
        else:
            type_source = tag

        if attributes:
            entries = []
            for name, value in attributes:
                if name is None:
                    entries.append(f"**{value}")
                else:
                    entries.append(f"{name!r}: {value}")
            props_source = "{" + ", ".join(entries) + "}"
        else:
            props_source = "None"

        arguments = [type_source, props_source, *children]
        return f"{self.factory}({', '.join(arguments)})"


def lower_markup(text: str, *, path: Optional[str] = None) -> Tuple[str, int]:
    """Lower every markup expression in ``text``.

    Returns the rewritten source and the number of elements lowered.
    """
    lowerer = MarkupLowerer(text, path=path)
    code = lowerer.lower()
    return code, lowerer.element_count


__all__ = ["MarkupLowerer", "clean_text_child", "is_intrinsic", "lower_markup"]
