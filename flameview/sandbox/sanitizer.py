"""Lexical screening of generated component source.

This is an early exit, not the security boundary: it refuses text that
names a dynamic-evaluation, function-construction, scheduling or
interpreter-introspection primitive so such code never reaches the
factory. The factory's capability binding is what actually confines
generated code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from flameview.errors import SanitizationRejected

from .capabilities import INTROSPECTION_ATTRIBUTES


@dataclass(frozen=True)
class DenyRule:
    construct: str
    category: str
    pattern: "re.Pattern[str]"


def _rule(construct: str, category: str, pattern: str) -> DenyRule:
    return DenyRule(construct=construct, category=category, pattern=re.compile(pattern))


DYNAMIC_EVALUATION = "dynamic code evaluation"
FUNCTION_CONSTRUCTION = "dynamic function construction"
SCHEDULING = "deferred or interval scheduling"
INTROSPECTION = "interpreter introspection"

DENY_RULES: Tuple[DenyRule, ...] = (
    _rule("eval", DYNAMIC_EVALUATION, r"\beval\b"),
    _rule("exec", DYNAMIC_EVALUATION, r"\bexec\b"),
    _rule("compile", DYNAMIC_EVALUATION, r"\bcompile\b"),
    _rule("__import__", DYNAMIC_EVALUATION, r"\b__import__\b"),
    _rule("importlib", DYNAMIC_EVALUATION, r"\bimportlib\b"),
    _rule("globals", DYNAMIC_EVALUATION, r"\bglobals\s*\("),
    _rule("locals", DYNAMIC_EVALUATION, r"\blocals\s*\("),
    _rule("vars", DYNAMIC_EVALUATION, r"\bvars\s*\("),
    _rule("FunctionType", FUNCTION_CONSTRUCTION, r"\bFunctionType\b"),
    _rule("CodeType", FUNCTION_CONSTRUCTION, r"\bCodeType\b"),
    _rule("Function", FUNCTION_CONSTRUCTION, r"\bFunction\s*\("),
    _rule("setTimeout", SCHEDULING, r"\bsetTimeout\b"),
    _rule("setInterval", SCHEDULING, r"\bsetInterval\b"),
    _rule("threading", SCHEDULING, r"\bthreading\b"),
    _rule("Timer", SCHEDULING, r"\bTimer\s*\("),
    _rule("sched", SCHEDULING, r"\bsched\b"),
    _rule("asyncio", SCHEDULING, r"\basyncio\b"),
    _rule("call_later", SCHEDULING, r"\bcall_later\b"),
    _rule("call_at", SCHEDULING, r"\bcall_at\b"),
    _rule("__builtins__", INTROSPECTION, r"\b__builtins__\b"),
    _rule("__globals__", INTROSPECTION, r"\b__globals__\b"),
    _rule("__subclasses__", INTROSPECTION, r"\b__subclasses__\b"),
    _rule("__code__", INTROSPECTION, r"\b__code__\b"),
    _rule("__class__", INTROSPECTION, r"\b__class__\b"),
    _rule("__bases__", INTROSPECTION, r"\b__bases__\b"),
    _rule("__mro__", INTROSPECTION, r"\b__mro__\b"),
    *(
        _rule(name, INTROSPECTION, rf"\b{name}\b")
        for name in sorted(INTROSPECTION_ATTRIBUTES)
    ),
)


@dataclass(frozen=True)
class SanitizationVerdict:
    """``Accepted`` when ``accepted`` is true, otherwise ``Rejected{reason}``."""

    accepted: bool
    reason: Optional[str] = None
    construct: Optional[str] = None
    category: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def __bool__(self) -> bool:
        return self.accepted

    def to_error(self, *, path: Optional[str] = None) -> SanitizationRejected:
        return SanitizationRejected(
            self.reason or "Generated code was rejected",
            rule=self.construct,
            path=path,
            line=self.line,
            column=self.column,
            hint="The component may only use the provided rendering and chart primitives.",
        )

    def raise_for_rejection(self, *, path: Optional[str] = None) -> None:
        if not self.accepted:
            raise self.to_error(path=path)


ACCEPTED = SanitizationVerdict(accepted=True)


def sanitize(text: str) -> SanitizationVerdict:
    """Screen ``text`` against the deny-list; the earliest match wins."""
    if not isinstance(text, str):
        return SanitizationVerdict(
            accepted=False,
            reason=f"Generated code must be text, got {type(text).__name__}",
        )

    earliest = None
    for rule in DENY_RULES:
        match = rule.pattern.search(text)
        if match is not None and (earliest is None or match.start() < earliest[1].start()):
            earliest = (rule, match)
    if earliest is None:
        return ACCEPTED

    rule, match = earliest
    line = text.count("\n", 0, match.start()) + 1
    column = match.start() - text.rfind("\n", 0, match.start())
    return SanitizationVerdict(
        accepted=False,
        reason=f"Disallowed construct '{rule.construct}' ({rule.category})",
        construct=rule.construct,
        category=rule.category,
        line=line,
        column=column,
    )


__all__ = ["ACCEPTED", "DENY_RULES", "DenyRule", "SanitizationVerdict", "sanitize"]
