"""The capability set: every name generated code is allowed to see."""

from __future__ import annotations

import builtins
import types
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Tuple

from flameview.rendering import Fragment, h, use_effect, use_memo, use_state
from flameview.rendering.charts import CHART_PRIMITIVES, ChartPrimitive

_SAFE_BUILTIN_NAMES = (
    "abs",
    "all",
    "any",
    "bool",
    "dict",
    "enumerate",
    "filter",
    "float",
    "format",
    "int",
    "isinstance",
    "len",
    "list",
    "map",
    "max",
    "min",
    "range",
    "reversed",
    "round",
    "set",
    "sorted",
    "str",
    "sum",
    "tuple",
    "zip",
    "Exception",
    "ValueError",
    "TypeError",
    "KeyError",
    "IndexError",
)

SAFE_BUILTINS: Mapping[str, Any] = MappingProxyType(
    {name: getattr(builtins, name) for name in _SAFE_BUILTIN_NAMES}
)

# Builtins that must never be handed to generated code under any name.
FORBIDDEN_BUILTINS = frozenset(
    id(getattr(builtins, name))
    for name in (
        "eval",
        "exec",
        "compile",
        "open",
        "__import__",
        "getattr",
        "setattr",
        "delattr",
        "globals",
        "locals",
        "vars",
        "input",
        "breakpoint",
        "memoryview",
        "type",
        "object",
    )
)


# Frame, code and traceback attributes; any of them leads back to the
# host's real globals and builtins.
INTROSPECTION_ATTRIBUTES = frozenset(
    (
        "gi_frame",
        "gi_code",
        "gi_yieldfrom",
        "cr_frame",
        "cr_code",
        "cr_await",
        "ag_frame",
        "ag_code",
        "ag_await",
        "f_back",
        "f_globals",
        "f_builtins",
        "f_locals",
        "f_code",
        "tb_frame",
        "tb_next",
    )
)


class CapabilitySet(Mapping[str, Any]):
    """Read-only mapping of capability names to implementations.

    Modules, dynamic-evaluation builtins and non-identifier names are
    refused when the set is built, so a set is valid by construction.
    """

    def __init__(self, entries: Mapping[str, Any]) -> None:
        checked: Dict[str, Any] = {}
        for name, value in entries.items():
            if not isinstance(name, str) or not name.isidentifier() or name.startswith("_"):
                raise ValueError(f"Capability name {name!r} is not a public identifier")
            if isinstance(value, types.ModuleType):
                raise ValueError(f"Capability {name!r} must not be a module")
            if id(value) in FORBIDDEN_BUILTINS:
                raise ValueError(f"Capability {name!r} exposes a forbidden builtin")
            checked[name] = value
        self._entries = MappingProxyType(checked)

    def __getitem__(self, name: str) -> Any:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"CapabilitySet({', '.join(self._entries)})"

    def names(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    def values(self) -> Tuple[Any, ...]:  # type: ignore[override]
        return tuple(self._entries.values())

    def chart_names(self) -> Tuple[str, ...]:
        return tuple(name for name, value in self._entries.items() if isinstance(value, ChartPrimitive))

    def primitive_names(self) -> Tuple[str, ...]:
        return tuple(name for name, value in self._entries.items() if not isinstance(value, ChartPrimitive))

    def extend(self, extra: Mapping[str, Any]) -> "CapabilitySet":
        """Return a new set with ``extra`` added; this one is left untouched."""
        merged = dict(self._entries)
        merged.update(extra)
        return CapabilitySet(merged)


DEFAULT_CAPABILITIES = CapabilitySet(
    {
        "h": h,
        "Fragment": Fragment,
        "use_state": use_state,
        "use_effect": use_effect,
        "use_memo": use_memo,
        **CHART_PRIMITIVES,
    }
)


__all__ = [
    "CapabilitySet",
    "DEFAULT_CAPABILITIES",
    "FORBIDDEN_BUILTINS",
    "INTROSPECTION_ATTRIBUTES",
    "SAFE_BUILTINS",
]
