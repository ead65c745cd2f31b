"""Error taxonomy for the generation and sandbox pipeline.

Every failure a user can see is a :class:`FlameViewError`. The ``category``
names the pipeline stage that failed and picks the fallback panel the
render host shows; ``code`` is the stable identifier printed by the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class SourcePosition:
    """A point in a generated component, as far as it is known."""

    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def __bool__(self) -> bool:
        return self.path is not None or self.line is not None

    def __str__(self) -> str:
        if self.line is None:
            return self.path or ""
        if self.path:
            text = f"{self.path}:{self.line}"
            return text if self.column is None else f"{text}:{self.column}"
        text = f"line {self.line}"
        return text if self.column is None else f"{text}, column {self.column}"


class FlameViewError(Exception):
    """Base class for every failure surfaced to users."""

    code: Optional[str] = None
    hint: Optional[str] = None
    category: str = "error"

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.position = SourcePosition(path=path, line=line, column=column)
        self.path = path
        self.line = line
        self.column = column
        if code is not None:
            self.code = code
        if hint is not None:
            self.hint = hint

    def details(self) -> List[str]:
        """Stage-specific facts shown after the position."""
        return []

    def format(self) -> str:
        """``message (position; code category; details...) Hint: ...``"""
        meta = []
        if self.position:
            meta.append(str(self.position))
        if self.code:
            meta.append(f"{self.code} {self.category}")
        meta.extend(self.details())
        text = f"{self.message} ({'; '.join(meta)})" if meta else self.message
        if self.hint:
            text = f"{text} Hint: {self.hint}"
        return text


class SanitizationRejected(FlameViewError):
    """Generated code names a deny-listed construct."""

    code = "FV100"
    category = "sanitization"

    def __init__(self, message: str, *, rule: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.rule = rule

    def details(self) -> List[str]:
        return [f"rule '{self.rule}'"] if self.rule else []


class TranspileError(FlameViewError):
    """Component markup cannot be lowered, or the result is not Python."""

    code = "FV200"
    category = "transpile"


class BuildError(FlameViewError):
    """The component cannot be bound to the capability set."""

    code = "FV300"
    category = "build"


class RuntimeFault(FlameViewError):
    code = "FV400"
    category = "runtime"


class ExtractionFailure(FlameViewError):
    """A generation response holds no usable component source."""

    code = "FV500"
    category = "extraction"


class CollaboratorError(FlameViewError):
    """The generation service, data API or document store failed."""

    code = "FV600"
    category = "collaborator"

    def __init__(
        self,
        message: str,
        *,
        collaborator: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.collaborator = collaborator
        self.status_code = status_code

    def details(self) -> List[str]:
        facts = []
        if self.collaborator:
            facts.append(f"from {self.collaborator}")
        if self.status_code is not None:
            facts.append(f"HTTP {self.status_code}")
        return facts


__all__ = [
    "FlameViewError",
    "SanitizationRejected",
    "TranspileError",
    "BuildError",
    "RuntimeFault",
    "ExtractionFailure",
    "CollaboratorError",
    "SourcePosition",
]
