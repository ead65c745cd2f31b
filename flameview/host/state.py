"""Render host state values."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from flameview.errors import FlameViewError
from flameview.sandbox import CompiledComponent


class RenderStatus(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    CODE_ERROR = "code_error"
    RUNTIME_FAULT = "runtime_fault"


@dataclass(frozen=True)
class RenderState:
    """One value of the host's state machine.

    ``component`` is set for ``READY`` and kept for ``RUNTIME_FAULT`` so a
    retry can reuse it. ``category`` names the failing step of a
    ``CODE_ERROR`` (``sanitization``, ``transpile``, ``build``,
    ``extraction`` or ``collaborator``).
    """

    status: RenderStatus
    component: Optional[CompiledComponent] = None
    message: Optional[str] = None
    category: Optional[str] = None
    error: Optional[FlameViewError] = None

    @classmethod
    def empty(cls) -> "RenderState":
        return cls(RenderStatus.EMPTY)

    @classmethod
    def loading(cls) -> "RenderState":
        return cls(RenderStatus.LOADING)

    @classmethod
    def ready(cls, component: CompiledComponent) -> "RenderState":
        return cls(RenderStatus.READY, component=component)

    @classmethod
    def code_error(cls, error: FlameViewError) -> "RenderState":
        return cls(RenderStatus.CODE_ERROR, message=error.message, category=error.category, error=error)

    @classmethod
    def runtime_fault(cls, error: FlameViewError, component: CompiledComponent) -> "RenderState":
        return cls(
            RenderStatus.RUNTIME_FAULT,
            component=component,
            message=error.message,
            category=error.category,
            error=error,
        )

    @property
    def is_ready(self) -> bool:
        return self.status is RenderStatus.READY


__all__ = ["RenderState", "RenderStatus"]
