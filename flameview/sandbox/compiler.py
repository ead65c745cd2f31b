"""Sanitize, transpile and build in one step with a typed outcome."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from flameview.errors import BuildError, FlameViewError, SanitizationRejected, TranspileError
from flameview.source import GeneratedSource
from flameview.transpiler import TranspiledBody, transpile

from .capabilities import DEFAULT_CAPABILITIES, CapabilitySet
from .factory import CompiledComponent, build
from .sanitizer import sanitize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompileResult:
    component: Optional[CompiledComponent] = None
    error: Optional[FlameViewError] = None
    body: Optional[TranspiledBody] = None

    @property
    def ok(self) -> bool:
        return self.component is not None

    @property
    def stage(self) -> str:
        """``"ready"`` or the category of the failing step."""
        if self.error is None:
            return "ready"
        return self.error.category


def compile_component(
    source: Union[GeneratedSource, str],
    capabilities: CapabilitySet = DEFAULT_CAPABILITIES,
) -> CompileResult:
    """Run ``source`` through the sanitizer, the transpiler and the factory.

    A rejected or failing step stops the chain; later steps never see the
    text.
    """
    generated = source if isinstance(source, GeneratedSource) else GeneratedSource(text=source)

    verdict = sanitize(generated.text)
    if not verdict.accepted:
        logger.info("Generated code rejected by sanitizer: %s", verdict.reason)
        error: SanitizationRejected = verdict.to_error()
        return CompileResult(error=error)

    try:
        body = transpile(generated.text)
    except TranspileError as exc:
        logger.info("Generated code failed to transpile: %s", exc.format())
        return CompileResult(error=exc)

    try:
        component = build(body, capabilities, source=generated)
    except BuildError as exc:
        logger.info("Generated code failed to build: %s", exc.format())
        return CompileResult(error=exc, body=body)

    logger.debug("Built component from %s lowered elements", body.element_count)
    return CompileResult(component=component, body=body)


__all__ = ["CompileResult", "compile_component"]
