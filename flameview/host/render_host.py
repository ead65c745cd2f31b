"""The render host: owner of the current generated component."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Mapping, Optional, Union

from flameview.errors import FlameViewError, RuntimeFault
from flameview.observability import log_render_transition
from flameview.rendering import HookStore, RenderNode, render_tree
from flameview.rendering.renderer import DEFAULT_MAX_PASSES
from flameview.sandbox import DEFAULT_CAPABILITIES, CapabilitySet, CompiledComponent, CompileResult, compile_component
from flameview.source import GeneratedSource

from . import panels
from .state import RenderState, RenderStatus

logger = logging.getLogger(__name__)


class RenderHost:
    """Holds at most one current component and isolates its render faults.

    Compiled components (and compile failures) are memoised by source
    text, so an identical text yields the identical component object and
    new data never triggers a rebuild. Nothing a generated component does
    while rendering escapes :meth:`render` or :meth:`view`.
    """

    def __init__(
        self,
        capabilities: CapabilitySet = DEFAULT_CAPABILITIES,
        *,
        max_render_passes: int = DEFAULT_MAX_PASSES,
        cache_size: int = 8,
    ) -> None:
        self.capabilities = capabilities
        self.max_render_passes = max_render_passes
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, CompileResult]" = OrderedDict()
        self._state = RenderState.empty()
        self._source: Optional[GeneratedSource] = None
        self._hooks = HookStore()
        self.compile_count = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def state(self) -> RenderState:
        return self._state

    @property
    def status(self) -> RenderStatus:
        return self._state.status

    @property
    def component(self) -> Optional[CompiledComponent]:
        return self._state.component

    @property
    def source(self) -> Optional[GeneratedSource]:
        return self._source

    def _transition(self, new_state: RenderState, *, reason: Optional[str] = None) -> RenderState:
        previous = self._state
        if previous.component is not new_state.component:
            # a different component starts from fresh hook state
            self._hooks.reset()
        self._state = new_state
        log_render_transition(previous.status.value, new_state.status.value, reason=reason, logger=logger)
        return new_state

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def set_loading(self) -> RenderState:
        return self._transition(RenderState.loading(), reason="generation started")

    def set_source(self, source: Union[GeneratedSource, str, None]) -> RenderState:
        """Install new component source; ``None`` clears the host."""
        if source is None:
            self._source = None
            return self._transition(RenderState.empty(), reason="source cleared")

        generated = source if isinstance(source, GeneratedSource) else GeneratedSource(text=source)
        self._source = generated
        result = self._compile(generated)
        if result.ok:
            return self._transition(RenderState.ready(result.component), reason="component built")
        return self._transition(RenderState.code_error(result.error), reason=result.error.category)

    def report_failure(self, error: FlameViewError) -> RenderState:
        """Show a failure that happened before any source existed for the turn."""
        return self._transition(RenderState.code_error(error), reason=error.category)

    def retry(self) -> RenderState:
        """Leave ``RUNTIME_FAULT`` for ``READY`` with the same component."""
        if self._state.status is not RenderStatus.RUNTIME_FAULT:
            return self._state
        component = self._state.component
        self._hooks.reset()
        return self._transition(RenderState.ready(component), reason="retry")

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render(self, data: Mapping[str, Any]) -> Optional[RenderNode]:
        """Render the current component, or return ``None`` if there is none.

        A component that raises moves the host to ``RUNTIME_FAULT``.
        """
        if self._state.status is not RenderStatus.READY:
            return None
        component = self._state.component
        try:
            return component.render(data, self._hooks, max_passes=self.max_render_passes)
        except Exception as exc:  # noqa: BLE001 - render boundary
            logger.warning("Generated component failed while rendering: %s", exc, exc_info=True)
            fault = RuntimeFault(f"{type(exc).__name__}: {exc}")
            fault.__cause__ = exc
            self._transition(RenderState.runtime_fault(fault, component), reason="render failed")
            return None

    def view(self, data: Optional[Mapping[str, Any]] = None) -> RenderNode:
        """Return a presentation tree for whatever state the host is in."""
        if self._state.status is RenderStatus.READY:
            tree = self.render(data or {})
            if tree is not None:
                return RenderNode("div", {"className": "fv-dashboard"}, [tree])

        status = self._state.status
        if status is RenderStatus.EMPTY:
            panel = panels.empty_panel()
        elif status is RenderStatus.LOADING:
            panel = panels.loading_panel()
        elif status is RenderStatus.CODE_ERROR:
            panel = panels.code_error_panel(self._state.category, self._state.message)
        else:
            panel = panels.runtime_fault_panel(self._state.message)
        return render_tree(panel)

    # ------------------------------------------------------------------
    # Memoisation
    # ------------------------------------------------------------------
    def _compile(self, source: GeneratedSource) -> CompileResult:
        cached = self._cache.get(source.text)
        if cached is not None:
            self._cache.move_to_end(source.text)
            return cached
        result = compile_component(source, self.capabilities)
        self.compile_count += 1
        self._cache[source.text] = result
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
        return result


__all__ = ["RenderHost"]
