"""Resolution of element trees into plain :class:`RenderNode` trees."""

from __future__ import annotations

import logging
from numbers import Number
from typing import Any, Callable, List, Optional, Union

from .elements import Element, Fragment, RenderNode, flatten_children
from .hooks import HookStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 25

Rendered = Union[RenderNode, str]


class TooManyRenders(RuntimeError):
    """State kept changing on every pass."""


class Renderer:
    """Walks an element tree, invoking components under hook frames."""

    def __init__(self, hooks: HookStore) -> None:
        self.hooks = hooks

    def render(self, value: Any, path: str = "root") -> List[Rendered]:
        if value is None or isinstance(value, bool):
            return []
        if isinstance(value, str):
            return [value] if value else []
        if isinstance(value, Number):
            return [str(value)]
        if isinstance(value, RenderNode):
            return [value]
        if isinstance(value, (list, tuple)):
            out: List[Rendered] = []
            for index, child in enumerate(flatten_children(value)):
                out.extend(self.render(child, f"{path}/{_child_key(child, index)}"))
            return out
        if isinstance(value, Element):
            return self._render_element(value, path)
        raise TypeError(
            f"Objects are not valid as a UI child (found: {type(value).__name__}). "
            "Render a list of elements or a string instead."
        )

    def _render_element(self, element: Element, path: str) -> List[Rendered]:
        if isinstance(element.type, str):
            children = self.render(list(element.children), path)
            return [RenderNode(tag=element.type, props=dict(element.props), children=children)]
        if element.type is Fragment:
            return self.render(list(element.children), path)
        if callable(element.type):
            return self._render_component(element.type, element, path)
        raise TypeError(f"Element type is invalid: {element.type!r}")

    def _render_component(self, component: Callable[..., Any], element: Element, path: str) -> List[Rendered]:
        kwargs = dict(element.props)
        if element.children:
            kwargs["children"] = list(element.children)
        with self.hooks.frame(path):
            result = component(**kwargs)
        return self.render(result, f"{path}>")


def _child_key(child: Any, index: int) -> str:
    if isinstance(child, Element):
        if child.key is not None:
            return f"{child.type_name}#{child.key}"
        return f"{index}:{child.type_name}"
    return str(index)


def as_node(rendered: List[Rendered]) -> RenderNode:
    """Collapse a render result into a single root node."""
    if len(rendered) == 1 and isinstance(rendered[0], RenderNode):
        return rendered[0]
    return RenderNode(tag="fragment", props={}, children=list(rendered))


def render_tree(
    element: Any,
    hooks: Optional[HookStore] = None,
    *,
    max_passes: int = DEFAULT_MAX_PASSES,
) -> RenderNode:
    """Render ``element`` until its state settles.

    Each pass renders the whole tree and then commits effects. A pass that
    changed state (during rendering or from an effect) schedules another,
    up to ``max_passes``.
    """
    store = hooks if hooks is not None else HookStore()
    renderer = Renderer(store)
    for _ in range(max(1, max_passes)):
        store.begin_pass()
        rendered = renderer.render(element)
        store.commit()
        if not store.dirty:
            return as_node(rendered)
    logger.debug("Render did not settle after %s passes", max_passes)
    raise TooManyRenders(f"Too many re-renders (gave up after {max_passes} passes)")


__all__ = ["DEFAULT_MAX_PASSES", "Renderer", "TooManyRenders", "as_node", "render_tree"]
