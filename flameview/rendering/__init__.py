"""Rendering model for generated components.

Components build :class:`Element` trees with :func:`h`; the renderer
resolves them, running component functions under hook frames, into
:class:`RenderNode` trees that serialise to JSON or HTML.
"""

from .charts import CHART_KINDS, CHART_PRIMITIVES, ChartPrimitive
from .elements import Element, Fragment, RenderNode, flatten_children, h
from .hooks import HookStore, use_effect, use_memo, use_state
from .html import CHART_JS_CDN, build_chart_config, render_page, style_to_css, to_html
from .renderer import DEFAULT_MAX_PASSES, Renderer, TooManyRenders, as_node, render_tree

__all__ = [
    "CHART_JS_CDN",
    "CHART_KINDS",
    "CHART_PRIMITIVES",
    "ChartPrimitive",
    "DEFAULT_MAX_PASSES",
    "Element",
    "Fragment",
    "HookStore",
    "RenderNode",
    "Renderer",
    "TooManyRenders",
    "as_node",
    "build_chart_config",
    "flatten_children",
    "h",
    "render_page",
    "render_tree",
    "style_to_css",
    "to_html",
    "use_effect",
    "use_memo",
    "use_state",
]
