"""HTML serialisation of render trees.

Charts are drawn in the browser by Chart.js: every ``chart`` node becomes a
``<canvas>`` and a configuration object appended to the page script.
"""

from __future__ import annotations

import html
import json
import re
from typing import Any, Dict, List, Optional, Tuple

from .elements import RenderNode

CHART_JS_CDN = "https://cdn.jsdelivr.net/npm/chart.js"

SERIES_PALETTE: Tuple[str, ...] = (
    "#8884D8",
    "#82CA9D",
    "#FFC658",
    "#FF8042",
    "#0088FE",
    "#00C49F",
    "#FFBB28",
    "#A4DE6C",
)

_CHART_JS_TYPES = {"bar": "bar", "line": "line", "area": "line", "pie": "pie", "scatter": "scatter"}

_VOID_TAGS = frozenset({"area", "br", "col", "hr", "img", "input", "link", "meta", "source", "wbr"})

_UNITLESS = frozenset(
    {"opacity", "zIndex", "fontWeight", "lineHeight", "flex", "flexGrow", "flexShrink", "order", "zoom"}
)

_ATTRIBUTE_ALIASES = {"className": "class", "htmlFor": "for"}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _hex_to_rgb(value: str) -> Optional[Tuple[int, int, int]]:
    hex_value = value.strip().lstrip("#")
    if len(hex_value) not in {3, 6}:
        return None
    if len(hex_value) == 3:
        hex_value = "".join(ch * 2 for ch in hex_value)
    try:
        return int(hex_value[0:2], 16), int(hex_value[2:4], 16), int(hex_value[4:6], 16)
    except ValueError:
        return None


def _with_alpha(color: str, alpha: float) -> str:
    rgb = _hex_to_rgb(color) if color.startswith("#") else None
    if rgb is None:
        return color
    return f"rgba({rgb[0]}, {rgb[1]}, {rgb[2]}, {alpha:.3f})"


def style_to_css(style: Dict[str, Any]) -> str:
    """``{"fontSize": 14}`` -> ``"font-size: 14px"``."""
    declarations = []
    for name, value in style.items():
        if value is None or value is False:
            continue
        prop = _CAMEL_BOUNDARY.sub("-", str(name)).lower()
        if isinstance(value, (int, float)) and not isinstance(value, bool) and name not in _UNITLESS and value != 0:
            value = f"{value}px"
        declarations.append(f"{prop}: {value}")
    return "; ".join(declarations)


def _attributes(props: Dict[str, Any]) -> str:
    parts: List[str] = []
    for name, value in props.items():
        if value is None or value is False or callable(value):
            continue
        attr = _ATTRIBUTE_ALIASES.get(name, name)
        if name == "style" and isinstance(value, dict):
            value = style_to_css(value)
        elif value is True:
            parts.append(attr)
            continue
        elif isinstance(value, (dict, list, tuple)):
            value = json.dumps(value, default=str)
        parts.append(f'{attr}="{html.escape(str(value), quote=True)}"')
    return (" " + " ".join(parts)) if parts else ""


def _series_dataset(series: RenderNode, chart_kind: str, index: int) -> Dict[str, Any]:
    props = series.props
    points = props.get("points") or []
    base = props.get("fill") or props.get("stroke") or SERIES_PALETTE[index % len(SERIES_PALETTE)]
    dataset: Dict[str, Any] = {"label": props.get("name") or props.get("dataKey") or f"Series {index + 1}"}
    kind = props.get("kind") or chart_kind

    if kind == "pie":
        colors = props.get("colors") or [
            SERIES_PALETTE[position % len(SERIES_PALETTE)] for position in range(len(points))
        ]
        dataset["data"] = [point.get("value") for point in points]
        dataset["backgroundColor"] = colors
        return dataset
    if kind == "scatter":
        dataset["data"] = [{"x": point.get("x"), "y": point.get("y")} for point in points]
    else:
        dataset["data"] = [point.get("y") for point in points]

    dataset["borderColor"] = props.get("stroke") or base
    if kind in {"line", "area"}:
        dataset["backgroundColor"] = _with_alpha(base, 0.25)
        dataset["fill"] = kind == "area"
        dataset["tension"] = 0.3 if props.get("type") in {"monotone", "natural"} else 0
    else:
        dataset["backgroundColor"] = _with_alpha(base, 0.65)
    if props.get("colors"):
        dataset["backgroundColor"] = props["colors"]
    return dataset


def build_chart_config(chart: RenderNode) -> Dict[str, Any]:
    """Translate a ``chart`` node into a Chart.js configuration."""
    kind = chart.props.get("kind") or "bar"
    series = [child for child in chart.children if isinstance(child, RenderNode) and child.tag == "series"]
    datasets = [_series_dataset(node, kind, index) for index, node in enumerate(series)]

    labels: List[Any] = []
    if series:
        first_points = series[0].props.get("points") or []
        key = "name" if kind == "pie" else "x"
        if kind != "scatter":
            labels = [point.get(key) for point in first_points]

    decorations = {
        child.props.get("kind")
        for child in chart.children
        if isinstance(child, RenderNode) and child.tag == "decoration"
    }
    options: Dict[str, Any] = {
        "responsive": True,
        "maintainAspectRatio": False,
        "plugins": {
            "legend": {"display": "legend" in decorations or kind == "pie"},
            "tooltip": {"enabled": "tooltip" in decorations},
        },
    }
    if kind not in {"pie"}:
        grid = "grid" in decorations
        options["scales"] = {"x": {"grid": {"display": grid}}, "y": {"grid": {"display": grid}}}
        if chart.props.get("layout") == "vertical":
            options["indexAxis"] = "y"

    config: Dict[str, Any] = {
        "type": _CHART_JS_TYPES.get(kind, "bar"),
        "data": {"datasets": datasets},
        "options": options,
    }
    if labels:
        config["data"]["labels"] = labels
    return config


class _HtmlWriter:
    def __init__(self) -> None:
        self.charts: List[Tuple[str, Dict[str, Any]]] = []

    def write(self, node: Any) -> str:
        if isinstance(node, str):
            return html.escape(node)
        if node.tag == "chart":
            return self._write_chart(node)
        if node.tag == "fragment":
            return "".join(self.write(child) for child in node.children)
        if node.tag in {"series", "axis", "decoration", "cell"}:
            return ""
        attrs = _attributes(node.props)
        if node.tag in _VOID_TAGS:
            return f"<{node.tag}{attrs}>"
        inner = "".join(self.write(child) for child in node.children)
        return f"<{node.tag}{attrs}>{inner}</{node.tag}>"

    def _write_chart(self, node: RenderNode) -> str:
        chart_id = f"fv-chart-{len(self.charts)}"
        self.charts.append((chart_id, build_chart_config(node)))
        style = {"width": node.props.get("width") or "100%", "height": node.props.get("height") or 300}
        style_attr = html.escape(style_to_css(style), quote=True)
        return (
            f'<div class="fv-chart fv-chart--{html.escape(str(node.props.get("kind") or "bar"))}" '
            f'style="{style_attr}"><canvas id="{chart_id}"></canvas></div>'
        )


def to_html(node: RenderNode) -> str:
    """Serialise a tree to an HTML fragment (charts become empty canvases)."""
    return _HtmlWriter().write(node)


def render_page(node: RenderNode, *, title: str = "FlameView dashboard") -> str:
    """Serialise a tree to a standalone page that draws its charts."""
    writer = _HtmlWriter()
    body = writer.write(node)
    script_lines = []
    for chart_id, config in writer.charts:
        payload = json.dumps(config, default=str).replace("</", "<\\/")
        script_lines.append(
            f"  new Chart(document.getElementById({json.dumps(chart_id)}), {payload});"
        )
    scripts = ""
    if script_lines:
        scripts = (
            f'<script src="{CHART_JS_CDN}"></script>\n'
            "<script>\n" + "\n".join(script_lines) + "\n</script>\n"
        )
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{html.escape(title)}</title>\n"
        "<style>body{font-family:system-ui,sans-serif;margin:24px}.fv-chart{position:relative}</style>\n"
        "</head>\n"
        "<body>\n"
        f"{body}\n"
        f"{scripts}"
        "</body>\n"
        "</html>\n"
    )


__all__ = ["CHART_JS_CDN", "SERIES_PALETTE", "build_chart_config", "render_page", "style_to_css", "to_html"]
