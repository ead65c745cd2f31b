"""The closed chart vocabulary exposed to generated components.

The names mirror the Recharts component set that generation prompts are
written against. Each primitive is a component: the renderer calls it
with its props and unresolved children, and it answers with plain
``chart``/``series``/``axis``/``decoration``/``cell`` elements that the
JSON and HTML serialisers understand.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from .elements import Element, flatten_children

CHART_KINDS = ("bar", "line", "pie", "area", "scatter")


def _rows(value: Any, owner: str) -> List[Mapping[str, Any]]:
    if value is None:
        return []
    if isinstance(value, Mapping) or isinstance(value, (str, bytes)):
        raise TypeError(f"{owner} data must be a list of rows, got {type(value).__name__}")
    rows = list(value)
    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise TypeError(
                f"{owner} row {index} must be a mapping, got {type(row).__name__}"
            )
    return rows


class ChartPrimitive:
    """Base class for chart components."""

    role = "primitive"

    def __init__(self, name: str, kind: Optional[str] = None) -> None:
        self.name = name
        self.kind = kind
        self.__name__ = name

    def __repr__(self) -> str:
        return f"<chart primitive {self.name}>"

    def __call__(self, children: Sequence[Any] = (), **props: Any) -> Any:
        return self.render(dict(props), flatten_children(children))

    def render(self, props: Dict[str, Any], children: List[Any]) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError


def _is_role(child: Any, role: str) -> bool:
    return isinstance(child, Element) and isinstance(child.type, ChartPrimitive) and child.type.role == role


class ChartContainer(ChartPrimitive):
    """``BarChart``, ``LineChart`` and friends.

    The container shares its ``data`` rows and the axis keys with its
    series children, so ``<Bar dataKey="count" />`` needs no data of its own.
    """

    role = "container"

    def render(self, props: Dict[str, Any], children: List[Any]) -> Element:
        rows = _rows(props.pop("data", None), self.name)
        x_key = props.pop("xKey", None)
        y_key = props.pop("yKey", None)
        for child in children:
            if _is_role(child, "axis"):
                axis = child.type.kind
                if axis == "x" and x_key is None:
                    x_key = child.props.get("dataKey")
                elif axis == "y" and y_key is None:
                    y_key = child.props.get("dataKey")

        shared = {"chartData": rows, "xKey": x_key, "yKey": y_key}
        resolved: List[Any] = []
        for child in children:
            if _is_role(child, "series"):
                child = Element(child.type, {**shared, **child.props}, child.children, child.key)
            resolved.append(child)

        chart_props = {"kind": self.kind, "data": rows, "xKey": x_key, "yKey": y_key}
        chart_props.update(props)
        return Element("chart", chart_props, tuple(resolved))


class ChartSeries(ChartPrimitive):
    """A data series: ``Bar``, ``Line``, ``Area``, ``Scatter`` or ``Pie``."""

    role = "series"

    def render(self, props: Dict[str, Any], children: List[Any]) -> Element:
        shared_rows = props.pop("chartData", None)
        x_key = props.pop("xKey", None)
        y_key = props.pop("yKey", None)
        own_rows = props.pop("data", None)
        rows = _rows(own_rows if own_rows is not None else shared_rows, self.name)
        data_key = props.get("dataKey")

        if self.kind == "pie":
            name_key = props.get("nameKey", "name")
            value_key = data_key or "value"
            points = [{"name": row.get(name_key), "value": row.get(value_key)} for row in rows]
        elif self.kind == "scatter":
            x_field = x_key or props.get("xKey") or "x"
            y_field = y_key or data_key or "y"
            points = [{"x": row.get(x_field), "y": row.get(y_field)} for row in rows]
        else:
            if data_key is None:
                raise TypeError(f"{self.name} requires a dataKey")
            points = [
                {"x": row.get(x_key) if x_key else index, "y": row.get(data_key)}
                for index, row in enumerate(rows)
            ]

        colors = [child.props.get("fill") for child in children if _is_role(child, "cell")]
        series_props: Dict[str, Any] = {"kind": self.kind, "points": points}
        if colors:
            series_props["colors"] = colors
        series_props.update(props)
        return Element("series", series_props)


class ChartAxis(ChartPrimitive):
    role = "axis"

    def render(self, props: Dict[str, Any], children: List[Any]) -> Element:
        return Element("axis", {"axis": self.kind, **props})


class ChartDecoration(ChartPrimitive):
    """Grid, tooltip and legend; they only carry options."""

    role = "decoration"

    def render(self, props: Dict[str, Any], children: List[Any]) -> Element:
        return Element("decoration", {"kind": self.kind, **props})


class ChartCell(ChartPrimitive):
    role = "cell"

    def render(self, props: Dict[str, Any], children: List[Any]) -> Element:
        return Element("cell", props)


class ResponsiveContainerPrimitive(ChartPrimitive):
    role = "responsive"

    def render(self, props: Dict[str, Any], children: List[Any]) -> Element:
        style = {"width": props.pop("width", "100%"), "height": props.pop("height", 300)}
        style.update(props.pop("style", None) or {})
        return Element("div", {"className": "fv-responsive", "style": style, **props}, tuple(children))


BarChart = ChartContainer("BarChart", "bar")
LineChart = ChartContainer("LineChart", "line")
PieChart = ChartContainer("PieChart", "pie")
AreaChart = ChartContainer("AreaChart", "area")
ScatterChart = ChartContainer("ScatterChart", "scatter")

Bar = ChartSeries("Bar", "bar")
Line = ChartSeries("Line", "line")
Pie = ChartSeries("Pie", "pie")
Area = ChartSeries("Area", "area")
Scatter = ChartSeries("Scatter", "scatter")

XAxis = ChartAxis("XAxis", "x")
YAxis = ChartAxis("YAxis", "y")

CartesianGrid = ChartDecoration("CartesianGrid", "grid")
Tooltip = ChartDecoration("Tooltip", "tooltip")
Legend = ChartDecoration("Legend", "legend")

Cell = ChartCell("Cell")
ResponsiveContainer = ResponsiveContainerPrimitive("ResponsiveContainer")

CHART_PRIMITIVES: Dict[str, ChartPrimitive] = {
    primitive.name: primitive
    for primitive in (
        BarChart,
        Bar,
        LineChart,
        Line,
        PieChart,
        Pie,
        Cell,
        AreaChart,
        Area,
        ScatterChart,
        Scatter,
        XAxis,
        YAxis,
        CartesianGrid,
        Tooltip,
        Legend,
        ResponsiveContainer,
    )
}


__all__ = [
    "CHART_KINDS",
    "CHART_PRIMITIVES",
    "ChartAxis",
    "ChartCell",
    "ChartContainer",
    "ChartDecoration",
    "ChartPrimitive",
    "ChartSeries",
    "ResponsiveContainerPrimitive",
    *CHART_PRIMITIVES,
]
