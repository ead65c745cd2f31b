"""Element model shared by generated components and the renderer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union


class _FragmentType:
    """Marker type for elements that only group their children."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "Fragment"


Fragment = _FragmentType()


@dataclass(frozen=True)
class Element:
    """An unrendered description of a piece of UI.

    ``type`` is an intrinsic tag name (``"div"``), :data:`Fragment`, or a
    callable component that receives the props as keyword arguments.
    """

    type: Any
    props: Dict[str, Any] = field(default_factory=dict)
    children: Tuple[Any, ...] = ()
    key: Optional[Any] = None

    @property
    def type_name(self) -> str:
        if isinstance(self.type, str):
            return self.type
        if self.type is Fragment:
            return "Fragment"
        return getattr(self.type, "__name__", None) or getattr(self.type, "name", None) or type(self.type).__name__


def flatten_children(children: Iterable[Any]) -> List[Any]:
    """Flatten nested lists/tuples and drop ``None`` and booleans."""
    flat: List[Any] = []
    for child in children:
        if child is None or isinstance(child, bool):
            continue
        if isinstance(child, (list, tuple)) or _is_generator(child):
            flat.extend(flatten_children(child))
            continue
        flat.append(child)
    return flat


def _is_generator(value: Any) -> bool:
    return hasattr(value, "__next__") and hasattr(value, "__iter__") and not isinstance(value, (str, bytes))


def h(type_: Any, props: Optional[Mapping[str, Any]] = None, *children: Any) -> Element:
    """Create an :class:`Element`; the target of lowered markup."""
    if type_ is None:
        raise TypeError("Element type must not be None")
    if props is not None and not isinstance(props, Mapping):
        raise TypeError(f"Element props must be a mapping, got {type(props).__name__}")
    resolved = dict(props or {})
    key = resolved.pop("key", None)
    if not children and "children" in resolved:
        explicit = resolved.pop("children")
        children = tuple(explicit) if isinstance(explicit, (list, tuple)) else (explicit,)
    else:
        resolved.pop("children", None)
    return Element(type=type_, props=resolved, children=tuple(flatten_children(children)), key=key)


@dataclass
class RenderNode:
    """A resolved intrinsic node: the output of rendering."""

    tag: str
    props: Dict[str, Any] = field(default_factory=dict)
    children: List[Union["RenderNode", str]] = field(default_factory=list)

    def iter(self) -> Iterator["RenderNode"]:
        yield self
        for child in self.children:
            if isinstance(child, RenderNode):
                yield from child.iter()

    def find_all(self, tag: str) -> List["RenderNode"]:
        return [node for node in self.iter() if node.tag == tag]

    def find(self, tag: str) -> Optional["RenderNode"]:
        for node in self.iter():
            if node.tag == tag:
                return node
        return None

    def text_content(self) -> str:
        parts: List[str] = []
        for child in self.children:
            if isinstance(child, RenderNode):
                parts.append(child.text_content())
            else:
                parts.append(child)
        return "".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly form; callables (event handlers) are listed by name only."""
        props: Dict[str, Any] = {}
        handlers: List[str] = []
        for name, value in self.props.items():
            if callable(value):
                handlers.append(name)
                continue
            props[name] = _jsonable(value)
        payload: Dict[str, Any] = {
            "tag": self.tag,
            "props": props,
            "children": [child.to_dict() if isinstance(child, RenderNode) else child for child in self.children],
        }
        if handlers:
            payload["handlers"] = sorted(handlers)
        return payload


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items() if not callable(item)}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(item) for item in value]
    if isinstance(value, RenderNode):
        return value.to_dict()
    isoformat = getattr(value, "isoformat", None)
    if callable(isoformat):
        return isoformat()
    return str(value)
