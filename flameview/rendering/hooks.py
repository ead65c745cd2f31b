"""State, effect and memo primitives for generated components.

Hooks are called positionally inside a component function. The renderer
opens a :class:`HookFrame` for every component it invokes; the frame is
keyed by the component's position in the tree so state survives across
render passes as long as the tree keeps its shape.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple

logger = logging.getLogger(__name__)

_SCALARS = (str, bytes, int, float, complex, bool, type(None))

_current_frame: ContextVar[Optional["HookFrame"]] = ContextVar("flameview_hook_frame", default=None)

_UNSET = object()


@dataclass
class _Slot:
    kind: str
    value: Any = None
    deps: Any = _UNSET
    cleanup: Optional[Callable[[], Any]] = None


def _same(left: Any, right: Any) -> bool:
    if left is right:
        return True
    if isinstance(left, _SCALARS) and isinstance(right, _SCALARS):
        return type(left) is type(right) and left == right
    return False


def _deps_changed(previous: Any, current: Optional[Sequence[Any]]) -> bool:
    if current is None or previous is _UNSET or previous is None:
        return True
    current = tuple(current)
    if len(previous) != len(current):
        return True
    return any(not _same(left, right) for left, right in zip(previous, current))


@dataclass
class HookFrame:
    store: "HookStore"
    path: str
    index: int = 0

    def next_slot(self, kind: str) -> Tuple[_Slot, bool]:
        slots = self.store._slots.setdefault(self.path, [])
        self.store._seen.add(self.path)
        if self.index < len(slots):
            slot = slots[self.index]
            if slot.kind != kind:
                raise RuntimeError(
                    f"Hook order changed between renders: expected {slot.kind} at position "
                    f"{self.index}, got {kind}"
                )
            created = False
        else:
            slot = _Slot(kind=kind)
            slots.append(slot)
            created = True
        self.index += 1
        return slot, created


@dataclass
class HookStore:
    """Hook state for one mounted component tree."""

    _slots: Dict[str, List[_Slot]] = field(default_factory=dict)
    _seen: Set[str] = field(default_factory=set)
    _pending: List[Tuple[_Slot, Callable[[], Any]]] = field(default_factory=list)
    dirty: bool = False
    passes: int = 0

    def begin_pass(self) -> None:
        self.dirty = False
        self._seen = set()
        self._pending = []
        self.passes += 1

    @contextmanager
    def frame(self, path: str) -> Iterator[HookFrame]:
        frame = HookFrame(store=self, path=path)
        token = _current_frame.set(frame)
        try:
            yield frame
        finally:
            _current_frame.reset(token)

    def commit(self) -> None:
        """Run scheduled effects and clean up components that disappeared."""
        for path in [path for path in self._slots if path not in self._seen]:
            self._cleanup_slots(self._slots.pop(path))

        pending, self._pending = self._pending, []
        for slot, effect in pending:
            if slot.cleanup is not None:
                cleanup, slot.cleanup = slot.cleanup, None
                cleanup()
            result = effect()
            if callable(result):
                slot.cleanup = result

    def reset(self) -> None:
        """Unmount everything: run cleanups and forget all state."""
        slots, self._slots = self._slots, {}
        for entries in slots.values():
            self._cleanup_slots(entries)
        self._seen = set()
        self._pending = []
        self.dirty = False
        self.passes = 0

    def _cleanup_slots(self, slots: List[_Slot]) -> None:
        for slot in slots:
            if slot.cleanup is None:
                continue
            cleanup, slot.cleanup = slot.cleanup, None
            try:
                cleanup()
            except Exception:  # noqa: BLE001 - a failing cleanup must not block unmounting
                logger.warning("Effect cleanup raised during unmount", exc_info=True)

    def mark_dirty(self) -> None:
        self.dirty = True


def _require_frame(hook: str) -> HookFrame:
    frame = _current_frame.get()
    if frame is None:
        raise RuntimeError(f"{hook}() can only be called while a component is rendering")
    return frame


def use_state(initial: Any = None) -> Tuple[Any, Callable[[Any], None]]:
    """Return ``(value, set_value)`` for a piece of component state.

    ``initial`` may be a zero-argument callable, evaluated on first render
    only. ``set_value`` accepts a value or a function of the old value.
    """
    frame = _require_frame("use_state")
    slot, created = frame.next_slot("state")
    if created:
        slot.value = initial() if callable(initial) else initial
    store = frame.store

    def set_value(new_value: Any) -> None:
        if callable(new_value):
            new_value = new_value(slot.value)
        if _same(slot.value, new_value):
            return
        slot.value = new_value
        store.mark_dirty()

    return slot.value, set_value


def use_effect(effect: Callable[[], Any], deps: Optional[Sequence[Any]] = None) -> None:
    """Schedule ``effect`` to run after the pass commits.

    With ``deps`` it only re-runs when one of them changes. An effect may
    return a cleanup callable which runs before the next run and on unmount.
    """
    frame = _require_frame("use_effect")
    slot, _ = frame.next_slot("effect")
    if _deps_changed(slot.deps, deps):
        slot.deps = tuple(deps) if deps is not None else None
        frame.store._pending.append((slot, effect))


def use_memo(factory: Callable[[], Any], deps: Optional[Sequence[Any]] = None) -> Any:
    """Return ``factory()``, recomputed only when ``deps`` change."""
    frame = _require_frame("use_memo")
    slot, created = frame.next_slot("memo")
    if created or _deps_changed(slot.deps, deps):
        slot.value = factory()
        slot.deps = tuple(deps) if deps is not None else None
    return slot.value


__all__ = ["HookFrame", "HookStore", "use_effect", "use_memo", "use_state"]
