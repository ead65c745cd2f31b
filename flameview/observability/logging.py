"""Centralised logging helpers for FlameView."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

_LOGGER_CACHE: Dict[str, logging.Logger] = {}

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str = "flameview") -> logging.Logger:
    """Return a cached :class:`logging.Logger` instance."""

    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = logging.getLogger(name)
    return _LOGGER_CACHE[name]


def configure_logging(level: str | int = "INFO", *, fmt: str = _DEFAULT_FORMAT) -> None:
    """Install a stream handler on the ``flameview`` logger.

    Calling it twice replaces the level but does not stack handlers.
    """

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root = get_logger()
    root.setLevel(level)
    if not any(getattr(handler, "_flameview", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt))
        handler._flameview = True  # type: ignore[attr-defined]
        root.addHandler(handler)


def log_pipeline_event(
    event: str,
    *,
    request_id: Optional[str] = None,
    level: int = logging.INFO,
    logger: Optional[logging.Logger] = None,
    **data: Any,
) -> None:
    """Emit a structured log entry for one step of a generation turn."""

    payload: Dict[str, Any] = {"event": event}
    if request_id is not None:
        payload["request_id"] = request_id
    payload.update(data)
    target_logger = logger or get_logger("flameview.pipeline.events")
    target_logger.log(
        level,
        "Pipeline event %s",
        event,
        extra={"flameview_event": event, "flameview_data": payload},
    )


def log_render_transition(
    previous: str,
    current: str,
    *,
    reason: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Emit a structured entry whenever the render host changes state."""

    payload: Dict[str, Any] = {"from": previous, "to": current}
    if reason:
        payload["reason"] = reason
    target_logger = logger or get_logger("flameview.host.transitions")
    target_logger.debug(
        "Render state %s -> %s",
        previous,
        current,
        extra={"flameview_event": "render_transition", "flameview_data": payload},
    )
