"""Lightweight observability helpers for logging."""

from __future__ import annotations

from .logging import configure_logging, get_logger, log_pipeline_event, log_render_transition

__all__ = [
    "configure_logging",
    "get_logger",
    "log_pipeline_event",
    "log_render_transition",
]
