"""Render host: lifecycle and fault isolation for generated components."""

from .panels import CATEGORY_COPY, RETRY_ACTION
from .render_host import RenderHost
from .state import RenderState, RenderStatus

__all__ = ["CATEGORY_COPY", "RETRY_ACTION", "RenderHost", "RenderState", "RenderStatus"]
