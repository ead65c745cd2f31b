"""Presentation trees for the render host's non-dashboard states."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from flameview.rendering import Element, h

RETRY_ACTION = "retry"

# title, lead text shown above the detail message
CATEGORY_COPY: Dict[str, Tuple[str, str]] = {
    "sanitization": (
        "Generated code was rejected",
        "The generated code was rejected because it uses a construct that is not allowed in dashboards.",
    ),
    "build": (
        "Generated code was rejected",
        "The generated code was rejected because it could not be bound to the dashboard primitives.",
    ),
    "transpile": (
        "Generated code could not be read",
        "The generated component contains a syntax error.",
    ),
    "extraction": (
        "No dashboard code received",
        "No valid component code found in AI response.",
    ),
    "collaborator": (
        "Service unavailable",
        "A backing service failed while preparing the dashboard.",
    ),
}

_FALLBACK_COPY = ("Something went wrong", "The dashboard could not be produced.")


def empty_panel() -> Element:
    return h(
        "div",
        {"className": "fv-panel fv-panel--empty"},
        h("h2", None, "No dashboard yet"),
        h("p", None, "Describe the dashboard you want to see and it will appear here."),
    )


def loading_panel() -> Element:
    return h(
        "div",
        {"className": "fv-panel fv-panel--loading", "role": "status", "aria-busy": "true"},
        h("div", {"className": "fv-spinner"}),
        h("p", None, "Generating your dashboard..."),
    )


def code_error_panel(category: Optional[str], message: Optional[str]) -> Element:
    title, lead = CATEGORY_COPY.get(category or "", _FALLBACK_COPY)
    children = [h("h2", None, title), h("p", {"className": "fv-panel__lead"}, lead)]
    if message and message != lead:
        children.append(h("pre", {"className": "fv-panel__detail"}, message))
    return h(
        "div",
        {"className": f"fv-panel fv-panel--error fv-panel--{category or 'error'}", "role": "alert"},
        *children,
    )


def runtime_fault_panel(message: Optional[str]) -> Element:
    return h(
        "div",
        {"className": "fv-panel fv-panel--fault", "role": "alert"},
        h("h2", None, "Dashboard Error"),
        h("p", {"className": "fv-panel__lead"}, "The dashboard failed while rendering."),
        h("pre", {"className": "fv-panel__detail"}, message or "Unknown error"),
        h("button", {"type": "button", "data-action": RETRY_ACTION}, "Try Again"),
    )


__all__ = [
    "CATEGORY_COPY",
    "RETRY_ACTION",
    "code_error_panel",
    "empty_panel",
    "loading_panel",
    "runtime_fault_panel",
]
