"""
FlameView: conversational dashboards rendered from generated components.

A user describes the dashboard they want, an LLM writes a component in
the PyX dialect (Python with tag-based markup), and FlameView turns that
untrusted text into a running component:

* ``sandbox.sanitizer`` – a lexical deny-list that rejects dynamic
  evaluation, timers and interpreter introspection before anything runs.
* ``transpiler`` – strips imports and exports and lowers markup into
  plain ``h(...)`` calls.
* ``sandbox.factory`` – binds the transpiled code against the fixed
  capability set (rendering primitives, hooks and the chart vocabulary)
  and nothing else.
* ``host`` – the render host that owns the current component, memoises
  it by source text and keeps a faulty component from taking the
  surrounding application down with it.
* ``pipeline`` – the per-turn orchestration: data requirements, data
  fetch, the generation call and extraction of the component source.

The rendering model in ``rendering`` resolves component trees into plain
nodes which can be serialised to JSON or to an HTML page that draws the
charts with Chart.js.
"""

import re
from pathlib import Path
from importlib import metadata as _metadata


def _local_version() -> str | None:
    root = Path(__file__).resolve().parents[1]
    pyproject = root / "pyproject.toml"
    if not pyproject.exists():
        return None
    try:
        text = pyproject.read_text(encoding="utf-8")
    except OSError:  # pragma: no cover - IO errors should not break imports
        return None
    match = re.search(r"^version\s*=\s*\"([^\"]+)\"", text, flags=re.MULTILINE)
    if match:
        return match.group(1)
    return None


try:  # pragma: no cover - metadata fallback for editable installs
    __version__ = _metadata.version("flameview")
except _metadata.PackageNotFoundError:  # pragma: no cover - source tree
    __version__ = _local_version() or "0.1.0"

__all__ = ["__version__"]
