"""Prompt templates for the generation collaborator.

Templates are rendered in a Jinja2 sandbox with strict undefined
handling, so a missing variable fails loudly instead of producing a
prompt with holes in it. The capability names are rendered from the
capability set itself, which keeps the prompt and the sandbox in step.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from flameview.errors import FlameViewError
from flameview.sandbox import CapabilitySet

from .schema import CollectionSchema, schema_payload

GENERATION_TEMPLATE = """\
You are a dashboard code generator. Write one PyX component: Python source whose
expressions may contain JSX-style markup.

Rules:
- Define exactly one top-level function `def Dashboard(data):`. `data` maps each
  collection name to a list of row dictionaries; read it with `data.get("name", [])`.
- Return markup, e.g. `return (<div style={ {"padding": "20px"} }>...</div>)`.
- Lower-case tags are HTML elements; capitalised tags are components.
- Helper functions may be defined inside `Dashboard` or next to it.
- Do not write import or export statements; everything you need is provided.
- Handle empty data gracefully and style with inline `style` dictionaries.
- Only these names are available: {{ primitives | join(", ") }}.
- Chart components: {{ charts | join(", ") }}.
- Basic builtins are available: {{ builtins | join(", ") }}.

Example:

```pyx
def Dashboard(data):
    rows = data.get("users", [])
    return (
        <div style={ {"padding": "20px"} }>
            <h1>Dashboard</h1>
            <BarChart width={500} height={300} data={rows}>
                <XAxis dataKey="name" />
                <Bar dataKey="value" fill="#8884d8" />
            </BarChart>
        </div>
    )
```

Available data schema:
{% if schema %}{{ schema | json }}{% else %}No schema available{% endif %}

{% if samples %}Sample rows:
{{ samples | json }}

{% endif %}Previous dashboard code:
{% if previous_code %}```pyx
{{ previous_code }}
```{% else %}none{% endif %}

{% if history %}Previous conversation:
{% for turn in history %}User: {{ turn.user_message }}
AI: {{ turn.summary or turn.ai_response | truncate_text(400) }}
{% endfor %}
{% endif %}User request: {{ instruction }}

Start with a short bullet list summarising what the dashboard shows, then give the
complete component in a single ```pyx fenced block.
"""

REQUIREMENTS_TEMPLATE = """\
Analyze this data schema and user request to determine what data should be fetched.

User request: {{ instruction }}

Data schema:
{{ schema | json }}

Respond with a JSON object containing:
{
  "collections": ["collection1", "collection2"],
  "filters": {
    "collection1": {"field": "status", "op": "==", "value": "active"}
  },
  "limit": {{ limit }}
}

Supported filter operators: {{ operators | join(", ") }}.
Only include collections that are relevant to the user's request.
"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class PromptError(FlameViewError):
    code = "FV610"
    category = "collaborator"


def _filter_json(value: Any, indent: int = 2) -> str:
    return json.dumps(value, indent=indent, default=str, ensure_ascii=False)


def _filter_truncate_text(value: Any, length: int = 200, suffix: str = "...") -> str:
    text = "" if value is None else str(value)
    if len(text) <= length:
        return text
    return text[: length - len(suffix)] + suffix


def _create_environment() -> SandboxedEnvironment:
    env = SandboxedEnvironment(undefined=StrictUndefined, autoescape=False, keep_trailing_newline=True)
    env.filters["json"] = _filter_json
    env.filters["truncate_text"] = _filter_truncate_text
    return env


_ENVIRONMENT = _create_environment()


def render_template(source: str, variables: Mapping[str, Any]) -> str:
    try:
        return _ENVIRONMENT.from_string(source).render(**variables)
    except TemplateError as exc:
        raise PromptError(f"Prompt rendering failed: {exc}") from exc


def sample_rows(bundle: Mapping[str, Sequence[Mapping[str, Any]]], per_collection: int) -> Dict[str, List[Any]]:
    return {name: [dict(row) for row in list(rows)[:per_collection]] for name, rows in bundle.items()}


def build_generation_prompt(
    instruction: str,
    *,
    capabilities: CapabilitySet,
    schema: Optional[Mapping[str, CollectionSchema]] = None,
    data: Optional[Mapping[str, Sequence[Mapping[str, Any]]]] = None,
    previous_code: Optional[str] = None,
    history: Sequence[Any] = (),
    sample_size: int = 3,
    builtins: Sequence[str] = (),
) -> str:
    """Render the dashboard generation prompt."""
    return render_template(
        GENERATION_TEMPLATE,
        {
            "instruction": instruction,
            "primitives": list(capabilities.primitive_names()),
            "charts": list(capabilities.chart_names()),
            "builtins": list(builtins),
            "schema": schema_payload(schema or {}),
            "samples": sample_rows(data or {}, sample_size) if data else {},
            "previous_code": previous_code,
            "history": list(history),
        },
    )


def build_requirements_prompt(
    instruction: str,
    *,
    schema: Mapping[str, CollectionSchema],
    limit: int,
    operators: Sequence[str],
) -> str:
    """Render the prompt that asks which collections a request needs."""
    return render_template(
        REQUIREMENTS_TEMPLATE,
        {
            "instruction": instruction,
            "schema": schema_payload(schema),
            "limit": limit,
            "operators": list(operators),
        },
    )


def parse_json_object(text: str) -> Dict[str, Any]:
    """Pull the outermost JSON object out of a model response."""
    match = _JSON_OBJECT.search(text or "")
    if match is None:
        raise ValueError("No JSON object found in response")
    value = json.loads(match.group(0))
    if not isinstance(value, dict):
        raise ValueError("Response JSON is not an object")
    return value


__all__ = [
    "GENERATION_TEMPLATE",
    "PromptError",
    "REQUIREMENTS_TEMPLATE",
    "build_generation_prompt",
    "build_requirements_prompt",
    "parse_json_object",
    "render_template",
    "sample_rows",
]
