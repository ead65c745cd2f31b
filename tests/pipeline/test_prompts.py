import pytest

from flameview.pipeline.orchestrator import ConversationTurn
from flameview.pipeline.prompts import (
    PromptError,
    build_generation_prompt,
    build_requirements_prompt,
    parse_json_object,
    render_template,
)
from flameview.pipeline.schema import discover_schema
from flameview.sandbox import DEFAULT_CAPABILITIES, SAFE_BUILTINS

SCHEMA = discover_schema({"signups": [{"day": "Mon", "count": 3}]})


def test_generation_prompt_lists_capabilities_and_data():
    prompt = build_generation_prompt(
        "Show sign-ups per day",
        capabilities=DEFAULT_CAPABILITIES,
        schema=SCHEMA,
        data={"signups": [{"day": "Mon", "count": 3}, {"day": "Tue", "count": 4}]},
        sample_size=1,
        builtins=sorted(SAFE_BUILTINS),
    )
    assert "User request: Show sign-ups per day" in prompt
    assert "BarChart" in prompt
    assert "use_state" in prompt
    assert '"documentCount": 1' in prompt
    assert '"day": "Mon"' in prompt
    assert '"day": "Tue"' not in prompt
    assert "Previous dashboard code:\nnone" in prompt
    assert "```pyx" in prompt


def test_generation_prompt_includes_previous_code_and_history():
    history = [
        ConversationTurn(user_message="Show revenue", ai_response="x" * 1000, summary=None),
        ConversationTurn(user_message="Add a legend", ai_response="ignored", summary="- Added a legend"),
    ]
    prompt = build_generation_prompt(
        "Make it blue",
        capabilities=DEFAULT_CAPABILITIES,
        previous_code="def Dashboard(data):\n    return None",
        history=history,
    )
    assert "def Dashboard(data):\n    return None" in prompt
    assert "User: Show revenue" in prompt
    assert "x" * 397 + "..." in prompt
    assert "x" * 401 not in prompt
    assert "AI: - Added a legend" in prompt
    assert "No schema available" in prompt


def test_requirements_prompt():
    prompt = build_requirements_prompt("Paid orders", schema=SCHEMA, limit=50, operators=("==", "in"))
    assert "User request: Paid orders" in prompt
    assert '"limit": 50' in prompt
    assert "Supported filter operators: ==, in." in prompt


def test_missing_variables_fail_loudly():
    with pytest.raises(PromptError, match="Prompt rendering failed"):
        render_template("Hello {{ name }}", {})


def test_templates_are_sandboxed():
    with pytest.raises(PromptError):
        render_template("{{ value.__class__ }}", {"value": 1})


def test_parse_json_object():
    assert parse_json_object('Sure:\n```json\n{"collections": ["a"], "limit": 5}\n```') == {
        "collections": ["a"],
        "limit": 5,
    }
    with pytest.raises(ValueError):
        parse_json_object("no json here")
    with pytest.raises(ValueError):
        parse_json_object("{not json}")
