"""Tests for binding transpiled components to the capability set."""

import textwrap

import pytest

from flameview.errors import BuildError
from flameview.rendering import RenderNode
from flameview.sandbox import DEFAULT_CAPABILITIES, CompiledComponent, build
from flameview.source import GeneratedSource
from flameview.transpiler import transpile


def _build(source: str, **kwargs) -> CompiledComponent:
    return build(transpile(textwrap.dedent(source)), **kwargs)


def test_build_returns_component_bound_to_capabilities(bar_chart_source, signups_bundle):
    source = GeneratedSource(text=bar_chart_source)
    component = build(transpile(bar_chart_source), source=source)
    assert component.capabilities is DEFAULT_CAPABILITIES
    assert component.source is source

    tree = component.render(signups_bundle)
    assert isinstance(tree, RenderNode)
    assert tree.tag == "div"
    assert tree.find("h1").text_content() == "Sign-ups per day"
    assert tree.find("series").props["points"] == [{"x": "Mon", "y": 3}]


def test_helpers_and_safe_builtins_are_usable():
    component = _build(
        """
        def total(rows):
            return sum(row["count"] for row in rows)

        def Dashboard(data):
            rows = sorted(data.get("signups", []), key=lambda row: row["day"])
            return <p>Total: {total(rows)} over {len(rows)} days</p>
        """
    )
    tree = component({"signups": [{"day": "b", "count": 2}, {"day": "a", "count": 5}]})
    assert tree.text_content() == "Total: 7 over 2 days"


def test_extra_capabilities_are_visible():
    capabilities = DEFAULT_CAPABILITIES.extend({"money": lambda value: f"${value:,.2f}"})
    component = _build(
        """
        def Dashboard(data):
            return <span>{money(1234.5)}</span>
        """,
        capabilities=capabilities,
    )
    assert component({}).text_content() == "$1,234.50"


@pytest.mark.parametrize("name", ["fetch", "open", "print", "requests"])
def test_unknown_names_are_refused(name):
    with pytest.raises(BuildError) as excinfo:
        _build(
            f"""
            def Dashboard(data):
                {name}("https://example.com")
                return <p>hi</p>
            """
        )
    assert excinfo.value.message == f"Name '{name}' is not available to components"
    assert excinfo.value.line == 2


def test_missing_dashboard_is_refused():
    with pytest.raises(BuildError, match="No component named 'Dashboard' is defined"):
        _build(
            """
            def Overview(data):
                return <p>hi</p>
            """
        )


def test_dashboard_must_be_callable():
    with pytest.raises(BuildError, match="'Dashboard' must be a function, got int"):
        build("Dashboard = 5")


def test_special_attributes_are_refused():
    with pytest.raises(BuildError, match="special attribute '__dict__'"):
        build("def Dashboard(data):\n    return data.__dict__\n")


def test_imports_inside_functions_are_refused():
    with pytest.raises(BuildError, match="cannot import modules"):
        build("def Dashboard(data):\n    import os\n    return None\n")


def test_global_declarations_are_refused():
    with pytest.raises(BuildError, match="global declarations are not allowed"):
        build("def Dashboard(data):\n    global counter\n    return None\n")


def test_failing_definition_is_reported():
    with pytest.raises(BuildError) as excinfo:
        build("ratio = 1 / 0\n\ndef Dashboard(data):\n    return None\n")
    assert excinfo.value.message == "Component definition failed: ZeroDivisionError: division by zero"


def test_invalid_python_is_a_build_error():
    with pytest.raises(BuildError, match="not valid Python"):
        build("def Dashboard(data) return None")


def test_data_is_read_only_inside_components():
    component = build('def Dashboard(data):\n    data["extra"] = 1\n    return None\n')
    with pytest.raises(TypeError):
        component({"signups": []})


def test_build_does_not_call_the_component():
    calls = []
    capabilities = DEFAULT_CAPABILITIES.extend({"record": calls.append})
    component = build("def Dashboard(data):\n    record(1)\n    return None\n", capabilities)
    assert calls == []
    component({})
    assert calls == [1]


@pytest.mark.parametrize("attribute", ["gi_frame", "f_back", "f_builtins", "tb_frame", "_private"])
def test_frame_and_private_attributes_are_refused(attribute):
    with pytest.raises(BuildError, match=f"special attribute '{attribute}'"):
        build(f"def Dashboard(data):\n    return data.{attribute}\n")


def test_generator_frames_cannot_reach_host_builtins():
    source = textwrap.dedent(
        """
        def Dashboard(data):
            def peek():
                yield 1
            steps = [peek()]
            for _ in steps[0]:
                break
            frame = steps[0].gi_frame.f_back
            while frame is not None and "open" not in frame.f_builtins:
                frame = frame.f_back
            return <pre>{frame.f_builtins["open"]("/etc/hostname").read()}</pre>
        """
    )
    with pytest.raises(BuildError) as excinfo:
        build(transpile(source))
    assert excinfo.value.message.startswith("Access to the special attribute")
    assert excinfo.value.line == 7
