import json

import pytest

from flameview.rendering import h
from flameview.rendering.charts import BarChart
from flameview.sandbox import DEFAULT_CAPABILITIES, SAFE_BUILTINS, CapabilitySet


def test_default_capabilities_cover_rendering_and_charts():
    assert DEFAULT_CAPABILITIES["h"] is h
    assert DEFAULT_CAPABILITIES["BarChart"] is BarChart
    assert "use_state" in DEFAULT_CAPABILITIES.primitive_names()
    assert "BarChart" in DEFAULT_CAPABILITIES.chart_names()
    assert "h" not in DEFAULT_CAPABILITIES.chart_names()
    assert len(DEFAULT_CAPABILITIES.names()) == len(DEFAULT_CAPABILITIES.values())


def test_safe_builtins_exclude_dangerous_names():
    for name in ("eval", "exec", "open", "__import__", "getattr", "type", "compile", "print"):
        assert name not in SAFE_BUILTINS
    assert SAFE_BUILTINS["len"] is len


@pytest.mark.parametrize("name", ["_hidden", "not-valid", "", "class name"])
def test_names_must_be_public_identifiers(name):
    with pytest.raises(ValueError, match="not a public identifier"):
        CapabilitySet({name: 1})


def test_modules_are_refused():
    with pytest.raises(ValueError, match="must not be a module"):
        CapabilitySet({"json": json})


def test_forbidden_builtins_are_refused_under_any_name():
    with pytest.raises(ValueError, match="forbidden builtin"):
        CapabilitySet({"read_file": open})


def test_extend_returns_a_new_set():
    extended = DEFAULT_CAPABILITIES.extend({"money": lambda value: f"${value:,.2f}"})
    assert "money" in extended
    assert "money" not in DEFAULT_CAPABILITIES
    assert extended["BarChart"] is BarChart


def test_capability_set_is_read_only():
    with pytest.raises(TypeError):
        DEFAULT_CAPABILITIES["h"] = None  # type: ignore[index]
