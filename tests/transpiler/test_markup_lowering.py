"""Tests for lowering tag markup into element-factory calls."""

import pytest

from flameview.errors import TranspileError
from flameview.transpiler import clean_text_child, lower_markup


def test_intrinsic_tag_lowers_to_string_type():
    code, count = lower_markup('x = <div className="card">Hello</div>')
    assert code == "x = h('div', {'className': 'card'}, 'Hello')"
    assert count == 1


def test_capitalised_tag_lowers_to_name_reference():
    code, _ = lower_markup('chart = <BarChart data={rows}><Bar dataKey="count" /></BarChart>')
    assert code == "chart = h(BarChart, {'data': (rows)}, h(Bar, {'dataKey': 'count'}))"


def test_fragment_lowers_to_fragment_type():
    code, count = lower_markup("x = <><p>a</p><p>b</p></>")
    assert code == "x = h(Fragment, None, h('p', None, 'a'), h('p', None, 'b'))"
    assert count == 3


def test_self_closing_tag_without_props_uses_none():
    code, _ = lower_markup("x = <br />")
    assert code == "x = h('br', None)"


def test_bare_attribute_is_true():
    code, _ = lower_markup("x = <input disabled />")
    assert code == "x = h('input', {'disabled': True})"


def test_attribute_expression_may_contain_braces():
    code, _ = lower_markup('x = <div style={{"padding": "20px"}}></div>')
    assert code == "x = h('div', {'style': ({\"padding\": \"20px\"})})"


def test_spread_attributes():
    code, _ = lower_markup("x = <Bar {**extra} dataKey='v' />")
    assert code == "x = h(Bar, {**(extra), 'dataKey': 'v'})"


def test_expression_children_are_lowered_recursively():
    source = "x = <ul>{[<li key={r['id']}>{r['name']}</li> for r in rows]}</ul>"
    code, count = lower_markup(source)
    assert code == "x = h('ul', None, ([h('li', {'key': (r['id'])}, (r['name'])) for r in rows]))"
    assert count == 2


def test_comparisons_are_not_markup():
    source = "if a < b and c<d:\n    pass\n"
    code, count = lower_markup(source)
    assert code == source
    assert count == 0


def test_markup_inside_strings_and_comments_is_untouched():
    source = 'label = "<b>bold</b>"  # <i>note</i>\n'
    code, count = lower_markup(source)
    assert code == source
    assert count == 0


def test_markup_after_return_keyword():
    code, _ = lower_markup("def f():\n    return <span>{1 + 1}</span>\n")
    assert "return h('span', None, (1 + 1))" in code


def test_entities_in_text_and_attribute_values_are_decoded():
    code, _ = lower_markup('x = <p title="a &amp; b">x &lt; y</p>')
    assert code == "x = h('p', {'title': 'a & b'}, 'x < y')"


def test_comment_children_are_dropped():
    code, _ = lower_markup("x = <div>{/* todo */}<p>ok</p></div>")
    assert code == "x = h('div', None, h('p', None, 'ok'))"


def test_text_children_follow_whitespace_rules():
    assert clean_text_child("\n    Hello\n    world\n  ") == "Hello world"
    assert clean_text_child("  \n   \n") == ""
    assert clean_text_child("Total: ") == "Total: "


def test_mismatched_closing_tag_reports_location():
    with pytest.raises(TranspileError) as excinfo:
        lower_markup("x = (\n    <div><span></div>\n)", path="dash.pyx")
    err = excinfo.value
    assert "Expected corresponding closing tag </span>" in err.message
    assert err.line == 2
    assert err.path == "dash.pyx"


def test_unterminated_element_is_an_error():
    with pytest.raises(TranspileError) as excinfo:
        lower_markup("x = <div><p>text</p>")
    assert "Unterminated <div> element" in excinfo.value.message
    assert excinfo.value.hint == "Close it with </div>"


def test_attribute_without_value_form_is_an_error():
    with pytest.raises(TranspileError, match="needs a quoted string"):
        lower_markup("x = <div id=5></div>")
