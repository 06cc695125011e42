import pytest

from stylens.stylens_css import dashify, transform_value, calculate_key_value
from stylens.stylens_datatypes import Node
from stylens.stylens_scope import ScopeTable
from stylens.stylens_settings import Settings

from ast_builders import ident, string, num, kv, computed, binary


@pytest.mark.parametrize("name, expected", [
    ("color", "color"),
    ("backgroundColor", "background-color"),
    ("borderTopLeftRadius", "border-top-left-radius"),
    ("MozAppearance", "-moz-appearance"),
    ("--brandColor", "--brandColor"),
])
def test_dashify(name, expected):
    assert dashify(name) == expected


TRANSFORM_CASES = [
    ("px_default", "padding", 4.0, "4px"),
    ("fraction", "width", 0.5, "0.5px"),
    ("zero_length", "margin", 0.0, "0"),
    ("unitless", "opacity", 0.5, "0.5"),
    ("unitless_integer", "zIndex", 10.0, "10"),
    ("time", "transitionDuration", 300.0, "300ms"),
    ("zero_time", "animationDelay", 0.0, "0s"),
    ("custom_property", "--size", 4.0, "4"),
    ("string_passthrough", "color", " red ", "red"),
    ("font_size_px", "fontSize", 24.0, "24px"),
]


@pytest.mark.parametrize("test_id, prop, value, expected", TRANSFORM_CASES, ids=[c[0] for c in TRANSFORM_CASES])
def test_transform_value(test_id, prop, value, expected):
    assert transform_value(prop, value) == expected


def test_font_size_in_rem():
    assert transform_value("fontSize", 24.0, Settings(use_rem_for_font_size=True)) == "1.5rem"


def test_transform_value_rejects_other_values():
    with pytest.raises(TypeError):
        transform_value("color", True)


@pytest.fixture
def table():
    t = ScopeTable()
    t.push_scope()
    t.bind_constant("hover", ":hover")
    t.bind_constant("size", 2.0)
    return t


@pytest.mark.parametrize("key, expected", [
    ("color", "color"),
    (string(":focus"), ":focus"),
    (computed(string("@media print")), "@media print"),
    (computed(ident("hover")), ":hover"),
    (computed(ident("size")), "2"),
    (computed(ident("missing")), None),
    (computed(binary("+", string("a"), string("b"))), None),
    (num(1), None),
], ids=["identifier", "string", "computed_string", "computed_constant", "computed_number",
        "computed_unbound", "computed_expression", "numeric"])
def test_calculate_key_value(table, key, expected):
    assert calculate_key_value(Node(kv(key, string("v"))), table) == expected
