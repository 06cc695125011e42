import pytest

from stylens.stylens_datatypes import (
    UNDEFINED, BigInt, RegExpValue, NON_STATIC, StaticValue, StaticReference, Span,
)
from stylens.stylens_printer import Printer, render_hover_markdown

SPAN = Span(0, 0)


@pytest.fixture
def printer():
    return Printer(indent_width=2)


# Test cases: (id, object, expected_string)
FORMAT_TEST_CASES = [
    ("str", "red", "'red'"),
    ("str_quote", "it's", "'it\\'s'"),
    ("integer_float", 4.0, "4"),
    ("float", -1.5, "-1.5"),
    ("nan", float("nan"), "NaN"),
    ("bigint", BigInt(12), "12n"),
    ("bool_true", True, "true"),
    ("null", None, "null"),
    ("undefined", UNDEFINED, "undefined"),
    ("regex", RegExpValue("a+", "g"), "/a+/g"),
    ("non_static", NON_STATIC, "<non-static>"),
    ("reference", StaticReference("colors.primary", SPAN), "<ref colors.primary>"),
    ("static_value", StaticValue("red", SPAN), "<static 'red'>"),
    (
        "array",
        (StaticValue(1.0, SPAN), NON_STATIC, StaticReference("x", SPAN)),
        "[1, <non-static>, <ref x>]",
    ),
    ("empty_object", {}, "{}"),
    (
        "object",
        {"color": StaticValue("red", SPAN), "nested": StaticValue({"a": StaticValue(None, SPAN)}, SPAN)},
        "{\n  color: 'red',\n  nested: {\n    a: null\n  }\n}",
    ),
]


@pytest.mark.parametrize("test_id, obj, expected", FORMAT_TEST_CASES, ids=[c[0] for c in FORMAT_TEST_CASES])
def test_pformat(printer, test_id, obj, expected):
    assert printer.pformat(obj) == expected


def test_render_hover_markdown_does_not_escape():
    css = ".a > .b {\n  content: \"&\";\n}"
    assert render_hover_markdown(css) == "```css\n" + css + "\n```"
