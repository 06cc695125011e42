import asyncio

import pytest

from stylens.stylens_datatypes import Node, Span, InvalidNodeError, StaticValue
from stylens.stylens_features import (
    find_hover, find_completion_context, HoverResult, CompletionContext, CUSTOM_PROPERTY_NAME,
)
from stylens.stylens_settings import Settings
from stylens.stylens_walker import CancellationToken

from ast_builders import (
    Locator, ident, member, call, obj, kv, computed, const, export,
    import_decl, import_ns, import_named, expr_stmt,
)


def stylex_callee(loc, api, nth=0):
    """`stylex.<api>` located at the nth `stylex.<api>(` in the source."""
    start, _ = loc.find(f"stylex.{api}(", nth)
    return member(ident("stylex", (start, start + 6)), ident(api, (start + 7, start + 7 + len(api))))


def fenced(css):
    return "```css\n" + css + "\n```"


def shifted(raw, delta):
    """Moves every span in a raw tree by `delta` bytes."""
    if isinstance(raw, list):
        return [shifted(v, delta) for v in raw]
    if not isinstance(raw, dict):
        return raw
    if "start" in raw and "end" in raw and "type" not in raw:
        return {**raw, "start": raw["start"] + delta, "end": raw["end"] + delta}
    return {k: shifted(v, delta) for k, v in raw.items()}


# --- Sources ---

BUTTON_SRC = (
    "import * as stylex from '@stylexjs/stylex';\n"
    "const styles = stylex.create({ button: { color: 'red', padding: 4, fontSize: 24 } });\n"
)


def button_tree():
    loc = Locator(BUTTON_SRC)
    return loc, loc.module(
        import_decl("@stylexjs/stylex", import_ns("stylex")),
        const("styles", call(stylex_callee(loc, "create"), obj(
            kv(loc.ident("button"), obj(
                kv(loc.ident("color"), loc.string("red")),
                kv(loc.ident("padding"), loc.num("4")),
                kv(loc.ident("fontSize"), loc.num("24")),
            )),
        ))),
    )


PSEUDO_SRC = (
    "import * as stylex from 'stylex';\n"
    "const styles = stylex.create({\n"
    "  link: {\n"
    "    color: {\n"
    "      default: 'blue',\n"
    "      ':hover': 'red',\n"
    "      '@media (max-width: 600px)': 'green',\n"
    "    },\n"
    "  },\n"
    "});\n"
)


def pseudo_tree():
    loc = Locator(PSEUDO_SRC)
    return loc, loc.module(
        import_decl("stylex", import_ns("stylex")),
        const("styles", call(stylex_callee(loc, "create"), obj(
            kv(loc.ident("link"), obj(
                kv(loc.ident("color"), obj(
                    kv(loc.ident("default"), loc.string("blue")),
                    kv(loc.string(":hover"), loc.string("red")),
                    kv(loc.string("@media (max-width: 600px)"), loc.string("green")),
                )),
            )),
        ))),
    )


NAMED_SRC = (
    "import { create, firstThatWorks as ftw } from '@stylexjs/stylex';\n"
    "const hover = ':hover';\n"
    "export const styles = create({\n"
    "  box: {\n"
    "    position: ftw('sticky', 'fixed'),\n"
    "    color: tokens.primary,\n"
    "    [hover]: { opacity: 0.5 },\n"
    "    width: getWidth(),\n"
    "  },\n"
    "});\n"
)


def named_tree():
    loc = Locator(NAMED_SRC)
    return loc, loc.module(
        import_decl("@stylexjs/stylex", import_named("create"), import_named("ftw", "firstThatWorks")),
        const("hover", loc.string(":hover")),
        export(const("styles", call(loc.ident("create", 1), obj(
            kv(loc.ident("box"), obj(
                kv(loc.ident("position"), call(loc.ident("ftw", 1), loc.string("sticky"), loc.string("fixed"))),
                kv(loc.ident("color"), member(loc.ident("tokens"), loc.ident("primary"))),
                # nth=2: after `const hover` and the `':hover'` string.
                kv(computed(loc.ident("hover", 2)), obj(kv(loc.ident("opacity"), loc.num("0.5")))),
                kv(loc.ident("width"), call(loc.ident("getWidth"))),
            )),
        )))),
    )


THEME_SRC = (
    "import * as stylex from '@stylexjs/stylex';\n"
    "export const colors = stylex.defineVars({ primary: 'blue', accent: { default: 'red', '@media print': 'black' } });\n"
    "const fadeIn = stylex.keyframes({ from: { opacity: 0 }, to: { opacity: 1 } });\n"
    "const dark = stylex.createTheme(colors, { primary: 'navy' });\n"
    "const styles = stylex.create({ root: { animationName: stylex.keyframes({ '50%': { transform: 'scale(2)' } }) } });\n"
)


def theme_tree():
    loc = Locator(THEME_SRC)
    return loc, loc.module(
        import_decl("@stylexjs/stylex", import_ns("stylex")),
        export(const("colors", call(stylex_callee(loc, "defineVars"), obj(
            kv(loc.ident("primary"), loc.string("blue")),
            kv(loc.ident("accent"), obj(
                kv(loc.ident("default"), loc.string("red")),
                kv(loc.string("@media print"), loc.string("black")),
            )),
        )))),
        const("fadeIn", call(stylex_callee(loc, "keyframes"), obj(
            kv(loc.ident("from", 1), obj(kv(loc.ident("opacity"), loc.num("0")))),
            kv(loc.ident("to"), obj(kv(loc.ident("opacity", 1), loc.num("1")))),
        ))),
        const("dark", call(stylex_callee(loc, "createTheme"), loc.ident("colors", 1), obj(
            kv(loc.ident("primary", 1), loc.string("navy")),
        ))),
        const("styles", call(stylex_callee(loc, "create"), obj(
            kv(loc.ident("root"), obj(
                kv(loc.ident("animationName"), call(stylex_callee(loc, "keyframes", 1), obj(
                    kv(loc.string("50%"), obj(kv(loc.ident("transform"), loc.string("scale(2)")))),
                ))),
            )),
        ))),
    )


COMPLETION_SRC = (
    "import * as stylex from '@stylexjs/stylex';\n"
    "const styles = stylex.create({\n"
    "  card: { backgroundColor: 're', content: 'x', position: stylex.firstThatWorks('sticky', 'fix') },\n"
    "});\n"
    "export const vars = stylex.defineVars({ gap: 'sm' });\n"
)


def completion_tree():
    loc = Locator(COMPLETION_SRC)
    return loc, loc.module(
        import_decl("@stylexjs/stylex", import_ns("stylex")),
        const("styles", call(stylex_callee(loc, "create"), obj(
            kv(loc.ident("card"), obj(
                kv(loc.ident("backgroundColor"), loc.string("re")),
                kv(loc.ident("content"), loc.string("x")),
                kv(loc.ident("position"), call(stylex_callee(loc, "firstThatWorks"),
                                               loc.string("sticky"), loc.string("fix"))),
            )),
        ))),
        export(const("vars", call(stylex_callee(loc, "defineVars"), obj(
            kv(loc.ident("gap"), loc.string("sm")),
        )))),
    )


# --- Hover ---

HOVER_CASES = [
    ("plain_string", button_tree, ("color", 0), ".button {\n  color: red;\n}"),
    ("number_gets_px", button_tree, ("padding", 0), ".button {\n  padding: 4px;\n}"),
    ("pseudo_class", pseudo_tree, ("':hover'", 0), ".link:hover {\n  color: red;\n}"),
    ("default_condition", pseudo_tree, ("default", 0), ".link {\n  color: blue;\n}"),
    (
        "media_query",
        pseudo_tree,
        ("'@media", 0),
        "@media (max-width: 600px) {\n  .link {\n    color: green;\n  }\n}",
    ),
    ("fallback_values", named_tree, ("position", 0), ".box {\n  position: fixed;\n  position: sticky;\n}"),
    ("reference", named_tree, ("color", 0), ".box {\n  color: var(--tokens.primary);\n}"),
    ("constant_computed_key", named_tree, ("opacity", 0), ".box:hover {\n  opacity: 0.5;\n}"),
    ("define_vars", theme_tree, ("primary", 0), ".colors {\n  --primary: blue;\n}"),
    (
        "define_vars_at_rule",
        theme_tree,
        ("'@media print'", 0),
        "@media print {\n  .colors {\n    --accent: black;\n  }\n}",
    ),
    ("create_theme", theme_tree, ("primary", 1), ".dark {\n  --primary: navy;\n}"),
    (
        "keyframes",
        theme_tree,
        ("opacity", 0),
        "@keyframes fadeIn {\n  from {\n    opacity: 0;\n  }\n}",
    ),
    (
        "inline_keyframes",
        theme_tree,
        ("transform", 0),
        "@keyframes animationName {\n  50% {\n    transform: scale(2);\n  }\n}",
    ),
]


@pytest.mark.asyncio
@pytest.mark.parametrize("test_id, build, target, expected_css", HOVER_CASES, ids=[c[0] for c in HOVER_CASES])
async def test_hover(test_id, build, target, expected_css):
    loc, tree = build()
    snippet, nth = target
    hover = await find_hover(Node(tree), loc.offset(snippet, nth))
    assert isinstance(hover, HoverResult)
    assert hover.css == expected_css
    assert hover.contents == fenced(expected_css)


@pytest.mark.asyncio
async def test_hover_span_is_the_key():
    loc, tree = button_tree()
    hover = await find_hover(Node(tree), loc.offset("color"))
    assert hover.span == Span(*loc.find("color"))


@pytest.mark.asyncio
async def test_hover_font_size_in_rem():
    loc, tree = button_tree()
    hover = await find_hover(Node(tree), loc.offset("fontSize"), Settings(use_rem_for_font_size=True))
    assert hover.css == ".button {\n  font-size: 1.5rem;\n}"


@pytest.mark.asyncio
@pytest.mark.parametrize("build, target", [
    (button_tree, ("button", 0)),
    (button_tree, ("'red'", 0)),
    (button_tree, ("import", 0)),
    (named_tree, ("width", 0)),
], ids=["nested_object_key", "value_not_key", "outside_styles", "non_static_value"])
async def test_hover_without_answer(build, target):
    loc, tree = build()
    assert await find_hover(Node(tree), loc.offset(*target)) is None


@pytest.mark.asyncio
async def test_hover_disabled():
    loc, tree = button_tree()
    assert await find_hover(Node(tree), loc.offset("color"), Settings(hover=False)) is None


@pytest.mark.asyncio
async def test_hover_ignores_other_libraries():
    loc, tree = button_tree()
    tree["body"][0] = import_decl("other-css", import_ns("stylex"))
    assert await find_hover(Node(tree), loc.offset("color")) is None


@pytest.mark.asyncio
async def test_hover_with_alias_module():
    loc, tree = button_tree()
    tree["body"][0] = import_decl("@acme/styles", import_ns("stylex"))
    settings = Settings(alias_module_names=["@acme/styles"])
    assert await find_hover(Node(tree), loc.offset("color"), settings) is not None


@pytest.mark.asyncio
async def test_hover_cancelled():
    loc, tree = button_tree()
    token = CancellationToken()
    token.cancel()
    assert await find_hover(Node(tree), loc.offset("color"), token=token) is None


@pytest.mark.asyncio
async def test_hover_spans_relative_to_module_start():
    loc, tree = button_tree()
    hover = await find_hover(Node(shifted(tree, 100)), loc.offset("color"))
    assert hover.css == ".button {\n  color: red;\n}"
    assert hover.span == Span(*loc.find("color"))


@pytest.mark.asyncio
async def test_hover_accepts_raw_tree():
    loc, tree = button_tree()
    assert await find_hover(tree, loc.offset("padding")) is not None


@pytest.mark.asyncio
async def test_hover_propagates_malformed_tree():
    loc, tree = button_tree()
    styles = tree["body"][1]["declarations"][0]["init"]["arguments"][0]["expression"]
    styles["properties"][0]["value"]["properties"][0]["value"] = {
        "type": "Invalid", "span": {"start": loc.find("'red'")[0], "end": loc.find("'red'")[1], "ctxt": 0},
    }
    with pytest.raises(InvalidNodeError):
        await find_hover(Node(tree), loc.offset("color"))


# --- Completion ---

COMPLETION_CASES = [
    ("create_property", ("'re'", 0), "background-color", "re"),
    ("fallback_argument", ("'fix'", 0), "position", "fix"),
    ("define_vars", ("'sm'", 0), CUSTOM_PROPERTY_NAME, "sm"),
]


@pytest.mark.asyncio
@pytest.mark.parametrize("test_id, target, prop, value", COMPLETION_CASES, ids=[c[0] for c in COMPLETION_CASES])
async def test_completion_context(test_id, target, prop, value):
    loc, tree = completion_tree()
    snippet, nth = target
    context = await find_completion_context(Node(tree), loc.offset(snippet, nth, delta=2))
    assert context == CompletionContext(prop, value, Span(*loc.find(snippet, nth)))


@pytest.mark.asyncio
@pytest.mark.parametrize("target", [
    ("'x'", 0),
    ("card", 0),
    ("import", 0),
], ids=["content_property", "key_not_string", "outside_styles"])
async def test_completion_without_answer(target):
    loc, tree = completion_tree()
    assert await find_completion_context(Node(tree), loc.offset(*target)) is None


@pytest.mark.asyncio
async def test_completion_disabled():
    loc, tree = completion_tree()
    settings = Settings(suggestions=False)
    assert await find_completion_context(Node(tree), loc.offset("'re'"), settings) is None


@pytest.mark.asyncio
async def test_completion_outside_styling_call():
    src = "const label = 'hello';\n"
    loc = Locator(src)
    tree = loc.module(const("label", loc.string("hello")))
    assert await find_completion_context(Node(tree), loc.offset("'hello'")) is None


@pytest.mark.asyncio
async def test_independent_walks_can_interleave():
    button_loc, button = button_tree()
    completion_loc, completion = completion_tree()
    hover, context = await asyncio.gather(
        find_hover(Node(button), button_loc.offset("color")),
        find_completion_context(Node(completion), completion_loc.offset("'re'", delta=2)),
    )
    assert hover.css == ".button {\n  color: red;\n}"
    assert context.property_name == "background-color"


@pytest.mark.asyncio
async def test_expression_statement_calls_are_analyzed():
    src = "import * as stylex from 'stylex';\nstylex.create({ a: { margin: 0 } });\n"
    loc = Locator(src)
    tree = loc.module(
        import_decl("stylex", import_ns("stylex")),
        expr_stmt(call(stylex_callee(loc, "create"), obj(
            kv(loc.ident("a"), obj(kv(loc.ident("margin"), loc.num("0")))),
        ))),
    )
    hover = await find_hover(Node(tree), loc.offset("margin"))
    assert hover.css == ".a {\n  margin: 0;\n}"


@pytest.mark.asyncio
async def test_hover_carries_folded_value():
    loc, tree = button_tree()
    hover = await find_hover(Node(tree), loc.offset("color"))
    assert hover.value == StaticValue("red", Span(*loc.find("'red'")))


@pytest.mark.asyncio
async def test_completion_resolves_constant_computed_key():
    src = (
        "import * as stylex from 'stylex';\n"
        "const k = 'color';\n"
        "const s = stylex.create({ a: { [k]: 're' } });\n"
    )
    loc = Locator(src)
    tree = loc.module(
        import_decl("stylex", import_ns("stylex")),
        const("k", loc.string("color")),
        const("s", call(stylex_callee(loc, "create"), obj(
            kv(loc.ident("a"), obj(kv(computed(loc.ident("k", 1)), loc.string("re")))),
        ))),
    )
    context = await find_completion_context(Node(tree), loc.offset("'re'", delta=2))
    assert context.property_name == "color"
