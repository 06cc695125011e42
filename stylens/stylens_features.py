"""
Hover and completion-context features.

Both walk a parsed file once with the generic walker, record the styling
imports and folded constants in a fresh `ScopeTable`, follow the styling API
calls down to the property under the cursor, and return a structured
answer. Anything that cannot be decided statically answers `None`.

Cursor positions are byte offsets relative to the start of the parsed unit;
`start_offset` is the parser's offset of that unit (spans of consecutive
parses keep growing), so a node's relative span is `span - module_start`.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from stylens.stylens_datatypes import (
    Node, NodeType, Span, StaticValue, StaticReference, EvaluationResult, NON_STATIC, UNDEFINED, dbg,
)
from stylens.stylens_evaluator import evaluate
from stylens.stylens_imports import handle_imports, handle_requires
from stylens.stylens_jsops import is_number
from stylens.stylens_scope import ScopeTable
from stylens.stylens_settings import Settings
from stylens.stylens_css import dashify, transform_value, calculate_key_value
from stylens.stylens_printer import render_hover_markdown
from stylens.stylens_walker import (
    walk, CancellationToken, Continue, ContinueIgnoring,
    SKIP_CHILDREN, ABORT, WILDCARD, exit_of,
)

CUSTOM_PROPERTY_NAME = "--custom"

# API calls whose argument objects describe styles.
_STYLE_APIS = ("create", "createTheme", "defineVars", "keyframes")

# Feed the scope table, so they are visited even away from the cursor.
_ALWAYS_ENTERED = frozenset((
    NodeType.MODULE,
    NodeType.SCRIPT,
    NodeType.VARIABLE_DECLARATION,
    NodeType.VARIABLE_DECLARATOR,
    NodeType.IMPORT_DECLARATION,
    NodeType.EXPORT_DECLARATION,
))

# Values of these properties name keyframes rather than a CSS variable.
_ANIMATION_PROPERTIES = ("animation", "animationName")


@dataclass
class HoverResult:
    contents: str    # markdown
    span: Span       # the hovered key, relative to the module start
    css: str
    value: EvaluationResult = NON_STATIC   # the folded property value


@dataclass
class CompletionContext:
    property_name: str   # dashified CSS property the string is a value of
    value: str           # current string contents
    span: Span           # the string literal, relative to the module start


@dataclass(frozen=True)
class HoverState:
    parent_class: Tuple[str, ...] = ()
    call_inside: Optional[str] = None
    caller_identifier: Optional[str] = None


@dataclass(frozen=True)
class CompletionState:
    property_name: Optional[str] = None
    call_inside: Optional[str] = None
    property_deep: int = 0


class _Traversal:
    """Per-walk context shared by the handlers of one feature."""

    def __init__(self, cursor: int, settings: Settings, start_offset: int):
        self.cursor = cursor
        self.settings = settings
        self.start_offset = start_offset
        self.module_start = 0
        self.table = ScopeTable()

    def relative(self, span: Span) -> Span:
        return span.shifted(-self.module_start)

    def at_cursor(self, span: Span) -> bool:
        return self.relative(span).contains(self.cursor)

    def styling_api(self, callee: Node) -> Optional[str]:
        """The API name a call goes to, when the callee is the styling library."""
        if callee.type is NodeType.MEMBER_EXPRESSION:
            obj, prop = callee.object, callee.property
            if (obj.type is NodeType.IDENTIFIER and self.table.is_styling_namespace(obj.value)
                    and prop.type is NodeType.IDENTIFIER):
                return prop.value
            return None
        if callee.type is NodeType.IDENTIFIER:
            return self.table.resolve_named_import(callee.value)
        return None

    # --- Handlers shared by both features ---

    def on_module(self, node, state, parent):
        self.module_start = node.span.start - self.start_offset
        self.table.push_scope()

    def on_module_exit(self, node, state, parent):
        self.table.pop_scope()

    def prune(self, node, state, parent):
        if node.span is not None and node.type not in _ALWAYS_ENTERED and not self.at_cursor(node.span):
            return SKIP_CHILDREN

    def on_import(self, node, state, parent):
        handle_imports(node, self.table, self.settings)
        return SKIP_CHILDREN

    def on_declarator(self, node, state, parent):
        handle_requires(node, self.table, self.settings)

    def on_block(self, node, state, parent):
        self.table.push_scope()

    def on_block_exit(self, node, state, parent):
        self.table.pop_scope()

    def on_declaration(self, node, state, parent):
        """Folds `const` initializers into the innermost frame."""
        if node.kind != "const":
            return
        for declaration in node.declarations:
            init = declaration.get("init")
            if init is None or declaration.id.type is not NodeType.IDENTIFIER:
                continue
            result = evaluate(init, self.table)
            if isinstance(result, StaticValue):
                self.table.bind_constant(declaration.id.value, result.value)

    def on_with(self, node, state, parent):
        return SKIP_CHILDREN

    def handlers(self):
        return {
            NodeType.MODULE: self.on_module,
            NodeType.SCRIPT: self.on_module,
            exit_of(NodeType.MODULE): self.on_module_exit,
            exit_of(NodeType.SCRIPT): self.on_module_exit,
            WILDCARD: self.prune,
            NodeType.IMPORT_DECLARATION: self.on_import,
            NodeType.VARIABLE_DECLARATION: self.on_declaration,
            NodeType.VARIABLE_DECLARATOR: self.on_declarator,
            NodeType.BLOCK_STATEMENT: self.on_block,
            exit_of(NodeType.BLOCK_STATEMENT): self.on_block_exit,
            NodeType.WITH_STATEMENT: self.on_with,
        }


# =================================================================
# Hover
# =================================================================

class _HoverTraversal(_Traversal):

    def __init__(self, cursor: int, settings: Settings, start_offset: int):
        super().__init__(cursor, settings, start_offset)
        self.result: Optional[HoverResult] = None

    def on_call(self, node: Node, state: HoverState, parent: Optional[Node]):
        api = self.styling_api(node.callee)
        if api not in _STYLE_APIS:
            return Continue(replace(state, call_inside=None))

        caller = None
        if parent is not None and parent.type is NodeType.VARIABLE_DECLARATOR:
            if parent.id.type is NodeType.IDENTIFIER:
                caller = parent.id.value
        elif state.caller_identifier and state.caller_identifier.startswith("1"):
            # Keyframes declared inline under a property key.
            caller = state.caller_identifier[1:]

        entered = replace(state, call_inside=api, caller_identifier=caller)
        if api in ("create", "keyframes"):
            return Continue(entered)
        # The theme argument of createTheme is the vars object, not styles.
        return ContinueIgnoring(entered, ["arguments.0" if api == "createTheme" else "", "callee"])

    def _is_keyframes_call(self, value: Node) -> bool:
        return value.type is NodeType.CALL_EXPRESSION and self.styling_api(value.callee) == "keyframes"

    async def on_property(self, node: Node, state: HoverState, parent: Optional[Node]):
        if not state.call_inside:
            return None
        key = calculate_key_value(node, self.table)
        if not key:
            return None

        value = node.value
        if value.type in (NodeType.OBJECT_EXPRESSION, NodeType.ARROW_FUNCTION_EXPRESSION):
            return Continue(replace(state, parent_class=state.parent_class + (key,)))
        if self._is_keyframes_call(value):
            return Continue(HoverState(parent_class=(), call_inside="keyframes", caller_identifier="1" + key))

        if not self.at_cursor(node.key.span):
            return None

        folded = evaluate(value, self.table)
        lines = self.css_lines(state, key, folded)
        if lines is None:
            return ABORT
        if len(lines) <= 2:
            return None

        css = "\n".join(lines)
        self.result = HoverResult(render_hover_markdown(css), self.relative(node.key.span), css, folded)
        dbg("found hover", self.result.span, css)
        return ABORT

    def css_lines(self, state: HoverState, key: str, folded: EvaluationResult) -> Optional[List[str]]:
        """CSS for the property `key`, or None when its value cannot be shown."""
        style_like = state.call_inside in ("create", "keyframes")
        class_line = []
        if not style_like:
            class_line.append(f".{state.caller_identifier}" if state.caller_identifier else ":root")
        class_line.extend(state.parent_class[0 if style_like else 1:])
        class_line.append(key)

        at_rules = [name for name in class_line if name.startswith("@")]
        if state.call_inside == "keyframes":
            at_rules.insert(0, f"@keyframes {state.caller_identifier or 'unknown'}")
        indentation = "  " * (len(at_rules) + 1)

        lines = [f"{'  ' * depth}{at_rule} {{" for depth, at_rule in enumerate(at_rules)]

        if state.call_inside == "create":
            selectors = [name for index, name in enumerate(class_line)
                         if index == 0 or (name != "default" and name.startswith(":"))]
            selector = "." + ("".join(sorted(selectors, reverse=True)) or "unknown")
        else:
            selector = class_line[0]

        if style_like:
            property_name = next(
                (name for name in reversed(class_line)
                 if not (name.startswith(":") or name.startswith("@") or name == "default")),
                None,
            )
        else:
            property_name = f"--{state.parent_class[0] if state.parent_class else key}"
        property_name = property_name or "unknown"

        lines.append(f"{indentation[2:]}{selector} {{")
        declarations = self.declarations(property_name, folded)
        if declarations is None:
            return None
        lines.extend(f"{indentation}{dashify(property_name)}: {text};" for text in declarations)
        lines.append(f"{indentation[2:]}}}")
        lines.extend(f"{'  ' * depth}}}" for depth in reversed(range(len(at_rules))))
        return lines

    def declarations(self, property_name: str, result) -> Optional[List[str]]:
        if isinstance(result, StaticReference):
            return [self._reference(property_name, result)]
        if not isinstance(result, StaticValue):
            return None

        value = result.value
        if value is None or value is UNDEFINED:
            return ["initial"]
        if isinstance(value, str) or is_number(value):
            return [transform_value(property_name, value, self.settings)]
        if not isinstance(value, tuple):
            return None

        # Fallback lists: one declaration per entry, unknown entries dropped.
        texts = []
        for element in value:
            if isinstance(element, StaticReference):
                texts.append(self._reference(property_name, element))
            elif isinstance(element, StaticValue):
                if element.value is None or element.value is UNDEFINED:
                    texts.append("initial")
                elif isinstance(element.value, str) or is_number(element.value):
                    texts.append(transform_value(property_name, element.value, self.settings))
        return texts

    def _reference(self, property_name: str, reference: StaticReference) -> str:
        if property_name in _ANIMATION_PROPERTIES:
            return reference.id
        return f"var(--{reference.id})"

    def handlers(self):
        handlers = super().handlers()
        handlers.update({
            NodeType.CALL_EXPRESSION: self.on_call,
            NodeType.KEY_VALUE_PROPERTY: self.on_property,
        })
        return handlers


async def find_hover(tree: Node,
                     cursor: int,
                     settings: Optional[Settings] = None,
                     token: Optional[CancellationToken] = None,
                     start_offset: int = 0) -> Optional[HoverResult]:
    """The generated CSS for the style property key under `cursor`, or None."""
    settings = settings or Settings()
    if not settings.hover:
        return None
    traversal = _HoverTraversal(cursor, settings, start_offset)
    await walk(tree, traversal.handlers(), token, HoverState())
    if token is not None and token.is_cancellation_requested:
        return None
    return traversal.result


# =================================================================
# Completion
# =================================================================

class _CompletionTraversal(_Traversal):

    def __init__(self, cursor: int, settings: Settings, start_offset: int):
        super().__init__(cursor, settings, start_offset)
        self.result: Optional[CompletionContext] = None

    def on_call(self, node: Node, state: CompletionState, parent: Optional[Node]):
        api = self.styling_api(node.callee)
        match api:
            case "create" | "keyframes":
                return Continue(replace(state, call_inside=api, property_deep=1))
            case "createTheme" | "defineVars":
                entered = replace(state, call_inside=api, property_deep=1)
                return ContinueIgnoring(entered, ["arguments.0" if api == "createTheme" else "", "callee"])
            case "firstThatWorks":
                # Fallback values complete like the property they belong to.
                return None
        return Continue(replace(state, call_inside=None))

    def on_property(self, node: Node, state: CompletionState, parent: Optional[Node]):
        if not state.call_inside:
            return None
        if state.call_inside in ("create", "keyframes"):
            if state.property_deep == 2:
                return Continue(replace(state, property_name=calculate_key_value(node, self.table),
                                        property_deep=3))
            return Continue(replace(state, property_deep=state.property_deep + 1))
        deep = state.property_deep + 1 if node.value.type is NodeType.OBJECT_EXPRESSION else state.property_deep
        return Continue(replace(state, property_name=CUSTOM_PROPERTY_NAME, property_deep=deep))

    def on_string(self, node: Node, state: CompletionState, parent: Optional[Node]):
        if not state.call_inside or state.property_name == "content":
            return None
        if not self.at_cursor(node.span):
            return SKIP_CHILDREN
        self.result = CompletionContext(
            property_name=dashify(state.property_name or CUSTOM_PROPERTY_NAME),
            value=node.value,
            span=self.relative(node.span),
        )
        dbg("found completion context", self.result)
        return ABORT

    def handlers(self):
        handlers = super().handlers()
        handlers.update({
            NodeType.CALL_EXPRESSION: self.on_call,
            NodeType.KEY_VALUE_PROPERTY: self.on_property,
            NodeType.STRING_LITERAL: self.on_string,
        })
        return handlers


async def find_completion_context(tree: Node,
                                  cursor: int,
                                  settings: Optional[Settings] = None,
                                  token: Optional[CancellationToken] = None,
                                  start_offset: int = 0) -> Optional[CompletionContext]:
    """The CSS property and string value being edited at `cursor`, or None."""
    settings = settings or Settings()
    if not settings.suggestions:
        return None
    traversal = _CompletionTraversal(cursor, settings, start_offset)
    await walk(tree, traversal.handlers(), token, CompletionState())
    if token is not None and token.is_cancellation_requested:
        return None
    return traversal.result
