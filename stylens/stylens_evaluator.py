"""
The stylens partial evaluator.

Folds an expression node into a `StaticValue`, a `StaticReference` or
`NON_STATIC` without running anything. Operators follow the JS rules
implemented in `stylens_jsops`; whatever cannot be decided from the source
alone is `NON_STATIC`.
"""

from typing import Any, Mapping, Optional, Sequence, Union

from stylens.stylens_datatypes import (
    Node, NodeType, Span, InvalidNodeError,
    UNDEFINED, BigInt, RegExpValue,
    NON_STATIC, StaticValue, StaticReference, EvaluationResult,
)
from stylens.stylens_jsops import (
    JSThrow, Indeterminate,
    COMPARISON_OPERATORS, compare, arithmetic, has_property, instance_of, unary,
    to_boolean, to_string, to_property_key, number_to_string, array_index,
)
from stylens.stylens_scope import ScopeTable

# Wrappers that only narrow types; the value is the wrapped expression's.
_TRANSPARENT = frozenset((
    NodeType.PARENTHESIS_EXPRESSION,
    NodeType.TS_AS_EXPRESSION,
    NodeType.TS_SATISFIES_EXPRESSION,
    NodeType.TS_NON_NULL_EXPRESSION,
    NodeType.TS_CONST_ASSERTION,
    NodeType.TS_TYPE_ASSERTION,
    NodeType.TS_INSTANTIATION,
))

# Inherited members of plain objects; reading one yields a function.
_OBJECT_PROTOTYPE_KEYS = frozenset((
    "constructor", "hasOwnProperty", "isPrototypeOf", "propertyIsEnumerable",
    "toLocaleString", "toString", "valueOf", "__proto__",
    "__defineGetter__", "__defineSetter__", "__lookupGetter__", "__lookupSetter__",
))

FALLBACK_API = "firstThatWorks"


def _respan(result: EvaluationResult, span: Span) -> EvaluationResult:
    if isinstance(result, StaticValue):
        return StaticValue(result.value, span)
    if isinstance(result, StaticReference):
        return StaticReference(result.id, span)
    return NON_STATIC


class Evaluator:
    """Folds expressions against one walk's `ScopeTable`.

    The table is only consulted to recognize the fallback helper
    (`stylex.firstThatWorks(...)` or an imported `firstThatWorks`); bare
    identifiers are never resolved here. Callers that folded constants into
    the table look them up themselves.
    """
    def __init__(self, table: ScopeTable):
        self.table = table

    def eval(self, node: Union[Node, Mapping[str, Any]]) -> EvaluationResult:
        if not isinstance(node, Node):
            node = Node(node)
        if node.type is None:
            raise InvalidNodeError("Cannot evaluate an untagged record", node)
        span = node.span

        match node.type:
            case NodeType.STRING_LITERAL | NodeType.BOOLEAN_LITERAL:
                return StaticValue(node.value, span)
            case NodeType.NUMERIC_LITERAL:
                return StaticValue(float(node.value), span)
            case NodeType.BIGINT_LITERAL:
                return StaticValue(self._bigint_value(node), span)
            case NodeType.NULL_LITERAL:
                return StaticValue(None, span)
            case NodeType.REGEXP_LITERAL:
                return StaticValue(RegExpValue(node.pattern, node.get("flags", "")), span)
            case NodeType.INVALID:
                raise InvalidNodeError("Invalid expression", node)

            case NodeType.IDENTIFIER:
                if node.value == "undefined":
                    return StaticValue(UNDEFINED, span)
                return StaticReference(node.value, span)

            case NodeType.ARRAY_EXPRESSION:
                return self._fold_elements(node.elements, span)
            case NodeType.OBJECT_EXPRESSION:
                return self._fold_object(node)

            case NodeType.AWAIT_EXPRESSION:
                result = self.eval(node.argument)
                return result if result.is_static else NON_STATIC

            case NodeType.BINARY_EXPRESSION:
                return self._fold_binary(node)
            case NodeType.UNARY_EXPRESSION:
                return self._fold_unary(node)

            case t if t in _TRANSPARENT:
                return self.eval(node.expression)

            case NodeType.ASSIGNMENT_EXPRESSION:
                return self.eval(node.right)

            case NodeType.CONDITIONAL_EXPRESSION:
                test = self.eval(node.test)
                if not isinstance(test, StaticValue):
                    return NON_STATIC
                return self.eval(node.consequent if to_boolean(test.value) else node.alternate)

            case NodeType.TEMPLATE_LITERAL:
                return self._fold_template(node)
            case NodeType.TEMPLATE_ELEMENT:
                return StaticValue(node.get("cooked") or node.get("raw", ""), span)

            case NodeType.CALL_EXPRESSION:
                if self._is_fallback_call(node.callee):
                    # Argument order is preference order; CSS wants the preferred value last.
                    folded = self._fold_elements(node.arguments, span)
                    return StaticValue(tuple(reversed(folded.value)), span)
                return NON_STATIC

            case NodeType.COMPUTED:
                return self.eval(node.expression)
            case NodeType.MEMBER_EXPRESSION:
                return self._fold_member(node)
            case NodeType.PRIVATE_NAME:
                return self.eval(node.id)
            case NodeType.SEQUENCE_EXPRESSION:
                return self.eval(node.expressions[-1])

            case _:
                # Functions, classes, `new`, `this`, JSX, optional chains, yield,
                # meta properties, tagged templates, updates...
                return NON_STATIC

    # --- Literals ---

    def _bigint_value(self, node: Node) -> BigInt:
        value = node.get("value")
        if isinstance(value, int) and not isinstance(value, bool):
            return BigInt(value)
        text = value if isinstance(value, str) else node.get("raw")
        if isinstance(text, str):
            text = text.strip().rstrip("n").replace("_", "")
            try:
                return BigInt(int(text, 0))
            except ValueError:
                pass
        raise InvalidNodeError(f"Malformed bigint literal: {value!r}", node)

    # --- Containers ---

    def _fold_elements(self, elements: Sequence[Optional[Node]], span: Span) -> StaticValue:
        """Folds array elements (or call arguments); spreads of static arrays/strings are flattened."""
        values = []
        for element in elements:
            if element is None:
                values.append(StaticValue(UNDEFINED, span))
                continue
            result = self.eval(element.expression)
            if element.get("spread") is None:
                values.append(result)
                continue
            if isinstance(result, StaticValue):
                if isinstance(result.value, tuple):
                    values.extend(result.value)
                    continue
                if isinstance(result.value, str):
                    values.extend(StaticValue(ch, result.span) for ch in result.value)
                    continue
            # Spreading something unknown (or not iterable) stays one opaque entry.
            values.append(NON_STATIC)
        return StaticValue(tuple(values), span)

    def _fold_object(self, node: Node) -> StaticValue:
        result = {}
        for prop in node.properties:
            match prop.type:
                case NodeType.SPREAD_ELEMENT:
                    spread = self.eval(prop.arguments)
                    if isinstance(spread, StaticValue):
                        self._merge_spread(result, spread)
                case NodeType.KEY_VALUE_PROPERTY | NodeType.ASSIGNMENT_PROPERTY:
                    key = self._property_key(prop.key)
                    if key is not None:
                        result[key] = self.eval(prop.value)
                case NodeType.GETTER_PROPERTY | NodeType.SETTER_PROPERTY | NodeType.METHOD_PROPERTY:
                    continue
                case NodeType.IDENTIFIER:
                    # Shorthand `{ color }`
                    shorthand = self.eval(prop)
                    if shorthand.is_static:
                        result[prop.value] = shorthand
        return StaticValue(result, node.span)

    def _merge_spread(self, target: dict, spread: StaticValue):
        value = spread.value
        if isinstance(value, dict):
            target.update(value)
        elif isinstance(value, tuple):
            for index, entry in enumerate(value):
                target[str(index)] = entry
        elif isinstance(value, str):
            for index, ch in enumerate(value):
                target[str(index)] = StaticValue(ch, spread.span)

    def _property_key(self, key: Node) -> Optional[str]:
        match key.type:
            case NodeType.IDENTIFIER | NodeType.STRING_LITERAL:
                return key.value
            case NodeType.NUMERIC_LITERAL:
                return number_to_string(float(key.value))
            case NodeType.BIGINT_LITERAL:
                return str(int(self._bigint_value(key)))
            case NodeType.COMPUTED:
                result = self.eval(key.expression)
                if not isinstance(result, StaticValue):
                    return None
                try:
                    return to_property_key(result.value)
                except Indeterminate:
                    return None
        return None

    # --- Operators ---

    def _fold_binary(self, node: Node) -> EvaluationResult:
        op = node.operator
        left = self.eval(node.left)

        if op in ("&&", "||", "??"):
            if not isinstance(left, StaticValue):
                return NON_STATIC
            lv = left.value
            match op:
                case "&&":
                    decided = not to_boolean(lv)
                case "||":
                    decided = to_boolean(lv)
                case _:
                    decided = lv is not None and lv is not UNDEFINED
            if decided:
                return StaticValue(lv, node.span)
            right = self.eval(node.right)
            if not isinstance(right, StaticValue):
                return NON_STATIC
            return StaticValue(right.value, node.span)

        right = self.eval(node.right)
        if not isinstance(left, StaticValue) or not isinstance(right, StaticValue):
            return NON_STATIC
        lv, rv = left.value, right.value

        try:
            if op in COMPARISON_OPERATORS:
                value = compare(op, lv, rv)
            elif op == "in":
                try:
                    value = has_property(lv, rv)
                except JSThrow:
                    value = False
            elif op == "instanceof":
                try:
                    value = instance_of(lv, rv)
                except JSThrow:
                    value = False
            else:
                value = arithmetic(op, lv, rv)
        except (Indeterminate, JSThrow):
            return NON_STATIC
        return StaticValue(value, node.span)

    def _fold_unary(self, node: Node) -> EvaluationResult:
        op = node.operator
        if op == "delete":
            return NON_STATIC
        operand = self.eval(node.argument)
        if not isinstance(operand, StaticValue):
            return NON_STATIC
        try:
            value = unary(op, operand.value)
        except JSThrow:
            if op != "+":
                return NON_STATIC
            value = UNDEFINED
        except Indeterminate:
            return NON_STATIC
        return StaticValue(value, node.span)

    # --- Templates ---

    def _fold_template(self, node: Node) -> EvaluationResult:
        expressions = node.get("expressions", ())
        parts = []
        for index, quasi in enumerate(node.quasis):
            text = self.eval(quasi)
            if not isinstance(text, StaticValue):
                return NON_STATIC
            parts.append(to_string(text.value))
            if index >= len(expressions):
                continue
            result = self.eval(expressions[index])
            if isinstance(result, StaticReference):
                parts.append(f"var(--{result.id})")
            elif isinstance(result, StaticValue):
                try:
                    parts.append(to_string(result.value))
                except Indeterminate:
                    return NON_STATIC
            else:
                return NON_STATIC
        return StaticValue("".join(parts), node.span)

    # --- Calls and members ---

    def _is_fallback_call(self, callee: Node) -> bool:
        if callee.type is NodeType.MEMBER_EXPRESSION:
            obj, prop = callee.object, callee.property
            return (
                obj.type is NodeType.IDENTIFIER
                and self.table.is_styling_namespace(obj.value)
                and prop.type is NodeType.IDENTIFIER
                and prop.value == FALLBACK_API
            )
        if callee.type is NodeType.IDENTIFIER:
            return self.table.resolve_named_import(callee.value) == FALLBACK_API
        return False

    def _member_key(self, prop: Node) -> Optional[str]:
        match prop.type:
            case NodeType.IDENTIFIER:
                return prop.value
            case NodeType.PRIVATE_NAME:
                return prop.id.value
            case NodeType.COMPUTED:
                result = self.eval(prop.expression)
                if not isinstance(result, StaticValue):
                    return None
                try:
                    return to_property_key(result.value)
                except Indeterminate:
                    return None
        return None

    def _fold_member(self, node: Node) -> EvaluationResult:
        base = self.eval(node.object)
        if base is NON_STATIC:
            return NON_STATIC
        key = self._member_key(node.property)
        if key is None:
            return NON_STATIC
        span = node.span

        if isinstance(base, StaticReference):
            return StaticReference(f"{base.id}.{key}", span)

        container = base.value
        if isinstance(container, dict):
            if key in container:
                return _respan(container[key], span)
            if key in _OBJECT_PROTOTYPE_KEYS:
                return NON_STATIC
            return StaticValue(UNDEFINED, span)
        if isinstance(container, tuple):
            if key == "length":
                return StaticValue(float(len(container)), span)
            index = array_index(key)
            if index is None:
                # Array.prototype members are functions.
                return NON_STATIC
            if index < len(container):
                return _respan(container[index], span)
            return StaticValue(UNDEFINED, span)
        return NON_STATIC


def evaluate(node: Union[Node, Mapping[str, Any]], table: ScopeTable) -> EvaluationResult:
    """Folds one expression-like node against `table`."""
    return Evaluator(table).eval(node)
