"""
Defines the core data types shared by the stylens walker, evaluator and
scope table.

This module provides the read-only syntax tree view handed over by the
external parser, the value domain the partial evaluator folds into, the
tagged evaluation results, and the exceptions raised on contract
violations.
"""

import os
import re
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Mapping, NamedTuple, Optional, Tuple, Union


# =================================================================
# Errors
# =================================================================

class StylensError(Exception):
    """Base class for every error raised by stylens."""
    pass


class InvalidNodeError(StylensError):
    """A syntax tree violates its structural invariants (e.g. an `Invalid` node).

    This never happens for a well-formed parse and is not recoverable: callers
    abort the current operation and report nothing.
    """
    def __init__(self, message: str, node: Any = None):
        super().__init__(message)
        self.node = node


class ScopeError(StylensError):
    """Scope frames were pushed/popped out of order."""
    pass


class SettingsError(StylensError):
    """User configuration could not be read or has the wrong shape."""
    pass


def dbg(*parts):
    """Debug trace to stderr, enabled with STYLENS_DEBUG=1."""
    if os.environ.get("STYLENS_DEBUG"):
        print("[DBG]", *parts, file=sys.stderr)


# =================================================================
# Syntax tree
# =================================================================

class Span(NamedTuple):
    """Byte range [start, end] of a node in the parsed unit."""
    start: int
    end: int

    def contains(self, offset: int) -> bool:
        return self.start <= offset <= self.end

    def shifted(self, delta: int) -> 'Span':
        return Span(self.start + delta, self.end + delta)


class NodeType(Enum):
    """The closed set of node tags produced by the parser."""
    # Program
    MODULE = "Module"
    SCRIPT = "Script"
    INVALID = "Invalid"

    # Statements
    BLOCK_STATEMENT = "BlockStatement"
    EMPTY_STATEMENT = "EmptyStatement"
    DEBUGGER_STATEMENT = "DebuggerStatement"
    WITH_STATEMENT = "WithStatement"
    RETURN_STATEMENT = "ReturnStatement"
    LABELED_STATEMENT = "LabeledStatement"
    BREAK_STATEMENT = "BreakStatement"
    CONTINUE_STATEMENT = "ContinueStatement"
    IF_STATEMENT = "IfStatement"
    SWITCH_STATEMENT = "SwitchStatement"
    SWITCH_CASE = "SwitchCase"
    THROW_STATEMENT = "ThrowStatement"
    TRY_STATEMENT = "TryStatement"
    CATCH_CLAUSE = "CatchClause"
    WHILE_STATEMENT = "WhileStatement"
    DO_WHILE_STATEMENT = "DoWhileStatement"
    FOR_STATEMENT = "ForStatement"
    FOR_IN_STATEMENT = "ForInStatement"
    FOR_OF_STATEMENT = "ForOfStatement"
    EXPRESSION_STATEMENT = "ExpressionStatement"

    # Declarations
    CLASS_DECLARATION = "ClassDeclaration"
    FUNCTION_DECLARATION = "FunctionDeclaration"
    VARIABLE_DECLARATION = "VariableDeclaration"
    VARIABLE_DECLARATOR = "VariableDeclarator"
    USING_DECLARATION = "UsingDeclaration"

    # Module items
    IMPORT_DECLARATION = "ImportDeclaration"
    IMPORT_SPECIFIER = "ImportSpecifier"
    IMPORT_DEFAULT_SPECIFIER = "ImportDefaultSpecifier"
    IMPORT_NAMESPACE_SPECIFIER = "ImportNamespaceSpecifier"
    EXPORT_DECLARATION = "ExportDeclaration"
    EXPORT_NAMED_DECLARATION = "ExportNamedDeclaration"
    EXPORT_DEFAULT_DECLARATION = "ExportDefaultDeclaration"
    EXPORT_DEFAULT_EXPRESSION = "ExportDefaultExpression"
    EXPORT_ALL_DECLARATION = "ExportAllDeclaration"
    EXPORT_SPECIFIER = "ExportSpecifier"
    EXPORT_NAMESPACE_SPECIFIER = "ExportNamespaceSpecifier"
    EXPORT_DEFAULT_SPECIFIER = "ExportDefaultSpecifier"

    # Expressions
    THIS_EXPRESSION = "ThisExpression"
    ARRAY_EXPRESSION = "ArrayExpression"
    OBJECT_EXPRESSION = "ObjectExpression"
    FUNCTION_EXPRESSION = "FunctionExpression"
    ARROW_FUNCTION_EXPRESSION = "ArrowFunctionExpression"
    CLASS_EXPRESSION = "ClassExpression"
    UNARY_EXPRESSION = "UnaryExpression"
    UPDATE_EXPRESSION = "UpdateExpression"
    BINARY_EXPRESSION = "BinaryExpression"
    ASSIGNMENT_EXPRESSION = "AssignmentExpression"
    MEMBER_EXPRESSION = "MemberExpression"
    SUPER_PROP_EXPRESSION = "SuperPropExpression"
    CONDITIONAL_EXPRESSION = "ConditionalExpression"
    CALL_EXPRESSION = "CallExpression"
    NEW_EXPRESSION = "NewExpression"
    SEQUENCE_EXPRESSION = "SequenceExpression"
    TEMPLATE_LITERAL = "TemplateLiteral"
    TEMPLATE_ELEMENT = "TemplateElement"
    TAGGED_TEMPLATE_EXPRESSION = "TaggedTemplateExpression"
    YIELD_EXPRESSION = "YieldExpression"
    AWAIT_EXPRESSION = "AwaitExpression"
    META_PROPERTY = "MetaProperty"
    PARENTHESIS_EXPRESSION = "ParenthesisExpression"
    OPTIONAL_CHAINING_EXPRESSION = "OptionalChainingExpression"
    PRIVATE_NAME = "PrivateName"
    SUPER = "Super"
    IMPORT = "Import"
    IDENTIFIER = "Identifier"

    # Literals
    STRING_LITERAL = "StringLiteral"
    NUMERIC_LITERAL = "NumericLiteral"
    BOOLEAN_LITERAL = "BooleanLiteral"
    NULL_LITERAL = "NullLiteral"
    BIGINT_LITERAL = "BigIntLiteral"
    REGEXP_LITERAL = "RegExpLiteral"

    # Object members and patterns
    SPREAD_ELEMENT = "SpreadElement"
    KEY_VALUE_PROPERTY = "KeyValueProperty"
    ASSIGNMENT_PROPERTY = "AssignmentProperty"
    GETTER_PROPERTY = "GetterProperty"
    SETTER_PROPERTY = "SetterProperty"
    METHOD_PROPERTY = "MethodProperty"
    COMPUTED = "Computed"
    OBJECT_PATTERN = "ObjectPattern"
    ARRAY_PATTERN = "ArrayPattern"
    REST_ELEMENT = "RestElement"
    ASSIGNMENT_PATTERN = "AssignmentPattern"
    KEY_VALUE_PATTERN_PROPERTY = "KeyValuePatternProperty"
    ASSIGNMENT_PATTERN_PROPERTY = "AssignmentPatternProperty"

    # Functions and classes
    PARAMETER = "Parameter"
    DECORATOR = "Decorator"
    CLASS_METHOD = "ClassMethod"
    CLASS_PROPERTY = "ClassProperty"
    PRIVATE_METHOD = "PrivateMethod"
    PRIVATE_PROPERTY = "PrivateProperty"
    CONSTRUCTOR = "Constructor"
    STATIC_BLOCK = "StaticBlock"
    AUTO_ACCESSOR = "AutoAccessor"

    # JSX
    JSX_ELEMENT = "JSXElement"
    JSX_FRAGMENT = "JSXFragment"
    JSX_TEXT = "JSXText"
    JSX_EMPTY_EXPRESSION = "JSXEmptyExpression"
    JSX_MEMBER_EXPRESSION = "JSXMemberExpression"
    JSX_NAMESPACED_NAME = "JSXNamespacedName"
    JSX_OPENING_ELEMENT = "JSXOpeningElement"
    JSX_CLOSING_ELEMENT = "JSXClosingElement"
    JSX_OPENING_FRAGMENT = "JSXOpeningFragment"
    JSX_CLOSING_FRAGMENT = "JSXClosingFragment"
    JSX_ATTRIBUTE = "JSXAttribute"
    JSX_SPREAD_CHILD = "JSXSpreadChild"
    JSX_EXPRESSION_CONTAINER = "JSXExpressionContainer"

    # TypeScript expressions
    TS_AS_EXPRESSION = "TsAsExpression"
    TS_SATISFIES_EXPRESSION = "TsSatisfiesExpression"
    TS_NON_NULL_EXPRESSION = "TsNonNullExpression"
    TS_CONST_ASSERTION = "TsConstAssertion"
    TS_TYPE_ASSERTION = "TsTypeAssertion"
    TS_INSTANTIATION = "TsInstantiation"

    # TypeScript declarations and types
    TS_INTERFACE_DECLARATION = "TsInterfaceDeclaration"
    TS_INTERFACE_BODY = "TsInterfaceBody"
    TS_TYPE_ALIAS_DECLARATION = "TsTypeAliasDeclaration"
    TS_ENUM_DECLARATION = "TsEnumDeclaration"
    TS_ENUM_MEMBER = "TsEnumMember"
    TS_MODULE_DECLARATION = "TsModuleDeclaration"
    TS_MODULE_BLOCK = "TsModuleBlock"
    TS_NAMESPACE_DECLARATION = "TsNamespaceDeclaration"
    TS_IMPORT_EQUALS_DECLARATION = "TsImportEqualsDeclaration"
    TS_EXTERNAL_MODULE_REFERENCE = "TsExternalModuleReference"
    TS_EXPORT_ASSIGNMENT = "TsExportAssignment"
    TS_NAMESPACE_EXPORT_DECLARATION = "TsNamespaceExportDeclaration"
    TS_TYPE_ANNOTATION = "TsTypeAnnotation"
    TS_TYPE_PARAMETER_DECLARATION = "TsTypeParameterDeclaration"
    TS_TYPE_PARAMETER = "TsTypeParameter"
    TS_TYPE_PARAMETER_INSTANTIATION = "TsTypeParameterInstantiation"
    TS_PARAMETER_PROPERTY = "TsParameterProperty"
    TS_QUALIFIED_NAME = "TsQualifiedName"
    TS_INDEX_SIGNATURE = "TsIndexSignature"
    TS_KEYWORD_TYPE = "TsKeywordType"
    TS_THIS_TYPE = "TsThisType"
    TS_FUNCTION_TYPE = "TsFunctionType"
    TS_CONSTRUCTOR_TYPE = "TsConstructorType"
    TS_TYPE_REFERENCE = "TsTypeReference"
    TS_TYPE_QUERY = "TsTypeQuery"
    TS_TYPE_LITERAL = "TsTypeLiteral"
    TS_ARRAY_TYPE = "TsArrayType"
    TS_TUPLE_TYPE = "TsTupleType"
    TS_TUPLE_ELEMENT = "TsTupleElement"
    TS_OPTIONAL_TYPE = "TsOptionalType"
    TS_REST_TYPE = "TsRestType"
    TS_UNION_TYPE = "TsUnionType"
    TS_INTERSECTION_TYPE = "TsIntersectionType"
    TS_CONDITIONAL_TYPE = "TsConditionalType"
    TS_INFER_TYPE = "TsInferType"
    TS_PARENTHESIZED_TYPE = "TsParenthesizedType"
    TS_TYPE_OPERATOR = "TsTypeOperator"
    TS_INDEXED_ACCESS_TYPE = "TsIndexedAccessType"
    TS_MAPPED_TYPE = "TsMappedType"
    TS_LITERAL_TYPE = "TsLiteralType"
    TS_TYPE_PREDICATE = "TsTypePredicate"
    TS_IMPORT_TYPE = "TsImportType"
    TS_PROPERTY_SIGNATURE = "TsPropertySignature"
    TS_GETTER_SIGNATURE = "TsGetterSignature"
    TS_SETTER_SIGNATURE = "TsSetterSignature"
    TS_METHOD_SIGNATURE = "TsMethodSignature"
    TS_CALL_SIGNATURE_DECLARATION = "TsCallSignatureDeclaration"
    TS_CONSTRUCT_SIGNATURE_DECLARATION = "TsConstructSignatureDeclaration"
    TS_EXPRESSION_WITH_TYPE_ARGUMENTS = "TsExpressionWithTypeArguments"
    TS_TEMPLATE_LITERAL_TYPE = "TsTemplateLiteralType"

    @classmethod
    def from_tag(cls, tag: str) -> 'NodeType':
        try:
            return cls(tag)
        except ValueError:
            raise InvalidNodeError(f"Unknown node type: {tag!r}") from None


_CAMEL_RE = re.compile(r"_([a-z])")
_RESERVED_FIELDS = ("type", "span", "ctxt")


def _camel(name: str) -> str:
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), name)


def _to_span(raw: Any) -> Optional[Span]:
    if isinstance(raw, Span):
        return raw
    if isinstance(raw, Mapping) and "start" in raw and "end" in raw:
        return Span(int(raw["start"]), int(raw["end"]))
    return None


def _wrap(value: Any) -> Any:
    if isinstance(value, Node):
        return value
    if isinstance(value, Mapping):
        return Node(value)
    if isinstance(value, (list, tuple)):
        return tuple(_wrap(v) for v in value)
    return value


class Node:
    """A read-only view of one mapping of the parsed tree.

    Tagged nodes carry a `NodeType` and a `Span`; untagged records (call
    arguments, spread markers) have `type` None. Fields are reachable as
    snake_case attributes (`node.type_arguments` reads `typeArguments`) or
    through `get()` with the raw key.
    """
    def __init__(self, mapping: Mapping[str, Any]):
        if not isinstance(mapping, Mapping):
            raise InvalidNodeError(f"Node expects a mapping, not {type(mapping).__name__}")
        tag = mapping.get("type")
        if tag is not None and not isinstance(tag, str):
            raise InvalidNodeError(f"Node type must be a string, not {type(tag).__name__}")
        object.__setattr__(self, "_mapping", mapping)
        object.__setattr__(self, "type", NodeType.from_tag(tag) if tag is not None else None)
        object.__setattr__(self, "span", _to_span(mapping.get("span")))

    def __setattr__(self, key, value):
        raise AttributeError("Node is read-only")

    def __delattr__(self, key):
        raise AttributeError("Node is read-only")

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        mapping = self._mapping
        if name in mapping:
            return _wrap(mapping[name])
        key = _camel(name)
        if key in mapping:
            return _wrap(mapping[key])
        raise AttributeError(f"{self.type_name or 'record'} has no field {name!r}")

    @property
    def tagged(self) -> bool:
        return self.type is not None

    @property
    def type_name(self) -> Optional[str]:
        return self.type.value if self.type is not None else None

    def get(self, key: str, default: Any = None) -> Any:
        """Reads a raw (camelCase) field, wrapping nested nodes."""
        if key in self._mapping:
            value = self._mapping[key]
            return default if value is None else _wrap(value)
        return default

    def fields(self) -> Iterator[Tuple[str, Any]]:
        """Yields (key, value) for every child-bearing field in mapping order."""
        for key, value in self._mapping.items():
            if key in _RESERVED_FIELDS:
                continue
            yield key, _wrap(value)

    def __eq__(self, other):
        if not isinstance(other, Node):
            return NotImplemented
        return self._mapping == other._mapping

    __hash__ = None

    def __repr__(self) -> str:
        if self.type is None:
            return f"<record keys={list(self._mapping.keys())!r}>"
        return f"<{self.type.value} span={tuple(self.span) if self.span else None}>"


# =================================================================
# Value domain
# =================================================================

class _Undefined:
    """The JS `undefined` value (Python None stands for JS `null`)."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "undefined"


UNDEFINED = _Undefined()


class BigInt(int):
    """A JS bigint, kept apart from numbers (which are always floats)."""
    def __repr__(self):
        return f"{int(self)}n"


@dataclass(frozen=True)
class RegExpValue:
    pattern: str
    flags: str = ""

    def __str__(self):
        return f"/{self.pattern}/{self.flags}"


class _NotFound:
    def __bool__(self):
        return False

    def __repr__(self):
        return "NOT_FOUND"


# Scope lookup miss; distinct from every folded value including None/UNDEFINED.
NOT_FOUND = _NotFound()


# =================================================================
# Evaluation results
# =================================================================

class NonStatic:
    """The value cannot be known without running the program."""
    _instance = None
    is_static = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "NON_STATIC"


NON_STATIC = NonStatic()


@dataclass(frozen=True)
class StaticValue:
    """A folded value together with the span it was computed from.

    `value` is a primitive, a tuple of results (folded array) or a
    dict of results keyed by property name (folded object).
    """
    value: Any
    span: Span
    is_static = True


@dataclass(frozen=True)
class StaticReference:
    """A stable symbolic name (`color`, `tokens.primary`) with no literal value."""
    id: str
    span: Span
    is_static = True


EvaluationResult = Union[NonStatic, StaticValue, StaticReference]
