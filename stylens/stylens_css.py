"""
Small CSS helpers shared by the hover and completion features: property name
conversion, unit handling for folded numbers and reading style-object keys.
"""

import re
from typing import Optional

from stylens.stylens_datatypes import Node, NodeType, NOT_FOUND
from stylens.stylens_jsops import Indeterminate, is_number, number_to_string, to_string
from stylens.stylens_scope import ScopeTable
from stylens.stylens_settings import Settings

_DASHIFY_RE = re.compile(r"(^|[a-z])([A-Z])")

# Numbers for these properties are written without a unit.
UNITLESS_PROPERTIES = frozenset((
    "animationIterationCount", "aspectRatio", "borderImageOutset", "borderImageSlice",
    "borderImageWidth", "boxFlex", "boxFlexGroup", "boxOrdinalGroup", "columnCount",
    "columns", "flex", "flexGrow", "flexPositive", "flexShrink", "flexNegative",
    "flexOrder", "gridRow", "gridRowEnd", "gridRowSpan", "gridRowStart", "gridColumn",
    "gridColumnEnd", "gridColumnSpan", "gridColumnStart", "fontWeight", "lineClamp",
    "lineHeight", "opacity", "order", "orphans", "tabSize", "widows", "zIndex", "zoom",
    "fillOpacity", "floodOpacity", "stopOpacity", "strokeDasharray", "strokeDashoffset",
    "strokeMiterlimit", "strokeOpacity", "strokeWidth", "mathDepth",
))

# Numbers for these properties are milliseconds.
TIME_PROPERTIES = frozenset((
    "animationDelay", "animationDuration", "transitionDelay", "transitionDuration",
))

ROOT_FONT_SIZE = 16


def dashify(name: str) -> str:
    """`backgroundColor` -> `background-color`, `MozAppearance` -> `-moz-appearance`."""
    if name.startswith("--"):
        return name
    return _DASHIFY_RE.sub(r"\1-\2", name).lower()


def transform_value(prop: str, value, settings: Optional[Settings] = None) -> str:
    """Renders a folded string or number as the CSS value of `prop`."""
    if isinstance(value, str):
        return value.strip()
    if not is_number(value):
        raise TypeError(f"Cannot render {value!r} as a CSS value")

    settings = settings or Settings()
    if prop.startswith("--") or prop in UNITLESS_PROPERTIES:
        return number_to_string(value)
    if prop in TIME_PROPERTIES:
        return "0s" if value == 0 else f"{number_to_string(value)}ms"
    if value == 0:
        return "0"
    if prop == "fontSize" and settings.use_rem_for_font_size:
        return f"{number_to_string(value / ROOT_FONT_SIZE)}rem"
    return f"{number_to_string(value)}px"


def calculate_key_value(node: Node, table: ScopeTable) -> Optional[str]:
    """The static key of a `KeyValueProperty`, or None.

    Computed keys are read when they are a string literal or a name bound to
    a folded constant.
    """
    key = node.key
    match key.type:
        case NodeType.IDENTIFIER | NodeType.STRING_LITERAL:
            return key.value
        case NodeType.COMPUTED:
            expression = key.expression
            if expression.type is NodeType.STRING_LITERAL:
                return expression.value
            if expression.type is NodeType.IDENTIFIER:
                constant = table.lookup_constant(expression.value)
                if constant is NOT_FOUND:
                    return None
                try:
                    return to_string(constant)
                except Indeterminate:
                    return None
    return None
