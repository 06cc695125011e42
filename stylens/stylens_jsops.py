"""
Closed-form JS runtime semantics over the folded value domain.

Only the values the evaluator produces are understood here: `UNDEFINED`,
None (null), bool, float, `BigInt`, str, `RegExpValue`, tuples of results
(arrays) and dicts of results (objects). Nothing reaches into Python's own
object model.
"""

import math
import re
from decimal import Decimal
from typing import Optional

from stylens.stylens_datatypes import (
    UNDEFINED, BigInt, RegExpValue, StaticValue, InvalidNodeError
)


class JSThrow(Exception):
    """The host would throw here (TypeError/RangeError)."""
    def __init__(self, kind: str, message: str = ""):
        super().__init__(f"{kind}: {message}" if message else kind)
        self.kind = kind


class Indeterminate(Exception):
    """Coercion depends on a part of a container that is not statically known."""
    pass


# Limit on result size for bigint `**` and `<<`, in bits.
_BIGINT_BITS_LIMIT = 1 << 20

_WHITESPACE = (" \t\n\r\v\f\u00a0\u1680\u2000\u2001\u2002\u2003\u2004\u2005\u2006"
               "\u2007\u2008\u2009\u200a\u2028\u2029\u202f\u205f\u3000\ufeff")
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)", re.ASCII)
_RADIX_RE = re.compile(r"0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")
_BIGINT_DECIMAL_RE = re.compile(r"[+-]?\d+", re.ASCII)
_RADIX = {"x": 16, "o": 8, "b": 2}


# =================================================================
# Type predicates
# =================================================================

def is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, (bool, BigInt))


def is_object(v) -> bool:
    return isinstance(v, (tuple, dict, RegExpValue))


def type_of(v) -> str:
    if v is UNDEFINED:
        return "undefined"
    if v is None:
        return "object"
    if isinstance(v, bool):
        return "boolean"
    if isinstance(v, BigInt):
        return "bigint"
    if is_number(v):
        return "number"
    if isinstance(v, str):
        return "string"
    return "object"


# =================================================================
# Conversions
# =================================================================

def to_boolean(v) -> bool:
    if v is UNDEFINED or v is None:
        return False
    if isinstance(v, bool):
        return v
    if isinstance(v, BigInt):
        return int(v) != 0
    if is_number(v):
        return not (v == 0 or math.isnan(v))
    if isinstance(v, str):
        return len(v) > 0
    return True


def _element_to_string(result) -> str:
    if not isinstance(result, StaticValue):
        raise Indeterminate("array element is not a static value")
    if result.value is None or result.value is UNDEFINED:
        return ""
    return to_string(result.value)


def to_primitive(v, hint: str = "default"):
    """OrdinaryToPrimitive for the folded containers."""
    if isinstance(v, tuple):
        return ",".join(_element_to_string(r) for r in v)
    if isinstance(v, dict):
        # A folded object may override the conversion with a method we cannot run.
        if "toString" in v or "valueOf" in v:
            raise Indeterminate("object defines its own conversion")
        return "[object Object]"
    if isinstance(v, RegExpValue):
        return str(v)
    return v


def string_to_number(s: str) -> float:
    text = s.strip(_WHITESPACE)
    if text == "":
        return 0.0
    if text in ("Infinity", "+Infinity"):
        return math.inf
    if text == "-Infinity":
        return -math.inf
    m = _RADIX_RE.fullmatch(text)
    if m:
        body = m.group(1)
        return float(int(body[1:], _RADIX[body[0].lower()]))
    if _DECIMAL_RE.fullmatch(text):
        return float(text)
    return math.nan


def string_to_bigint(s: str) -> Optional[int]:
    text = s.strip(_WHITESPACE)
    if text == "":
        return 0
    m = _RADIX_RE.fullmatch(text)
    if m:
        body = m.group(1)
        return int(body[1:], _RADIX[body[0].lower()])
    if _BIGINT_DECIMAL_RE.fullmatch(text):
        return int(text)
    return None


def to_number(v) -> float:
    if v is UNDEFINED:
        return math.nan
    if v is None:
        return 0.0
    if isinstance(v, bool):
        return 1.0 if v else 0.0
    if isinstance(v, BigInt):
        raise JSThrow("TypeError", "Cannot convert a BigInt value to a number")
    if is_number(v):
        return float(v)
    if isinstance(v, str):
        return string_to_number(v)
    return to_number(to_primitive(v, "number"))


def to_numeric(v):
    prim = to_primitive(v, "number")
    if isinstance(prim, BigInt):
        return prim
    return to_number(prim)


def number_to_string(x: float) -> str:
    """Number::toString(10): shortest round-trip digits in JS notation."""
    if math.isnan(x):
        return "NaN"
    if x == 0:
        return "0"
    if math.isinf(x):
        return "Infinity" if x > 0 else "-Infinity"
    sign = "-" if x < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(float(x)))).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = k + exponent
    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * (-n) + digits
    e = n - 1
    e_str = f"e{'+' if e >= 0 else '-'}{abs(e)}"
    if k == 1:
        return sign + digits + e_str
    return sign + digits[0] + "." + digits[1:] + e_str


def to_string(v) -> str:
    if v is UNDEFINED:
        return "undefined"
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, BigInt):
        return str(int(v))
    if is_number(v):
        return number_to_string(float(v))
    if isinstance(v, str):
        return v
    return to_string(to_primitive(v, "string"))


def to_property_key(v) -> str:
    return to_string(to_primitive(v, "string"))


def to_int32(n: float) -> int:
    if math.isnan(n) or math.isinf(n):
        return 0
    i = int(math.trunc(n)) % (1 << 32)
    return i - (1 << 32) if i >= (1 << 31) else i


def to_uint32(n: float) -> int:
    if math.isnan(n) or math.isinf(n):
        return 0
    return int(math.trunc(n)) % (1 << 32)


def array_index(key: str) -> Optional[int]:
    """The index a canonical numeric property key names, if any."""
    if key.isdigit() and key.isascii() and (key == "0" or not key.startswith("0")):
        index = int(key)
        if index < (1 << 32) - 1:
            return index
    return None


# =================================================================
# Comparisons
# =================================================================

def strict_equals(a, b) -> bool:
    if is_object(a) or is_object(b):
        return a is b
    if a is None or b is None or a is UNDEFINED or b is UNDEFINED:
        return a is b
    if type_of(a) != type_of(b):
        return False
    return a == b


def _bigint_equals_number(big: int, num: float) -> bool:
    if math.isnan(num) or math.isinf(num):
        return False
    return big == num


def loose_equals(a, b) -> bool:
    if type_of(a) == type_of(b) and (a is None) == (b is None):
        return strict_equals(a, b)
    nullish_a = a is None or a is UNDEFINED
    nullish_b = b is None or b is UNDEFINED
    if nullish_a or nullish_b:
        return nullish_a and nullish_b
    if is_number(a) and isinstance(b, str):
        return loose_equals(a, string_to_number(b))
    if isinstance(a, str) and is_number(b):
        return loose_equals(string_to_number(a), b)
    if isinstance(a, BigInt) and isinstance(b, str):
        n = string_to_bigint(b)
        return n is not None and int(a) == n
    if isinstance(a, str) and isinstance(b, BigInt):
        return loose_equals(b, a)
    if isinstance(a, bool):
        return loose_equals(to_number(a), b)
    if isinstance(b, bool):
        return loose_equals(a, to_number(b))
    if is_object(a) and not is_object(b):
        return loose_equals(to_primitive(a), b)
    if is_object(b) and not is_object(a):
        return loose_equals(a, to_primitive(b))
    if isinstance(a, BigInt) and is_number(b):
        return _bigint_equals_number(int(a), float(b))
    if is_number(a) and isinstance(b, BigInt):
        return _bigint_equals_number(int(b), float(a))
    return False


def less_than(x, y):
    """IsLessThan: True, False, or UNDEFINED when a NaN is involved."""
    px = to_primitive(x, "number")
    py = to_primitive(y, "number")
    if isinstance(px, str) and isinstance(py, str):
        return px.encode("utf-16-be") < py.encode("utf-16-be")
    if isinstance(px, BigInt) and isinstance(py, str):
        ny = string_to_bigint(py)
        return UNDEFINED if ny is None else int(px) < ny
    if isinstance(px, str) and isinstance(py, BigInt):
        nx = string_to_bigint(px)
        return UNDEFINED if nx is None else nx < int(py)
    nx = to_numeric(px)
    ny = to_numeric(py)
    if (not isinstance(nx, BigInt) and math.isnan(nx)) or (not isinstance(ny, BigInt) and math.isnan(ny)):
        return UNDEFINED
    # int/float comparison is exact in Python, which is what mixed bigint/number needs.
    return nx < ny


# =================================================================
# Operators
# =================================================================

def _number_divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, math.copysign(1.0, a) * math.copysign(1.0, b))
    return a / b


def _number_remainder(a: float, b: float) -> float:
    if math.isnan(a) or math.isnan(b) or math.isinf(a) or b == 0:
        return math.nan
    if math.isinf(b) or a == 0:
        return a
    return math.fmod(a, b)


def _is_odd_integer(b: float) -> bool:
    return math.isfinite(b) and b == math.trunc(b) and int(b) % 2 == 1


def _number_power(a: float, b: float) -> float:
    if math.isnan(b):
        return math.nan
    if b == 0:
        return 1.0
    if math.isnan(a):
        return math.nan
    if abs(a) == 1 and math.isinf(b):
        return math.nan
    if a == 0 and b < 0:
        negative = math.copysign(1.0, a) < 0 and _is_odd_integer(b)
        return -math.inf if negative else math.inf
    try:
        return math.pow(a, b)
    except OverflowError:
        return -math.inf if a < 0 and _is_odd_integer(b) else math.inf
    except ValueError:
        return math.nan


def _number_binary(op: str, a: float, b: float) -> float:
    match op:
        case "+":
            return a + b
        case "-":
            return a - b
        case "*":
            return a * b
        case "/":
            return _number_divide(a, b)
        case "%":
            return _number_remainder(a, b)
        case "**":
            return _number_power(a, b)
        case "<<":
            return float(to_int32(to_int32(a) << (to_uint32(b) & 31)))
        case ">>":
            return float(to_int32(a) >> (to_uint32(b) & 31))
        case ">>>":
            return float(to_uint32(a) >> (to_uint32(b) & 31))
        case "&":
            return float(to_int32(to_int32(a) & to_int32(b)))
        case "|":
            return float(to_int32(to_int32(a) | to_int32(b)))
        case "^":
            return float(to_int32(to_int32(a) ^ to_int32(b)))
    raise InvalidNodeError(f"Unknown binary operator: {op!r}")


def _bigint_shift_left(a: int, b: int) -> int:
    if b < 0:
        return a >> -b
    if a.bit_length() + b > _BIGINT_BITS_LIMIT:
        raise JSThrow("RangeError", "Maximum BigInt size exceeded")
    return a << b


def _bigint_binary(op: str, a: int, b: int) -> BigInt:
    match op:
        case "+":
            return BigInt(a + b)
        case "-":
            return BigInt(a - b)
        case "*":
            return BigInt(a * b)
        case "/" | "%":
            if b == 0:
                raise JSThrow("RangeError", "Division by zero")
            q = abs(a) // abs(b)
            if (a < 0) != (b < 0):
                q = -q
            return BigInt(q if op == "/" else a - b * q)
        case "**":
            if b < 0:
                raise JSThrow("RangeError", "Exponent must be non-negative")
            if b > 1 and a.bit_length() * b > _BIGINT_BITS_LIMIT:
                raise JSThrow("RangeError", "Maximum BigInt size exceeded")
            return BigInt(a ** b)
        case "<<":
            return BigInt(_bigint_shift_left(a, b))
        case ">>":
            return BigInt(_bigint_shift_left(a, -b))
        case ">>>":
            raise JSThrow("TypeError", "BigInts have no unsigned right shift, use >> instead")
        case "&":
            return BigInt(a & b)
        case "|":
            return BigInt(a | b)
        case "^":
            return BigInt(a ^ b)
    raise InvalidNodeError(f"Unknown binary operator: {op!r}")


ARITHMETIC_OPERATORS = frozenset(("+", "-", "*", "/", "%", "**", "<<", ">>", ">>>", "&", "|", "^"))
COMPARISON_OPERATORS = frozenset(("==", "!=", "===", "!==", "<", "<=", ">", ">="))


def compare(op: str, a, b) -> bool:
    match op:
        case "==":
            return loose_equals(a, b)
        case "!=":
            return not loose_equals(a, b)
        case "===":
            return strict_equals(a, b)
        case "!==":
            return not strict_equals(a, b)
        case "<":
            return less_than(a, b) is True
        case ">":
            return less_than(b, a) is True
        case "<=":
            r = less_than(b, a)
            return not (r is True or r is UNDEFINED)
        case ">=":
            r = less_than(a, b)
            return not (r is True or r is UNDEFINED)
    raise InvalidNodeError(f"Unknown comparison operator: {op!r}")


def arithmetic(op: str, a, b):
    """Arithmetic/bitwise operators over homogeneous number, bigint or string operands.

    Operands of different kinds (or anything but number/bigint/string) give
    `UNDEFINED` rather than a coerced result.
    """
    kind_a, kind_b = type_of(a), type_of(b)
    if kind_a not in ("number", "bigint", "string") or kind_a != kind_b:
        if op not in ARITHMETIC_OPERATORS:
            raise InvalidNodeError(f"Unknown binary operator: {op!r}")
        return UNDEFINED
    if kind_a == "string":
        if op == "+":
            return a + b
        return _number_binary(op, string_to_number(a), string_to_number(b))
    if kind_a == "bigint":
        return _bigint_binary(op, int(a), int(b))
    return _number_binary(op, float(a), float(b))


def has_property(key, container) -> bool:
    """The `in` operator, limited to own properties of folded containers."""
    if not is_object(container):
        raise JSThrow("TypeError", "Cannot use 'in' operator on a primitive")
    name = to_property_key(key)
    if isinstance(container, tuple):
        if name == "length":
            return True
        index = array_index(name)
        return index is not None and index < len(container)
    if isinstance(container, dict):
        return name in container
    return name == "lastIndex"


def instance_of(value, target) -> bool:
    # No folded value is callable, so the right-hand side is always rejected.
    raise JSThrow("TypeError", "Right-hand side of 'instanceof' is not callable")


def unary(op: str, v):
    match op:
        case "+":
            return to_number(v)
        case "-":
            n = to_numeric(v)
            return BigInt(-int(n)) if isinstance(n, BigInt) else -n
        case "!":
            return not to_boolean(v)
        case "~":
            n = to_numeric(v)
            return BigInt(~int(n)) if isinstance(n, BigInt) else float(to_int32(~to_int32(n)))
        case "typeof":
            return type_of(v)
        case "void":
            return UNDEFINED
    raise InvalidNodeError(f"Unknown unary operator: {op!r}")
