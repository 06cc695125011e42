"""
A pretty-printer for evaluation results and folded values, plus the hover
markdown renderer.
"""
import pystache

from stylens.stylens_datatypes import (
    NonStatic, StaticValue, StaticReference, BigInt, RegExpValue, UNDEFINED,
)
from stylens.stylens_jsops import number_to_string

HOVER_TEMPLATE = "```css\n{{css}}\n```"


class Printer:
    """Formats results and folded values in JS notation."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        # Fast path for singletons
        if obj is UNDEFINED: return self._pformat_undefined

        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, BigInt): return self._pformat_bigint
        if isinstance(obj, tuple): return self._pformat_array
        if isinstance(obj, dict): return self._pformat_object
        # Default to Python's repr for unknown types
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            int: self._pformat_number,
            float: self._pformat_number,
            bool: self._pformat_bool,
            type(None): self._pformat_null,
            BigInt: self._pformat_bigint,
            RegExpValue: self._pformat_primitive,
            tuple: self._pformat_array,
            dict: self._pformat_object,
            NonStatic: self._pformat_non_static,
            StaticValue: self._pformat_static,
            StaticReference: self._pformat_reference,
        }

    def _pformat_primitive(self, obj, level):
        return str(obj)

    def _pformat_str(self, obj, level):
        escaped = obj.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
        return f"'{escaped}'"

    def _pformat_number(self, obj, level):
        return number_to_string(obj)

    def _pformat_bigint(self, obj, level):
        return f"{int(obj)}n"

    def _pformat_bool(self, obj, level):
        return 'true' if obj else 'false'

    def _pformat_null(self, obj, level):
        return 'null'

    def _pformat_undefined(self, obj, level):
        return 'undefined'

    def _pformat_non_static(self, obj, level):
        return '<non-static>'

    def _pformat_static(self, obj, level):
        return f"<static {self.pformat(obj.value, level)}>"

    def _pformat_reference(self, obj, level):
        return f"<ref {obj.id}>"

    def _pformat_entry(self, result, level):
        # Container entries are results; show static ones as bare values.
        if isinstance(result, StaticValue):
            return self.pformat(result.value, level)
        return self.pformat(result, level)

    def _pformat_array(self, obj, level):
        return "[" + ", ".join(self._pformat_entry(e, level) for e in obj) + "]"

    def _pformat_object(self, obj, level):
        if not obj:
            return "{}"
        inner = self._indent_char * (level + 1)
        lines = [f"{inner}{key}: {self._pformat_entry(value, level + 1)}" for key, value in obj.items()]
        return "{\n" + ",\n".join(lines) + "\n" + self._indent_char * level + "}"


def render_hover_markdown(css: str) -> str:
    """Wraps generated CSS in a fenced markdown block for a hover tooltip."""
    renderer = pystache.Renderer(escape=lambda u: u)
    return renderer.render(HOVER_TEMPLATE, {"css": css})
