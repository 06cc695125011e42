"""
Loads syntax trees serialized by the external parser.
"""

import json
import os
from typing import Any, Optional

import yaml

from stylens.stylens_datatypes import Node, NodeType, InvalidNodeError


def _norm_text(data: bytes | bytearray | str) -> str:
    if isinstance(data, (bytes, bytearray)):
        return data.decode("utf-8", errors="replace")
    return data


def detect_format(text: str, path: Optional[str] = None) -> str:
    """Returns 'json' or 'yaml', from the file extension first, then by sniffing."""
    if path:
        ext = os.path.splitext(path)[1].lower()
        if ext == ".json":
            return "json"
        if ext in (".yaml", ".yml"):
            return "yaml"
    s = text.lstrip()
    if s.startswith("{") or s.startswith("["):
        return "json"
    return "yaml"


def load_tree(data: bytes | bytearray | str, fmt: Optional[str] = None) -> Node:
    """Parses serialized tree data and wraps the root as a `Node`."""
    text = _norm_text(data)
    f = fmt or detect_format(text)
    raw: Any
    if f == "json":
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidNodeError(f"Malformed JSON syntax tree: {e}") from e
    elif f == "yaml":
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise InvalidNodeError(f"Malformed YAML syntax tree: {e}") from e
    else:
        raise ValueError(f"Unsupported syntax tree format: {fmt!r}")

    if not isinstance(raw, dict) or "type" not in raw:
        raise InvalidNodeError("A syntax tree must be a mapping with a 'type' tag")
    root = Node(raw)
    if root.type not in (NodeType.MODULE, NodeType.SCRIPT):
        raise InvalidNodeError(f"Expected a Module or Script root, got {root.type_name}", root)
    return root


def load_tree_file(path: str) -> Node:
    with open(path, "rb") as f:
        data = f.read()
    text = _norm_text(data)
    return load_tree(text, detect_format(text, path))


__all__ = [
    "detect_format",
    "load_tree",
    "load_tree_file",
]
