"""
Recognizes how a file brings the styling library into scope and records it
in the walk's `ScopeTable`.
"""

from typing import Optional

from stylens.stylens_datatypes import Node, NodeType, dbg
from stylens.stylens_scope import ScopeTable
from stylens.stylens_settings import Settings


def _module_names(settings: Optional[Settings]):
    return (settings or Settings()).module_names


def _name_of(node: Optional[Node]) -> Optional[str]:
    """Identifier or string-literal name (`import { "create" as c }`)."""
    if node is None:
        return None
    if node.type in (NodeType.IDENTIFIER, NodeType.STRING_LITERAL):
        return node.value
    return None


def handle_imports(node: Node, table: ScopeTable, settings: Optional[Settings] = None) -> bool:
    """Records the specifiers of an `ImportDeclaration` from the styling library.

    Default and namespace imports bind a namespace; named imports bind
    `local -> imported`. Type-only imports are ignored. Returns whether the
    declaration imported the library.
    """
    if node.type is not NodeType.IMPORT_DECLARATION:
        return False
    if node.get("typeOnly") or _name_of(node.source) not in _module_names(settings):
        return False

    for specifier in node.get("specifiers", ()):
        match specifier.type:
            case NodeType.IMPORT_DEFAULT_SPECIFIER | NodeType.IMPORT_NAMESPACE_SPECIFIER:
                table.add_namespace(specifier.local.value)
            case NodeType.IMPORT_SPECIFIER:
                if specifier.get("isTypeOnly"):
                    continue
                local = specifier.local.value
                imported = _name_of(specifier.get("imported")) or local
                table.add_named_import(local, imported)
    dbg("styling import:", _name_of(node.source), table)
    return True


def _required_module(init: Optional[Node]) -> Optional[str]:
    if init is None or init.type is not NodeType.CALL_EXPRESSION:
        return None
    callee = init.callee
    if callee.type is not NodeType.IDENTIFIER or callee.value != "require":
        return None
    arguments = init.get("arguments", ())
    if len(arguments) != 1 or arguments[0].get("spread") is not None:
        return None
    source = arguments[0].expression
    if source.type is not NodeType.STRING_LITERAL:
        return None
    return source.value


def handle_requires(declarator: Node, table: ScopeTable, settings: Optional[Settings] = None) -> bool:
    """Records `const x = require(...)` and `const {create, keyframes: kf} = require(...)`."""
    if declarator.type is not NodeType.VARIABLE_DECLARATOR:
        return False
    if _required_module(declarator.get("init")) not in _module_names(settings):
        return False

    target = declarator.id
    match target.type:
        case NodeType.IDENTIFIER:
            table.add_namespace(target.value)
        case NodeType.OBJECT_PATTERN:
            for prop in target.properties:
                match prop.type:
                    case NodeType.ASSIGNMENT_PATTERN_PROPERTY:
                        table.add_named_import(prop.key.value, prop.key.value)
                    case NodeType.KEY_VALUE_PATTERN_PROPERTY:
                        imported = _name_of(prop.key)
                        if imported is not None and prop.value.type is NodeType.IDENTIFIER:
                            table.add_named_import(prop.value.value, imported)
        case _:
            return False
    dbg("styling require:", table)
    return True
