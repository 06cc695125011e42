"""
Lexical constant frames and styling-import bindings for one walk.
"""

from typing import Any, Dict, List, Optional, Set

from stylens.stylens_datatypes import NOT_FOUND, ScopeError

# API entry points the analysis knows how to read.
RECOGNIZED_APIS = frozenset((
    "create",
    "createTheme",
    "defineVars",
    "keyframes",
    "firstThatWorks",
))


class ScopeTable:
    """Tracks folded `const` bindings per block and the names bound to the styling library.

    Frames are pushed on block entry and popped on block exit; lookups go from
    the innermost frame outwards, so an inner binding hides an outer one of the
    same name until its frame is popped. The import table is filled while the
    file's import/require statements are visited and only read afterwards.

    One instance belongs to exactly one walk.
    """
    def __init__(self):
        self.frames: List[Dict[str, Any]] = []
        # Local names bound to the library itself (default/namespace/require).
        self.namespaces: Set[str] = set()
        # Local name -> imported API name.
        self.named_imports: Dict[str, str] = {}

    # --- Constant frames ---

    def push_scope(self):
        self.frames.append({})

    def pop_scope(self):
        if not self.frames:
            raise ScopeError("pop_scope called with no open scope")
        self.frames.pop()

    @property
    def depth(self) -> int:
        return len(self.frames)

    def bind_constant(self, name: str, value: Any):
        """Binds `name` in the innermost open frame."""
        if not self.frames:
            raise ScopeError(f"bind_constant({name!r}) called with no open scope")
        self.frames[-1][name] = value

    def lookup_constant(self, name: str) -> Any:
        """Returns the innermost binding of `name`, or NOT_FOUND."""
        for frame in reversed(self.frames):
            if name in frame:
                return frame[name]
        return NOT_FOUND

    # --- Import table ---

    def add_namespace(self, local: str):
        self.namespaces.add(local)

    def add_named_import(self, local: str, imported: str):
        self.named_imports[local] = imported

    def is_styling_namespace(self, name: str) -> bool:
        return name in self.namespaces

    def resolve_named_import(self, name: str) -> Optional[str]:
        """The recognized API a local name was imported as, if any."""
        imported = self.named_imports.get(name)
        if imported in RECOGNIZED_APIS:
            return imported
        return None

    def __repr__(self) -> str:
        return (f"<ScopeTable depth={len(self.frames)} namespaces={sorted(self.namespaces)} "
                f"imports={self.named_imports!r}>")
