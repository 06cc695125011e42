"""
A generic, cooperative walker over parsed syntax trees.

Handlers are registered per `NodeType` (enter), per `exit_of(NodeType)`
(exit) or under `WILDCARD` (every node). Each handler is called as
`handler(node, state, parent)`, may be sync or async, and answers with a
`NextAction`:

    None                          keep the current state for the children
    Continue(state)               children see `state`
    ContinueIgnoring(state, ps)   like Continue, but skip the child positions `ps`
    SKIP_CHILDREN                 do not descend into this node
    ABORT                         stop the whole walk now

Exactly one handler runs at a time, in source order.
"""

import inspect
from enum import Enum
from typing import (
    Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Tuple, Union,
)

from stylens.stylens_datatypes import Node, NodeType, InvalidNodeError, dbg


# =================================================================
# Next actions
# =================================================================

class Continue:
    """Descend into the children with `state`."""
    __slots__ = ("state",)

    def __init__(self, state: Any):
        self.state = state

    def __repr__(self):
        return f"Continue({self.state!r})"


class ContinueIgnoring:
    """Descend with `state`, skipping the named child positions (`"callee"`, `"arguments.0"`)."""
    __slots__ = ("state", "paths")

    def __init__(self, state: Any, paths: Iterable[str]):
        self.state = state
        self.paths: FrozenSet[str] = frozenset(p for p in paths if p)

    def __repr__(self):
        return f"ContinueIgnoring({self.state!r}, {sorted(self.paths)!r})"


class _Signal:
    def __init__(self, name):
        self._name = name

    def __repr__(self):
        return self._name


SKIP_CHILDREN = _Signal("SKIP_CHILDREN")
ABORT = _Signal("ABORT")

NextAction = Union[None, Continue, ContinueIgnoring, _Signal]


# =================================================================
# Handler keys
# =================================================================

class _Wildcard:
    def __repr__(self):
        return "WILDCARD"


WILDCARD = _Wildcard()


class ExitKey(NamedTuple):
    node_type: NodeType


def exit_of(node_type: NodeType) -> ExitKey:
    """Key for a handler that runs after all children of `node_type` nodes."""
    return ExitKey(node_type)


Handler = Callable[[Node, Any, Optional[Node]], Union[NextAction, Awaitable[NextAction]]]


class CancellationToken:
    """Advisory cancellation flag checked by the walker between node visits."""
    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled


class WalkOutcome(Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


class _Stop(Exception):
    def __init__(self, outcome: WalkOutcome):
        super().__init__(outcome.value)
        self.outcome = outcome


# =================================================================
# Walker
# =================================================================

class Walker:
    """Runs one set of handlers over trees. Holds no per-walk state besides the token."""
    def __init__(self, handlers: Mapping[Any, Handler], token: Optional[CancellationToken] = None):
        self.token = token
        self.wildcard: Optional[Handler] = None
        self.enter: Dict[NodeType, Handler] = {}
        self.exit: Dict[NodeType, Handler] = {}
        for key, handler in handlers.items():
            if key is WILDCARD:
                self.wildcard = handler
            elif isinstance(key, ExitKey):
                self.exit[key.node_type] = handler
            elif isinstance(key, NodeType):
                self.enter[key] = handler
            else:
                raise TypeError(f"Handler key must be a NodeType, exit_of(NodeType) or WILDCARD, not {key!r}")

    async def walk(self, tree: Union[Node, Mapping[str, Any]], initial_state: Any = None) -> WalkOutcome:
        root = tree if isinstance(tree, Node) else Node(tree)
        if not root.tagged:
            raise InvalidNodeError("The root of a walk must be a tagged node", root)
        try:
            await self._visit(root, initial_state, None)
        except _Stop as stop:
            dbg("walk stopped:", stop.outcome.value)
            return stop.outcome
        return WalkOutcome.COMPLETED

    def _check_cancelled(self):
        if self.token is not None and self.token.is_cancellation_requested:
            raise _Stop(WalkOutcome.CANCELLED)

    async def _call(self, handler: Handler, node: Node, state: Any, parent: Optional[Node]) -> NextAction:
        action = handler(node, state, parent)
        if inspect.isawaitable(action):
            action = await action
        if action is ABORT:
            raise _Stop(WalkOutcome.ABORTED)
        return action

    def _apply(self, action: NextAction, state: Any, ignore: FrozenSet[str]):
        match action:
            case None:
                return state, ignore
            case Continue():
                return action.state, ignore
            case ContinueIgnoring():
                return action.state, ignore | action.paths
        raise TypeError(f"Handler returned {action!r}; expected None, Continue, ContinueIgnoring, "
                        f"SKIP_CHILDREN or ABORT")

    async def _visit(self, node: Node, state: Any, parent: Optional[Node]):
        self._check_cancelled()
        ignore: FrozenSet[str] = frozenset()

        if self.wildcard is not None:
            action = await self._call(self.wildcard, node, state, parent)
            if action is SKIP_CHILDREN:
                # Not entered: no typed enter, no children, no exit.
                return
            state, ignore = self._apply(action, state, ignore)

        skip_children = False
        handler = self.enter.get(node.type)
        if handler is not None:
            action = await self._call(handler, node, state, parent)
            if action is SKIP_CHILDREN:
                skip_children = True
            else:
                state, ignore = self._apply(action, state, ignore)

        if not skip_children:
            for child in self._children(node, ignore):
                await self._visit(child, state, node)

        exit_handler = self.exit.get(node.type)
        if exit_handler is not None:
            self._check_cancelled()
            await self._call(exit_handler, node, state, parent)

    def _children(self, node: Node, ignore: FrozenSet[str]) -> List[Node]:
        """The tagged children of `node` in source order.

        Parsers do not always list fields in source order (swc writes a
        template's `expressions` before its `quasis`), so children are sorted
        by span start. A child without a span stays after its field predecessor.
        """
        positioned = []
        start = -1
        for _, child in self._positions(node, ignore):
            if child.span is not None:
                start = child.span.start
            positioned.append((start, child))
        positioned.sort(key=lambda entry: entry[0])
        return [child for _, child in positioned]

    def _positions(self, node: Node, ignore: FrozenSet[str]) -> Iterator[Tuple[str, Node]]:
        for key, value in node.fields():
            yield from self._collect(value, key, ignore)

    def _collect(self, value: Any, path: str, ignore: FrozenSet[str]) -> Iterator[Tuple[str, Node]]:
        if path in ignore:
            return
        if isinstance(value, Node):
            if value.tagged:
                yield path, value
                return
            # Untagged record (e.g. a call argument): its fields are positions of the node.
            for key, child in value.fields():
                yield from self._collect(child, f"{path}.{key}", ignore)
        elif isinstance(value, tuple):
            for index, child in enumerate(value):
                yield from self._collect(child, f"{path}.{index}", ignore)


async def walk(tree: Union[Node, Mapping[str, Any]],
               handlers: Mapping[Any, Handler],
               token: Optional[CancellationToken] = None,
               initial_state: Any = None) -> WalkOutcome:
    """Walks `tree` once in source order with `handlers`, threading `initial_state`."""
    return await Walker(handlers, token).walk(tree, initial_state)
