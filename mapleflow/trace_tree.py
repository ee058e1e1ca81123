"""Decision trees learned from the traces of a policy's runs.

Each tree records which reads and tests a policy made and, at each leaf,
the action it chose.  Running the policy on a new packet yields a trace;
:meth:`TraceTree.augment` folds that trace into the tree.  Parts of the
tree that depended on state that has since changed can be cut away with
:meth:`TraceTree.invalidate`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional, Sequence, Union

from mapleflow.header import Header
from mapleflow.trace import Event, GotoEvent, ReadEnvEvent, ReadEvent, TestEvent, Trace

Predicate = Callable[[str, Any], bool]


@dataclass
class Empty:
    """A part of the tree no packet has reached yet."""


@dataclass
class Leaf:
    """The action chosen after the reads and tests on the path here."""

    action: Any


@dataclass
class ValueNode:
    """A field was read; one subtree for each value seen."""

    name: str
    branches: dict[int, "Node"] = field(default_factory=dict)


@dataclass
class TestNode:
    """A field was compared with a value."""

    __test__ = False

    name: str
    value: int
    on_true: "Node" = field(default_factory=Empty)
    on_false: "Node" = field(default_factory=Empty)


@dataclass
class DependNode:
    """State outside the packet was read."""

    name: str
    arg: Any
    child: "Node" = field(default_factory=Empty)


@dataclass
class GotoNode:
    """Parsing moved on to the next header."""

    old_spec: Optional[Header]
    new_spec: Header
    stack_base: int
    child: "Node" = field(default_factory=Empty)


Node = Union[Empty, Leaf, ValueNode, TestNode, DependNode, GotoNode]


def events_to_tree(events: Sequence[Event], action: Any) -> Node:
    """Build the single path that ``events`` describe, ending in ``action``."""
    root: Node = Leaf(action)
    for event in reversed(events):
        if isinstance(event, TestEvent):
            if event.result:
                root = TestNode(event.name, event.value, root, Empty())
            else:
                root = TestNode(event.name, event.value, Empty(), root)
        elif isinstance(event, ReadEvent):
            root = ValueNode(event.name, {event.value: root})
        elif isinstance(event, ReadEnvEvent):
            root = DependNode(event.name, event.arg, root)
        elif isinstance(event, GotoEvent):
            root = GotoNode(event.old_spec, event.new_spec, event.stack_base, root)
        else:
            raise TypeError(f"unexpected event {event!r}")
    return root


def _expect(event: Event, kind: type, node: Node) -> None:
    if not isinstance(event, kind):
        raise ValueError(
            f"trace does not fit the tree: {type(node).__name__} met {event!r}"
        )


class TraceTree:
    """The decision tree of one switch."""

    def __init__(self, root: Optional[Node] = None) -> None:
        self.root: Node = Empty() if root is None else root

    def augment(self, trace: Trace, action: Any) -> bool:
        """Add the path of ``trace`` ending in ``action``; False if already known."""
        events = trace.events
        if isinstance(self.root, Empty):
            self.root = events_to_tree(events, action)
            return True

        node = self.root
        for i, event in enumerate(events):
            rest = events[i + 1:]
            if isinstance(node, TestNode):
                _expect(event, TestEvent, node)
                if event.result:
                    if isinstance(node.on_true, Empty):
                        node.on_true = events_to_tree(rest, action)
                        return True
                    node = node.on_true
                else:
                    if isinstance(node.on_false, Empty):
                        node.on_false = events_to_tree(rest, action)
                        return True
                    node = node.on_false
            elif isinstance(node, ValueNode):
                _expect(event, ReadEvent, node)
                child = node.branches.get(event.value)
                if child is None:
                    node.branches[event.value] = events_to_tree(rest, action)
                    return True
                node = child
            elif isinstance(node, (DependNode, GotoNode)):
                _expect(event, DependNode is type(node) and ReadEnvEvent or GotoEvent, node)
                if isinstance(node.child, Empty):
                    node.child = events_to_tree(rest, action)
                    return True
                node = node.child
            else:
                return False
        return False

    def invalidate(self, predicate: Predicate) -> bool:
        """Empty every subtree under a dependency ``predicate(name, arg)`` accepts."""
        return self._invalidate(self.root, predicate)

    def _invalidate(self, node: Node, predicate: Predicate) -> bool:
        if isinstance(node, ValueNode):
            results = [self._invalidate(child, predicate) for child in node.branches.values()]
            return any(results)
        if isinstance(node, TestNode):
            on_true = self._invalidate(node.on_true, predicate)
            on_false = self._invalidate(node.on_false, predicate)
            return on_true or on_false
        if isinstance(node, DependNode):
            if predicate(node.name, node.arg):
                node.child = Empty()
                return True
            return self._invalidate(node.child, predicate)
        if isinstance(node, GotoNode):
            return self._invalidate(node.child, predicate)
        return False

    def render(self) -> str:
        """A compact text form of the tree."""
        return self._render(self.root)

    def _render(self, node: Node) -> str:
        if isinstance(node, Empty):
            return "(E)"
        if isinstance(node, Leaf):
            return "(L)"
        if isinstance(node, ValueNode):
            parts = "".join(" " + self._render(child) for child in node.branches.values())
            return f"(V {node.name}{parts})"
        if isinstance(node, TestNode):
            return f"(T {node.name} {self._render(node.on_true)} {self._render(node.on_false)})"
        if isinstance(node, DependNode):
            return f"(D {node.name} {self._render(node.child)})"
        return f"(G {node.new_spec.name} {self._render(node.child)})"

    def leaves(self) -> Iterator[Leaf]:
        """Every leaf, in the order the tree is rendered."""
        stack: list[Node] = [self.root]
        while stack:
            node = stack.pop()
            if isinstance(node, Leaf):
                yield node
            elif isinstance(node, ValueNode):
                stack.extend(reversed(list(node.branches.values())))
            elif isinstance(node, TestNode):
                stack.append(node.on_false)
                stack.append(node.on_true)
            elif isinstance(node, (DependNode, GotoNode)):
                stack.append(node.child)