"""Breadth-first spanning trees over switches and the routes they give."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Hashable, Mapping, Optional, Sequence


@dataclass(frozen=True)
class Adjacency:
    """A link leaving a switch through ``out_port``.

    It reaches ``entity`` on its ``in_port``; links to hosts have
    ``is_switch`` false and are not followed.
    """

    out_port: int
    entity: Hashable
    in_port: int
    is_switch: bool = True


@dataclass(frozen=True)
class NodeInfo:
    """How a switch was reached: from ``parent`` (an index, None at the root)."""

    parent: Optional[int]
    parent_out_port: Optional[int]
    in_port: int


@dataclass(frozen=True)
class Edge:
    """A hop from ``ent1``/``port1`` to ``ent2``/``port2``; None is outside the network."""

    ent1: Optional[Hashable]
    port1: int
    ent2: Optional[Hashable]
    port2: int


def _index(switches: Sequence[Hashable], entity: Hashable) -> int:
    try:
        return list(switches).index(entity)
    except ValueError:
        raise ValueError(f"{entity!r} is not a known switch") from None


def build_tree(
    src: Hashable,
    src_port: int,
    dst: Optional[Hashable],
    switches: Sequence[Hashable],
    adjacencies: Mapping[Hashable, Sequence[Adjacency]],
) -> list[Optional[NodeInfo]]:
    """Search from ``src`` entered on ``src_port``, stopping once ``dst`` is reached.

    The result has one entry per switch; switches not reached are None.
    """
    tree: list[Optional[NodeInfo]] = [None] * len(switches)
    start = _index(switches, src)
    tree[start] = NodeInfo(None, None, src_port)
    queue = deque([start])
    while queue:
        current = queue.popleft()
        entity = switches[current]
        if dst is not None and entity == dst:
            break
        for adj in adjacencies.get(entity, ()):
            if not adj.is_switch:
                continue
            neighbour = _index(switches, adj.entity)
            if tree[neighbour] is None:
                tree[neighbour] = NodeInfo(current, adj.out_port, adj.in_port)
                queue.append(neighbour)
    return tree


def route_to(
    dst: Hashable,
    dst_port: int,
    tree: Sequence[Optional[NodeInfo]],
    switches: Sequence[Hashable],
) -> list[Edge]:
    """The edges from the tree's root to ``dst`` leaving on ``dst_port``.

    Edges run from the destination back to the source; an unreachable
    destination gives no edges.
    """
    second = _index(switches, dst)
    info = tree[second]
    if info is None:
        return []
    second_e = switches[second]
    edges = [Edge(second_e, dst_port, None, 0)]
    while info.parent is not None:
        head = info.parent
        head_e = switches[head]
        edges.append(Edge(head_e, info.parent_out_port, second_e, info.in_port))
        second_e = head_e
        parent_info = tree[head]
        if parent_info is None:
            raise ValueError("tree refers to a switch it never reached")
        info = parent_info
    edges.append(Edge(None, 0, second_e, info.in_port))
    return edges