from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from .core import Link, Node, node_index


Adjacency = Dict[str, List[str]]


def build_adjacency(nodes: Iterable[Node], links: Iterable[Link]) -> Adjacency:
    """Undirected adjacency over working cables between working nodes.

    A broken node stops traffic passing through it, so any link touching it is
    left out along with links that are themselves cut.
    """
    by_id = node_index(nodes)
    adj: Adjacency = {nid: [] for nid in by_id}

    for l in links:
        a = by_id.get(l.source)
        b = by_id.get(l.target)
        if a is None or b is None:
            continue
        if l.active and a.active and b.active:
            adj[l.source].append(l.target)
            adj[l.target].append(l.source)
    return adj


def find_path(sender: str, target: str, nodes: Iterable[Node], adjacency: Adjacency) -> Optional[List[str]]:
    """Shortest path by hop count from sender to target, or None if unreachable."""
    start = node_index(nodes).get(sender)
    if start is None or not start.active:
        return None

    queue = deque([[sender]])
    visited: Set[str] = {sender}

    while queue:
        path = queue.popleft()
        node = path[-1]
        if node == target:
            return path

        for neighbor in adjacency.get(node, []):
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append(path + [neighbor])
    return None


def reachable_set(sender: str, nodes: Iterable[Node], adjacency: Adjacency) -> Set[str]:
    start = node_index(nodes).get(sender)
    if start is None or not start.active:
        return set()

    seen = {sender}
    queue = deque([sender])
    while queue:
        node = queue.popleft()
        for neighbor in adjacency.get(node, []):
            if neighbor not in seen:
                seen.add(neighbor)
                queue.append(neighbor)
    return seen
