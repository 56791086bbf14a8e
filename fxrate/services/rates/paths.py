from __future__ import annotations

"""Hop-sequence resolution between two currencies of one graph.

Breadth-first, so the returned path has the fewest hops; ties are broken by
edge insertion order, which keeps the result reproducible for a given graph.
"""
from collections import deque
from typing import Deque, List, Set, Tuple

from .errors import PathNotFound
from .graph import RateGraph


def find_path(graph: RateGraph, from_currency: str, to_currency: str) -> List[str]:
    start = graph.resolve(from_currency)
    end = graph.resolve(to_currency)

    if start == end:
        return [start]
    if start not in graph or end not in graph:
        raise PathNotFound(from_currency, to_currency)
    if graph.edge(start, end) is not None:
        return [start, end]

    visited: Set[str] = {start}
    queue: Deque[Tuple[str, List[str]]] = deque([(start, [start])])
    while queue:
        currency, path = queue.popleft()
        for neighbor in graph.neighbors(currency):
            if neighbor in visited:
                continue
            if neighbor == end:
                return path + [neighbor]
            visited.add(neighbor)
            queue.append((neighbor, path + [neighbor]))

    raise PathNotFound(from_currency, to_currency)
