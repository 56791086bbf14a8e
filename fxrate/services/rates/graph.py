"""Per-source currency graph.

Stores one directed edge per (from, to) pair with exact rational rates.
Alias resolution happens here at the read boundary through ``codes.resolve``;
the stored keys are always the codes ingestion wrote.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from fractions import Fraction
from typing import Dict, Iterator, List, Optional

from fxrate.models.constants import EPOCH
from .codes import resolve


@dataclass(frozen=True)
class Edge:
    middle: Fraction
    updated_at: datetime
    cash: Optional[Fraction] = None
    remit: Optional[Fraction] = None

    def rate(self, kind: str) -> Optional[Fraction]:
        return getattr(self, kind)


IDENTITY = Edge(middle=Fraction(1), updated_at=EPOCH, cash=Fraction(1), remit=Fraction(1))


class RateGraph:
    def __init__(self) -> None:
        self._edges: Dict[str, Dict[str, Edge]] = {}

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and self.resolve(code) in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[str]:
        return iter(self._edges)

    def resolve(self, code: str) -> str:
        return resolve(code, self._edges)

    def currencies(self) -> List[str]:
        return sorted(self._edges)

    def edge(self, from_currency: str, to_currency: str) -> Optional[Edge]:
        row = self._edges.get(self.resolve(from_currency))
        if row is None:
            return None
        return row.get(resolve(to_currency, row))

    def stored_edge(self, from_currency: str, to_currency: str) -> Optional[Edge]:
        """Lookup without alias fallback, used by the write path."""
        return self._edges.get(from_currency, {}).get(to_currency)

    def neighbors(self, code: str) -> List[str]:
        """Currencies reachable in one hop, in edge insertion order."""
        return list(self._edges.get(self.resolve(code), ()))

    def ensure_node(self, code: str) -> None:
        if code not in self._edges:
            self._edges[code] = {code: IDENTITY}

    def set_edge(self, from_currency: str, to_currency: str, edge: Edge) -> None:
        """Write an edge under the exact keys given; callers normalize first."""
        self.ensure_node(from_currency)
        self.ensure_node(to_currency)
        self._edges[from_currency][to_currency] = edge

    def copy(self) -> "RateGraph":
        # Edges are immutable, copying the rows is enough.
        clone = RateGraph()
        clone._edges = {k: dict(row) for k, row in self._edges.items()}
        return clone
