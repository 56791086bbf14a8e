from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from fractions import Fraction
from typing import List

from fxrate.models.constants import RATE_KINDS
from fxrate.services.money import Number, to_fraction
from .errors import PathNotFound, RateKindUnsupported
from .graph import RateGraph
from .paths import find_path

"""Conversion along a resolved path.

Responsibilities:
    - Resolve the hop sequence through ``find_path``.
    - Multiply (or, for reverse conversions, divide) by each hop's rate of the
      requested kind, never substituting another kind.
    - Keep everything as ``Fraction``; rounding belongs to the API boundary.
"""


@dataclass(frozen=True)
class ConversionResult:
    from_currency: str
    to_currency: str
    kind: str
    path: List[str]
    original_amount: Fraction
    converted: Fraction


def evaluate(
    graph: RateGraph,
    path: List[str],
    kind: str,
    amount: Number,
    reverse: bool = False,
) -> Fraction:
    if kind not in RATE_KINDS:
        raise ValueError(f"Unknown rate kind '{kind}'")
    hops = list(zip(path, path[1:]))
    if reverse:
        hops.reverse()
    result = to_fraction(amount)
    for hop_from, hop_to in hops:
        edge = graph.edge(hop_from, hop_to)
        rate = edge.rate(kind) if edge is not None else None
        if rate is None:
            raise RateKindUnsupported(hop_from, hop_to, kind)
        result = result / rate if reverse else result * rate
    return result


def convert_detailed(
    graph: RateGraph,
    from_currency: str,
    to_currency: str,
    kind: str,
    amount: Number,
    reverse: bool = False,
) -> ConversionResult:
    path = find_path(graph, from_currency, to_currency)
    return ConversionResult(
        from_currency=path[0],
        to_currency=path[-1],
        kind=kind,
        path=path,
        original_amount=to_fraction(amount),
        converted=evaluate(graph, path, kind, amount, reverse),
    )


def convert(
    graph: RateGraph,
    from_currency: str,
    to_currency: str,
    kind: str,
    amount: Number,
    reverse: bool = False,
) -> Fraction:
    """Convert ``amount`` of ``from_currency`` into ``to_currency``.

    With ``reverse`` the amount is read as a ``to_currency`` figure and the
    result is the ``from_currency`` amount needed to obtain it.
    """
    return convert_detailed(graph, from_currency, to_currency, kind, amount, reverse).converted


def last_updated(graph: RateGraph, from_currency: str, to_currency: str) -> datetime:
    """Timestamp of the direct edge, else the oldest hop along the path."""
    edge = graph.edge(from_currency, to_currency)
    if edge is not None:
        return edge.updated_at
    path = find_path(graph, from_currency, to_currency)
    stamps = [graph.edge(a, b) for a, b in zip(path, path[1:])]
    if not stamps:
        raise PathNotFound(from_currency, to_currency)
    return min(e.updated_at for e in stamps if e is not None)
