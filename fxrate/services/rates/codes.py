from __future__ import annotations

"""Currency code normalization.

``normalize`` is the pure alias rewrite applied at every graph access
boundary; ``map_code`` translates adapter-specific codes through a source's
code table.
"""
from typing import Container, Mapping, Optional

from fxrate.models.constants import CNY_FALLBACK, CURRENCY_ALIASES
from .errors import UnknownCurrency


def normalize(code: str) -> str:
    code = code.strip().upper()
    return CURRENCY_ALIASES.get(code, code)


def resolve(code: str, known: Container[str]) -> str:
    """Return the node key to use for ``code`` in a graph holding ``known``."""
    code = normalize(code)
    if code == "CNY" and code not in known and CNY_FALLBACK in known:
        return CNY_FALLBACK
    return code


def map_code(
    raw: str, table: Optional[Mapping[str, str]] = None, source: Optional[str] = None
) -> str:
    if table is None:
        return normalize(raw)
    mapped = table.get(raw)
    if mapped is None:
        mapped = table.get(raw.strip().upper())
    if mapped is None:
        # codes already in their mapped form pass through
        if normalize(raw) in {normalize(v) for v in table.values()}:
            return normalize(raw)
        raise UnknownCurrency(raw, source)
    return normalize(mapped)
