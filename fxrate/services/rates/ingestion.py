"""Quote ingestion: merge normalized quotes into a source graph.

Rules applied to every quote, in order:
    1. alias rewrite of both codes (RMB -> CNY)
    2. field synthesis (missing side copies the other, missing middle is the
       midpoint of the extreme defined buy/sell values); any field that is
       not a finite number rejects the quote
    3. staleness guard: a stored from->to edge strictly newer than the quote wins
    4. unit normalization (quotes are often priced per 100 foreign units)
    5. two directed writes: from->to with buy rates, to->from with the
       reciprocals of sell rates

``ingest_batch`` is the entry point used by sources; it never lets a single
bad record abort the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import timezone
from fractions import Fraction
from typing import Container, Iterable, Mapping, Optional

from fxrate.services.money import to_fraction
from .codes import map_code, normalize
from .errors import InvalidQuote, UnknownCurrency
from .graph import Edge, RateGraph
from .quote import RateQuote, SideRates

logger = logging.getLogger("fxrate.ingestion")


@dataclass
class IngestReport:
    ingested: int = 0
    skipped: int = 0


def _frac(value) -> Optional[Fraction]:
    # zero is treated as "not quoted", as upstream feeds use 0 for blanks
    if value is None:
        return None
    return to_fraction(value) or None


def _has_rates(quote: RateQuote) -> bool:
    sides = (quote.buy, quote.sell)
    return quote.middle is not None or any(s is not None and not s.is_empty() for s in sides)


def _synthesize(quote: RateQuote):
    middle = _frac(quote.middle)
    buy = quote.buy if quote.buy is not None and not quote.buy.is_empty() else None
    sell = quote.sell if quote.sell is not None and not quote.sell.is_empty() else None

    if buy is None and sell is None:
        buy = sell = SideRates(cash=middle, remit=middle)
    elif buy is None:
        buy = sell
    elif sell is None:
        sell = buy

    buy_cash, buy_remit = _frac(buy.cash), _frac(buy.remit)
    sell_cash, sell_remit = _frac(sell.cash), _frac(sell.remit)

    if middle is None:
        defined = [v for v in (buy_cash, buy_remit, sell_cash, sell_remit) if v is not None]
        if defined:
            middle = (min(defined) + max(defined)) / 2

    if middle is None:
        raise InvalidQuote(quote.from_currency, quote.to_currency)
    return buy_cash, buy_remit, sell_cash, sell_remit, middle


def _merge(previous: Optional[Edge], **fields) -> Edge:
    if previous is None:
        return Edge(**fields)
    present = {k: v for k, v in fields.items() if v is not None}
    return replace(previous, **present)


def _reciprocal(value: Optional[Fraction]) -> Optional[Fraction]:
    return None if value is None else 1 / value


_NUMBER_ERRORS = (ValueError, TypeError, OverflowError, ZeroDivisionError)


def ingest(graph: RateGraph, quote: RateQuote) -> None:
    """Merge one quote into ``graph``. Raises ``InvalidQuote`` only."""
    if not _has_rates(quote):
        raise InvalidQuote(quote.from_currency, quote.to_currency)

    from_currency = normalize(quote.from_currency)
    to_currency = normalize(quote.to_currency)
    if from_currency == to_currency:
        raise InvalidQuote(quote.from_currency, quote.to_currency, "quotes a currency against itself")

    try:
        unit = to_fraction(quote.unit)
        buy_cash, buy_remit, sell_cash, sell_remit, middle = _synthesize(quote)
    except _NUMBER_ERRORS as e:
        raise InvalidQuote(quote.from_currency, quote.to_currency, f"has a non-numeric field: {e}") from e
    if unit <= 0:
        raise InvalidQuote(quote.from_currency, quote.to_currency, "has a non-positive unit")

    updated_at = quote.updated_at
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)

    existing = graph.stored_edge(from_currency, to_currency)
    if existing is not None and existing.updated_at > updated_at:
        return

    def per_unit(value: Optional[Fraction]) -> Optional[Fraction]:
        return None if value is None else value / unit

    forward = _merge(
        existing,
        cash=per_unit(buy_cash),
        remit=per_unit(buy_remit),
        middle=middle / unit,
        updated_at=updated_at,
    )
    backward = _merge(
        graph.stored_edge(to_currency, from_currency),
        cash=_reciprocal(per_unit(sell_cash)),
        remit=_reciprocal(per_unit(sell_remit)),
        middle=unit / middle,
        updated_at=updated_at,
    )
    graph.set_edge(from_currency, to_currency, forward)
    graph.set_edge(to_currency, from_currency, backward)


def ingest_batch(
    graph: RateGraph,
    quotes: Iterable[RateQuote],
    *,
    code_table: Optional[Mapping[str, str]] = None,
    supported: Optional[Container[str]] = None,
    source: Optional[str] = None,
) -> IngestReport:
    """Ingest a whole batch, skipping (and logging) records that cannot be used.

    code_table: adapter-specific code -> currency code; codes missing from it
        are skipped as UnknownCurrency.
    supported: when given, quotes touching none of these currencies are dropped.
    """
    report = IngestReport()
    for quote in quotes:
        try:
            from_currency = map_code(quote.from_currency, code_table, source)
            to_currency = map_code(quote.to_currency, code_table, source)
        except UnknownCurrency as e:
            logger.warning(
                "skipping quote: %s",
                e,
                extra={"from_currency": quote.from_currency, "to_currency": quote.to_currency},
            )
            report.skipped += 1
            continue
        if supported is not None and not (
            from_currency in supported or to_currency in supported
        ):
            report.skipped += 1
            continue
        try:
            ingest(graph, quote.with_currencies(from_currency, to_currency))
        except InvalidQuote as e:
            logger.warning(
                "skipping quote: %s",
                e,
                extra={"from_currency": quote.from_currency, "to_currency": quote.to_currency},
            )
            report.skipped += 1
            continue
        report.ingested += 1
    return report
