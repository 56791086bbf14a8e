from __future__ import annotations

"""Bulk feed source: one RateGraph refreshed from a full quote listing.

A refresh ingests into a copy of the current graph and swaps it in once the
whole batch is applied, so readers see either the previous batch or the new
one, never half of it.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from fractions import Fraction
from typing import Awaitable, Callable, Collection, List, Mapping, Optional

from fxrate.services.money import Number
from . import conversion
from .base import Source, SourceStatus
from .codes import normalize
from .errors import PathNotFound
from .graph import RateGraph
from .ingestion import IngestReport, ingest_batch
from .paths import find_path
from .quote import RateQuote

logger = logging.getLogger("fxrate.sources")

FetchFn = Callable[[], Awaitable[List[RateQuote]]]


class BulkGraphSource(Source):
    able_to_list_all = True

    def __init__(
        self,
        name: str,
        fetch: FetchFn,
        *,
        code_table: Optional[Mapping[str, str]] = None,
        supported: Optional[Collection[str]] = None,
        display_name: Optional[str] = None,
        refresh_interval: Optional[timedelta] = None,
    ):
        super().__init__(name, display_name=display_name, refresh_interval=refresh_interval)
        self.graph = RateGraph()
        self._fetch = fetch
        self._code_table = code_table
        self._supported = (
            frozenset(normalize(c) for c in supported) if supported is not None else None
        )

    async def refresh(self, timeout: Optional[float] = None) -> IngestReport:
        quotes = await asyncio.wait_for(self._fetch(), timeout)
        graph = self.graph.copy()
        report = ingest_batch(
            graph,
            quotes,
            code_table=self._code_table,
            supported=self._supported,
            source=self.name,
        )
        self.graph = graph
        logger.debug(
            "%s: ingested %d quotes, skipped %d",
            self.name,
            report.ingested,
            report.skipped,
            extra={"source": self.name, "ingested": report.ingested, "skipped": report.skipped},
        )
        self.status = SourceStatus.READY
        self.last_refresh_at = datetime.now(timezone.utc)
        return report

    def currencies(self) -> List[str]:
        return self.graph.currencies()

    def counter_currencies(self, base: str) -> List[str]:
        key = self.graph.resolve(base)
        return [c for c in self.graph.neighbors(key) if c != key]

    async def is_provided(self, from_currency: str, to_currency: str) -> bool:
        if from_currency not in self.graph or to_currency not in self.graph:
            return False
        try:
            find_path(self.graph, from_currency, to_currency)
        except PathNotFound:
            return False
        return True

    async def convert(
        self,
        from_currency: str,
        to_currency: str,
        kind: str,
        amount: Number,
        reverse: bool = False,
    ) -> Fraction:
        return conversion.convert(self.graph, from_currency, to_currency, kind, amount, reverse)

    async def updated_at(self, from_currency: str, to_currency: str) -> datetime:
        return conversion.last_updated(self.graph, from_currency, to_currency)
