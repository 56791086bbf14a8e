from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from fractions import Fraction
from typing import Awaitable, Callable, Collection, Dict, List, Optional, Tuple

import asyncio
import logging

from fxrate.core.config import get_settings
from fxrate.services.money import Number
from . import conversion
from .base import Source, SourceStatus
from .codes import normalize
from .errors import CapabilityUnsupported, UnknownCurrency, SourceFetchFailed
from .graph import RateGraph
from .ingestion import ingest
from .quote import RateQuote

"""Pair-only source backed by a TTL cache.

Purpose:
    Some providers (card networks, for instance) only answer "what is the
    rate from X to Y right now"; there is no listing to pull on a schedule.

Design:
    - Entries are keyed by the normalized (from, to) pair.
    - An unseen or expired pair triggers one live ``fetch_pair`` call; the
      quote is ingested into a small per-pair RateGraph so unit and
      synthesis rules match bulk sources exactly.
    - Entry count is bounded; the oldest fetched entry is evicted first.
    - Graph-wide enumeration is never attempted (able_to_list_all = False).
"""

logger = logging.getLogger("fxrate.pair_cache")

FetchPairFn = Callable[[str, str], Awaitable[RateQuote]]


@dataclass
class _CacheEntry:
    graph: RateGraph
    fetched_at: datetime


class PairCacheSource(Source):
    able_to_list_all = False

    def __init__(
        self,
        name: str,
        fetch_pair: FetchPairFn,
        *,
        currencies: Optional[Collection[str]] = None,
        ttl_seconds: Optional[int] = None,
        max_entries: Optional[int] = None,
        fetch_timeout: Optional[float] = None,
        display_name: Optional[str] = None,
    ):
        super().__init__(name, display_name=display_name)
        settings = get_settings()
        self._fetch_pair = fetch_pair
        self._currencies = (
            sorted({normalize(c) for c in currencies}) if currencies is not None else None
        )
        self._ttl = timedelta(seconds=ttl_seconds or settings.pair_cache_ttl_seconds)
        self._max_entries = max_entries or settings.pair_cache_max_entries
        self._fetch_timeout = fetch_timeout or settings.fetch_timeout_seconds
        self._cache: Dict[Tuple[str, str], _CacheEntry] = {}
        # Nothing to prefetch: every pair is fetched lazily.
        self.status = SourceStatus.READY

    # Internal --------------------------------------------------
    def _is_entry_valid(self, entry: _CacheEntry) -> bool:
        return datetime.now(timezone.utc) - entry.fetched_at < self._ttl

    def _check_supported(self, *codes: str) -> None:
        if self._currencies is None:
            return
        for code in codes:
            if code not in self._currencies:
                raise UnknownCurrency(code, self.name)

    def _evict_if_full(self) -> None:
        while len(self._cache) >= self._max_entries:
            oldest = min(self._cache, key=lambda k: self._cache[k].fetched_at)
            self._cache.pop(oldest)

    async def _fetch(self, key: Tuple[str, str]) -> _CacheEntry:
        try:
            quote = await asyncio.wait_for(self._fetch_pair(*key), self._fetch_timeout)
        except asyncio.TimeoutError as e:
            raise SourceFetchFailed(self.name, f"timed out fetching {key[0]}->{key[1]}") from e
        except Exception as e:
            logger.exception(
                "%s: fetching %s->%s failed",
                self.name,
                *key,
                extra={"source": self.name, "from_currency": key[0], "to_currency": key[1]},
            )
            raise SourceFetchFailed(self.name, str(e)) from e
        graph = RateGraph()
        ingest(graph, quote.with_currencies(*key))
        entry = _CacheEntry(graph=graph, fetched_at=datetime.now(timezone.utc))
        self._evict_if_full()
        self._cache[key] = entry
        return entry

    async def _get_cached_or_fetch(self, from_currency: str, to_currency: str) -> RateGraph:
        key = (normalize(from_currency), normalize(to_currency))
        self._check_supported(*key)
        entry = self._cache.get(key)
        if entry and self._is_entry_valid(entry):
            return entry.graph
        entry = await self._fetch(key)
        return entry.graph

    # Public API -----------------------------------------------
    async def refresh(self, timeout: Optional[float] = None) -> None:
        """Drop expired entries; live data is fetched per pair on demand."""
        expired = [k for k, v in self._cache.items() if not self._is_entry_valid(v)]
        for k in expired:
            self._cache.pop(k, None)
        self.last_refresh_at = datetime.now(timezone.utc)

    def currencies(self) -> List[str]:
        if self._currencies is not None:
            return list(self._currencies)
        return sorted({c for key in self._cache for c in key})

    def counter_currencies(self, base: str) -> List[str]:
        raise CapabilityUnsupported(self.name, f"list all FX rates from {normalize(base)}")

    def cached_pairs(self) -> List[Tuple[str, str]]:
        return [k for k, v in self._cache.items() if self._is_entry_valid(v)]

    async def is_provided(self, from_currency: str, to_currency: str) -> bool:
        try:
            await self._get_cached_or_fetch(from_currency, to_currency)
        except (UnknownCurrency, SourceFetchFailed):
            # fetch failures are logged in _fetch; convert still raises them
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
        graph = await self._get_cached_or_fetch(from_currency, to_currency)
        return conversion.convert(
            graph, normalize(from_currency), normalize(to_currency), kind, amount, reverse
        )

    async def updated_at(self, from_currency: str, to_currency: str) -> datetime:
        graph = await self._get_cached_or_fetch(from_currency, to_currency)
        return conversion.last_updated(graph, normalize(from_currency), normalize(to_currency))
