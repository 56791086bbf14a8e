"""Source orchestrator: owns every registered source and its refresh schedule.

Lifecycle per bulk source:
    pending --(first successful fetch)--> ready
A ready source keeps refreshing on its own interval and stays ready when a
tick fails; the last good graph keeps being served.

The orchestrator is an explicit object. Build one, register sources, call
``start()`` from inside the running event loop and ``stop()`` on shutdown.
Each source has its own lock, so a slow refresh of one source never delays
queries or refreshes of another.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from fractions import Fraction
from typing import Any, Collection, Dict, List, Mapping, Optional

from fxrate.core.config import Settings, get_settings
from fxrate.core.logging import source_context
from fxrate.models.constants import EPOCH, RATE_KINDS
from fxrate.services.money import Amount, Number, apply_fees, present
from .base import Source
from .codes import normalize
from .errors import (
    PathNotFound,
    RateKindUnsupported,
    SourceFetchFailed,
    SourceNotFound,
)
from .sources import BulkGraphSource, FetchFn

logger = logging.getLogger("fxrate.orchestrator")


@dataclass(frozen=True)
class RateDetail:
    cash: Optional[Amount]
    remit: Optional[Amount]
    middle: Optional[Amount]
    provided: bool
    updated: Optional[datetime]

    @classmethod
    def not_provided(cls) -> "RateDetail":
        zero = present(Fraction(0), 0)
        return cls(cash=zero, remit=zero, middle=zero, provided=False, updated=EPOCH)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "cash": self.cash,
            "remit": self.remit,
            "middle": self.middle,
            "provided": self.provided,
            "updated": self.updated,
        }


class SourceOrchestrator:
    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._sources: Dict[str, Source] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._running = False

    # Registration ---------------------------------------------
    def register(
        self,
        name: str,
        fetch: FetchFn,
        *,
        interval_seconds: Optional[int] = None,
        code_table: Optional[Mapping[str, str]] = None,
        supported: Optional[Collection[str]] = None,
        display_name: Optional[str] = None,
    ) -> BulkGraphSource:
        """Register a bulk feed; it stays pending until its first fetch."""
        interval = timedelta(
            seconds=interval_seconds or self._settings.refresh_interval_seconds
        )
        source = BulkGraphSource(
            name,
            fetch,
            code_table=code_table,
            supported=supported,
            display_name=display_name,
            refresh_interval=interval,
        )
        self.register_source(source)
        return source

    def register_source(self, source: Source) -> Source:
        if source.name in self._sources:
            raise ValueError(f"Source '{source.name}' is already registered")
        if source.refresh_interval is None:
            source.refresh_interval = timedelta(
                seconds=self._settings.refresh_interval_seconds
            )
        self._sources[source.name] = source
        self._locks[source.name] = asyncio.Lock()
        logger.info("registered %s", source.name, extra={"source": source.name})
        if self._running:
            self._schedule(source.name)
        return source

    def has(self, name: str) -> bool:
        return name in self._sources

    def sources(self) -> List[str]:
        return list(self._sources)

    def get(self, name: str) -> Source:
        try:
            return self._sources[name]
        except KeyError:
            raise SourceNotFound(name) from None

    # Scheduling -----------------------------------------------
    @property
    def running(self) -> bool:
        return self._running

    def _schedule(self, name: str) -> None:
        self._tasks[name] = asyncio.create_task(
            self._run_schedule(name), name=f"fxrate-refresh-{name}"
        )

    async def _run_schedule(self, name: str) -> None:
        source = self._sources[name]
        interval = source.refresh_interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            await self.refresh(name)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for name in self._sources:
            self._schedule(name)
        logger.info("scheduler started for %d sources", len(self._sources))

    async def stop(self) -> None:
        self._running = False
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("scheduler stopped")

    # Refresh --------------------------------------------------
    async def _refresh_locked(self, source: Source) -> None:
        with source_context(source.name):
            logger.info("%s is updating...", source.name)
            await source.refresh(timeout=self._settings.fetch_timeout_seconds)
            logger.info("%s is updated, now is ready", source.name)

    async def refresh(self, name: str) -> bool:
        """Refresh one source; failures are logged and the old data is kept."""
        source = self.get(name)
        try:
            async with self._locks[name]:
                await self._refresh_locked(source)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "%s refresh failed, serving previous data", name, extra={"source": name}
            )
            return False
        return True

    async def _cold_start(self, source: Source) -> None:
        async def attempt() -> None:
            async with self._locks[source.name]:
                # a scheduled tick may have finished while we waited
                if source.is_ready:
                    return
                await self._refresh_locked(source)

        try:
            await asyncio.wait_for(attempt(), self._settings.cold_start_timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error("%s cold start timed out", source.name, extra={"source": source.name})
            raise SourceFetchFailed(source.name, "timed out waiting for first fetch") from e
        except Exception as e:
            logger.exception("%s cold start failed", source.name, extra={"source": source.name})
            raise SourceFetchFailed(source.name, str(e)) from e

    async def query(self, name: str) -> Source:
        """Return a ready source, fetching first if it has never been loaded."""
        source = self.get(name)
        if not source.is_ready:
            await self._cold_start(source)
        return source

    # Query surface --------------------------------------------
    def _precision(self, precision: Optional[int]) -> int:
        return self._settings.default_precision if precision is None else precision

    async def list_currencies(self, name: str) -> List[str]:
        source = await self.query(name)
        return source.currencies()

    async def convert_amount(
        self,
        name: str,
        from_currency: str,
        to_currency: str,
        kind: str,
        amount: Optional[Number] = None,
        fees_pct: Number = 0,
        precision: Optional[int] = None,
        reverse: bool = False,
    ) -> Amount:
        if kind not in RATE_KINDS:
            raise ValueError(f"Unknown rate kind '{kind}'")
        source = await self.query(name)
        if amount is None:
            amount = self._settings.default_amount
        value = await source.convert(from_currency, to_currency, kind, amount, reverse)
        return present(apply_fees(value, fees_pct), self._precision(precision))

    async def get_last_updated(self, name: str, from_currency: str, to_currency: str) -> datetime:
        source = await self.query(name)
        return (await source.updated_at(from_currency, to_currency)).astimezone(timezone.utc)

    async def get_rate_detail(
        self,
        name: str,
        from_currency: str,
        to_currency: str,
        *,
        amount: Optional[Number] = None,
        fees_pct: Number = 0,
        precision: Optional[int] = None,
        reverse: bool = False,
    ) -> RateDetail:
        """Converted amount for every rate kind, or a not-provided marker."""
        source = await self.query(name)
        if not await source.is_provided(from_currency, to_currency):
            return RateDetail.not_provided()

        values: Dict[str, Optional[Amount]] = {}
        for kind in RATE_KINDS:
            try:
                values[kind] = await self.convert_amount(
                    name,
                    from_currency,
                    to_currency,
                    kind,
                    amount,
                    fees_pct=fees_pct,
                    precision=precision,
                    reverse=reverse,
                )
            except RateKindUnsupported:
                values[kind] = None

        try:
            updated: Optional[datetime] = await self.get_last_updated(
                name, from_currency, to_currency
            )
        except PathNotFound:
            updated = None
        return RateDetail(provided=True, updated=updated, **values)

    async def list_rates_from(
        self,
        name: str,
        currency: str,
        *,
        amount: Optional[Number] = None,
        fees_pct: Number = 0,
        precision: Optional[int] = None,
        reverse: bool = False,
    ) -> Dict[str, RateDetail]:
        """Details for every counter-currency of ``currency`` (bulk sources only)."""
        source = await self.query(name)
        base = normalize(currency)
        result: Dict[str, RateDetail] = {}
        for to_currency in source.counter_currencies(base):
            result[to_currency] = await self.get_rate_detail(
                name,
                base,
                to_currency,
                amount=amount,
                fees_pct=fees_pct,
                precision=precision,
                reverse=reverse,
            )
        return result

    # Introspection --------------------------------------------
    def seconds_until_refresh(self, name: str) -> int:
        """Seconds until the next scheduled tick, used for HTTP cache hints."""
        source = self.get(name)
        interval = int(source.refresh_interval.total_seconds())
        if source.last_refresh_at is None:
            return interval
        elapsed = (datetime.now(timezone.utc) - source.last_refresh_at).total_seconds()
        return max(0, interval - round(elapsed) % interval)

    def info(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "sources": self.sources(),
            "names": {n: s.display_name for n, s in self._sources.items()},
            "version": self._settings.version,
        }
