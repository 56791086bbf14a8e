from __future__ import annotations

"""Source abstraction.

Two variants implement it: ``BulkGraphSource`` (whole feed fetched on a
schedule into a RateGraph) and ``PairCacheSource`` (one pair per upstream
call, cached with a TTL). The orchestrator dispatches through this interface
and never inspects the variant.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from enum import Enum
from fractions import Fraction
from typing import List, Optional

from fxrate.services.money import Number


class SourceStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"


class Source(ABC):
    able_to_list_all: bool = True

    def __init__(
        self,
        name: str,
        *,
        display_name: Optional[str] = None,
        refresh_interval: Optional[timedelta] = None,
    ):
        self.name = name
        self.display_name = display_name or name
        self.refresh_interval = refresh_interval
        self.status = SourceStatus.PENDING
        self.last_refresh_at: Optional[datetime] = None

    @property
    def is_ready(self) -> bool:
        return self.status is SourceStatus.READY

    @abstractmethod
    async def refresh(self, timeout: Optional[float] = None) -> None:
        """Pull fresh data from upstream; raise on failure."""
        raise NotImplementedError

    @abstractmethod
    def currencies(self) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def counter_currencies(self, base: str) -> List[str]:
        """Every currency quoted against ``base``; bulk sources only."""
        raise NotImplementedError

    @abstractmethod
    async def is_provided(self, from_currency: str, to_currency: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def convert(
        self,
        from_currency: str,
        to_currency: str,
        kind: str,
        amount: Number,
        reverse: bool = False,
    ) -> Fraction:
        raise NotImplementedError

    @abstractmethod
    async def updated_at(self, from_currency: str, to_currency: str) -> datetime:
        raise NotImplementedError
