from __future__ import annotations

"""Normalized quote handed over by source adapters.

Adapters produce plain numbers in whatever form the upstream returns; the
ingestion step turns them into exact rationals.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from fxrate.services.money import Number


@dataclass(frozen=True)
class SideRates:
    cash: Optional[Number] = None
    remit: Optional[Number] = None

    def is_empty(self) -> bool:
        return self.cash is None and self.remit is None


@dataclass(frozen=True)
class RateQuote:
    from_currency: str
    to_currency: str
    updated_at: datetime
    unit: Number = 1
    buy: Optional[SideRates] = None
    sell: Optional[SideRates] = None
    middle: Optional[Number] = None

    def with_currencies(self, from_currency: str, to_currency: str) -> "RateQuote":
        return replace(self, from_currency=from_currency, to_currency=to_currency)
