from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fxrate.core.config import Settings
from fxrate.services.rates.quote import RateQuote, SideRates

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=1)


def make_quote(
    from_currency: str = "USD",
    to_currency: str = "CNY",
    *,
    unit=1,
    updated_at: datetime = T1,
    buy=None,
    sell=None,
    middle=None,
) -> RateQuote:
    return RateQuote(
        from_currency=from_currency,
        to_currency=to_currency,
        unit=unit,
        updated_at=updated_at,
        buy=SideRates(**buy) if buy is not None else None,
        sell=SideRates(**sell) if sell is not None else None,
        middle=middle,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        refresh_interval_seconds=60,
        fetch_timeout_seconds=1.0,
        cold_start_timeout_seconds=0.5,
        pair_cache_ttl_seconds=60,
        pair_cache_max_entries=3,
    )
