from __future__ import annotations

import asyncio
from decimal import Decimal
from fractions import Fraction

import pytest

from fxrate.models.constants import EPOCH
from fxrate.services.rates.base import SourceStatus
from fxrate.services.rates.errors import (
    CapabilityUnsupported,
    PathNotFound,
    SourceFetchFailed,
    SourceNotFound,
)
from fxrate.services.rates.orchestrator import SourceOrchestrator
from fxrate.services.rates.pair_cache import PairCacheSource

from conftest import T1, make_quote


def _bank_quotes():
    return [
        make_quote(
            "USD",
            "CNY",
            unit=100,
            buy={"remit": 700, "cash": 695},
            sell={"remit": 715, "cash": 718},
            middle=707.5,
        ),
        make_quote("EUR", "CNY", unit=100, buy={"remit": 780}),
        make_quote("JPY", "CNY", unit=100, middle=4.85),
    ]


class CountingFetch:
    def __init__(self, quotes=None, error: Exception | None = None):
        self.calls = 0
        self.quotes = quotes if quotes is not None else _bank_quotes()
        self.error = error

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.quotes)


@pytest.mark.asyncio
async def test_cold_start_fetches_once(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fetch = CountingFetch()
    source = fxm.register("bank", fetch)
    assert source.status is SourceStatus.PENDING

    currencies = await fxm.list_currencies("bank")
    assert currencies == ["CNY", "EUR", "JPY", "USD"]
    assert source.status is SourceStatus.READY
    assert source.last_refresh_at is not None

    await fxm.list_currencies("bank")
    await fxm.get_rate_detail("bank", "USD", "CNY")
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_cold_start_failure_surfaces_fetch_error(settings) -> None:
    fxm = SourceOrchestrator(settings)
    source = fxm.register("bank", CountingFetch(error=ConnectionError("boom")))

    with pytest.raises(SourceFetchFailed) as exc:
        await fxm.list_currencies("bank")
    assert exc.value.source == "bank"
    assert source.status is SourceStatus.PENDING


@pytest.mark.asyncio
async def test_cold_start_times_out_instead_of_hanging(settings) -> None:
    async def stuck():
        await asyncio.sleep(30)
        return []

    fxm = SourceOrchestrator(settings)
    fxm.register("slow", stuck)

    with pytest.raises(SourceFetchFailed):
        await fxm.list_currencies("slow")


@pytest.mark.asyncio
async def test_failed_refresh_keeps_last_good_graph(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fetch = CountingFetch()
    source = fxm.register("bank", fetch)
    assert await fxm.refresh("bank") is True
    graph = source.graph

    fetch.error = TimeoutError("upstream down")
    assert await fxm.refresh("bank") is False
    assert source.graph is graph
    assert source.status is SourceStatus.READY
    assert await fxm.convert_amount("bank", "USD", "CNY", "middle", 1) == Decimal("7.07500")


@pytest.mark.asyncio
async def test_one_source_failure_does_not_touch_another(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fxm.register("good", CountingFetch())
    broken = fxm.register("broken", CountingFetch(error=RuntimeError("parse error")))

    assert await fxm.refresh("broken") is False
    assert await fxm.refresh("good") is True
    assert broken.status is SourceStatus.PENDING
    assert "USD" in await fxm.list_currencies("good")


@pytest.mark.asyncio
async def test_refresh_batch_is_visible_all_at_once(settings) -> None:
    release = asyncio.Event()
    first = True

    async def fetch():
        nonlocal first
        if first:
            first = False
            return _bank_quotes()
        await release.wait()
        return [make_quote("GBP", "CNY", middle="9.1"), make_quote("CHF", "CNY", middle="8.0")]

    fxm = SourceOrchestrator(settings)
    fxm.register("bank", fetch)
    await fxm.refresh("bank")

    pending = asyncio.create_task(fxm.refresh("bank"))
    await asyncio.sleep(0)
    assert "GBP" not in await fxm.list_currencies("bank")

    release.set()
    assert await pending is True
    currencies = await fxm.list_currencies("bank")
    assert "GBP" in currencies and "CHF" in currencies


@pytest.mark.asyncio
async def test_scheduled_ticks_refresh_until_stopped(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fetch = CountingFetch()
    fxm.register("bank", fetch, interval_seconds=0.05)

    await fxm.start()
    await asyncio.sleep(0.18)
    await fxm.stop()
    calls = fetch.calls
    assert calls >= 2

    await asyncio.sleep(0.1)
    assert fetch.calls == calls


@pytest.mark.asyncio
async def test_rate_detail_for_provided_pair(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fxm.register("bank", CountingFetch())

    detail = await fxm.get_rate_detail("bank", "USD", "CNY")
    assert detail.provided is True
    assert detail.cash == Decimal("695.00000")
    assert detail.remit == Decimal("700.00000")
    assert detail.middle == Decimal("707.50000")
    assert detail.updated == T1


@pytest.mark.asyncio
async def test_rate_detail_marks_missing_kind(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fxm.register("bank", CountingFetch())

    detail = await fxm.get_rate_detail("bank", "EUR", "CNY", precision=2)
    assert detail.cash is None
    assert detail.remit == Decimal("780.00")


@pytest.mark.asyncio
async def test_rate_detail_for_unknown_pair_is_not_provided(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fxm.register("bank", CountingFetch())

    detail = await fxm.get_rate_detail("bank", "USD", "KRW")
    assert detail.provided is False
    assert detail.middle == 0
    assert detail.updated == EPOCH


@pytest.mark.asyncio
async def test_convert_amount_multi_hop_with_fees_and_precision(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fxm.register("bank", CountingFetch())

    exact = await fxm.convert_amount("bank", "USD", "JPY", "middle", 100, precision=-1)
    assert exact == Fraction("7.075") / Fraction("0.0485") * 100

    with_fees = await fxm.convert_amount(
        "bank", "USD", "CNY", "middle", 100, fees_pct=1, precision=2
    )
    assert with_fees == Decimal("714.58")

    reverse = await fxm.convert_amount("bank", "USD", "CNY", "middle", "707.5", reverse=True, precision=2)
    assert reverse == Decimal("100.00")


@pytest.mark.asyncio
async def test_convert_without_route_raises(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fxm.register("bank", CountingFetch())

    with pytest.raises(PathNotFound):
        await fxm.convert_amount("bank", "USD", "KRW", "middle")


@pytest.mark.asyncio
async def test_list_rates_from_bulk_source(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fxm.register("bank", CountingFetch())

    rates = await fxm.list_rates_from("bank", "cny", precision=4)
    assert list(rates) == ["USD", "EUR", "JPY"]
    assert rates["JPY"].middle == Decimal("2061.8557")


@pytest.mark.asyncio
async def test_list_rates_from_pair_source_is_rejected(settings) -> None:
    async def fetch_pair(from_currency, to_currency):
        return make_quote(from_currency, to_currency, middle="1.1")

    fxm = SourceOrchestrator(settings)
    fxm.register_source(PairCacheSource("card", fetch_pair, currencies=["USD", "EUR"]))

    with pytest.raises(CapabilityUnsupported):
        await fxm.list_rates_from("card", "USD")
    assert await fxm.convert_amount("card", "USD", "EUR", "middle", 10, precision=2) == Decimal("11.00")


@pytest.mark.asyncio
async def test_rate_detail_when_pair_fetch_fails_is_not_provided(settings) -> None:
    async def fetch_pair(from_currency, to_currency):
        raise ConnectionError("down")

    fxm = SourceOrchestrator(settings)
    fxm.register_source(PairCacheSource("card", fetch_pair))

    detail = await fxm.get_rate_detail("card", "USD", "CNY")
    assert detail.provided is False
    assert detail.middle == 0
    assert detail.updated == EPOCH
    with pytest.raises(SourceFetchFailed):
        await fxm.convert_amount("card", "USD", "CNY", "middle", 1)


@pytest.mark.asyncio
async def test_unknown_source(settings) -> None:
    fxm = SourceOrchestrator(settings)
    with pytest.raises(SourceNotFound):
        await fxm.list_currencies("nope")
    assert fxm.has("nope") is False


def test_duplicate_registration_is_rejected(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fxm.register("bank", CountingFetch())
    with pytest.raises(ValueError):
        fxm.register("bank", CountingFetch())


def test_seconds_until_refresh_before_first_fetch(settings) -> None:
    fxm = SourceOrchestrator(settings)
    fxm.register("bank", CountingFetch())
    assert fxm.seconds_until_refresh("bank") == 60
    assert fxm.info()["sources"] == ["bank"]
