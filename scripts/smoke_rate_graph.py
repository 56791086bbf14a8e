"""Smoke script for the orchestrator and its two source kinds.

Demonstrates:
 1. First query of a pending bulk source triggers the fetch (cold start).
 2. A second query within the interval is answered from the graph.
 3. Multi-hop conversion (USD -> CNY -> JPY) with exact rationals.
 4. A pair-only source fetching lazily and serving from its TTL cache.

NOTE: This is a lightweight diagnostic and not a formal test.
"""

import asyncio
from datetime import datetime, timezone
from pprint import pprint

from fxrate.services.rates.orchestrator import SourceOrchestrator
from fxrate.services.rates.pair_cache import PairCacheSource
from fxrate.services.rates.quote import RateQuote, SideRates

NOW = datetime.now(timezone.utc)
fetches = {"bank": 0, "card": 0}


async def bank_fetch():
    fetches["bank"] += 1
    return [
        RateQuote(
            "USD",
            "CNY",
            NOW,
            unit=100,
            buy=SideRates(cash=695, remit=700),
            sell=SideRates(cash=718, remit=715),
            middle=707.5,
        ),
        RateQuote("JPY", "CNY", NOW, unit=100, middle=4.85),
    ]


async def card_fetch(from_currency, to_currency):
    fetches["card"] += 1
    return RateQuote(from_currency, to_currency, NOW, middle="7.21")


async def run():
    fxm = SourceOrchestrator()
    fxm.register("bank", bank_fetch)
    fxm.register_source(PairCacheSource("card", card_fetch))
    out = {}

    out["currencies"] = await fxm.list_currencies("bank")
    out["currencies_again"] = await fxm.list_currencies("bank")
    out["usd_jpy_exact"] = str(
        await fxm.convert_amount("bank", "USD", "JPY", "middle", 100, precision=-1)
    )
    out["usd_cny_detail"] = (await fxm.get_rate_detail("bank", "USD", "CNY")).as_dict()
    out["card_usd_cny"] = await fxm.convert_amount("card", "USD", "CNY", "middle", 100)
    out["card_usd_cny_cached"] = await fxm.convert_amount("card", "USD", "CNY", "middle", 100)
    out["fetches"] = dict(fetches)

    pprint(out)


if __name__ == "__main__":
    asyncio.run(run())
