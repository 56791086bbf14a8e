from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from fractions import Fraction
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, Response

from fxrate.models.rates import (
    ConvertedAmountOut,
    InstanceInfoOut,
    RateDetailOut,
    SourceCurrenciesOut,
    SourceRatesOut,
)
from fxrate.services.rates.codes import normalize
from fxrate.services.rates.orchestrator import RateDetail, SourceOrchestrator

"""Rates router exposing the orchestrator's query surface.

Endpoints:
    - GET /info                                  -> instance info and sources
    - GET /{source}                              -> currencies known to a source
    - GET /{source}/{from}                       -> every rate from a currency
    - GET /{source}/{from}/{to}                  -> cash/remit/middle detail
    - GET /{source}/{from}/{to}/{kind}[/{amount}] -> one converted amount

Query parameters amount, fees (percent), precision (-1 = exact) and reverse
apply wherever an amount is converted. Every source response carries a
Cache-Control max-age matching the time left until its next refresh.
"""

router = APIRouter(tags=["rates"])

RateKind = Literal["cash", "remit", "middle"]


def get_orchestrator(request: Request) -> SourceOrchestrator:
    return request.app.state.orchestrator


def _render(value):
    if value is None:
        return None
    if isinstance(value, Fraction):
        return f"{value.numerator}/{value.denominator}"
    if isinstance(value, Decimal):
        return float(value)
    return value


def _detail_out(detail: RateDetail) -> RateDetailOut:
    return RateDetailOut(
        cash=_render(detail.cash),
        remit=_render(detail.remit),
        middle=_render(detail.middle),
        provided=detail.provided,
        updated=detail.updated,
    )


def _use_cache(response: Response, fxm: SourceOrchestrator, source: str) -> None:
    response.headers["Cache-Control"] = (
        f"public, max-age={fxm.seconds_until_refresh(source)}"
    )


@router.get("/info", response_model=InstanceInfoOut, summary="Instance info")
async def instance_info(fxm: SourceOrchestrator = Depends(get_orchestrator)):
    info = fxm.info()
    return InstanceInfoOut(status=info["status"], sources=info["sources"], version=info["version"])


@router.get("/{source}", response_model=SourceCurrenciesOut, summary="List currencies of a source")
async def list_currencies(
    source: str,
    response: Response,
    fxm: SourceOrchestrator = Depends(get_orchestrator),
):
    currencies = await fxm.list_currencies(source)
    _use_cache(response, fxm, source)
    return SourceCurrenciesOut(
        source=source, currency=currencies, date=datetime.now(timezone.utc)
    )


@router.get(
    "/{source}/{from_currency}",
    response_model=SourceRatesOut,
    summary="List every rate from one currency",
)
async def list_rates_from(
    source: str,
    from_currency: str,
    response: Response,
    amount: Optional[Decimal] = Query(None, gt=0),
    fees: Decimal = Query(Decimal(0)),
    precision: Optional[int] = Query(None, ge=-1),
    reverse: bool = False,
    fxm: SourceOrchestrator = Depends(get_orchestrator),
):
    base = normalize(from_currency)
    rates = await fxm.list_rates_from(
        source, base, amount=amount, fees_pct=fees, precision=precision, reverse=reverse
    )
    _use_cache(response, fxm, source)
    return SourceRatesOut(
        source=source,
        base=base,
        rates={to: _detail_out(d) for to, d in rates.items()},
    )


@router.get(
    "/{source}/{from_currency}/{to_currency}",
    response_model=RateDetailOut,
    summary="Cash, remit and middle rates for one pair",
)
async def get_rate_detail(
    source: str,
    from_currency: str,
    to_currency: str,
    response: Response,
    amount: Optional[Decimal] = Query(None, gt=0),
    fees: Decimal = Query(Decimal(0)),
    precision: Optional[int] = Query(None, ge=-1),
    reverse: bool = False,
    fxm: SourceOrchestrator = Depends(get_orchestrator),
):
    detail = await fxm.get_rate_detail(
        source,
        normalize(from_currency),
        normalize(to_currency),
        amount=amount,
        fees_pct=fees,
        precision=precision,
        reverse=reverse,
    )
    _use_cache(response, fxm, source)
    return _detail_out(detail)


async def _convert_amount(
    fxm: SourceOrchestrator,
    response: Response,
    source: str,
    from_currency: str,
    to_currency: str,
    kind: str,
    amount: Optional[Decimal],
    fees: Decimal,
    precision: Optional[int],
    reverse: bool,
) -> ConvertedAmountOut:
    from_currency, to_currency = normalize(from_currency), normalize(to_currency)
    value = await fxm.convert_amount(
        source,
        from_currency,
        to_currency,
        kind,
        amount,
        fees_pct=fees,
        precision=precision,
        reverse=reverse,
    )
    updated = await fxm.get_last_updated(source, from_currency, to_currency)
    _use_cache(response, fxm, source)
    return ConvertedAmountOut(kind=kind, amount=_render(value), provided=True, updated=updated)


@router.get(
    "/{source}/{from_currency}/{to_currency}/{kind}",
    response_model=ConvertedAmountOut,
    summary="Convert an amount with one rate kind",
)
async def convert_amount(
    source: str,
    from_currency: str,
    to_currency: str,
    kind: RateKind,
    response: Response,
    amount: Optional[Decimal] = Query(None, gt=0),
    fees: Decimal = Query(Decimal(0)),
    precision: Optional[int] = Query(None, ge=-1),
    reverse: bool = False,
    fxm: SourceOrchestrator = Depends(get_orchestrator),
):
    return await _convert_amount(
        fxm, response, source, from_currency, to_currency, kind, amount, fees, precision, reverse
    )


@router.get(
    "/{source}/{from_currency}/{to_currency}/{kind}/{amount}",
    response_model=ConvertedAmountOut,
    summary="Convert an amount given in the path",
)
async def convert_path_amount(
    source: str,
    from_currency: str,
    to_currency: str,
    kind: RateKind,
    response: Response,
    amount: Decimal = Path(..., gt=0),
    fees: Decimal = Query(Decimal(0)),
    precision: Optional[int] = Query(None, ge=-1),
    reverse: bool = False,
    fxm: SourceOrchestrator = Depends(get_orchestrator),
):
    return await _convert_amount(
        fxm, response, source, from_currency, to_currency, kind, amount, fees, precision, reverse
    )
