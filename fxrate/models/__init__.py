"""Pydantic response models and constants for the fxrate API."""

from .constants import (
    CURRENCY_ALIASES,
    CNY_FALLBACK,
    EPOCH,
    RATE_KINDS,
)  # re-export
from .rates import (
    ConvertedAmountOut,
    InstanceInfoOut,
    RateDetailOut,
    SourceCurrenciesOut,
    SourceRatesOut,
)

__all__ = [
    "CURRENCY_ALIASES",
    "CNY_FALLBACK",
    "EPOCH",
    "RATE_KINDS",
    "ConvertedAmountOut",
    "InstanceInfoOut",
    "RateDetailOut",
    "SourceCurrenciesOut",
    "SourceRatesOut",
]
