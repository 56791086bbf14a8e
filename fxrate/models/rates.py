from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .constants import RATE_KINDS

# Rounded values are plain numbers; exact ones (precision=-1) are "numerator/denominator".
Amount = Union[float, str]


class RateDetailOut(BaseModel):
    cash: Optional[Amount] = None
    remit: Optional[Amount] = None
    middle: Optional[Amount] = None
    provided: bool
    updated: Optional[datetime] = None


class ConvertedAmountOut(BaseModel):
    kind: str
    amount: Optional[Amount] = None
    provided: bool
    updated: Optional[datetime] = None

    @field_validator("kind")
    def valid_kind(cls, v: str) -> str:
        if v not in RATE_KINDS:
            raise ValueError("unsupported rate kind")
        return v


class SourceCurrenciesOut(BaseModel):
    source: str
    currency: List[str]
    date: datetime


class SourceRatesOut(BaseModel):
    source: str
    base: str
    rates: Dict[str, RateDetailOut] = Field(default_factory=dict)


class InstanceInfoOut(BaseModel):
    status: str = "ok"
    sources: List[str]
    version: str
    api_version: str = "v1"
