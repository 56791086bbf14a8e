"""Typed failures of the rate engine.

Each error carries the identifiers a caller needs to report it; none of them
are caught and re-wrapped inside the engine.
"""

from __future__ import annotations


class RateError(Exception):
    pass


class UnknownCurrency(RateError):
    def __init__(self, code: str, source: str | None = None):
        self.code = code
        self.source = source
        where = f" on {source}" if source else ""
        super().__init__(f"Unknown currency code '{code}'{where}")


class InvalidQuote(RateError):
    def __init__(self, from_currency: str, to_currency: str, reason: str | None = None):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.reason = reason or "has no buy, sell or middle rate"
        super().__init__(f"Quote {from_currency}->{to_currency} {self.reason}")


class PathNotFound(RateError):
    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(f"No FX path found between {from_currency} and {to_currency}")


class RateKindUnsupported(RateError):
    def __init__(self, from_currency: str, to_currency: str, kind: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.kind = kind
        super().__init__(
            f"FX path from {from_currency} to {to_currency} does not support {kind}"
        )


class SourceNotFound(RateError):
    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Source '{source}' not found")


class SourceFetchFailed(RateError):
    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Fetching rates for '{source}' failed: {reason}")


class CapabilityUnsupported(RateError):
    def __init__(self, source: str, operation: str):
        self.source = source
        self.operation = operation
        super().__init__(f"Source '{source}' is not able to {operation}")
