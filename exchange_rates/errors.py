"""Error taxonomy surfaced by the exchange rate service."""

from __future__ import annotations

from typing import Any


class ExchangeRateError(Exception):
    """Base class for conditions propagated to callers of the service."""

    def __init__(self, message: str, *, payload: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}


class InvalidInputError(ExchangeRateError):
    """Raised for malformed input, before any storage access happens."""


class CurrencyNotFoundError(InvalidInputError):
    """Raised when a currency code is not part of the supported set."""

    def __init__(self, code: str, reason: str = "not found in system", **kwargs: Any):
        super().__init__(f"Currency '{code}' not found: {reason}", **kwargs)
        self.code = code


class InvalidPeriodFormatError(InvalidInputError):
    """Raised when a trend period does not follow ``<amount><unit>``."""

    def __init__(self, period: str, expected: str):
        super().__init__(
            f"Invalid period format '{period}'. Expected format: {expected}",
            payload={"field": "period", "period": period},
        )
        self.period = period


class NotFoundError(ExchangeRateError):
    """Raised when no rate data is available for a request."""


class RateNotFoundError(NotFoundError):
    """Raised when neither a pair nor its inverse has any stored rate."""

    def __init__(self, base_currency: str, target_currency: str):
        super().__init__(
            f"Exchange rate not found for {base_currency} to {target_currency}",
            payload={"base_currency": base_currency, "target_currency": target_currency},
        )
        self.base_currency = base_currency
        self.target_currency = target_currency


class TrendDataNotFoundError(NotFoundError):
    """Raised when the history holds no records inside a trend window."""

    def __init__(self, base_currency: str, target_currency: str, period: str):
        super().__init__(
            f"No exchange rate data found for {base_currency} to {target_currency} "
            f"in period {period}",
            payload={
                "base_currency": base_currency,
                "target_currency": target_currency,
                "period": period,
            },
        )


class PersistenceError(ExchangeRateError):
    """Raised when the durable rate history cannot be read or written."""
