"""Dataclasses describing normalized quote source payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from exchange_rates.utils.datetime import ensure_utc


def _normalize_code(code: str) -> str:
    normalized = str(code).strip()
    if not normalized or not normalized.isascii():
        raise ValueError(f"Currency code must be non-empty ASCII: {code!r}")
    return normalized


def to_rate(value: Any) -> Decimal:
    """Parse a payload value into a Decimal rate without passing through float."""

    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid rate value: {value!r}") from exc
    if not rate.is_finite():
        raise ValueError(f"Invalid rate value: {value!r}")
    return rate


@dataclass(frozen=True)
class Quote:
    """One source's observed rate for a currency pair at a point in time."""

    base_currency: str
    target_currency: str
    rate: Decimal
    source_id: str
    observed_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_currency", _normalize_code(self.base_currency))
        object.__setattr__(self, "target_currency", _normalize_code(self.target_currency))
        object.__setattr__(self, "rate", to_rate(self.rate))
        object.__setattr__(self, "observed_at", ensure_utc(self.observed_at))
        if not self.source_id or not self.source_id.strip():
            raise ValueError("source_id must be provided for Quote")


@dataclass(frozen=True)
class RatePoint:
    """Single historical rate observation."""

    timestamp: datetime
    rate: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        object.__setattr__(self, "rate", to_rate(self.rate))


class FetchStatus(str, Enum):
    """How a single source call ended."""

    OK = "ok"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass(frozen=True)
class FetchOutcome:
    """Result of asking one source for quotes, without raising."""

    source_id: str
    status: FetchStatus
    quotes: dict[str, Quote] = field(default_factory=dict)
    reason: str | None = None
    duration_ms: float | None = None

    @classmethod
    def ok(cls, source_id: str, quotes: dict[str, Quote], duration_ms: float | None = None):
        return cls(source_id, FetchStatus.OK, dict(quotes), duration_ms=duration_ms)

    @classmethod
    def unavailable(cls, source_id: str):
        return cls(source_id, FetchStatus.UNAVAILABLE, reason="source reported unavailable")

    @classmethod
    def error(cls, source_id: str, reason: str, duration_ms: float | None = None):
        return cls(source_id, FetchStatus.ERROR, reason=reason, duration_ms=duration_ms)

    @property
    def succeeded(self) -> bool:
        return self.status is FetchStatus.OK
