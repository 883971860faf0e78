"""Helper factories for building quotes and history records in tests."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from exchange_rates.models import RateRecord
from exchange_rates.providers.schemas import Quote

DEFAULT_OBSERVED_AT = datetime(2026, 10, 16, 12, 0, tzinfo=UTC)


def make_quote(
    target: str = "EUR",
    rate: Decimal | str = "0.85",
    source: str = "source-a",
    base: str = "USD",
    observed_at: datetime | None = None,
) -> Quote:
    """Return a quote for ``base -> target``."""

    return Quote(
        base_currency=base,
        target_currency=target,
        rate=Decimal(str(rate)),
        source_id=source,
        observed_at=observed_at or DEFAULT_OBSERVED_AT,
    )


def make_quotes(rates, *, target: str = "EUR", base: str = "USD") -> list[Quote]:
    """One quote per rate, each from a distinct source named ``source-<index>``."""

    return [
        make_quote(target=target, rate=rate, source=f"source-{index}", base=base)
        for index, rate in enumerate(rates)
    ]


def make_record(
    base: str = "USD",
    target: str = "EUR",
    rate: Decimal | str = "0.85",
    observed_at: datetime | None = None,
    source: str = "source-a",
) -> RateRecord:
    """Return an unsaved history record."""

    timestamp = observed_at or DEFAULT_OBSERVED_AT
    return RateRecord(
        base_currency_code=base,
        target_currency_code=target,
        rate=Decimal(str(rate)),
        source=source,
        observed_at=timestamp,
        recorded_at=timestamp,
    )
