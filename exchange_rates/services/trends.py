"""Change in a pair's rate over a trailing window of history."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Protocol

from exchange_rates.errors import InvalidPeriodFormatError, TrendDataNotFoundError
from exchange_rates.models import RateRecord
from exchange_rates.providers.schemas import RatePoint
from exchange_rates.utils.datetime import ensure_utc, shift_back, utc_now
from exchange_rates.validation import validate_currency_code

from .currency_registry import CurrencyRegistry
from .fx_conversion import AMOUNT_QUANTUM, get_decimal_context, quantize_rate

logger = logging.getLogger(__name__)

TRENDS_EXT_KEY = "trends_engine"

PERIOD_PATTERN = re.compile(r"([0-9]+)([HDMY])")
PERIOD_GRAMMAR = "number followed by H (hours), D (days), M (months), or Y (years)"
PERIOD_RANGE = "a period whose window starts no earlier than the year 1"
RATIO_QUANTUM = Decimal("0.0001")


class RateRangeReader(Protocol):
    def query_range(
        self, base: str, target: str, start: datetime, end: datetime
    ) -> list[RateRecord]: ...


@dataclass(frozen=True)
class Period:
    amount: int
    unit: str

    def __str__(self) -> str:
        return f"{self.amount}{self.unit}"


def parse_period(value: str | None) -> Period:
    """Parse strings such as ``24H``, ``7D``, ``1M`` or ``1Y``."""

    text = "" if value is None else str(value)
    match = PERIOD_PATTERN.fullmatch(text)
    if match is None:
        raise InvalidPeriodFormatError(text, PERIOD_GRAMMAR)
    try:
        amount = int(match.group(1))
    except ValueError as exc:
        raise InvalidPeriodFormatError(text, PERIOD_RANGE) from exc
    if amount <= 0:
        raise InvalidPeriodFormatError(text, PERIOD_GRAMMAR)
    return Period(amount=amount, unit=match.group(2))


@dataclass(frozen=True)
class TrendResult:
    base_currency: str
    target_currency: str
    period: str
    start_rate: Decimal
    end_rate: Decimal
    change: Decimal
    change_percent: Decimal | None
    start_time: datetime
    end_time: datetime
    data_points: list[RatePoint] = field(default_factory=list)


def percent_change(start: Decimal, change: Decimal) -> Decimal | None:
    """Ratio rounded to 4 places, scaled to percent and rounded to 2 places.

    Returns ``None`` when ``start`` is zero.
    """

    if start == 0:
        return None
    with localcontext(get_decimal_context()):
        ratio = (change / start).quantize(RATIO_QUANTUM, rounding=ROUND_HALF_UP)
        return (ratio * 100).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


class TrendsEngine:
    """Compute trends from durable history only; the cache is never consulted."""

    def __init__(
        self,
        history: RateRangeReader,
        registry: CurrencyRegistry,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._history = history
        self._registry = registry
        self._clock = clock

    def calculate_trend(self, base: str, target: str, period: str) -> TrendResult:
        base = validate_currency_code(base, self._registry, field="from")
        target = validate_currency_code(target, self._registry, field="to")
        parsed = parse_period(period)

        end = ensure_utc(self._clock())
        try:
            start = shift_back(end, parsed.amount, parsed.unit)
        except (OverflowError, ValueError) as exc:
            raise InvalidPeriodFormatError(str(parsed), PERIOD_RANGE) from exc

        records = self._history.query_range(base, target, start, end)
        if not records:
            raise TrendDataNotFoundError(base, target, str(parsed))

        points = [
            RatePoint(timestamp=ensure_utc(record.observed_at), rate=quantize_rate(record.rate))
            for record in records
        ]
        first, last = points[0], points[-1]

        with localcontext(get_decimal_context()):
            change = last.rate - first.rate
        change_percent = percent_change(first.rate, change)
        if change_percent is None:
            logger.warning(
                "Start rate for %s to %s over %s is zero; percent change undefined",
                base,
                target,
                parsed,
            )

        logger.debug(
            "Trend %s to %s over %s: %s points, change %s", base, target, parsed, len(points), change
        )
        return TrendResult(
            base_currency=base,
            target_currency=target,
            period=str(parsed),
            start_rate=first.rate,
            end_rate=last.rate,
            change=change,
            change_percent=change_percent,
            start_time=first.timestamp,
            end_time=last.timestamp,
            data_points=points,
        )


def init_trends(app) -> TrendsEngine:
    from .currency_registry import REGISTRY_EXT_KEY
    from .rate_history import HISTORY_EXT_KEY

    engine = TrendsEngine(app.extensions[HISTORY_EXT_KEY], app.extensions[REGISTRY_EXT_KEY])
    app.extensions[TRENDS_EXT_KEY] = engine
    return engine
