"""Cache-aside access to the latest rate per currency pair."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from exchange_rates.errors import InvalidInputError, RateNotFoundError
from exchange_rates.models import RateRecord
from exchange_rates.providers.schemas import Quote
from exchange_rates.utils.datetime import utc_now

from .fx_conversion import invert_rate, quantize_rate
from .rate_cache import RateCache, pair_key

logger = logging.getLogger(__name__)

RATE_STORE_EXT_KEY = "rate_store"

IDENTITY_RATE = Decimal("1")
# rate_records.rate is NUMERIC(18, 6).
MAX_STORED_RATE = Decimal("1E12")


class RateHistoryBackend(Protocol):
    def append(self, record: RateRecord) -> RateRecord: ...

    def query_latest(self, base: str, target: str) -> RateRecord | None: ...


class RateStore:
    """Serve latest rates from cache, falling back to history and inverse pairs.

    Saves append to history and then evict the exact pair from the cache; the
    next read repopulates it. The inverse pair's entry is left alone.
    """

    def __init__(
        self,
        history: RateHistoryBackend,
        cache: RateCache,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._history = history
        self._cache = cache
        self._clock = clock

    def get_latest_rate(self, base: str, target: str) -> Decimal:
        if base == target:
            return IDENTITY_RATE

        key = pair_key(base, target)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        record = self._history.query_latest(base, target)
        if record is not None:
            rate = quantize_rate(record.rate)
            self._cache.put(key, rate)
            return rate

        inverse = self._history.query_latest(target, base)
        if inverse is not None and inverse.rate != 0:
            rate = invert_rate(quantize_rate(inverse.rate))
            logger.debug(
                "Derived %s->%s rate %s from inverse record %s", base, target, rate, inverse.rate
            )
            self._cache.put(key, rate)
            return rate

        raise RateNotFoundError(base, target)

    def save_best_rate(self, quote: Quote) -> RateRecord:
        if quote.base_currency == quote.target_currency:
            raise InvalidInputError(
                f"Refusing to store identity pair {quote.base_currency}->{quote.target_currency}"
            )
        rate = quantize_rate(quote.rate)
        if rate >= MAX_STORED_RATE:
            raise InvalidInputError(
                f"Rate {rate} for {quote.base_currency}->{quote.target_currency} "
                f"exceeds the storable maximum {MAX_STORED_RATE}"
            )

        record = RateRecord(
            base_currency_code=quote.base_currency,
            target_currency_code=quote.target_currency,
            rate=rate,
            source=quote.source_id,
            observed_at=quote.observed_at,
            recorded_at=self._clock(),
        )
        logger.debug(
            "Saving exchange rate: %s %s to %s = %s",
            quote.source_id,
            quote.base_currency,
            quote.target_currency,
            record.rate,
        )
        saved = self._history.append(record)
        self._cache.evict(pair_key(quote.base_currency, quote.target_currency))
        return saved


def init_rate_store(app) -> RateStore:
    """Wire the rate store over the app's history and cache extensions."""

    from .rate_cache import CACHE_EXT_KEY
    from .rate_history import HISTORY_EXT_KEY

    store = RateStore(app.extensions[HISTORY_EXT_KEY], app.extensions[CACHE_EXT_KEY])
    app.extensions[RATE_STORE_EXT_KEY] = store
    return store
