"""Fan out to quote sources and converge on one rate per currency pair."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from time import perf_counter

from exchange_rates.errors import ExchangeRateError
from exchange_rates.logging import source_log_extra
from exchange_rates.providers.base import QuoteSource, SourceError
from exchange_rates.providers.schemas import FetchOutcome, FetchStatus, Quote

from .rate_store import RateStore

logger = logging.getLogger(__name__)

AGGREGATOR_EXT_KEY = "rate_aggregator"

DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0


def select_best_rate(quotes: Sequence[Quote] | None) -> Quote | None:
    """Pick the upper-median quote by rate.

    The sort is stable, so equal rates keep their insertion order. For an
    even count this is the element just right of centre; no averaging.
    """

    if not quotes:
        return None
    if len(quotes) == 1:
        return quotes[0]

    ordered = sorted(quotes, key=lambda quote: quote.rate)
    return ordered[len(ordered) // 2]


class RateAggregator:
    """Collect quotes from every available source and persist the best ones."""

    def __init__(
        self,
        sources: Iterable[QuoteSource],
        rate_store: RateStore,
        *,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    ) -> None:
        self._sources = list(sources)
        self._rate_store = rate_store
        self._fetch_timeout = fetch_timeout

    select_best_rate = staticmethod(select_best_rate)

    def get_available_providers(self) -> list[str]:
        available: list[str] = []
        for source in self._sources:
            try:
                if source.available():
                    available.append(source.name)
            except Exception:
                logger.exception("Availability check failed for %s", source.name)
        return available

    def collect_outcomes(self, base: str) -> list[FetchOutcome]:
        """Call every source in parallel; one outcome per source, in registration order."""

        if not self._sources:
            return []

        logger.info("Fetching exchange rates for %s from %s providers", base, len(self._sources))
        executor = ThreadPoolExecutor(
            max_workers=len(self._sources), thread_name_prefix=f"quotes-{base}"
        )
        try:
            futures: list[Future[FetchOutcome]] = [
                executor.submit(self._fetch_source, source, base) for source in self._sources
            ]
            wait(futures, timeout=self._fetch_timeout)
        finally:
            # Do not block on sources that are still hanging past the timeout.
            executor.shutdown(wait=False, cancel_futures=True)

        outcomes: list[FetchOutcome] = []
        for source, future in zip(self._sources, futures):
            if future.done() and not future.cancelled():
                outcomes.append(future.result())
                continue
            reason = f"timed out after {self._fetch_timeout:.1f}s"
            logger.error(
                "Failed to fetch rates from %s: %s",
                source.name,
                reason,
                extra=source_log_extra(
                    source=source.name,
                    base=base,
                    event="source.fetch",
                    status="timeout",
                    duration_ms=self._fetch_timeout * 1000,
                    error=reason,
                ),
            )
            outcomes.append(FetchOutcome.error(source.name, reason))
        return outcomes

    def fetch_from_all_providers(self, base: str) -> dict[str, list[Quote]]:
        """Group quotes from all successful sources by target currency."""

        grouped: dict[str, list[Quote]] = {}
        for outcome in self.collect_outcomes(base):
            if outcome.status is not FetchStatus.OK:
                continue
            for quote in outcome.quotes.values():
                if quote.base_currency != base:
                    logger.warning(
                        "Dropping %s quote for %s->%s while fetching base %s",
                        outcome.source_id,
                        quote.base_currency,
                        quote.target_currency,
                        base,
                    )
                    continue
                if quote.target_currency == base:
                    continue
                grouped.setdefault(quote.target_currency, []).append(quote)
        return grouped

    def fetch_and_save_best_rates(self, base: str) -> int:
        """Persist the best quote per target; returns the number of successful saves."""

        saved_count = 0
        for target, quotes in self.fetch_from_all_providers(base).items():
            best = select_best_rate(quotes)
            if best is None:
                continue
            try:
                self._rate_store.save_best_rate(best)
            except ExchangeRateError as exc:
                logger.error("Failed to save rate for %s to %s: %s", base, target, exc)
                continue
            except Exception:
                logger.exception("Unexpected error saving rate for %s to %s", base, target)
                continue
            saved_count += 1
            logger.debug(
                "Saved best rate for %s to %s: %s from %s (%s quotes)",
                base,
                target,
                best.rate,
                best.source_id,
                len(quotes),
            )

        logger.info("Saved %s best rates for base currency %s", saved_count, base)
        return saved_count

    def _fetch_source(self, source: QuoteSource, base: str) -> FetchOutcome:
        try:
            is_available = source.available()
        except Exception as exc:
            logger.exception("Availability check failed for %s", source.name)
            return FetchOutcome.error(source.name, f"availability check failed: {exc}")

        if not is_available:
            logger.debug("Provider %s is not available, skipping", source.name)
            return FetchOutcome.unavailable(source.name)

        start = perf_counter()
        try:
            quotes = source.fetch_rates(base)
        except SourceError as exc:
            duration = (perf_counter() - start) * 1000
            logger.error(
                "Failed to fetch rates from %s: %s",
                source.name,
                exc,
                extra=source_log_extra(
                    source=source.name,
                    base=base,
                    event="source.fetch",
                    status="error",
                    duration_ms=duration,
                    error=str(exc),
                ),
            )
            return FetchOutcome.error(source.name, str(exc), duration_ms=duration)
        except Exception as exc:
            duration = (perf_counter() - start) * 1000
            logger.exception(
                "Unexpected failure fetching rates from %s",
                source.name,
                extra=source_log_extra(
                    source=source.name,
                    base=base,
                    event="source.fetch",
                    status="error",
                    duration_ms=duration,
                    error=repr(exc),
                ),
            )
            return FetchOutcome.error(source.name, repr(exc), duration_ms=duration)

        duration = (perf_counter() - start) * 1000
        logger.info(
            "Successfully fetched %s rates from %s",
            len(quotes),
            source.name,
            extra=source_log_extra(
                source=source.name,
                base=base,
                event="source.fetch",
                status="success",
                duration_ms=duration,
                quotes=len(quotes),
            ),
        )
        return FetchOutcome.ok(source.name, quotes, duration_ms=duration)


def init_aggregator(app) -> RateAggregator:
    """Build the aggregator over the app's quote sources and rate store."""

    from exchange_rates.providers.registry import SOURCES_EXT_KEY

    from .rate_store import RATE_STORE_EXT_KEY

    aggregator = RateAggregator(
        app.extensions.get(SOURCES_EXT_KEY, []),
        app.extensions[RATE_STORE_EXT_KEY],
        fetch_timeout=float(
            app.config.get("PROVIDER_FETCH_TIMEOUT_SECONDS", DEFAULT_FETCH_TIMEOUT_SECONDS)
        ),
    )
    app.extensions[AGGREGATOR_EXT_KEY] = aggregator
    return aggregator
