"""Common behaviour for quote sources backed by a JSON HTTP API."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from exchange_rates.utils.datetime import from_epoch, utc_now

from .base import QuoteSource, SourceError
from .http_client import HTTPClient, HTTPClientConfig, HTTPClientError
from .schemas import Quote, to_rate

logger = logging.getLogger(__name__)


def client_from_config(url: str, config: Mapping[str, Any]) -> HTTPClient:
    """Build an HTTP client using the shared timeout and retry settings."""

    return HTTPClient(
        HTTPClientConfig(
            base_url=url,
            timeout=float(config.get("REQUEST_TIMEOUT_SECONDS", 5)),
            max_retries=int(config.get("SOURCE_MAX_RETRIES", 2)),
            backoff_seconds=float(config.get("SOURCE_BACKOFF_SECONDS", 0.5)),
        )
    )


class HTTPQuoteSource(QuoteSource):
    """Fetches ``{"base": ..., "rates": {...}}`` style payloads over HTTP.

    Subclasses supply the request parameters and may tighten payload
    validation. Every failure surfaces as :class:`SourceError`.
    """

    path = ""
    timestamp_in_millis = False

    def __init__(
        self,
        client: HTTPClient,
        *,
        enabled: bool = True,
        api_key: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._client = client
        self._enabled = enabled
        self._api_key = api_key.strip() if api_key and api_key.strip() else None
        self._clock = clock

    def available(self) -> bool:
        return self._enabled

    def fetch_rates(self, base: str) -> dict[str, Quote]:
        if not self.available():
            raise SourceError(self.name, "Provider is not configured")

        logger.debug("Fetching rates from %s for base currency %s", self.name, base)
        try:
            payload = self._client.get(self.path, params=self._build_params(base))
        except HTTPClientError as exc:
            raise SourceError(self.name, f"Failed to fetch rates: {exc}") from exc

        self._check_payload(payload)

        rates = payload.get("rates")
        if not isinstance(rates, Mapping):
            raise SourceError(self.name, "Response payload missing 'rates'")

        returned_base = str(payload.get("base") or base).strip()
        if returned_base != base:
            raise SourceError(
                self.name, f"Returned rates for base {returned_base}, requested {base}"
            )

        return self._build_quotes(base, rates, self._observed_at(payload))

    def _build_params(self, base: str) -> dict[str, str]:
        return {"base": base}

    def _check_payload(self, payload: Mapping[str, Any]) -> None:
        """Hook for provider-specific error envelopes."""

    def _observed_at(self, payload: Mapping[str, Any]) -> datetime:
        raw = payload.get("timestamp")
        if raw is None:
            return self._clock()
        try:
            return from_epoch(raw, millis=self.timestamp_in_millis)
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise SourceError(self.name, f"Invalid timestamp {raw!r}") from exc

    def _build_quotes(
        self, base: str, rates: Mapping[str, Any], observed_at: datetime
    ) -> dict[str, Quote]:
        quotes: dict[str, Quote] = {}
        for code, value in rates.items():
            target = str(code).strip()
            if target == base:
                continue
            try:
                rate = to_rate(value)
            except ValueError:
                logger.warning("%s returned unparsable rate %r for %s", self.name, value, target)
                continue
            if rate <= 0:
                logger.warning("%s returned non-positive rate %s for %s", self.name, rate, target)
                continue
            quotes[target] = Quote(
                base_currency=base,
                target_currency=target,
                rate=rate,
                source_id=self.name,
                observed_at=observed_at,
            )
        return quotes
