"""Abstract interface for quote sources."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .schemas import Quote


class SourceError(Exception):
    """Raised when a quote source cannot fulfil a request.

    Covers network failures, bad HTTP statuses, malformed payloads and
    disabled configuration, so callers can tell it apart from "no data".
    """

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"External API error from {source}: {message}")
        self.source = source


class QuoteSource(ABC):
    """Defines the interface all quote sources must implement."""

    name: str

    @abstractmethod
    def available(self) -> bool:
        """Return whether the source is configured and worth calling."""

    @abstractmethod
    def fetch_rates(self, base: str) -> dict[str, Quote]:
        """Return quotes keyed by target currency for the given base currency."""

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<{self.__class__.__name__} name={self.name}>"
