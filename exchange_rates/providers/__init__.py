"""Quote source interfaces and implementations."""

from .base import QuoteSource, SourceError
from .exchangeratesapi import ExchangeRatesApiSource
from .fixer import FixerIoSource
from .http_client import HTTPClient, HTTPClientConfig, HTTPClientError
from .http_source import HTTPQuoteSource
from .mock_service import MockServiceSource
from .schemas import FetchOutcome, FetchStatus, Quote, RatePoint
from .simulated import SimulatedQuoteSource, SimulatedSourceConfig

__all__ = [
    "ExchangeRatesApiSource",
    "FetchOutcome",
    "FetchStatus",
    "FixerIoSource",
    "HTTPClient",
    "HTTPClientConfig",
    "HTTPClientError",
    "HTTPQuoteSource",
    "MockServiceSource",
    "Quote",
    "QuoteSource",
    "RatePoint",
    "SimulatedQuoteSource",
    "SimulatedSourceConfig",
    "SourceError",
]
