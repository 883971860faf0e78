"""Assemble the ordered list of quote sources from configuration."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .base import QuoteSource
from .exchangeratesapi import ExchangeRatesApiSource
from .fixer import FixerIoSource
from .mock_service import MockServiceSource
from .simulated import SimulatedQuoteSource, default_simulated_configs

SourceFactory = Callable[[Mapping[str, Any]], QuoteSource]

SOURCES_EXT_KEY = "quote_sources"


def _simulated_factory(index: int) -> SourceFactory:
    def factory(config: Mapping[str, Any]) -> QuoteSource:
        seed = config.get("SIMULATED_SOURCE_SEED")
        configs = default_simulated_configs(
            enabled=bool(config.get("SIMULATED_SOURCES_ENABLED", True)),
            seed=int(seed) if seed not in (None, "") else None,
        )
        return SimulatedQuoteSource(configs[index])

    return factory


def _mock_service_factory(index: int) -> SourceFactory:
    def factory(config: Mapping[str, Any]) -> QuoteSource:
        return MockServiceSource.from_config(config, index)

    return factory


SOURCE_FACTORIES: dict[str, SourceFactory] = {
    "simulated-1": _simulated_factory(0),
    "simulated-2": _simulated_factory(1),
    "mock-service-1": _mock_service_factory(1),
    "mock-service-2": _mock_service_factory(2),
    FixerIoSource.name: FixerIoSource.from_config,
    ExchangeRatesApiSource.name: ExchangeRatesApiSource.from_config,
}


def parse_source_names(value: str | Iterable[str] | None) -> list[str]:
    """Split a comma separated setting into ordered, de-duplicated names."""

    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else list(value)
    names: list[str] = []
    for item in items:
        name = str(item).strip().lower()
        if name and name not in names:
            names.append(name)
    return names


def list_source_names() -> list[str]:
    """Return the identifiers ``QUOTE_SOURCES`` may contain."""

    return sorted(SOURCE_FACTORIES)


def build_sources(config: Mapping[str, Any]) -> list[QuoteSource]:
    """Instantiate the sources named by ``QUOTE_SOURCES``, in the listed order."""

    sources: list[QuoteSource] = []
    for name in parse_source_names(config.get("QUOTE_SOURCES")):
        try:
            factory = SOURCE_FACTORIES[name]
        except KeyError as exc:
            available = ", ".join(list_source_names())
            raise ValueError(f"Unknown quote source '{name}'. Available sources: {available}") from exc
        sources.append(factory(config))
    return sources


def init_sources(app) -> list[QuoteSource]:
    """Attach the configured sources to the Flask app."""

    sources = build_sources(app.config)
    app.extensions[SOURCES_EXT_KEY] = sources
    return sources
