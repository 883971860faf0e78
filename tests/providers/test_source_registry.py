from __future__ import annotations

import pytest

from config import get_config
from exchange_rates.providers.exchangeratesapi import ExchangeRatesApiSource
from exchange_rates.providers.fixer import FixerIoSource
from exchange_rates.providers.mock_service import MockServiceSource
from exchange_rates.providers.registry import (
    SOURCES_EXT_KEY,
    build_sources,
    list_source_names,
    parse_source_names,
)
from exchange_rates.providers.simulated import SimulatedQuoteSource

DEFAULT_ORDER = [
    "simulated-1",
    "simulated-2",
    "mock-service-1",
    "mock-service-2",
    "fixer.io",
    "exchangeratesapi.io",
]


def test_parse_source_names_preserves_order_and_dedupes():
    assert parse_source_names(" Simulated-2, simulated-1 ,simulated-2,,") == [
        "simulated-2",
        "simulated-1",
    ]
    assert parse_source_names(None) == []


def test_build_sources_follows_configured_order():
    sources = build_sources(
        {
            "QUOTE_SOURCES": "fixer.io,simulated-1,mock-service-2,exchangeratesapi.io",
            "MOCK_SERVICE_2_URL": "http://localhost:8082",
            "FIXER_API_URL": "http://data.fixer.io/api/latest",
            "EXCHANGERATESAPI_API_URL": "https://api.exchangeratesapi.io/v1/latest",
        }
    )

    assert [source.name for source in sources] == [
        "fixer.io",
        "simulated-1",
        "mock-service-2",
        "exchangeratesapi.io",
    ]
    assert isinstance(sources[0], FixerIoSource)
    assert isinstance(sources[1], SimulatedQuoteSource)
    assert isinstance(sources[2], MockServiceSource)
    assert isinstance(sources[3], ExchangeRatesApiSource)


def test_build_sources_rejects_unknown_name():
    with pytest.raises(ValueError, match="Unknown quote source 'bogus'"):
        build_sources({"QUOTE_SOURCES": "simulated-1,bogus"})


def test_default_configuration_enables_only_simulated_sources():
    config_cls = get_config("development")
    config = {key: getattr(config_cls, key) for key in dir(config_cls) if key.isupper()}

    sources = build_sources(config)

    assert [source.name for source in sources] == DEFAULT_ORDER
    assert [source.name for source in sources if source.available()] == [
        "simulated-1",
        "simulated-2",
    ]


def test_list_source_names_is_sorted():
    names = list_source_names()

    assert names == sorted(names)
    assert set(names) == set(DEFAULT_ORDER)


def test_app_registers_configured_sources(app):
    assert [source.name for source in app.extensions[SOURCES_EXT_KEY]] == [
        "simulated-1",
        "simulated-2",
    ]
