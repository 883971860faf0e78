"""Quote source for the standalone mock exchange rate services."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .http_source import HTTPQuoteSource, client_from_config


class MockServiceSource(HTTPQuoteSource):
    """Calls ``GET {url}/rates?base=XXX`` on a mock rate service.

    The service answers ``{"base": "USD", "rates": {...}, "timestamp": <ms>}``.
    """

    path = "/rates"
    timestamp_in_millis = True

    def __init__(self, name: str, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.name = name

    @classmethod
    def from_config(cls, config: Mapping[str, Any], index: int) -> MockServiceSource:
        prefix = f"MOCK_SERVICE_{index}_"
        client = client_from_config(str(config.get(f"{prefix}URL")), config)
        return cls(
            f"mock-service-{index}",
            client,
            enabled=bool(config.get(f"{prefix}ENABLED", False)),
        )
