"""exchangeratesapi.io quote source."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .base import SourceError
from .http_source import HTTPQuoteSource, client_from_config


class ExchangeRatesApiSource(HTTPQuoteSource):
    """Provider using exchangeratesapi.io; the access key is optional."""

    name = "exchangeratesapi.io"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> ExchangeRatesApiSource:
        client = client_from_config(str(config.get("EXCHANGERATESAPI_API_URL")), config)
        return cls(
            client,
            enabled=bool(config.get("EXCHANGERATESAPI_ENABLED", False)),
            api_key=config.get("EXCHANGERATESAPI_API_KEY"),
        )

    def _build_params(self, base: str) -> dict[str, str]:
        params = {"base": base}
        if self._api_key:
            params["access_key"] = self._api_key
        return params

    def _check_payload(self, payload: Mapping[str, Any]) -> None:
        if payload.get("success", True):
            return
        raise SourceError(self.name, f"API returned error: {payload.get('error') or 'unknown error'}")
