"""fixer.io quote source."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .base import SourceError
from .http_source import HTTPQuoteSource, client_from_config


class FixerIoSource(HTTPQuoteSource):
    """Provider backed by the fixer.io ``latest`` endpoint; requires an API key."""

    name = "fixer.io"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> FixerIoSource:
        client = client_from_config(str(config.get("FIXER_API_URL")), config)
        return cls(
            client,
            enabled=bool(config.get("FIXER_ENABLED", False)),
            api_key=config.get("FIXER_API_KEY"),
        )

    def available(self) -> bool:
        return self._enabled and self._api_key is not None

    def _build_params(self, base: str) -> dict[str, str]:
        return {"access_key": self._api_key or "", "base": base}

    def _check_payload(self, payload: Mapping[str, Any]) -> None:
        if payload.get("success") is True:
            return
        error = payload.get("error") or {}
        if isinstance(error, Mapping):
            detail = error.get("info") or error.get("type") or error.get("code")
        else:
            detail = error
        raise SourceError(self.name, f"API returned error: {detail or 'unknown error'}")
