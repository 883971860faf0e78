"""Validation helpers run before any rate lookup."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from exchange_rates.errors import CurrencyNotFoundError, InvalidInputError

if TYPE_CHECKING:
    from exchange_rates.services.currency_registry import CurrencyRegistry


def _preview_codes(codes: Sequence[str], max_items: int = 10) -> str:
    subset = list(sorted(codes))[:max_items]
    preview = ", ".join(subset)
    if len(codes) > max_items:
        preview += ", ..."
    return preview


def validate_currency_code(
    value: str | None, registry: CurrencyRegistry, *, field: str = "currency"
) -> str:
    """Ensure the provided currency code exists in the registry and return it."""

    if value is None or not str(value).strip():
        raise InvalidInputError(f"'{field}' is required.", payload={"field": field})

    code = str(value).strip()
    if not registry.currency_exists(code):
        codes = tuple(registry.codes)
        hint = _preview_codes(codes) if codes else "no codes configured"
        raise CurrencyNotFoundError(
            code,
            f"not found in system. Supported codes: {hint}",
            payload={"field": field, "code": code},
        )
    return code
