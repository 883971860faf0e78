"""Fixed-point rounding rules and amount conversion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext, localcontext
from typing import TYPE_CHECKING

from exchange_rates.errors import InvalidInputError
from exchange_rates.validation import validate_currency_code

if TYPE_CHECKING:
    from exchange_rates.services.currency_registry import CurrencyRegistry
    from exchange_rates.services.rate_store import RateStore

logger = logging.getLogger(__name__)

CONVERTER_EXT_KEY = "rate_converter"

ROUNDING_PRECISION = 28
# Stored and cached rates.
RATE_QUANTUM = Decimal("0.000001")
# Amounts shown to users.
AMOUNT_QUANTUM = Decimal("0.01")


def get_decimal_context():
    """Return the shared Decimal context used across rate arithmetic."""

    context = getcontext().copy()
    context.prec = ROUNDING_PRECISION
    context.rounding = ROUND_HALF_UP
    return context


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert input into a Decimal, going through ``str`` for floats."""

    with localcontext(get_decimal_context()):
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise InvalidInputError(f"Invalid decimal value: {value!r}") from exc


def _quantize(value: Decimal | int | float | str, quantum: Decimal) -> Decimal:
    decimal_value = to_decimal(value)
    try:
        return decimal_value.quantize(quantum, context=get_decimal_context())
    except InvalidOperation as exc:
        raise InvalidInputError(
            f"Value {decimal_value} is out of range at scale {quantum}"
        ) from exc


def quantize_rate(value: Decimal | int | float | str) -> Decimal:
    """Round a rate to 6 fractional digits, half up."""

    return _quantize(value, RATE_QUANTUM)


def quantize_amount(value: Decimal | int | float | str) -> Decimal:
    """Round a user-facing amount to 2 fractional digits, half up."""

    return _quantize(value, AMOUNT_QUANTUM)


def invert_rate(rate: Decimal) -> Decimal:
    """Return ``1 / rate`` at rate scale."""

    if rate == 0:
        raise ValueError("Cannot invert a zero rate.")
    with localcontext(get_decimal_context()):
        inverse = Decimal("1") / rate
    return _quantize(inverse, RATE_QUANTUM)


@dataclass(frozen=True)
class ConversionResult:
    amount: Decimal
    from_currency: str
    to_currency: str
    rate: Decimal
    result: Decimal


class CurrencyConverter:
    """Convert amounts between currencies using the latest stored rate."""

    def __init__(self, rate_store: RateStore, registry: CurrencyRegistry) -> None:
        self._rate_store = rate_store
        self._registry = registry

    def calculate_conversion(
        self,
        amount: Decimal | int | float | str,
        from_currency: str,
        to_currency: str,
    ) -> ConversionResult:
        base = validate_currency_code(from_currency, self._registry, field="from")
        target = validate_currency_code(to_currency, self._registry, field="to")

        amount_dec = to_decimal(amount)
        if not amount_dec.is_finite() or amount_dec < 0:
            raise InvalidInputError(
                f"Amount must be a non-negative number, got {amount!r}",
                payload={"field": "amount"},
            )

        logger.debug("Calculating exchange rate: %s %s to %s", amount_dec, base, target)
        rate = self._rate_store.get_latest_rate(base, target)
        try:
            with localcontext(get_decimal_context()):
                result = quantize_amount(amount_dec * rate)
        except InvalidInputError as exc:
            raise InvalidInputError(
                f"Amount {amount_dec} {base} is too large to convert to {target}",
                payload={"field": "amount"},
            ) from exc

        return ConversionResult(
            amount=amount_dec,
            from_currency=base,
            to_currency=target,
            rate=rate,
            result=result,
        )


def init_converter(app) -> CurrencyConverter:
    from exchange_rates.services.currency_registry import REGISTRY_EXT_KEY
    from exchange_rates.services.rate_store import RATE_STORE_EXT_KEY

    converter = CurrencyConverter(
        app.extensions[RATE_STORE_EXT_KEY], app.extensions[REGISTRY_EXT_KEY]
    )
    app.extensions[CONVERTER_EXT_KEY] = converter
    return converter
