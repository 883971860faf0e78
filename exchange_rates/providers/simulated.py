"""In-process simulated quote sources for local development and demos."""

from __future__ import annotations

import random
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from exchange_rates.utils.datetime import utc_now

from .base import QuoteSource, SourceError
from .schemas import Quote

RATE_QUANTUM = Decimal("0.000001")

# Rates relative to USD.
DEFAULT_BASE_RATES_1: dict[str, str] = {
    "USD": "1",
    "EUR": "0.92",
    "GBP": "0.79",
    "JPY": "149.50",
    "CHF": "0.88",
    "AUD": "1.52",
    "CAD": "1.36",
    "CNY": "7.24",
    "INR": "83.12",
    "BRL": "4.96",
}

DEFAULT_BASE_RATES_2: dict[str, str] = {
    "USD": "1",
    "EUR": "0.91",
    "GBP": "0.78",
    "JPY": "150.20",
    "CHF": "0.87",
    "AUD": "1.53",
    "CAD": "1.37",
    "CNY": "7.26",
    "INR": "83.25",
    "BRL": "4.98",
}


@dataclass(frozen=True)
class SimulatedSourceConfig:
    """Static rate table and noise level for one simulated source."""

    name: str
    base_rates: Mapping[str, Decimal] = field(default_factory=dict)
    variance: Decimal = Decimal("0.02")
    seed: int | None = None
    enabled: bool = True

    def __post_init__(self) -> None:
        rates = {code: Decimal(str(value)) for code, value in self.base_rates.items()}
        if any(value <= 0 for value in rates.values()):
            raise ValueError("Simulated base rates must be positive")
        object.__setattr__(self, "base_rates", rates)
        object.__setattr__(self, "variance", Decimal(str(self.variance)))
        if not Decimal("0") <= self.variance < Decimal("1"):
            raise ValueError("variance must be within [0, 1)")


def default_simulated_configs(
    *, enabled: bool = True, seed: int | None = None
) -> list[SimulatedSourceConfig]:
    """Return the two stock simulated sources (±2% and ±3% noise)."""

    second_seed = seed + 1 if seed is not None else None
    return [
        SimulatedSourceConfig(
            name="simulated-1",
            base_rates=DEFAULT_BASE_RATES_1,
            variance=Decimal("0.02"),
            seed=seed,
            enabled=enabled,
        ),
        SimulatedSourceConfig(
            name="simulated-2",
            base_rates=DEFAULT_BASE_RATES_2,
            variance=Decimal("0.03"),
            seed=second_seed,
            enabled=enabled,
        ),
    ]


class SimulatedQuoteSource(QuoteSource):
    """Cross rates derived from a USD table with a random variance applied."""

    def __init__(
        self,
        config: SimulatedSourceConfig,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.name = config.name
        self._config = config
        self._clock = clock
        self._random = random.Random(config.seed)
        self._lock = threading.Lock()

    def available(self) -> bool:
        return self._config.enabled

    def fetch_rates(self, base: str) -> dict[str, Quote]:
        if not self.available():
            raise SourceError(self.name, "Provider is not configured")

        table = self._config.base_rates
        base_rate = table.get(base)
        if base_rate is None:
            raise SourceError(self.name, f"Unsupported base currency {base}")

        observed_at = self._clock()
        quotes: dict[str, Quote] = {}
        for target, target_rate in table.items():
            if target == base:
                continue
            cross = (target_rate / base_rate).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)
            rate = (cross * self._variance_factor()).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)
            quotes[target] = Quote(
                base_currency=base,
                target_currency=target,
                rate=rate,
                source_id=self.name,
                observed_at=observed_at,
            )
        return quotes

    def _variance_factor(self) -> Decimal:
        variance = self._config.variance
        if variance == 0:
            return Decimal("1")
        with self._lock:
            draw = self._random.random()
        spread = Decimal(str(draw)) * variance * 2
        return Decimal("1") - variance + spread
