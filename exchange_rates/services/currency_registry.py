"""Read-only view over the supported currency set."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from exchange_rates.database import get_engine
from exchange_rates.models import Currency

logger = logging.getLogger(__name__)

REGISTRY_EXT_KEY = "currency_registry"


@dataclass
class CurrencyRegistry:
    """Provides the codes the scheduler sweeps and callers may query.

    When bound to an engine the set is re-read from the ``currencies`` table
    on every :meth:`list_supported_currencies` call, so codes added by the
    registry's owner are picked up by the next sweep.
    """

    codes: set[str] = field(default_factory=set)
    engine: Engine | None = None

    def load(self) -> None:
        """Load currency codes from the database."""

        engine = self.engine or get_engine()
        try:
            with engine.connect() as connection:
                result = connection.execute(select(Currency.code))
                self.codes = {row[0] for row in result}
        except OperationalError:
            # Migrations may not have created the table yet; fallback to empty set.
            logger.warning("Currency table unavailable; registry is empty.")
            self.codes = set()

    def update(self, items: Iterable[str]) -> None:
        """Merge additional codes into the registry."""

        self.codes.update(items)

    def list_supported_currencies(self) -> list[str]:
        """Return the supported codes in a stable order."""

        if self.engine is not None:
            self.load()
        return sorted(self.codes)

    def currency_exists(self, code: str) -> bool:
        """Check if the given code is registered (case-sensitive)."""

        return code in self.codes


registry = CurrencyRegistry()


def init_registry(app) -> CurrencyRegistry:
    """Bind the shared registry to the app's engine and populate codes."""

    registry.engine = get_engine()
    registry.load()
    app.extensions[REGISTRY_EXT_KEY] = registry
    return registry
