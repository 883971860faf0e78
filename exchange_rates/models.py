"""SQLAlchemy ORM models for currencies and the durable rate history."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from exchange_rates.database import Base


class Currency(Base):
    """A currency the scheduler sweeps and callers may query."""

    __tablename__ = "currencies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(3), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Currency code={self.code}>"


class RateRecord(Base):
    """Append-only snapshot of the best rate selected for a currency pair."""

    __tablename__ = "rate_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    base_currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    target_currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    source: Mapped[str] = mapped_column(String(64), nullable=False)
    observed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            f"<RateRecord {self.base_currency_code}->{self.target_currency_code} "
            f"{self.observed_at.isoformat()} rate={self.rate} source={self.source}>"
        )


Index(
    "ix_rate_records_pair_observed_desc",
    RateRecord.base_currency_code,
    RateRecord.target_currency_code,
    RateRecord.observed_at.desc(),
)
