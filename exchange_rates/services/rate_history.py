"""Durable, append-only history of selected rates."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from exchange_rates.database import get_session, session_scope
from exchange_rates.errors import PersistenceError
from exchange_rates.models import RateRecord
from exchange_rates.utils.datetime import ensure_utc

HISTORY_EXT_KEY = "rate_history"


class RateHistory:
    """SQLAlchemy-backed store of :class:`RateRecord` rows.

    Timestamps are stored as UTC. Some backends (SQLite) hand them back
    naive, so readers pass them through ``ensure_utc``.
    """

    def append(self, record: RateRecord) -> RateRecord:
        """Insert a new record; failures surface as :class:`PersistenceError`."""

        record.observed_at = ensure_utc(record.observed_at)
        record.recorded_at = ensure_utc(record.recorded_at)
        try:
            with session_scope() as session:
                session.add(record)
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to store rate {record.base_currency_code}->"
                f"{record.target_currency_code}: {exc}"
            ) from exc
        return record

    def query_latest(self, base: str, target: str) -> RateRecord | None:
        """Return the most recently observed record for the exact pair."""

        statement = (
            select(RateRecord)
            .where(
                RateRecord.base_currency_code == base,
                RateRecord.target_currency_code == target,
            )
            .order_by(RateRecord.observed_at.desc(), RateRecord.id.desc())
            .limit(1)
        )
        try:
            record = get_session().execute(statement).scalars().first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read latest rate {base}->{target}: {exc}") from exc
        return record

    def query_range(
        self, base: str, target: str, start: datetime, end: datetime
    ) -> list[RateRecord]:
        """Return records observed within ``[start, end]``, oldest first."""

        statement = (
            select(RateRecord)
            .where(
                RateRecord.base_currency_code == base,
                RateRecord.target_currency_code == target,
                RateRecord.observed_at >= ensure_utc(start),
                RateRecord.observed_at <= ensure_utc(end),
            )
            .order_by(RateRecord.observed_at.asc(), RateRecord.id.asc())
        )
        try:
            records = get_session().execute(statement).scalars().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read rate history {base}->{target}: {exc}") from exc
        return list(records)


def init_history(app) -> RateHistory:
    history = RateHistory()
    app.extensions[HISTORY_EXT_KEY] = history
    return history
