"""SQLAlchemy engine, scoped sessions and transaction helpers."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, scoped_session, sessionmaker


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


# Thread-local: scheduler jobs, CLI commands and worker threads each get their own session.
SessionLocal = scoped_session(sessionmaker(expire_on_commit=False))

_engine: Optional[Engine] = None


def init_app(app: Any) -> Engine:
    """Create the engine for ``SQLALCHEMY_DATABASE_URI`` and bind the session factory."""

    global _engine

    if _engine is None:
        _engine = create_engine(app.config["SQLALCHEMY_DATABASE_URI"], future=True)
        SessionLocal.configure(bind=_engine, autoflush=False)

    @app.teardown_appcontext
    def shutdown_session(_: Optional[BaseException] = None) -> None:
        SessionLocal.remove()

    app.extensions["sqlalchemy_engine"] = _engine
    app.extensions["sqlalchemy_session_factory"] = SessionLocal
    return _engine


def get_engine() -> Engine:
    """Return the active SQLAlchemy engine; raise if not yet initialized."""

    if _engine is None:
        raise RuntimeError("Database engine has not been initialized. Call init_app first.")
    return _engine


def get_session() -> scoped_session:
    """Expose the configured session factory."""

    return SessionLocal


@contextmanager
def session_scope() -> Iterator[Session]:
    """Yield the thread's session, committing on success and rolling back on error."""

    session = SessionLocal()
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise


def dispose_engine() -> None:
    """Drop all pooled connections and forget the engine."""

    global _engine

    SessionLocal.remove()
    if _engine is not None:
        _engine.dispose()
    _engine = None
