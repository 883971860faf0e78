"""Shared pytest fixtures."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from exchange_rates import create_app  # noqa: E402
from exchange_rates.database import dispose_engine, get_session  # noqa: E402
from exchange_rates.models import RateRecord  # noqa: E402
from exchange_rates.services.currency_registry import registry  # noqa: E402
from exchange_rates.services.rate_cache import CACHE_EXT_KEY  # noqa: E402


@pytest.fixture(scope="session")
def alembic_ini() -> Path:
    return ROOT_DIR / "alembic.ini"


@pytest.fixture(scope="session")
def app(tmp_path_factory: pytest.TempPathFactory, alembic_ini: Path) -> Iterator:
    """Session-wide Flask application configured with a temporary database."""

    db_dir = tmp_path_factory.mktemp("db")
    database_url = f"sqlite:///{db_dir / 'test.db'}"

    alembic_cfg = Config(str(alembic_ini))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(alembic_cfg, "head")

    flask_app = create_app(
        "testing",
        {
            "SQLALCHEMY_DATABASE_URI": database_url,
            "QUOTE_SOURCES": "simulated-1,simulated-2",
        },
    )

    yield flask_app

    dispose_engine()
    command.downgrade(alembic_cfg, "base")
    registry.codes.clear()
    registry.engine = None


@pytest.fixture()
def db(app) -> Iterator:
    """Empty the rate history and cache around a test."""

    def _reset() -> None:
        session = get_session()
        session.query(RateRecord).delete()
        session.commit()
        get_session().remove()
        app.extensions[CACHE_EXT_KEY].clear()

    _reset()
    yield get_session()
    _reset()


@pytest.fixture()
def cli_runner(app):
    return app.test_cli_runner()
