"""Application factory for the exchange rate aggregation service."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Flask

from config import get_config
from .cli import register_cli
from .database import init_app as init_db
from .logging import setup_logging


def create_app(
    config_name: str | None = None, config_overrides: Mapping[str, Any] | None = None
) -> Flask:
    """Application factory adhering to the Flask app factory pattern.

    ``config_overrides`` is applied on top of the config class before any
    extension is built, so tests can point the app at a temporary database.
    """

    app = Flask(__name__)
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(app)
    _register_extensions(app)

    register_cli(app)
    return app


def _register_extensions(app: Flask) -> None:
    """Build the service graph in dependency order; the scheduler starts last."""

    init_db(app)
    from . import models  # noqa: F401  # Ensure models are imported for metadata
    from .providers.registry import init_sources
    from .services import (
        init_aggregator,
        init_cache,
        init_converter,
        init_history,
        init_rate_store,
        init_registry,
        init_scheduler,
        init_trends,
    )

    init_registry(app)
    init_sources(app)
    init_cache(app)
    init_history(app)
    init_rate_store(app)
    init_converter(app)
    init_aggregator(app)
    init_trends(app)
    init_scheduler(app)
