"""Application configuration classes."""

from __future__ import annotations

import os

SUPPORTED_CACHE_BACKENDS = {"memory", "redis"}
DEFAULT_QUOTE_SOURCES = (
    "simulated-1,simulated-2,mock-service-1,mock-service-2,fixer.io,exchangeratesapi.io"
)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


def _get_bool(name: str, default: str) -> bool:
    return _get_env(name, default).strip().lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "exchange-rates"
    SQLALCHEMY_DATABASE_URI = _get_env("DATABASE_URL", "sqlite:///exchange-rates.db")

    SCHEDULER_ENABLED = _get_bool("SCHEDULER_ENABLED", "true")
    SCHEDULER_STARTUP_SWEEP = _get_bool("SCHEDULER_STARTUP_SWEEP", "true")
    SCHEDULER_TIMEZONE = _get_env("SCHEDULER_TIMEZONE", "UTC")
    RATES_REFRESH_INTERVAL_SECONDS = int(_get_env("RATES_REFRESH_INTERVAL_SECONDS", "3600"))

    QUOTE_SOURCES = _get_env("QUOTE_SOURCES", DEFAULT_QUOTE_SOURCES)
    PROVIDER_FETCH_TIMEOUT_SECONDS = float(_get_env("PROVIDER_FETCH_TIMEOUT_SECONDS", "10"))
    REQUEST_TIMEOUT_SECONDS = float(_get_env("REQUEST_TIMEOUT_SECONDS", "5"))
    SOURCE_MAX_RETRIES = int(_get_env("SOURCE_MAX_RETRIES", "2"))
    SOURCE_BACKOFF_SECONDS = float(_get_env("SOURCE_BACKOFF_SECONDS", "0.5"))

    SIMULATED_SOURCES_ENABLED = _get_bool("SIMULATED_SOURCES_ENABLED", "true")
    SIMULATED_SOURCE_SEED = _get_env("SIMULATED_SOURCE_SEED", "")

    MOCK_SERVICE_1_URL = _get_env("MOCK_SERVICE_1_URL", "http://localhost:8081")
    MOCK_SERVICE_1_ENABLED = _get_bool("MOCK_SERVICE_1_ENABLED", "false")
    MOCK_SERVICE_2_URL = _get_env("MOCK_SERVICE_2_URL", "http://localhost:8082")
    MOCK_SERVICE_2_ENABLED = _get_bool("MOCK_SERVICE_2_ENABLED", "false")

    FIXER_API_URL = _get_env("FIXER_API_URL", "http://data.fixer.io/api/latest")
    FIXER_API_KEY = _get_env("FIXER_API_KEY", "")
    FIXER_ENABLED = _get_bool("FIXER_ENABLED", "false")

    EXCHANGERATESAPI_API_URL = _get_env(
        "EXCHANGERATESAPI_API_URL", "https://api.exchangeratesapi.io/v1/latest"
    )
    EXCHANGERATESAPI_API_KEY = _get_env("EXCHANGERATESAPI_API_KEY", "")
    EXCHANGERATESAPI_ENABLED = _get_bool("EXCHANGERATESAPI_ENABLED", "false")

    RATE_CACHE_BACKEND = _get_env("RATE_CACHE_BACKEND", "memory")
    REDIS_URL = _get_env("REDIS_URL", "redis://localhost:6379/0")
    RATE_CACHE_PREFIX = _get_env("RATE_CACHE_PREFIX", "exchangeRates")

    LOG_LEVEL = _get_env("LOG_LEVEL", "INFO")
    LOG_JSON_ENABLED = _get_bool("LOG_JSON_ENABLED", "false")
    LOG_FORMAT = _get_env("LOG_FORMAT", "%(asctime)s %(levelname)s [%(name)s] %(message)s")


class DevelopmentConfig(BaseConfig):
    """Configuration for local development."""

    DEBUG = True
    TESTING = False


class TestingConfig(BaseConfig):
    """Configuration for the test suite: no background jobs, in-process cache."""

    DEBUG = False
    TESTING = True
    SCHEDULER_ENABLED = False
    RATE_CACHE_BACKEND = "memory"
    SIMULATED_SOURCE_SEED = "42"


class ProductionConfig(BaseConfig):
    """Configuration for production deployments."""

    DEBUG = False
    TESTING = False


CONFIG_BY_ENV = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config(config_name: str | None = None) -> type[BaseConfig]:
    """Return the config class for the requested environment.

    Args:
        config_name: Optional explicit config identifier. If omitted, the
            APP_ENV environment variable is consulted.

    Raises:
        KeyError: If the requested configuration is not defined.
        ValueError: If the sources or cache backend settings are invalid.
    """

    env_candidate = config_name if config_name is not None else os.getenv("APP_ENV", "development")
    env_name = (env_candidate or "development").lower()
    try:
        config_cls = CONFIG_BY_ENV[env_name]
    except KeyError as exc:
        raise KeyError(f"Unknown APP_ENV '{env_name}'") from exc

    _validate_sources(config_cls)
    _validate_cache_backend(config_cls)
    return config_cls


def _validate_sources(config_cls: type[BaseConfig]) -> None:
    from exchange_rates.providers.registry import list_source_names, parse_source_names

    known = set(list_source_names())
    names = parse_source_names(config_cls.QUOTE_SOURCES)
    unknown = [name for name in names if name not in known]
    if unknown:
        raise ValueError(
            f"Unsupported QUOTE_SOURCES entries {unknown}. Allowed values: {sorted(known)}"
        )
    config_cls.QUOTE_SOURCES = ",".join(names)


def _validate_cache_backend(config_cls: type[BaseConfig]) -> None:
    backend = (config_cls.RATE_CACHE_BACKEND or "").strip().lower()
    if backend not in SUPPORTED_CACHE_BACKENDS:
        raise ValueError(
            f"Unsupported RATE_CACHE_BACKEND '{config_cls.RATE_CACHE_BACKEND}'. "
            f"Allowed values: {sorted(SUPPORTED_CACHE_BACKENDS)}"
        )
    config_cls.RATE_CACHE_BACKEND = backend
