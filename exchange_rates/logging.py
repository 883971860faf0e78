"""Logging setup, structured JSON formatter and log payload helpers."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

LOGGING_CONFIG_FLAG = "_logging_configured"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
) | {"message", "asctime"}

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("apscheduler", "urllib3")


class JSONLogFormatter(logging.Formatter):
    """Format LogRecord instances into structured JSON strings."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info

        extras = _extract_extras(record.__dict__)
        if extras:
            payload.update(extras)

        return json.dumps(_json_safe(payload), separators=(",", ":"))


def setup_logging(app) -> None:
    """Configure root handlers and formatters from the app config."""

    if app.config.get(LOGGING_CONFIG_FLAG):
        return

    level = _resolve_level(app.config.get("LOG_LEVEL", "INFO"))
    handler = logging.StreamHandler()
    handler.setLevel(level)
    if _enabled(app.config.get("LOG_JSON_ENABLED")):
        handler.setFormatter(JSONLogFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                app.config.get("LOG_FORMAT", "%(asctime)s %(levelname)s [%(name)s] %(message)s")
            )
        )

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    # Let the Flask logger propagate into the root handler.
    app.logger.handlers = []
    app.logger.setLevel(level)
    app.logger.propagate = True

    app.config[LOGGING_CONFIG_FLAG] = True


def source_log_extra(
    *,
    source: str,
    base: str,
    event: str,
    status: str,
    duration_ms: float | None = None,
    quotes: int | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    """Structured fields describing one quote source call."""

    return _compact(
        event=event,
        source=source,
        base=base,
        status=status,
        duration_ms=duration_ms,
        quotes=quotes,
        error=error,
    )


def sweep_log_extra(
    *,
    sweep_id: str,
    trigger: str,
    event: str,
    status: str,
    currency: str | None = None,
    saved: int | None = None,
    duration_ms: float | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    """Structured fields describing a sweep or one currency inside it."""

    return _compact(
        event=event,
        sweep_id=sweep_id,
        trigger=trigger,
        status=status,
        currency=currency,
        saved=saved,
        duration_ms=duration_ms,
        error=error,
    )


def _compact(**fields: Any) -> dict[str, Any]:
    if fields.get("duration_ms") is not None:
        fields["duration_ms"] = round(fields["duration_ms"], 3)
    return {key: value for key, value in fields.items() if value not in (None, "")}


def _extract_extras(record_dict: dict[str, Any]) -> dict[str, Any]:
    return {
        key: _json_safe(value)
        for key, value in record_dict.items()
        if key not in RESERVED_ATTRS and not key.startswith("_")
    }


def _json_safe(value: Any) -> Any:
    if isinstance(value, str | int | float | bool) or value is None:
        return value
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, list | tuple | set | frozenset):
        return [_json_safe(item) for item in value]
    return str(value)


def _resolve_level(level_name: Any) -> int:
    if isinstance(level_name, int):
        return level_name
    resolved = logging.getLevelName(str(level_name or "INFO").upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _enabled(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}
