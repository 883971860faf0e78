"""Startup, periodic and on-demand rate sweeps."""

from __future__ import annotations

import atexit
import logging
import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from time import perf_counter
from typing import Any
from uuid import uuid4

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from exchange_rates.logging import sweep_log_extra
from exchange_rates.utils.datetime import utc_now

from .aggregator import RateAggregator
from .currency_registry import CurrencyRegistry

logger = logging.getLogger(__name__)

SCHEDULER_EXT_KEY = "rate_scheduler"

DEFAULT_INTERVAL_SECONDS = 3600
INTERVAL_JOB_ID = "refresh_rates"
STARTUP_JOB_ID = "startup_refresh"

SKIP_NO_SOURCES = "no_sources"
SKIP_NO_CURRENCIES = "no_currencies"


@dataclass
class SweepSummary:
    """Outcome of one pass over the supported currencies.

    ``currencies`` lists the bases actually processed, so an interrupted
    sweep reports fewer than the registry holds.
    """

    trigger: str
    sweep_id: str
    started_at: datetime
    finished_at: datetime | None = None
    currencies: list[str] = field(default_factory=list)
    rates_saved: int = 0
    failed_currencies: list[str] = field(default_factory=list)
    skipped_reason: str | None = None
    interrupted: bool = False

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    @property
    def succeeded(self) -> bool:
        return not self.skipped and not self.interrupted and not self.failed_currencies

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["started_at"] = self.started_at.isoformat()
        payload["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return payload


class RateScheduler:
    """Drive the aggregator across every supported currency.

    All triggers converge on :meth:`run_sweep`. Sweeps may overlap; the
    history is append-only and cache writes are per key, so the last write
    wins. Bookkeeping shared between sweeps is guarded by a lock.
    """

    def __init__(
        self,
        aggregator: RateAggregator,
        registry: CurrencyRegistry,
        *,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        timezone: str = "UTC",
        startup_sweep: bool = True,
        app=None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._aggregator = aggregator
        self._registry = registry
        self._interval_seconds = interval_seconds
        self._timezone = timezone
        self._startup_sweep = startup_sweep
        self._app = app
        self._clock = clock

        self._scheduler: BackgroundScheduler | None = None
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._last_summary: SweepSummary | None = None
        self._last_success: datetime | None = None
        self._last_failure: datetime | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    @property
    def last_summary(self) -> SweepSummary | None:
        with self._state_lock:
            return self._last_summary

    def state(self) -> dict[str, Any]:
        """Snapshot of the refresh bookkeeping."""

        with self._state_lock:
            return {
                "running": self.running,
                "interval_seconds": self._interval_seconds,
                "last_success": self._last_success,
                "last_failure": self._last_failure,
                "last_summary": self._last_summary.to_dict() if self._last_summary else None,
            }

    def run_sweep(self, trigger: str = "manual") -> SweepSummary:
        """Fetch and persist best rates for every supported currency."""

        summary = SweepSummary(trigger=trigger, sweep_id=uuid4().hex, started_at=self._clock())
        start = perf_counter()
        logger.info(
            "Starting %s rate sweep",
            trigger,
            extra=sweep_log_extra(
                sweep_id=summary.sweep_id, trigger=trigger, event="sweep.start", status="started"
            ),
        )

        if not self._aggregator.get_available_providers():
            logger.warning(
                "No providers available; skipping rate sweep",
                extra=sweep_log_extra(
                    sweep_id=summary.sweep_id,
                    trigger=trigger,
                    event="sweep.skip",
                    status=SKIP_NO_SOURCES,
                ),
            )
            summary.skipped_reason = SKIP_NO_SOURCES
            return self._finish(summary, start)

        currencies = self._registry.list_supported_currencies()
        if not currencies:
            logger.warning(
                "No supported currencies found; skipping rate sweep",
                extra=sweep_log_extra(
                    sweep_id=summary.sweep_id,
                    trigger=trigger,
                    event="sweep.skip",
                    status=SKIP_NO_CURRENCIES,
                ),
            )
            summary.skipped_reason = SKIP_NO_CURRENCIES
            return self._finish(summary, start)

        for currency in currencies:
            if self._stop_event.is_set():
                summary.interrupted = True
                logger.warning(
                    "Shutdown requested; stopping sweep before %s",
                    currency,
                    extra=sweep_log_extra(
                        sweep_id=summary.sweep_id,
                        trigger=trigger,
                        event="sweep.interrupt",
                        status="interrupted",
                        currency=currency,
                    ),
                )
                break

            summary.currencies.append(currency)
            currency_start = perf_counter()
            try:
                saved = self._aggregator.fetch_and_save_best_rates(currency)
            except Exception as exc:
                summary.failed_currencies.append(currency)
                logger.exception(
                    "Failed to refresh rates for base currency %s",
                    currency,
                    extra=sweep_log_extra(
                        sweep_id=summary.sweep_id,
                        trigger=trigger,
                        event="sweep.currency",
                        status="error",
                        currency=currency,
                        duration_ms=(perf_counter() - currency_start) * 1000,
                        error=str(exc),
                    ),
                )
                continue

            summary.rates_saved += saved
            logger.debug(
                "Refreshed %s rates for base currency %s",
                saved,
                currency,
                extra=sweep_log_extra(
                    sweep_id=summary.sweep_id,
                    trigger=trigger,
                    event="sweep.currency",
                    status="success",
                    currency=currency,
                    saved=saved,
                    duration_ms=(perf_counter() - currency_start) * 1000,
                ),
            )

        return self._finish(summary, start)

    def trigger_manual_refresh(self) -> SweepSummary:
        logger.info("Manual rate refresh requested")
        return self.run_sweep("manual")

    def start(self) -> BackgroundScheduler:
        """Start APScheduler with the interval job and, optionally, a one-shot startup job."""

        if self._scheduler is not None and self._scheduler.running:
            return self._scheduler

        self._stop_event.clear()
        scheduler = BackgroundScheduler(timezone=self._timezone)
        scheduler.add_job(
            self._run_job,
            trigger=IntervalTrigger(seconds=self._interval_seconds, timezone=self._timezone),
            args=["interval"],
            id=INTERVAL_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if self._startup_sweep:
            scheduler.add_job(
                self._run_job,
                trigger=DateTrigger(run_date=self._clock()),
                args=["startup"],
                id=STARTUP_JOB_ID,
                replace_existing=True,
                misfire_grace_time=None,
            )
        scheduler.start()
        self._scheduler = scheduler

        logger.info(
            "APScheduler started with a %ss refresh interval (startup sweep: %s)",
            self._interval_seconds,
            "on" if self._startup_sweep else "off",
        )
        return scheduler

    def shutdown(self, wait: bool = True) -> None:
        """Ask in-flight sweeps to stop after their current currency and stop APScheduler."""

        self._stop_event.set()
        scheduler = self._scheduler
        if scheduler is not None and scheduler.running:
            logger.info("Shutting down rate scheduler")
            scheduler.shutdown(wait=wait)

    def _run_job(self, trigger: str) -> None:
        if self._app is None:
            self._run_job_unwrapped(trigger)
            return
        with self._app.app_context():
            self._run_job_unwrapped(trigger)

    def _run_job_unwrapped(self, trigger: str) -> None:
        try:
            self.run_sweep(trigger)
        except Exception:
            with self._state_lock:
                self._last_failure = self._clock()
            logger.exception("Scheduled %s sweep failed", trigger)

    def _finish(self, summary: SweepSummary, start: float) -> SweepSummary:
        summary.finished_at = self._clock()
        duration = (perf_counter() - start) * 1000

        with self._state_lock:
            self._last_summary = summary
            if summary.succeeded:
                self._last_success = summary.finished_at
            elif not summary.skipped:
                self._last_failure = summary.finished_at

        if summary.skipped:
            status = "skipped"
        elif summary.interrupted:
            status = "interrupted"
        elif summary.failed_currencies:
            status = "partial"
        else:
            status = "success"
        logger.info(
            "Rate sweep finished: %s rates saved across %s currencies",
            summary.rates_saved,
            len(summary.currencies),
            extra=sweep_log_extra(
                sweep_id=summary.sweep_id,
                trigger=summary.trigger,
                event="sweep.finish",
                status=status,
                saved=summary.rates_saved,
                duration_ms=duration,
            ),
        )
        return summary


def init_scheduler(app) -> RateScheduler:
    """Create the rate scheduler and start APScheduler unless disabled.

    The scheduler object is registered even when disabled so manual
    refreshes keep working.
    """

    existing = app.extensions.get(SCHEDULER_EXT_KEY)
    if existing is not None:
        return existing

    from .aggregator import AGGREGATOR_EXT_KEY
    from .currency_registry import REGISTRY_EXT_KEY

    scheduler = RateScheduler(
        app.extensions[AGGREGATOR_EXT_KEY],
        app.extensions[REGISTRY_EXT_KEY],
        interval_seconds=int(
            app.config.get("RATES_REFRESH_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS)
        ),
        timezone=app.config.get("SCHEDULER_TIMEZONE", "UTC"),
        startup_sweep=bool(app.config.get("SCHEDULER_STARTUP_SWEEP", True)),
        app=app,
    )
    app.extensions[SCHEDULER_EXT_KEY] = scheduler

    if not app.config.get("SCHEDULER_ENABLED", True):
        logger.info("Scheduler disabled via configuration.")
        return scheduler

    scheduler.start()
    atexit.register(scheduler.shutdown)
    return scheduler
