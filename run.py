"""Entry point for running the exchange rate service as a long-lived worker."""

from __future__ import annotations

import logging
import os
import signal
import threading

from dotenv import load_dotenv

logger = logging.getLogger("exchange_rates.run")


def _prepare_environment() -> None:
    """Load environment variables from a local .env file if available."""

    project_root = os.path.abspath(os.path.dirname(__file__))
    env_file = os.path.join(project_root, ".env")
    if os.path.exists(env_file):
        load_dotenv(env_file)


def main() -> None:
    """Create the app, let the scheduler run, and stop cleanly on SIGINT/SIGTERM."""

    _prepare_environment()

    # Config classes read the environment at import time.
    from exchange_rates import create_app
    from exchange_rates.services.scheduler import SCHEDULER_EXT_KEY

    config_name = os.getenv("APP_ENV")
    app = create_app(config_name=config_name)
    scheduler = app.extensions[SCHEDULER_EXT_KEY]

    stop = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Received signal %s, shutting down gracefully...", signum)
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    if not scheduler.running:
        logger.info("Scheduler disabled; running a single refresh instead.")
        with app.app_context():
            scheduler.trigger_manual_refresh()
        return

    stop.wait()
    scheduler.shutdown(wait=True)
    logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
