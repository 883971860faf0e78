"""CLI commands for refreshing, converting and inspecting rates."""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext

from exchange_rates.errors import ExchangeRateError
from exchange_rates.providers.registry import SOURCES_EXT_KEY
from exchange_rates.services.fx_conversion import CONVERTER_EXT_KEY
from exchange_rates.services.scheduler import SCHEDULER_EXT_KEY
from exchange_rates.services.trends import TRENDS_EXT_KEY


def _extension(key: str):
    try:
        return current_app.extensions[key]
    except KeyError as exc:
        raise click.ClickException(f"Extension '{key}' is not configured.") from exc


@click.command("refresh-rates")
@with_appcontext
def refresh_rates() -> None:
    """Run one sweep across all supported currencies."""

    summary = _extension(SCHEDULER_EXT_KEY).trigger_manual_refresh()
    if summary.skipped:
        click.echo(f"Refresh skipped: {summary.skipped_reason}")
        return

    click.echo(
        f"Saved {summary.rates_saved} rates across {len(summary.currencies)} currencies."
    )
    if summary.failed_currencies:
        click.echo(f"Failed currencies: {', '.join(summary.failed_currencies)}")
    if summary.interrupted:
        click.echo("Refresh interrupted by shutdown.")


@click.command("convert-amount")
@click.argument("amount")
@click.argument("from_currency", metavar="FROM")
@click.argument("to_currency", metavar="TO")
@with_appcontext
def convert_amount(amount: str, from_currency: str, to_currency: str) -> None:
    """Convert AMOUNT from one currency to another using the latest rate."""

    try:
        result = _extension(CONVERTER_EXT_KEY).calculate_conversion(
            amount, from_currency, to_currency
        )
    except ExchangeRateError as exc:
        raise click.ClickException(exc.message) from exc

    click.echo(
        f"{result.amount} {result.from_currency} = {result.result} {result.to_currency} "
        f"(rate {result.rate})"
    )


@click.command("rate-trend")
@click.argument("from_currency", metavar="FROM")
@click.argument("to_currency", metavar="TO")
@click.argument("period")
@click.option("--points", is_flag=True, help="Print every data point in the window.")
@with_appcontext
def rate_trend(from_currency: str, to_currency: str, period: str, points: bool) -> None:
    """Show how a rate moved over PERIOD (e.g. 24H, 7D, 1M, 1Y)."""

    try:
        trend = _extension(TRENDS_EXT_KEY).calculate_trend(from_currency, to_currency, period)
    except ExchangeRateError as exc:
        raise click.ClickException(exc.message) from exc

    percent = "n/a" if trend.change_percent is None else f"{trend.change_percent}%"
    click.echo(f"{trend.base_currency}/{trend.target_currency} over {trend.period}")
    click.echo(f"  start: {trend.start_rate} at {trend.start_time.isoformat()}")
    click.echo(f"  end:   {trend.end_rate} at {trend.end_time.isoformat()}")
    click.echo(f"  change: {trend.change} ({percent})")
    if points:
        for point in trend.data_points:
            click.echo(f"  {point.timestamp.isoformat()} {point.rate}")


@click.command("list-sources")
@with_appcontext
def list_sources() -> None:
    """List configured quote sources and whether each is available."""

    sources = current_app.extensions.get(SOURCES_EXT_KEY, [])
    if not sources:
        click.echo("No quote sources configured.")
        return

    for source in sources:
        status = "available" if source.available() else "unavailable"
        click.echo(f"{source.name}: {status}")
