from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch

from exchange_rates.providers.base import SourceError
from exchange_rates.providers.schemas import FetchStatus
from exchange_rates.services import aggregator as aggregator_module
from exchange_rates.services.aggregator import RateAggregator, select_best_rate
from exchange_rates.services.rate_store import RateStore
from tests.factories import make_quote, make_quotes
from tests.fakes import FakeSource, InMemoryRateHistory, SpyCache


def build_aggregator(sources, *, history=None, fetch_timeout: float = 5.0):
    history = history if history is not None else InMemoryRateHistory()
    store = RateStore(history, SpyCache())
    return RateAggregator(sources, store, fetch_timeout=fetch_timeout), history


def test_select_best_rate_empty_returns_none():
    assert select_best_rate([]) is None
    assert select_best_rate(None) is None


def test_select_best_rate_single_quote_returned_unchanged():
    quote = make_quote(rate="0.91")

    assert select_best_rate([quote]) is quote


def test_select_best_rate_picks_median_of_five():
    quotes = make_quotes(["0.90", "0.82", "0.85", "0.88", "0.80"])

    best = select_best_rate(quotes)

    assert best.rate == Decimal("0.85")
    assert best.source_id == "source-2"


def test_select_best_rate_even_count_uses_upper_median():
    quotes = make_quotes(["0.80", "0.90", "0.85", "0.82"])

    best = select_best_rate(quotes)

    assert best.rate == Decimal("0.85")


def test_select_best_rate_is_order_independent():
    rates = ["0.90", "0.82", "0.85", "0.88", "0.80"]
    forward = select_best_rate(make_quotes(rates))
    backward = select_best_rate(make_quotes(list(reversed(rates))))

    assert forward.rate == backward.rate == Decimal("0.85")


def test_select_best_rate_ties_keep_insertion_order():
    quotes = make_quotes(["0.85", "0.85", "0.85"])

    best = select_best_rate(quotes)

    assert best.source_id == "source-1"


def test_select_best_rate_is_available_on_the_class():
    quotes = make_quotes(["1.1", "1.3", "1.2"])

    assert RateAggregator.select_best_rate(quotes).rate == Decimal("1.2")


def test_fetch_from_all_providers_groups_by_target_in_registration_order():
    first = FakeSource("first", {"EUR": "0.90", "GBP": "0.79"})
    second = FakeSource("second", {"EUR": "0.92"})
    aggregator, _ = build_aggregator([first, second])

    grouped = aggregator.fetch_from_all_providers("USD")

    assert [quote.source_id for quote in grouped["EUR"]] == ["first", "second"]
    assert [quote.source_id for quote in grouped["GBP"]] == ["first"]


def test_fetch_from_all_providers_skips_unavailable_without_calling():
    offline = FakeSource("offline", {"EUR": "0.90"}, available=False)
    online = FakeSource("online", {"EUR": "0.91"})
    aggregator, _ = build_aggregator([offline, online])

    grouped = aggregator.fetch_from_all_providers("USD")

    assert offline.calls == []
    assert [quote.source_id for quote in grouped["EUR"]] == ["online"]


def test_fetch_from_all_providers_isolates_failing_source():
    broken = FakeSource("broken", error=SourceError("broken", "boom"))
    healthy = FakeSource("healthy", {"EUR": "0.91"})
    aggregator, _ = build_aggregator([broken, healthy])

    with patch.object(aggregator_module.logger, "error") as log_error:
        grouped = aggregator.fetch_from_all_providers("USD")

    assert list(grouped) == ["EUR"]
    log_error.assert_called_once()
    assert log_error.call_args.kwargs["extra"]["source"] == "broken"


def test_fetch_from_all_providers_survives_unexpected_exception():
    buggy = FakeSource("buggy", error=RuntimeError("unexpected"))
    healthy = FakeSource("healthy", {"EUR": "0.91"})
    aggregator, _ = build_aggregator([buggy, healthy])

    with patch.object(aggregator_module.logger, "exception") as log_exception:
        grouped = aggregator.fetch_from_all_providers("USD")

    assert [quote.source_id for quote in grouped["EUR"]] == ["healthy"]
    log_exception.assert_called_once()


def test_fetch_from_all_providers_drops_identity_quotes():
    source = FakeSource("source", {"USD": "1", "EUR": "0.91"})
    aggregator, _ = build_aggregator([source])

    grouped = aggregator.fetch_from_all_providers("USD")

    assert "USD" not in grouped


def test_slow_source_is_treated_as_error():
    slow = FakeSource("slow", {"EUR": "0.95"}, delay=1.0)
    fast = FakeSource("fast", {"EUR": "0.91"})
    aggregator, _ = build_aggregator([slow, fast], fetch_timeout=0.2)

    outcomes = aggregator.collect_outcomes("USD")

    assert [outcome.source_id for outcome in outcomes] == ["slow", "fast"]
    assert outcomes[0].status is FetchStatus.ERROR
    assert "timed out" in outcomes[0].reason
    assert outcomes[1].succeeded


def test_collect_outcomes_reports_unavailable_status():
    offline = FakeSource("offline", available=False)
    aggregator, _ = build_aggregator([offline])

    [outcome] = aggregator.collect_outcomes("USD")

    assert outcome.status is FetchStatus.UNAVAILABLE


def test_fetch_and_save_best_rates_persists_one_record_per_target():
    sources = [
        FakeSource("s1", {"EUR": "0.90", "GBP": "0.80"}),
        FakeSource("s2", {"EUR": "0.82", "GBP": "0.78"}),
        FakeSource("s3", {"EUR": "0.85"}),
        FakeSource("s4", {"EUR": "0.88"}),
        FakeSource("s5", {"EUR": "0.80"}),
    ]
    aggregator, history = build_aggregator(sources)

    saved = aggregator.fetch_and_save_best_rates("USD")

    assert saved == 2
    by_target = {record.target_currency_code: record for record in history.records}
    assert by_target["EUR"].rate == Decimal("0.850000")
    assert by_target["EUR"].source == "s3"
    # Two quotes: upper median is the larger one.
    assert by_target["GBP"].rate == Decimal("0.800000")


def test_fetch_and_save_best_rates_counts_only_successful_saves():
    history = InMemoryRateHistory(
        fail_on_append=lambda record: record.target_currency_code == "GBP"
    )
    source = FakeSource("s1", {"EUR": "0.90", "GBP": "0.80", "JPY": "150"})
    aggregator, _ = build_aggregator([source], history=history)

    with patch.object(aggregator_module.logger, "error") as log_error:
        saved = aggregator.fetch_and_save_best_rates("USD")

    assert saved == 2
    assert {record.target_currency_code for record in history.records} == {"EUR", "JPY"}
    log_error.assert_called_once()


def test_fetch_and_save_best_rates_with_no_sources_saves_nothing():
    aggregator, history = build_aggregator([])

    assert aggregator.fetch_and_save_best_rates("USD") == 0
    assert history.records == []


def test_repeated_calls_append_new_records():
    source = FakeSource("s1", {"EUR": "0.90"})
    aggregator, history = build_aggregator([source])

    aggregator.fetch_and_save_best_rates("USD")
    aggregator.fetch_and_save_best_rates("USD")

    assert len(history.records) == 2


def test_get_available_providers_lists_available_names():
    aggregator, _ = build_aggregator(
        [
            FakeSource("a"),
            FakeSource("b", available=False),
            FakeSource("c"),
        ]
    )

    assert aggregator.get_available_providers() == ["a", "c"]


def test_oversized_rate_does_not_stop_remaining_targets():
    source = FakeSource("s1", {"AAA": "0.90", "BBB": "1E+25", "CCC": "0.80"})
    aggregator, history = build_aggregator([source])

    with patch.object(aggregator_module.logger, "error") as log_error:
        saved = aggregator.fetch_and_save_best_rates("USD")

    assert saved == 2
    assert [record.target_currency_code for record in history.records] == ["AAA", "CCC"]
    log_error.assert_called_once()
    assert "BBB" in log_error.call_args.args


class _BrokenHistory(InMemoryRateHistory):
    def append(self, record):
        if record.target_currency_code == "GBP":
            raise RuntimeError("disk on fire")
        return super().append(record)


def test_unexpected_save_error_is_logged_and_skipped():
    source = FakeSource("s1", {"EUR": "0.90", "GBP": "0.80", "JPY": "150"})
    aggregator, history = build_aggregator([source], history=_BrokenHistory())

    with patch.object(aggregator_module.logger, "exception") as log_exception:
        saved = aggregator.fetch_and_save_best_rates("USD")

    assert saved == 2
    assert {record.target_currency_code for record in history.records} == {"EUR", "JPY"}
    log_exception.assert_called_once()


class _MislabelledSource(FakeSource):
    def fetch_rates(self, base):
        return {
            "EUR": make_quote(target="GBP", rate="0.80", source=self.name, base=base),
            "JPY": make_quote(target="JPY", rate="150", source=self.name, base="EUR"),
        }


def test_quotes_are_grouped_by_their_own_pair():
    aggregator, _ = build_aggregator([_MislabelledSource("odd")])

    with patch.object(aggregator_module.logger, "warning") as log_warning:
        grouped = aggregator.fetch_from_all_providers("USD")

    assert list(grouped) == ["GBP"]
    assert grouped["GBP"][0].rate == Decimal("0.80")
    log_warning.assert_called_once()
