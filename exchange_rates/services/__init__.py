"""Service layer modules."""

from .aggregator import RateAggregator, init_aggregator, select_best_rate
from .currency_registry import CurrencyRegistry, init_registry
from .fx_conversion import ConversionResult, CurrencyConverter, init_converter
from .rate_cache import InMemoryRateCache, RateCache, RedisRateCache, init_cache
from .rate_history import RateHistory, init_history
from .rate_store import RateStore, init_rate_store
from .scheduler import RateScheduler, SweepSummary, init_scheduler
from .trends import TrendResult, TrendsEngine, init_trends, parse_period
