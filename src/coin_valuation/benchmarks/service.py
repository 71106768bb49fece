"""Benchmark selection, snapshots and the risk-free rate."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from ..analytics import stats
from ..analytics.series import PricePoint, monthly_closes, period_returns, sort_points
from ..analytics.valuation import cagr_from_history
from ..config.loader import AnalysisConfig
from ..errors import DataFetchError
from ..providers.base import MarketDataProvider, fetch_history
from .cache import TTLCache

logger = logging.getLogger(__name__)

SP500 = "SP500"
BITCOIN = "BTC"
TRAILING_YEARS = 3


def select_benchmark(coin_symbol: str) -> str:
    """Bitcoin is measured against the S&P 500; every other coin against Bitcoin."""
    return SP500 if coin_symbol.upper() == BITCOIN else BITCOIN


@dataclass
class BenchmarkData:
    key: str
    name: str
    symbol: str
    current_value: float
    cagr: float
    volatility: float
    monthly_returns: list[float]
    as_of: date
    is_fallback: bool = False
    history: list[PricePoint] = field(default_factory=list, repr=False)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "symbol": self.symbol,
            "current_value": self.current_value,
            "cagr": self.cagr,
            "volatility": self.volatility,
            "observations": len(self.monthly_returns),
            "as_of": self.as_of.isoformat(),
            "is_fallback": self.is_fallback,
        }


class BenchmarkService:
    def __init__(
        self,
        provider: MarketDataProvider,
        config: AnalysisConfig,
        cache: TTLCache | None = None,
    ):
        self.provider = provider
        self.config = config
        self.cache = cache or TTLCache(config.cache_ttl_seconds)

    def market_return(self, key: str) -> float:
        return self.config.market_returns[key]

    def snapshot(self, key: str, as_of: date) -> BenchmarkData:
        start = as_of - timedelta(days=round(365.25 * self.config.history_years))
        params = (key, start, as_of)
        cached = self.cache.get("benchmark", params)
        if cached is not None:
            return cached
        data = self._build(key, start, as_of)
        self.cache.set("benchmark", params, data, ttl=self._ttl(data.is_fallback))
        return data

    def snapshot_for(self, coin_symbol: str, as_of: date) -> BenchmarkData:
        return self.snapshot(select_benchmark(coin_symbol), as_of)

    def risk_free_rate(self) -> float:
        """Ten-year treasury yield when available, the configured rate otherwise."""
        ticker = self.config.risk_free_ticker
        if not ticker:
            return self.config.risk_free_rate
        cached = self.cache.get("risk_free", ticker)
        if cached is not None:
            return cached
        fetched = self._fetch_risk_free(ticker)
        rate = self.config.risk_free_rate if fetched is None else fetched
        self.cache.set("risk_free", ticker, rate, ttl=self._ttl(fetched is None))
        return rate

    def _ttl(self, is_fallback: bool) -> float | None:
        # Fallbacks expire quickly so the next call retries the provider.
        return self.config.fallback_ttl_seconds if is_fallback else None

    def _fetch_risk_free(self, ticker: str) -> float | None:
        try:
            quote = self.provider.fetch_quote(ticker)
        except DataFetchError as exc:
            logger.warning("Risk-free rate unavailable (%s); using %.3f", exc.message, self.config.risk_free_rate)
            return None
        rate = quote.price / 100
        if not 0 <= rate <= 0.2:
            logger.warning("Ignoring implausible risk-free quote %.4f for %s", rate, ticker)
            return None
        return rate

    def _build(self, key: str, start: date, as_of: date) -> BenchmarkData:
        entry = self.config.benchmarks[key]
        try:
            history = fetch_history(self.provider, entry.ticker, start, as_of)
        except DataFetchError as exc:
            logger.warning("Benchmark %s unavailable (%s); using fallback snapshot", key, exc.message)
            return self._fallback(key, as_of)
        if len(history) < 2:
            logger.warning("Benchmark %s history too short; using fallback snapshot", key)
            return self._fallback(key, as_of)
        ordered = sort_points(history)
        trailing_start = ordered[-1].timestamp - timedelta(days=round(365.25 * TRAILING_YEARS))
        trailing = [p for p in ordered if p.timestamp >= trailing_start]
        monthly = period_returns(monthly_closes(ordered).tolist())
        return BenchmarkData(
            key=key,
            name=entry.name,
            symbol=entry.ticker,
            current_value=ordered[-1].price,
            cagr=cagr_from_history(trailing if len(trailing) >= 2 else ordered),
            volatility=stats.annualized_volatility(monthly, 12),
            monthly_returns=monthly,
            as_of=as_of,
            history=ordered,
        )

    def _fallback(self, key: str, as_of: date) -> BenchmarkData:
        entry = self.config.benchmarks[key]
        fallback = self.config.fallbacks.benchmarks[key]
        return BenchmarkData(
            key=key,
            name=entry.name,
            symbol=entry.ticker,
            current_value=fallback.current_value,
            cagr=fallback.cagr,
            volatility=fallback.volatility,
            monthly_returns=[],
            as_of=as_of,
            is_fallback=True,
        )
