from datetime import date

import pytest

from conftest import StubProvider, sample_config

from coin_valuation.benchmarks import BenchmarkService, TTLCache, select_benchmark


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_benchmark_selection_policy():
    assert select_benchmark("BTC") == "SP500"
    assert select_benchmark("btc") == "SP500"
    assert select_benchmark("ETH") == "BTC"
    assert select_benchmark("SOL") == "BTC"


def test_ttl_cache_expires_entries():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=60, clock=clock)
    cache.set("benchmark", ("BTC", 5), "snapshot")
    assert cache.get("benchmark", ("BTC", 5)) == "snapshot"
    assert cache.get("benchmark", ("BTC", 3)) is None
    clock.now = 59.9
    assert len(cache) == 1
    clock.now = 60.0
    assert cache.get("benchmark", ("BTC", 5)) is None
    assert len(cache) == 0


def test_ttl_cache_get_or_compute_and_clear():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=10, clock=clock)
    calls = []

    def compute():
        calls.append(1)
        return len(calls)

    assert cache.get_or_compute("rate", "^TNX", compute) == 1
    assert cache.get_or_compute("rate", "^TNX", compute) == 1
    cache.invalidate("rate", "^TNX")
    assert cache.get_or_compute("rate", "^TNX", compute) == 2
    cache.clear()
    assert len(cache) == 0


def test_snapshot_from_history_is_cached():
    provider = StubProvider()
    service = BenchmarkService(provider, sample_config().analysis)
    as_of = date(2024, 6, 30)
    snapshot = service.snapshot("BTC", as_of)
    again = service.snapshot_for("ETH", as_of)
    assert again is snapshot
    assert provider.calls == ["BTC-USD"]
    assert not snapshot.is_fallback
    assert snapshot.symbol == "BTC-USD"
    assert snapshot.current_value == pytest.approx(snapshot.history[-1].price)
    assert len(snapshot.monthly_returns) >= 59
    assert snapshot.volatility > 0
    assert snapshot.to_dict()["observations"] == len(snapshot.monthly_returns)


def test_snapshot_falls_back_when_provider_has_no_data():
    provider = StubProvider(missing={"^GSPC"})
    snapshot = BenchmarkService(provider, sample_config().analysis).snapshot_for("BTC", date(2024, 6, 30))
    assert snapshot.is_fallback
    assert snapshot.name == "S&P 500"
    assert snapshot.cagr == pytest.approx(0.085)
    assert snapshot.volatility == pytest.approx(0.16)
    assert snapshot.history == []


def test_risk_free_rate_from_quote_and_fallback():
    config = sample_config().analysis
    assert BenchmarkService(StubProvider(), config).risk_free_rate() == pytest.approx(0.042)
    assert BenchmarkService(StubProvider(quotes={}), config).risk_free_rate() == pytest.approx(0.045)
    assert BenchmarkService(StubProvider(quotes={"^TNX": 420.0}), config).risk_free_rate() == pytest.approx(0.045)
    offline = sample_config(risk_free_ticker=None, risk_free_rate=0.03).analysis
    assert BenchmarkService(StubProvider(), offline).risk_free_rate() == pytest.approx(0.03)


def test_fallback_snapshot_expires_sooner_than_real_data():
    clock = FakeClock()
    provider = StubProvider(missing={"^GSPC"}, quotes={})
    config = sample_config().analysis
    service = BenchmarkService(provider, config, cache=TTLCache(config.cache_ttl_seconds, clock=clock))
    as_of = date(2024, 6, 30)

    assert service.snapshot("SP500", as_of).is_fallback
    assert service.risk_free_rate() == pytest.approx(0.045)

    provider.missing.clear()
    provider.quotes["^TNX"] = 4.2
    clock.now = config.fallback_ttl_seconds - 1
    assert service.snapshot("SP500", as_of).is_fallback

    clock.now = config.fallback_ttl_seconds
    recovered = service.snapshot("SP500", as_of)
    assert not recovered.is_fallback
    assert service.risk_free_rate() == pytest.approx(0.042)

    clock.now = config.fallback_ttl_seconds * 10
    assert service.snapshot("SP500", as_of) is recovered
