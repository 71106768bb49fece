import numpy as np
import pytest

from coin_valuation.analytics.montecarlo import npv_distribution, simulate_prices
from coin_valuation.analytics.risk import (
    expected_shortfall,
    max_drawdown,
    sharpe_ratio,
    summarize_risk,
    value_at_risk,
)


def test_max_drawdown_peak_to_trough():
    assert max_drawdown([100, 120, 60, 90, 150, 75]) == pytest.approx(-0.5)
    assert max_drawdown([1, 2, 3]) == 0.0
    assert max_drawdown([]) == 0.0


def test_value_at_risk_and_shortfall():
    returns = [i / 100 for i in range(-10, 10)]
    var = value_at_risk(returns, confidence=0.9)
    es = expected_shortfall(returns, confidence=0.9)
    assert var == pytest.approx(-np.percentile(returns, 10))
    assert es >= var
    assert value_at_risk([0.01, 0.02, 0.03]) == 0.0


def test_sharpe_ratio():
    assert sharpe_ratio(0.25, 0.5, 0.05) == pytest.approx(0.4)
    assert sharpe_ratio(0.25, 0.0, 0.05) == 0.0


def test_summarize_risk_on_steady_growth():
    prices = [100 * 1.001 ** i for i in range(366)]
    metrics = summarize_risk(prices, periods_per_year=365, risk_free_rate=0.04)
    assert metrics.max_drawdown == 0.0
    assert metrics.volatility == pytest.approx(0.0, abs=1e-9)
    assert metrics.annual_return == pytest.approx(1.001 ** 365 - 1)
    assert metrics.periods == 366


def test_summarize_risk_handles_single_price():
    metrics = summarize_risk([42.0])
    assert metrics.volatility == 0.0
    assert metrics.periods == 1


def test_simulation_is_reproducible_with_seed():
    first = simulate_prices(10_000, 0.2, 0.6, 3, simulations=500, seed=11)
    second = simulate_prices(10_000, 0.2, 0.6, 3, simulations=500, seed=11)
    assert first.expected_value == second.expected_value
    assert first.lower == second.lower


def test_zero_volatility_simulation_is_deterministic():
    result = simulate_prices(1_000, 0.1, 0.0, 2, simulations=50, steps_per_year=4, seed=1)
    assert result.expected_value == pytest.approx(1_210)
    assert result.lower == pytest.approx(result.upper)
    assert result.probability_of_loss == 0.0
    assert result.value_at_risk == 0.0
    assert result.max_drawdown == pytest.approx(0.0)


def test_simulation_bands_are_ordered():
    result = simulate_prices(10_000, 0.15, 0.8, 4, simulations=2_000, seed=3)
    assert [band.year for band in result.bands] == [0, 1, 2, 3, 4]
    assert result.bands[0].lower == pytest.approx(10_000)
    for band in result.bands[1:]:
        assert band.lower < band.median < band.upper
    assert result.lower < result.expected_value < result.upper
    assert 0 < result.probability_of_loss < 1
    assert result.expected_shortfall >= result.value_at_risk
    assert result.max_drawdown < 0
    payload = result.to_dict()
    assert payload["bands"][1] == {
        "year": 1,
        "lower": result.bands[1].lower,
        "median": result.bands[1].median,
        "upper": result.bands[1].upper,
    }


def test_simulation_validates_inputs():
    with pytest.raises(ValueError):
        simulate_prices(0, 0.1, 0.5, 1)
    with pytest.raises(ValueError):
        simulate_prices(100, -1.0, 0.5, 1)
    with pytest.raises(ValueError):
        simulate_prices(100, 0.1, 0.5, 1, confidence=1.0)


def test_npv_distribution_discounts_terminal_values():
    result = simulate_prices(1_000, 0.1, 0.0, 2, simulations=10, seed=0)
    distribution = npv_distribution(result, discount_rate=0.1, horizon_years=2)
    assert distribution.mean == pytest.approx(0.0, abs=1e-6)
    cheap = npv_distribution(result, discount_rate=0.05, horizon_years=2)
    assert cheap.probability_positive == 1.0
    assert result.to_dict()["bands"][0]["year"] == 0
