from datetime import date

import pytest

from coin_valuation.analytics.series import PricePoint
from coin_valuation.analytics.valuation import (
    cagr,
    cagr_from_history,
    capm_discount_rate,
    classify_liquidity,
    project_price,
    project_prices,
    terminal_value,
    valuation_adjustment,
)

PREMIUMS = {"liquid": 0.02, "moderate": 0.05, "illiquid": 0.15}
ALTCOIN = {"liquid": 500_000_000, "moderate": 100_000_000}


def test_cagr_round_trip():
    growth = cagr(1_000, 2_488.32, 5)
    assert growth == pytest.approx(0.2, abs=1e-9)
    assert project_price(1_000, growth, 5) == pytest.approx(2_488.32)


def test_cagr_round_trip_fractional_years():
    growth = cagr(37.5, 12.1, 2.75)
    assert project_price(37.5, growth, 2.75) == pytest.approx(12.1)


@pytest.mark.parametrize("start,end,years", [(0, 10, 1), (10, 0, 1), (10, 20, 0), (-5, 10, 2)])
def test_cagr_rejects_invalid_inputs(start, end, years):
    with pytest.raises(ValueError):
        cagr(start, end, years)


def test_cagr_from_history_uses_elapsed_days():
    points = [
        PricePoint(date(2024, 1, 1), 200.0),
        PricePoint(date(2020, 1, 1), 100.0),
    ]
    years = (date(2024, 1, 1) - date(2020, 1, 1)).days / 365.25
    assert cagr_from_history(points) == pytest.approx(2 ** (1 / years) - 1)


def test_project_prices_includes_year_zero():
    prices = project_prices(100, 0.1, 3)
    assert prices == pytest.approx([100, 110, 121, 133.1])


def test_capm_discount_rate_components():
    breakdown = capm_discount_rate(0.045, 1.4, 0.15, valuation_shift=0.03, liquidity_premium=0.02)
    assert breakdown.equity_premium == pytest.approx(1.4 * 0.105)
    assert breakdown.rate == pytest.approx(0.045 + 0.147 + 0.03 + 0.02)


def test_valuation_adjustment_bands():
    assert valuation_adjustment(None) == 0.0
    assert valuation_adjustment(0.6) == -0.02
    assert valuation_adjustment(1.5) == 0.0
    assert valuation_adjustment(3.1) == 0.03


def test_liquidity_classification():
    assert classify_liquidity(6e8, ALTCOIN, PREMIUMS).status == "liquid"
    assert classify_liquidity(2e8, ALTCOIN, PREMIUMS).premium == 0.05
    assert classify_liquidity(5e7, ALTCOIN, PREMIUMS).status == "illiquid"
    unknown = classify_liquidity(None, ALTCOIN, PREMIUMS, default_status="liquid")
    assert unknown.status == "liquid"
    assert unknown.average_volume is None


def test_terminal_value_gordon_growth():
    assert terminal_value(100, 0.02, 0.12) == pytest.approx(1_020)
    with pytest.raises(ValueError):
        terminal_value(100, 0.12, 0.12)
