import pytest

from coin_valuation.portfolio import Holding, analyze_allocation, recommended_bitcoin_weight
from coin_valuation.portfolio.allocation import diversification_score


def test_recommended_bitcoin_weight_tiers():
    assert recommended_bitcoin_weight(15_000) == 0.50
    assert recommended_bitcoin_weight(20_000) == 0.50
    assert recommended_bitcoin_weight(75_000) == 0.70
    assert recommended_bitcoin_weight(250_000) == 0.85


def test_diversification_score():
    assert diversification_score([100]) == pytest.approx(0.0)
    assert diversification_score([50, 50]) == pytest.approx(50.0)
    assert diversification_score([25, 25, 25, 25]) == pytest.approx(75.0)
    assert diversification_score([]) == 0.0


def test_balanced_portfolio_needs_no_rebalance():
    report = analyze_allocation(
        [
            Holding("BTC", "bitcoin", 5_000),
            Holding("ETH", "blue_chip", 4_000),
            Holding("DOT", "small_cap", 1_000),
        ]
    )
    assert report.total_value == 10_000
    assert report.basket_weights == pytest.approx({"bitcoin": 0.5, "blue_chip": 0.4, "small_cap": 0.1})
    assert report.rebalance == []
    assert report.warnings == []


def test_overweight_altcoins_trigger_rebalance():
    report = analyze_allocation(
        [
            Holding("BTC", "bitcoin", 40_000),
            Holding("ETH", "blue_chip", 35_000),
            Holding("DOT", "small_cap", 25_000),
        ]
    )
    by_basket = {action.basket: action for action in report.rebalance}
    assert by_basket["bitcoin"].amount == pytest.approx(30_000)
    assert by_basket["bitcoin"].direction == "buy"
    assert by_basket["small_cap"].amount == pytest.approx(-10_000)
    assert by_basket["small_cap"].direction == "sell"
    assert "blue_chip" not in by_basket
    assert len(report.warnings) == 1
    payload = report.to_dict()
    assert {item["direction"] for item in payload["rebalance"]} == {"buy", "sell"}


def test_empty_portfolio_rejected():
    with pytest.raises(ValueError):
        analyze_allocation([])
