"""Growth, price projection and discount-rate construction."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Literal, Sequence

from .series import PricePoint, sort_points

DAYS_PER_YEAR = 365.25

LiquidityStatus = Literal["liquid", "moderate", "illiquid"]


def cagr(start_value: float, end_value: float, years: float) -> float:
    if start_value <= 0 or end_value <= 0:
        raise ValueError("CAGR needs positive start and end values")
    if years <= 0:
        raise ValueError("CAGR needs a positive period")
    return (end_value / start_value) ** (1 / years) - 1


def cagr_from_history(points: Sequence[PricePoint]) -> float:
    """CAGR between the first and last observation using elapsed calendar time."""
    ordered = sort_points(points)
    if len(ordered) < 2:
        raise ValueError("CAGR needs at least two observations")
    first, last = ordered[0], ordered[-1]
    years = (last.timestamp - first.timestamp).days / DAYS_PER_YEAR
    return cagr(first.price, last.price, years)


def project_price(price: float, growth: float, years: float) -> float:
    return price * (1 + growth) ** years


def project_prices(price: float, growth: float, horizon_years: int) -> list[float]:
    """Projected price at each whole year 0..horizon."""
    return [project_price(price, growth, year) for year in range(horizon_years + 1)]


def valuation_adjustment(
    ratio: float | None,
    undervalued_below: float = 0.8,
    overvalued_above: float = 2.5,
    undervalued_adjustment: float = -0.02,
    overvalued_adjustment: float = 0.03,
) -> float:
    """Additive discount-rate shift from an on-chain ratio such as MVRV or AVIV."""
    if ratio is None:
        return 0.0
    if ratio < undervalued_below:
        return undervalued_adjustment
    if ratio > overvalued_above:
        return overvalued_adjustment
    return 0.0


@dataclass(frozen=True)
class LiquidityProfile:
    status: LiquidityStatus
    average_volume: float | None
    premium: float

    def to_dict(self) -> dict:
        return asdict(self)


def classify_liquidity(
    average_volume: float | None,
    thresholds: dict[str, float],
    premiums: dict[str, float],
    default_status: LiquidityStatus = "moderate",
) -> LiquidityProfile:
    if average_volume is None:
        status: LiquidityStatus = default_status
    elif average_volume > thresholds["liquid"]:
        status = "liquid"
    elif average_volume > thresholds["moderate"]:
        status = "moderate"
    else:
        status = "illiquid"
    return LiquidityProfile(status=status, average_volume=average_volume, premium=premiums[status])


@dataclass(frozen=True)
class DiscountRateBreakdown:
    risk_free_rate: float
    market_return: float
    beta: float
    equity_premium: float
    valuation_adjustment: float
    liquidity_premium: float
    rate: float

    def to_dict(self) -> dict:
        return asdict(self)


def capm_discount_rate(
    risk_free_rate: float,
    beta: float,
    market_return: float,
    valuation_shift: float = 0.0,
    liquidity_premium: float = 0.0,
) -> DiscountRateBreakdown:
    """rf + beta * (market - rf), plus on-chain and liquidity adjustments."""
    premium = beta * (market_return - risk_free_rate)
    rate = risk_free_rate + premium + valuation_shift + liquidity_premium
    return DiscountRateBreakdown(
        risk_free_rate=risk_free_rate,
        market_return=market_return,
        beta=beta,
        equity_premium=premium,
        valuation_adjustment=valuation_shift,
        liquidity_premium=liquidity_premium,
        rate=rate,
    )


def terminal_value(final_cash_flow: float, growth: float, discount_rate: float) -> float:
    """Gordon growth value one period after ``final_cash_flow``, undiscounted."""
    if discount_rate <= growth:
        raise ValueError("Terminal value needs a discount rate above the growth rate")
    return final_cash_flow * (1 + growth) / (discount_rate - growth)
