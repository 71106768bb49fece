"""Discounted cash-flow metrics: NPV, IRR and ROI."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence

from ..errors import NonConvergenceError


def npv(cash_flows: Sequence[float], rate: float) -> float:
    """Sum of ``cash_flows[t] / (1 + rate) ** t`` with t starting at 0."""
    if rate <= -1:
        raise ValueError("Discount rate must be greater than -100%")
    return sum(cf / (1 + rate) ** t for t, cf in enumerate(cash_flows))


def irr(
    cash_flows: Sequence[float],
    lower: float = -0.99,
    upper: float = 10.0,
    tolerance: float = 1e-7,
    max_iterations: int = 200,
) -> float:
    """Rate zeroing NPV, found by bisection on ``[lower, upper]``.

    Raises ValueError when the flows never change sign (no rate can zero
    them), and NonConvergenceError when the bracket holds no root or the
    iteration budget runs out; the error carries the last midpoint.
    """
    if not any(cf < 0 for cf in cash_flows) or not any(cf > 0 for cf in cash_flows):
        raise ValueError("IRR needs at least one negative and one positive cash flow")
    low, high = lower, upper
    npv_low = npv(cash_flows, low)
    npv_high = npv(cash_flows, high)
    if npv_low == 0:
        return low
    if npv_high == 0:
        return high
    if npv_low * npv_high > 0:
        raise NonConvergenceError(
            f"NPV does not change sign between {lower} and {upper}",
            estimate=(low + high) / 2,
            iterations=0,
        )
    mid = (low + high) / 2
    for iteration in range(1, max_iterations + 1):
        mid = (low + high) / 2
        value = npv(cash_flows, mid)
        if abs(value) < tolerance or (high - low) / 2 < tolerance:
            return mid
        if (value > 0) == (npv_low > 0):
            low, npv_low = mid, value
        else:
            high = mid
    raise NonConvergenceError(
        f"IRR did not converge within {max_iterations} iterations",
        estimate=mid,
        iterations=max_iterations,
    )


def roi(initial_value: float, final_value: float) -> float:
    if initial_value == 0:
        raise ValueError("ROI needs a non-zero initial value")
    return (final_value - initial_value) / initial_value


def build_cash_flows(
    amount: float,
    current_price: float,
    final_price: float,
    horizon_years: int,
    staking_yield: float = 0.0,
    terminal: float = 0.0,
) -> list[float]:
    """Outlay at t=0, staking income each year, sale proceeds at the horizon."""
    if amount <= 0 or current_price <= 0:
        raise ValueError("Amount and current price must be positive")
    if horizon_years < 1:
        raise ValueError("Horizon must be at least one year")
    stake = amount * staking_yield
    flows = [-amount]
    flows.extend([stake] * (horizon_years - 1))
    flows.append(amount * final_price / current_price + stake + terminal)
    return flows


@dataclass(frozen=True)
class YearlyCashFlow:
    year: int
    cash_flow: float
    discount_factor: float
    present_value: float
    cumulative: float

    def to_dict(self) -> dict:
        return asdict(self)


def yearly_breakdown(cash_flows: Sequence[float], rate: float) -> list[YearlyCashFlow]:
    rows = []
    cumulative = 0.0
    for year, cf in enumerate(cash_flows):
        factor = 1 / (1 + rate) ** year
        present = cf * factor
        cumulative += present
        rows.append(YearlyCashFlow(year, cf, factor, present, cumulative))
    return rows
