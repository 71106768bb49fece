"""Drawdown, value-at-risk and risk-adjusted return metrics."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence

import numpy as np

from . import stats
from .series import period_returns


@dataclass(frozen=True)
class RiskMetrics:
    volatility: float
    max_drawdown: float
    value_at_risk: float
    expected_shortfall: float
    sharpe_ratio: float
    annual_return: float
    periods: int

    def to_dict(self) -> dict:
        return asdict(self)


def max_drawdown(values: Sequence[float]) -> float:
    """Largest peak-to-trough decline as a non-positive fraction."""
    if len(values) == 0:
        return 0.0
    curve = np.asarray(values, dtype=float)
    running_max = np.maximum.accumulate(curve)
    drawdowns = curve / running_max - 1
    return float(drawdowns.min())


def value_at_risk(returns: Sequence[float], confidence: float = 0.95) -> float:
    """Historical VaR: the loss at the (1 - confidence) percentile, as a positive number."""
    if len(returns) == 0:
        return 0.0
    cutoff = float(np.percentile(np.asarray(returns, dtype=float), (1 - confidence) * 100))
    return max(0.0, -cutoff)


def expected_shortfall(returns: Sequence[float], confidence: float = 0.95) -> float:
    """Mean loss over the returns at or below the VaR cutoff."""
    if len(returns) == 0:
        return 0.0
    data = np.asarray(returns, dtype=float)
    cutoff = np.percentile(data, (1 - confidence) * 100)
    tail = data[data <= cutoff]
    return max(0.0, -float(tail.mean()))


def sharpe_ratio(annual_return: float, annual_volatility: float, risk_free_rate: float) -> float:
    if annual_volatility == 0:
        return 0.0
    return (annual_return - risk_free_rate) / annual_volatility


def summarize_risk(
    prices: Sequence[float],
    periods_per_year: int = 365,
    risk_free_rate: float = 0.045,
    confidence: float = 0.95,
) -> RiskMetrics:
    returns = period_returns(prices)
    if not returns:
        return RiskMetrics(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, len(prices))
    volatility = stats.annualized_volatility(returns, periods_per_year)
    years = len(returns) / periods_per_year
    compounded = prices[-1] / prices[0] if prices[0] > 0 else 0.0
    annual_return = compounded ** (1 / years) - 1 if compounded > 0 else -1.0
    return RiskMetrics(
        volatility=volatility,
        max_drawdown=max_drawdown(prices),
        value_at_risk=value_at_risk(returns, confidence),
        expected_shortfall=expected_shortfall(returns, confidence),
        sharpe_ratio=sharpe_ratio(annual_return, volatility, risk_free_rate),
        annual_return=annual_return,
        periods=len(prices),
    )
