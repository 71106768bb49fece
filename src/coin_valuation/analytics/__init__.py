"""Pure numeric core: statistics, beta, growth, cash flows, risk and simulation."""

from .beta import BetaEstimate, BetaEstimator
from .cashflow import build_cash_flows, irr, npv, roi
from .montecarlo import MonteCarloResult, simulate_prices
from .risk import RiskMetrics, max_drawdown, summarize_risk
from .series import PricePoint
from .valuation import cagr, capm_discount_rate, project_price

__all__ = [
    "BetaEstimate",
    "BetaEstimator",
    "MonteCarloResult",
    "PricePoint",
    "RiskMetrics",
    "build_cash_flows",
    "cagr",
    "capm_discount_rate",
    "irr",
    "max_drawdown",
    "npv",
    "project_price",
    "roi",
    "simulate_prices",
    "summarize_risk",
]
