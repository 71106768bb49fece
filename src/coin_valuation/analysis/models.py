"""Request and result records for a single coin analysis."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date

from ..analytics.beta import BetaEstimate
from ..analytics.cashflow import YearlyCashFlow
from ..analytics.montecarlo import MonteCarloResult, NPVDistribution
from ..analytics.risk import RiskMetrics
from ..analytics.valuation import DiscountRateBreakdown, LiquidityProfile
from ..benchmarks.service import BenchmarkData
from .quality import DataQuality
from .recommendation import Recommendation, RiskTolerance


@dataclass(frozen=True)
class AnalysisRequest:
    coin: str
    amount: float
    horizon_years: int
    risk_tolerance: RiskTolerance = "moderate"
    staking_yield: float | None = None
    valuation_ratio: float | None = None
    portfolio_share: float | None = None
    include_terminal_value: bool = False
    as_of: date | None = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("Investment amount must be positive")
        if self.horizon_years < 1:
            raise ValueError("Horizon must be at least one year")
        if self.risk_tolerance not in ("conservative", "moderate", "aggressive"):
            raise ValueError(f"Unknown risk tolerance {self.risk_tolerance!r}")


@dataclass
class AnalysisResult:
    coin: str
    name: str
    basket: str
    amount: float
    horizon_years: int
    as_of: date
    current_price: float
    cagr: float
    projected_prices: list[float]
    cash_flows: list[float]
    discount_rate: DiscountRateBreakdown
    npv: float
    irr: float
    irr_converged: bool
    roi: float
    terminal_value: float
    yearly: list[YearlyCashFlow]
    beta: BetaEstimate
    benchmark: BenchmarkData
    liquidity: LiquidityProfile
    risk: RiskMetrics
    monte_carlo: MonteCarloResult
    npv_distribution: NPVDistribution
    quality: DataQuality
    recommendation: Recommendation

    def to_dict(self) -> dict:
        return {
            "coin": self.coin,
            "name": self.name,
            "basket": self.basket,
            "amount": self.amount,
            "horizon_years": self.horizon_years,
            "as_of": self.as_of.isoformat(),
            "current_price": self.current_price,
            "cagr": self.cagr,
            "projected_prices": self.projected_prices,
            "cash_flows": self.cash_flows,
            "discount_rate": self.discount_rate.to_dict(),
            "npv": self.npv,
            "irr": self.irr,
            "irr_converged": self.irr_converged,
            "roi": self.roi,
            "terminal_value": self.terminal_value,
            "yearly": [row.to_dict() for row in self.yearly],
            "beta": self.beta.to_dict(),
            "benchmark": self.benchmark.to_dict(),
            "liquidity": self.liquidity.to_dict(),
            "risk": self.risk.to_dict(),
            "monte_carlo": self.monte_carlo.to_dict(),
            "npv_distribution": asdict(self.npv_distribution),
            "quality": self.quality.to_dict(),
            "recommendation": self.recommendation.to_dict(),
        }
