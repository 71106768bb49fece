"""Portfolio weights by basket, concentration and rebalancing needs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Sequence

from ..analysis.recommendation import BASKET_LIMITS


@dataclass(frozen=True)
class Holding:
    symbol: str
    basket: str
    value: float


@dataclass(frozen=True)
class RebalanceAction:
    basket: str
    current_weight: float
    target_weight: float
    amount: float

    @property
    def direction(self) -> str:
        return "buy" if self.amount > 0 else "sell"


@dataclass
class AllocationReport:
    total_value: float
    basket_weights: dict[str, float]
    diversification_score: float
    bitcoin_weight: float
    recommended_bitcoin_weight: float
    rebalance: list[RebalanceAction] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        payload = asdict(self)
        for item, action in zip(payload["rebalance"], self.rebalance):
            item["direction"] = action.direction
        return payload


def recommended_bitcoin_weight(total_value: float) -> float:
    """Smaller portfolios hold less Bitcoin; larger ones concentrate on it."""
    if total_value <= 20_000:
        return 0.50
    if total_value <= 100_000:
        return 0.70
    return 0.85


def diversification_score(values: Sequence[float]) -> float:
    """100 minus the Herfindahl index of position weights expressed in percent."""
    total = sum(values)
    if total <= 0:
        return 0.0
    hhi = sum((value / total * 100) ** 2 for value in values)
    return 100 - hhi / 100


def analyze_allocation(holdings: Sequence[Holding]) -> AllocationReport:
    total = sum(h.value for h in holdings)
    if total <= 0:
        raise ValueError("Portfolio has no value")

    weights: dict[str, float] = {}
    for holding in holdings:
        weights[holding.basket] = weights.get(holding.basket, 0.0) + holding.value / total

    bitcoin = weights.get("bitcoin", 0.0)
    target_bitcoin = recommended_bitcoin_weight(total)
    report = AllocationReport(
        total_value=total,
        basket_weights=weights,
        diversification_score=diversification_score([h.value for h in holdings]),
        bitcoin_weight=bitcoin,
        recommended_bitcoin_weight=target_bitcoin,
    )

    if abs(bitcoin - target_bitcoin) > 0.05:
        report.rebalance.append(
            RebalanceAction("bitcoin", bitcoin, target_bitcoin, (target_bitcoin - bitcoin) * total)
        )
    for basket in ("blue_chip", "small_cap"):
        _, maximum = BASKET_LIMITS[basket]
        current = weights.get(basket, 0.0)
        if current > maximum:
            report.warnings.append(f"{basket.replace('_', ' ')} weight {current:.0%} exceeds {maximum:.0%}")
            report.rebalance.append(RebalanceAction(basket, current, maximum, (maximum - current) * total))
    return report
