"""Turn valuation and risk figures into an action with reasoning."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Literal

from ..analytics.beta import BetaEstimate

RiskTolerance = Literal["conservative", "moderate", "aggressive"]

BASKET_LIMITS = {
    "bitcoin": (0.60, 0.80),
    "blue_chip": (0.0, 0.40),
    "small_cap": (0.0, 0.15),
}

BUY_ACTIONS = ("Strong Buy", "Buy")


@dataclass
class Recommendation:
    action: str
    confidence: float
    reasoning: list[str] = field(default_factory=list)
    risk_warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def recommend(
    npv: float,
    amount: float,
    probability_of_loss: float,
    beta: BetaEstimate,
    risk_tolerance: RiskTolerance = "moderate",
    valuation_ratio: float | None = None,
    basket: str | None = None,
    portfolio_share: float | None = None,
    undervalued_below: float = 0.8,
    overvalued_above: float = 2.5,
) -> Recommendation:
    """Score the opportunity from 0 to 100 and map the score to an action.

    ``portfolio_share`` is the fraction of the portfolio the coin's basket
    would hold after the purchase.
    """
    score = 50.0
    reasoning: list[str] = []
    warnings: list[str] = []

    if npv > 0:
        score += 20
        reasoning.append(f"Positive NPV of ${npv:,.0f} at the risk-adjusted discount rate")
    else:
        score -= 10
        reasoning.append(f"Negative NPV of ${npv:,.0f} at the risk-adjusted discount rate")

    if probability_of_loss < 0.3:
        score += 15
        reasoning.append(f"Low simulated probability of loss ({probability_of_loss:.0%})")
    elif probability_of_loss > 0.5:
        score -= 10
        warnings.append(f"Simulated probability of loss is {probability_of_loss:.0%}")

    if beta.confidence == "high":
        score += 15
        reasoning.append(f"Beta of {beta.beta:.2f} estimated with high confidence")
    elif beta.confidence == "medium":
        score += 5
    if beta.is_default:
        warnings.append("Beta could not be estimated; a default was used")

    if valuation_ratio is not None:
        if valuation_ratio < undervalued_below:
            score += 10
            reasoning.append(f"On-chain valuation ratio {valuation_ratio:.2f} suggests undervaluation")
        elif valuation_ratio > overvalued_above:
            score -= 10
            warnings.append(f"On-chain valuation ratio {valuation_ratio:.2f} suggests overvaluation")

    if risk_tolerance == "conservative":
        score -= 20
        if probability_of_loss > 0.2:
            warnings.append("Loss probability exceeds a conservative risk tolerance")
    elif risk_tolerance == "aggressive":
        score += 10

    score = max(0.0, min(100.0, score))
    action = _action_for(score, npv, amount, probability_of_loss)

    if basket and portfolio_share is not None:
        action = _apply_basket_limits(action, basket, portfolio_share, reasoning, warnings)

    return Recommendation(action=action, confidence=score, reasoning=reasoning, risk_warnings=warnings)


def _action_for(score: float, npv: float, amount: float, probability_of_loss: float) -> str:
    if probability_of_loss > 0.7 or score < 20:
        return "Strong Sell"
    if score < 40 or npv < -0.1 * amount:
        return "Sell"
    if score > 80 and npv > 0:
        return "Strong Buy"
    if score > 60 and npv > 0:
        return "Buy"
    return "Hold"


def _apply_basket_limits(
    action: str,
    basket: str,
    share: float,
    reasoning: list[str],
    warnings: list[str],
) -> str:
    if basket not in BASKET_LIMITS:
        return action
    minimum, maximum = BASKET_LIMITS[basket]
    label = basket.replace("_", " ")
    if share > maximum:
        warnings.append(f"{label.title()} allocation of {share:.0%} exceeds the {maximum:.0%} limit")
        if basket == "small_cap":
            return "Sell"
        if action in BUY_ACTIONS:
            return "Hold"
    elif share < minimum:
        reasoning.append(f"{label.title()} allocation of {share:.0%} is below the {minimum:.0%} target")
    return action
