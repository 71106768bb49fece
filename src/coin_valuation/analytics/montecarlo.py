"""Monte Carlo projection of position value under geometric Brownian motion."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field

import numpy as np


@dataclass(frozen=True)
class ConfidenceBand:
    year: int
    lower: float
    median: float
    upper: float


@dataclass
class MonteCarloResult:
    initial_value: float
    expected_value: float
    lower: float
    upper: float
    confidence: float
    probability_of_loss: float
    value_at_risk: float
    expected_shortfall: float
    max_drawdown: float
    simulations: int
    bands: list[ConfidenceBand]
    terminal_values: np.ndarray = field(repr=False)

    def to_dict(self) -> dict:
        return {
            "initial_value": self.initial_value,
            "expected_value": self.expected_value,
            "lower": self.lower,
            "upper": self.upper,
            "confidence": self.confidence,
            "probability_of_loss": self.probability_of_loss,
            "value_at_risk": self.value_at_risk,
            "expected_shortfall": self.expected_shortfall,
            "max_drawdown": self.max_drawdown,
            "simulations": self.simulations,
            "bands": [asdict(band) for band in self.bands],
        }


@dataclass(frozen=True)
class NPVDistribution:
    mean: float
    lower: float
    upper: float
    probability_positive: float


def simulate_prices(
    initial_value: float,
    annual_return: float,
    annual_volatility: float,
    horizon_years: int,
    simulations: int = 10_000,
    steps_per_year: int = 12,
    confidence: float = 0.90,
    seed: int | None = None,
) -> MonteCarloResult:
    """Simulate ``simulations`` paths whose mean grows at ``annual_return`` a year."""
    if initial_value <= 0:
        raise ValueError("Initial value must be positive")
    if annual_return <= -1:
        raise ValueError("Annual return must be greater than -100%")
    if horizon_years < 1 or simulations < 1 or steps_per_year < 1:
        raise ValueError("Horizon, simulations and steps must be positive")
    if not 0 < confidence < 1:
        raise ValueError("Confidence must be between 0 and 1")

    rng = np.random.default_rng(seed)
    steps = horizon_years * steps_per_year
    dt = 1 / steps_per_year
    drift = math.log(1 + annual_return)
    shocks = rng.normal(
        (drift - 0.5 * annual_volatility ** 2) * dt,
        annual_volatility * math.sqrt(dt),
        size=(simulations, steps),
    )
    log_paths = np.concatenate([np.zeros((simulations, 1)), np.cumsum(shocks, axis=1)], axis=1)
    paths = initial_value * np.exp(log_paths)
    terminal = paths[:, -1]

    low_pct = (1 - confidence) / 2 * 100
    high_pct = (1 + confidence) / 2 * 100
    lower = float(np.percentile(terminal, low_pct))
    upper = float(np.percentile(terminal, high_pct))

    bands = []
    for year in range(horizon_years + 1):
        column = paths[:, year * steps_per_year]
        bands.append(
            ConfidenceBand(
                year=year,
                lower=float(np.percentile(column, low_pct)),
                median=float(np.median(column)),
                upper=float(np.percentile(column, high_pct)),
            )
        )

    worst = terminal[terminal <= lower]
    running_max = np.maximum.accumulate(paths, axis=1)
    drawdowns = paths / running_max - 1

    return MonteCarloResult(
        initial_value=initial_value,
        expected_value=float(terminal.mean()),
        lower=lower,
        upper=upper,
        confidence=confidence,
        probability_of_loss=float(np.mean(terminal < initial_value)),
        value_at_risk=max(0.0, initial_value - lower),
        expected_shortfall=max(0.0, initial_value - float(worst.mean())),
        max_drawdown=float(drawdowns.min()),
        simulations=simulations,
        bands=bands,
        terminal_values=terminal,
    )


def npv_distribution(
    result: MonteCarloResult,
    discount_rate: float,
    horizon_years: int,
    interim_cash_flows: float = 0.0,
) -> NPVDistribution:
    """Discount each simulated terminal value to get a distribution of NPVs.

    ``interim_cash_flows`` is the present value of income received before the
    horizon, such as staking rewards.
    """
    factor = (1 + discount_rate) ** horizon_years
    npvs = -result.initial_value + interim_cash_flows + result.terminal_values / factor
    low_pct = (1 - result.confidence) / 2 * 100
    high_pct = (1 + result.confidence) / 2 * 100
    return NPVDistribution(
        mean=float(npvs.mean()),
        lower=float(np.percentile(npvs, low_pct)),
        upper=float(np.percentile(npvs, high_pct)),
        probability_positive=float(np.mean(npvs > 0)),
    )
