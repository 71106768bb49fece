"""Beta estimation against a benchmark with a confidence tier."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Literal, Sequence

from . import stats

logger = logging.getLogger(__name__)

Confidence = Literal["low", "medium", "high"]


@dataclass(frozen=True)
class BetaEstimate:
    beta: float
    confidence: Confidence
    correlation: float
    r_squared: float
    observations: int
    benchmark: str
    source: Literal["calculated", "default"] = "calculated"
    reason: str | None = None

    @property
    def is_default(self) -> bool:
        return self.source == "default"

    def to_dict(self) -> dict:
        return asdict(self)


class BetaEstimator:
    """Regress asset returns on benchmark returns.

    Series of unequal length are trimmed to their most recent common
    stretch. Short samples and flat benchmarks fall back to
    ``default_beta`` with low confidence instead of failing.
    """

    def __init__(
        self,
        min_observations: int = 24,
        default_beta: float = 1.0,
        high_r_squared: float = 0.6,
        high_observations: int = 36,
        medium_r_squared: float = 0.4,
        medium_observations: int = 24,
    ):
        self.min_observations = min_observations
        self.default_beta = default_beta
        self.high_r_squared = high_r_squared
        self.high_observations = high_observations
        self.medium_r_squared = medium_r_squared
        self.medium_observations = medium_observations

    @classmethod
    def from_config(cls, analysis) -> "BetaEstimator":
        cfg = analysis.beta
        return cls(
            min_observations=cfg.min_observations,
            default_beta=analysis.fallbacks.default_beta,
            high_r_squared=cfg.high_r_squared,
            high_observations=cfg.high_observations,
            medium_r_squared=cfg.medium_r_squared,
            medium_observations=cfg.medium_observations,
        )

    def estimate(
        self,
        asset_returns: Sequence[float],
        benchmark_returns: Sequence[float],
        benchmark: str = "",
    ) -> BetaEstimate:
        length = min(len(asset_returns), len(benchmark_returns))
        asset = list(asset_returns)[len(asset_returns) - length:]
        bench = list(benchmark_returns)[len(benchmark_returns) - length:]
        if length < max(self.min_observations, 2):
            return self._default(benchmark, length, f"only {length} aligned observations")
        if stats.is_flat(bench):
            return self._default(benchmark, length, "benchmark returns have zero variance")
        value = stats.beta(asset, bench)
        corr = stats.correlation(asset, bench)
        r2 = corr ** 2
        return BetaEstimate(
            beta=value,
            confidence=self.confidence_tier(r2, length),
            correlation=corr,
            r_squared=r2,
            observations=length,
            benchmark=benchmark,
        )

    def confidence_tier(self, r_squared: float, observations: int) -> Confidence:
        if r_squared > self.high_r_squared and observations > self.high_observations:
            return "high"
        if r_squared > self.medium_r_squared and observations > self.medium_observations:
            return "medium"
        return "low"

    def _default(self, benchmark: str, observations: int, reason: str) -> BetaEstimate:
        logger.warning("Using default beta %.2f vs %s: %s", self.default_beta, benchmark or "benchmark", reason)
        return BetaEstimate(
            beta=self.default_beta,
            confidence="low",
            correlation=0.0,
            r_squared=0.0,
            observations=observations,
            benchmark=benchmark,
            source="default",
            reason=reason,
        )
