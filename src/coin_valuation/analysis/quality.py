"""Data-quality disclosure for an analysis.

Quality flags are informational: they are reported next to the numbers and
never stop a calculation from running.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Sequence

from ..analytics.beta import BetaEstimate
from ..analytics.series import PricePoint, sort_points
from ..analytics.valuation import DAYS_PER_YEAR


@dataclass(frozen=True)
class DataQuality:
    price_points: int
    years_covered: float
    completeness: float
    is_reliable: bool
    benchmark_is_fallback: bool
    beta_is_default: bool
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def assess_quality(
    points: Sequence[PricePoint],
    benchmark_is_fallback: bool,
    beta: BetaEstimate,
    min_years: float = 3.0,
    min_completeness: float = 0.8,
) -> DataQuality:
    ordered = sort_points(points)
    notes: list[str] = []
    if len(ordered) >= 2:
        years = (ordered[-1].timestamp - ordered[0].timestamp).days / DAYS_PER_YEAR
    else:
        years = 0.0
    completeness = min(1.0, len(ordered) / (years * DAYS_PER_YEAR)) if years > 0 else 0.0
    reliable = years >= min_years and completeness >= min_completeness
    if years < min_years:
        notes.append(f"Price history covers {years:.1f} years, less than {min_years:g}")
    if completeness < min_completeness:
        notes.append(f"Price history is {completeness:.0%} complete")
    if benchmark_is_fallback:
        notes.append("Benchmark figures are fallback estimates, not market data")
    if beta.is_default:
        notes.append(f"Beta is a default value ({beta.reason})")
    return DataQuality(
        price_points=len(ordered),
        years_covered=years,
        completeness=completeness,
        is_reliable=reliable,
        benchmark_is_fallback=benchmark_is_fallback,
        beta_is_default=beta.is_default,
        notes=notes,
    )
