"""Price series records and period/month reshaping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

import pandas as pd


@dataclass(frozen=True)
class PricePoint:
    timestamp: date
    price: float
    volume: float | None = None


def sort_points(points: Iterable[PricePoint]) -> list[PricePoint]:
    return sorted(points, key=lambda p: p.timestamp)


def period_returns(prices: Sequence[float]) -> list[float]:
    """Fractional change between consecutive prices.

    A change is skipped when the earlier price is not positive, so the result
    has ``len(prices) - 1`` entries for a clean series.
    """
    returns: list[float] = []
    for previous, current in zip(prices[:-1], prices[1:]):
        if previous > 0:
            returns.append((current - previous) / previous)
    return returns


def to_series(points: Iterable[PricePoint]) -> pd.Series:
    ordered = sort_points(points)
    index = pd.DatetimeIndex([pd.Timestamp(p.timestamp) for p in ordered])
    return pd.Series([p.price for p in ordered], index=index, dtype=float)


def monthly_closes(points: Iterable[PricePoint]) -> pd.Series:
    """Last observed price in each calendar month, indexed by month period."""
    series = to_series(points)
    if series.empty:
        return series
    return series.groupby(series.index.to_period("M")).last()


def align_monthly(
    asset: Iterable[PricePoint], benchmark: Iterable[PricePoint]
) -> tuple[list[float], list[float]]:
    """Month-end closes for the months both series cover, oldest first."""
    frame = pd.concat(
        {"asset": monthly_closes(asset), "benchmark": monthly_closes(benchmark)},
        axis=1,
        join="inner",
    ).sort_index()
    return frame["asset"].tolist(), frame["benchmark"].tolist()


def average_volume(points: Sequence[PricePoint], lookback: int) -> float | None:
    volumes = [p.volume for p in sort_points(points)[-lookback:] if p.volume is not None]
    if not volumes:
        return None
    return sum(volumes) / len(volumes)
