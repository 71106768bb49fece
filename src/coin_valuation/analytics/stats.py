"""Descriptive statistics over return sequences.

All dispersion measures use the sample (n - 1) denominator.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from ..errors import InsufficientSampleError

# Variance this small relative to the squared mean is rounding noise.
FLAT_TOLERANCE = 1e-12


def _as_array(values: Sequence[float], minimum: int = 2) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    if array.size < minimum:
        raise InsufficientSampleError(
            f"Need at least {minimum} observations, got {array.size}",
            required=minimum,
            actual=int(array.size),
        )
    return array


def mean(values: Sequence[float]) -> float:
    return float(_as_array(values, minimum=1).mean())


def covariance(a: Sequence[float], b: Sequence[float]) -> float:
    x = _as_array(a)
    y = _as_array(b)
    if x.size != y.size:
        raise ValueError(f"Series lengths differ: {x.size} != {y.size}")
    return float(np.sum((x - x.mean()) * (y - y.mean())) / (x.size - 1))


def variance(values: Sequence[float]) -> float:
    return covariance(values, values)


def std_dev(values: Sequence[float]) -> float:
    return math.sqrt(variance(values))


def is_flat(values: Sequence[float]) -> bool:
    """True when the series has no variance beyond floating-point noise."""
    array = _as_array(values)
    scale = max(1.0, float(array.mean()) ** 2)
    return variance(array) <= FLAT_TOLERANCE * scale


def correlation(a: Sequence[float], b: Sequence[float]) -> float:
    if is_flat(a) or is_flat(b):
        return 0.0
    denominator = std_dev(a) * std_dev(b)
    return max(-1.0, min(1.0, covariance(a, b) / denominator))


def r_squared(a: Sequence[float], b: Sequence[float]) -> float:
    return correlation(a, b) ** 2


def beta(asset: Sequence[float], benchmark: Sequence[float]) -> float:
    """cov(asset, benchmark) / var(benchmark); raises on a flat benchmark."""
    if is_flat(benchmark):
        raise ZeroDivisionError("Benchmark returns have zero variance")
    return covariance(asset, benchmark) / variance(benchmark)


def annualized_volatility(returns: Sequence[float], periods_per_year: int) -> float:
    if len(returns) < 2:
        return 0.0
    return std_dev(returns) * math.sqrt(periods_per_year)
