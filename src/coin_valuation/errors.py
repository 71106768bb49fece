"""Exception hierarchy for coin valuation."""

from __future__ import annotations

from typing import Any


class CoinValuationError(Exception):
    """Base exception for all coin valuation errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DataFetchError(CoinValuationError):
    """A market data source failed or returned nothing usable."""

    def __init__(self, message: str, source: str = "", **details: Any) -> None:
        super().__init__(message, {"source": source, **details})
        self.source = source


class InsufficientSampleError(CoinValuationError):
    """Fewer observations than a calculation needs."""

    def __init__(self, message: str, required: int, actual: int) -> None:
        super().__init__(message, {"required": required, "actual": actual})
        self.required = required
        self.actual = actual


class NonConvergenceError(CoinValuationError):
    """A root finder exhausted its budget or had no bracketed root.

    ``estimate`` is the midpoint of the last bracket examined.
    """

    def __init__(self, message: str, estimate: float, iterations: int) -> None:
        super().__init__(message, {"estimate": estimate, "iterations": iterations})
        self.estimate = estimate
        self.iterations = iterations


class ConfigError(CoinValuationError):
    """Configuration file missing or invalid."""
