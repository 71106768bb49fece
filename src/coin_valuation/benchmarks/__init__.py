"""Benchmark snapshots and caching."""

from .cache import TTLCache
from .service import BenchmarkData, BenchmarkService, select_benchmark

__all__ = ["BenchmarkData", "BenchmarkService", "TTLCache", "select_benchmark"]
