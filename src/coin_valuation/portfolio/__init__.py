"""Basket allocation analysis."""

from .allocation import AllocationReport, Holding, analyze_allocation, recommended_bitcoin_weight

__all__ = ["AllocationReport", "Holding", "analyze_allocation", "recommended_bitcoin_weight"]
