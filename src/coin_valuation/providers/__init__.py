"""Market data providers."""

from .base import MarketDataProvider, PriceFrame, PriceRequest, Quote, fetch_history

__all__ = ["MarketDataProvider", "PriceFrame", "PriceRequest", "Quote", "fetch_history"]
