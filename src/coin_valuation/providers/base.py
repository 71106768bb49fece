"""Provider abstraction to isolate market data sources."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Protocol

import pandas as pd

from ..analytics.series import PricePoint
from ..errors import DataFetchError


@dataclass(frozen=True)
class PriceRequest:
    ticker: str
    start: date
    end: date
    interval: str = "1d"


@dataclass
class PriceFrame:
    """Provider output: a DatetimeIndex frame with ``close`` and optional ``volume``."""

    ticker: str
    data: pd.DataFrame

    def closes(self) -> pd.Series:
        column = "adj_close" if "adj_close" in self.data.columns else "close"
        return self.data[column].astype(float).dropna()

    def volumes(self) -> pd.Series | None:
        if "volume" not in self.data.columns:
            return None
        return self.data["volume"].astype(float)

    def to_points(self) -> list[PricePoint]:
        closes = self.closes()
        volumes = self.volumes()
        points = []
        for idx, price in closes.items():
            volume = None
            if volumes is not None and idx in volumes.index and pd.notna(volumes[idx]):
                volume = float(volumes[idx])
            points.append(PricePoint(timestamp=pd.Timestamp(idx).date(), price=float(price), volume=volume))
        return points


@dataclass(frozen=True)
class Quote:
    symbol: str
    price: float
    change_24h: float | None = None
    market_cap: float | None = None


class MarketDataProvider(Protocol):
    name: str

    def fetch_prices(self, requests: Iterable[PriceRequest]) -> dict[str, PriceFrame]:
        """Fetch price history keyed by ticker; tickers with no data are omitted."""

    def fetch_quote(self, ticker: str) -> Quote:
        """Fetch the latest price, 24h change and market cap."""


def fetch_history(provider: MarketDataProvider, ticker: str, start: date, end: date) -> list[PricePoint]:
    """Daily history for one ticker; raises DataFetchError when the provider has none."""
    frames = provider.fetch_prices([PriceRequest(ticker=ticker, start=start, end=end)])
    frame = frames.get(ticker)
    if frame is None or frame.data.empty:
        raise DataFetchError(f"No price history for {ticker}", source=provider.name, ticker=ticker)
    return frame.to_points()


__all__ = ["MarketDataProvider", "PriceRequest", "PriceFrame", "Quote", "fetch_history"]
