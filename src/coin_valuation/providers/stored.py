"""Provider backed by prices already ingested into SQLite."""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from ..db.models import Coin, PriceObservation
from ..db.session import session_scope
from ..errors import DataFetchError
from ..runs.context import RunContext
from .base import MarketDataProvider, PriceFrame, PriceRequest, Quote


class StoredPriceProvider(MarketDataProvider):
    """Serve ingested history so analyses can run without network access."""

    name = "stored"

    def __init__(self, run: RunContext | None = None):
        self.run = run

    def fetch_prices(self, requests: Iterable[PriceRequest]) -> dict[str, PriceFrame]:
        results: dict[str, PriceFrame] = {}
        with session_scope() as session:
            for req in requests:
                rows = (
                    session.query(PriceObservation.price_date, PriceObservation.close, PriceObservation.volume)
                    .join(Coin, Coin.id == PriceObservation.coin_id)
                    .filter(Coin.ticker == req.ticker)
                    .filter(PriceObservation.price_date >= req.start)
                    .filter(PriceObservation.price_date <= req.end)
                    .order_by(PriceObservation.price_date)
                    .all()
                )
                if not rows:
                    continue
                data = pd.DataFrame(
                    {"close": [r.close for r in rows], "volume": [r.volume for r in rows]},
                    index=pd.DatetimeIndex([pd.Timestamp(r.price_date) for r in rows]),
                )
                results[req.ticker] = PriceFrame(ticker=req.ticker, data=data)
        return results

    def fetch_quote(self, ticker: str) -> Quote:
        with session_scope() as session:
            rows = (
                session.query(PriceObservation.close)
                .join(Coin, Coin.id == PriceObservation.coin_id)
                .filter(Coin.ticker == ticker)
                .order_by(PriceObservation.price_date.desc())
                .limit(2)
                .all()
            )
        if not rows:
            raise DataFetchError(f"No stored prices for {ticker}", source=self.name, ticker=ticker)
        price = float(rows[0].close)
        change = None
        if len(rows) > 1 and rows[1].close:
            change = (price - rows[1].close) / rows[1].close * 100
        return Quote(symbol=ticker, price=price, change_24h=change)


def build_provider(run: RunContext, retries: int = 3) -> MarketDataProvider:
    return StoredPriceProvider(run)
