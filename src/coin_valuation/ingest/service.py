"""Ingestion service orchestrating provider calls and persistence."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from ..config import CoinEntry, ConfigBundle
from ..db.models import Coin, PriceObservation
from ..db.session import session_scope
from ..providers.base import MarketDataProvider, PriceFrame, PriceRequest
from ..runs.context import RunContext

logger = logging.getLogger(__name__)


class IngestionService:
    """Store daily price history for universe coins in SQLite."""

    def __init__(self, provider: MarketDataProvider, config: ConfigBundle, run: RunContext):
        self.provider = provider
        self.config = config
        self.run = run

    def ingest(
        self,
        start: date,
        end: date,
        symbols: Iterable[str] | None = None,
        include_benchmarks: bool = True,
    ) -> dict[str, int]:
        coins = self._select(symbols)
        if include_benchmarks:
            coins.extend(self._benchmark_entries(coins))
        self._ensure_coins(coins)
        requests = [PriceRequest(ticker=c.ticker, start=start, end=end) for c in coins]
        frames = self.provider.fetch_prices(requests)
        missing = [c.symbol for c in coins if c.ticker not in frames]
        if missing:
            logger.warning("No prices returned for %s", ", ".join(missing))
        return self._persist_prices(coins, frames)

    def _select(self, symbols: Iterable[str] | None) -> list[CoinEntry]:
        if symbols is None:
            return list(self.config.universe.coins)
        return [self.config.universe.find(symbol) for symbol in symbols]

    def _benchmark_entries(self, selected: list[CoinEntry]) -> list[CoinEntry]:
        selected_tickers = {c.ticker for c in selected}
        by_ticker = {c.ticker: c for c in self.config.universe.coins}
        entries = []
        for key, benchmark in self.config.analysis.benchmarks.items():
            if benchmark.ticker in selected_tickers:
                continue
            entries.append(
                by_ticker.get(benchmark.ticker)
                or CoinEntry(symbol=key, name=benchmark.name, ticker=benchmark.ticker, basket="index")
            )
        return entries

    def _ensure_coins(self, coins: list[CoinEntry]) -> None:
        with session_scope() as session:
            for entry in coins:
                coin = session.query(Coin).filter_by(symbol=entry.symbol).one_or_none()
                if not coin:
                    session.add(
                        Coin(
                            symbol=entry.symbol,
                            ticker=entry.ticker,
                            name=entry.name,
                            basket=entry.basket,
                            staking_yield=entry.staking_yield,
                        )
                    )
                else:
                    coin.ticker = entry.ticker
                    coin.basket = entry.basket
                    coin.staking_yield = entry.staking_yield

    def _persist_prices(self, coins: list[CoinEntry], frames: dict[str, PriceFrame]) -> dict[str, int]:
        counts: dict[str, int] = {}
        with session_scope() as session:
            for entry in coins:
                frame = frames.get(entry.ticker)
                if frame is None:
                    continue
                coin = session.query(Coin).filter_by(symbol=entry.symbol).one()
                existing = {
                    row.price_date
                    for row in session.query(PriceObservation.price_date).filter_by(coin_id=coin.id)
                }
                added = 0
                for point in frame.to_points():
                    if point.timestamp in existing:
                        continue
                    session.add(
                        PriceObservation(
                            coin_id=coin.id,
                            run_id=self.run.run_id,
                            price_date=point.timestamp,
                            close=point.price,
                            volume=point.volume,
                        )
                    )
                    added += 1
                counts[entry.symbol] = added
                logger.info("Stored %d new prices for %s", added, entry.symbol)
        return counts
