"""Yahoo Finance provider implementation."""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Callable, Iterable

import pandas as pd
import yfinance as yf

from ..db.models import ProviderLog
from ..db.session import session_scope
from ..errors import DataFetchError
from ..runs.context import RunContext
from .base import MarketDataProvider, PriceFrame, PriceRequest, Quote

logger = logging.getLogger(__name__)


class YahooProvider(MarketDataProvider):
    name = "yahoo"

    def __init__(self, run: RunContext, retries: int = 3):
        self.run = run
        self.retries = max(1, retries)

    def fetch_prices(self, requests: Iterable[PriceRequest]) -> dict[str, PriceFrame]:
        results: dict[str, PriceFrame] = {}
        for req in requests:
            ticker = req.ticker
            params = f"{ticker}-{req.start}-{req.end}-{req.interval}"
            data = self._with_retries(
                "prices",
                params,
                lambda: yf.download(
                    ticker,
                    start=req.start,
                    end=req.end,
                    interval=req.interval,
                    progress=False,
                    auto_adjust=True,
                ),
            )
            if data is None or data.empty:
                logger.warning("No price data returned for %s", ticker)
                self._log_provider_call("prices", params, "", succeeded=False)
                continue
            if isinstance(data.columns, pd.MultiIndex):
                data.columns = data.columns.get_level_values(0)
            data = data.rename(columns=lambda c: c.lower().replace(" ", "_"))
            results[ticker] = PriceFrame(ticker=ticker, data=data)
            self._log_provider_call("prices", params, data)
        return results

    def fetch_quote(self, ticker: str) -> Quote:
        price, previous, market_cap = self._with_retries("quote", ticker, lambda: _read_quote(ticker))
        if price is None:
            self._log_provider_call("quote", ticker, "", succeeded=False)
            raise DataFetchError(f"No quote available for {ticker}", source=self.name, ticker=ticker)
        change = (price - previous) / previous * 100 if previous else None
        quote = Quote(
            symbol=ticker,
            price=float(price),
            change_24h=change,
            market_cap=market_cap,
        )
        self._log_provider_call("quote", ticker, quote)
        return quote

    def _with_retries(self, endpoint: str, params: str, call: Callable[[], Any]) -> Any:
        last_error: Exception | None = None
        for attempt in range(1, self.retries + 1):
            try:
                return call()
            except Exception as exc:
                last_error = exc
                logger.warning("%s %s attempt %d/%d failed: %s", endpoint, params, attempt, self.retries, exc)
        self._log_provider_call(endpoint, params, repr(last_error), succeeded=False)
        raise DataFetchError(
            f"Yahoo {endpoint} request failed for {params}",
            source=self.name,
            error=str(last_error),
        ) from last_error

    def _log_provider_call(self, endpoint: str, params: str, payload, succeeded: bool = True) -> None:
        params_hash = _hash_text(params)
        response_hash = _hash_text(str(payload)[:10_000])
        with session_scope() as session:
            session.add(
                ProviderLog(
                    run_id=self.run.run_id,
                    provider=self.name,
                    endpoint=endpoint,
                    params_hash=params_hash,
                    response_hash=response_hash,
                    succeeded=succeeded,
                )
            )


def _read_quote(ticker: str) -> tuple[float | None, float | None, float | None]:
    info = yf.Ticker(ticker).fast_info
    # Index tickers (^GSPC, ^TNX) report no market cap.
    market_cap = None if ticker.startswith("^") else info.market_cap
    return info.last_price, info.previous_close, market_cap


def _hash_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def build_provider(run: RunContext, retries: int = 3) -> MarketDataProvider:
    return YahooProvider(run, retries=retries)
