import sys
import zlib
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from coin_valuation.config.loader import (  # noqa: E402
    AnalysisConfig,
    CoinEntry,
    ConfigBundle,
    MonteCarloConfig,
    ProviderConfig,
    UniverseConfig,
)
from coin_valuation.db import Base, configure_engine  # noqa: E402
from coin_valuation.db.session import init_db  # noqa: E402
from coin_valuation.errors import DataFetchError  # noqa: E402
from coin_valuation.providers.base import PriceFrame, Quote  # noqa: E402

# Daily shocks are (loading on the shared market factor, idiosyncratic sigma).
FACTOR_LOADINGS = {
    "^GSPC": (0.3, 0.008),
    "BTC-USD": (1.0, 0.0),
    "ETH-USD": (1.4, 0.01),
    "SOL-USD": (1.6, 0.02),
}


class StubProvider:
    """Deterministic synthetic prices driven by one shared market factor."""

    name = "stub"

    def __init__(self, run=None, missing=(), quotes=None):
        self.run = run
        self.missing = set(missing)
        self.quotes = quotes if quotes is not None else {"^TNX": 4.2}
        self.calls: list[str] = []

    def fetch_prices(self, requests):
        frames = {}
        for req in requests:
            self.calls.append(req.ticker)
            if req.ticker in self.missing or req.ticker not in FACTOR_LOADINGS:
                continue
            idx = pd.date_range(req.start, req.end, freq="D")
            market = np.random.default_rng(0).normal(0.0008, 0.03, len(idx))
            loading, sigma = FACTOR_LOADINGS[req.ticker]
            own = np.random.default_rng(zlib.crc32(req.ticker.encode())).normal(0.0, sigma, len(idx))
            prices = 100 * np.exp(np.cumsum(loading * market + own))
            data = pd.DataFrame({"close": prices, "volume": 1_000_000_000.0}, index=idx)
            frames[req.ticker] = PriceFrame(ticker=req.ticker, data=data)
        return frames

    def fetch_quote(self, ticker):
        if ticker not in self.quotes:
            raise DataFetchError(f"No quote for {ticker}", source=self.name)
        return Quote(symbol=ticker, price=self.quotes[ticker])


def build_provider(run, retries=3):
    return StubProvider(run)


def sample_config(**analysis_overrides) -> ConfigBundle:
    analysis = AnalysisConfig(
        monte_carlo=MonteCarloConfig(simulations=2_000, steps_per_year=12, confidence=0.9, seed=7),
        **analysis_overrides,
    )
    universe = UniverseConfig(
        name="Test",
        coins=[
            CoinEntry(symbol="BTC", name="Bitcoin", ticker="BTC-USD", basket="bitcoin"),
            CoinEntry(symbol="ETH", name="Ethereum", ticker="ETH-USD", basket="blue_chip", staking_yield=0.035),
            CoinEntry(symbol="SOL", name="Solana", ticker="SOL-USD", basket="blue_chip"),
            CoinEntry(symbol="LINK", name="Chainlink", ticker="LINK-USD", basket="small_cap"),
        ],
    )
    return ConfigBundle(
        provider=ProviderConfig(id="stub", module="conftest"),
        analysis=analysis,
        universe=universe,
    )


@pytest.fixture()
def temp_db(tmp_path):
    db_path = tmp_path / "test.db"
    configure_engine(db_path)
    init_db(Base)
    yield db_path


@pytest.fixture()
def config() -> ConfigBundle:
    return sample_config()
