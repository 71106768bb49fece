from datetime import date

import pytest

from conftest import StubProvider, sample_config

from coin_valuation.analysis import AnalysisRequest, AnalysisService
from coin_valuation.db.models import Coin, PriceObservation
from coin_valuation.db.session import session_scope
from coin_valuation.errors import DataFetchError
from coin_valuation.ingest import IngestionService
from coin_valuation.providers.base import PriceRequest
from coin_valuation.providers.stored import StoredPriceProvider
from coin_valuation.runs import create_run

START = date(2019, 7, 1)
END = date(2024, 6, 30)


def test_ingest_stores_prices_and_benchmarks(temp_db):
    config = sample_config()
    run = create_run(END)
    counts = IngestionService(StubProvider(run), config, run).ingest(START, END, ["ETH"])
    assert set(counts) == {"ETH", "SP500", "BTC"}
    assert counts["ETH"] == (END - START).days + 1
    with session_scope() as session:
        index = session.query(Coin).filter_by(symbol="SP500").one()
        assert index.basket == "index"
        bitcoin = session.query(Coin).filter_by(symbol="BTC").one()
        assert bitcoin.basket == "bitcoin"


def test_reingest_skips_existing_dates(temp_db):
    config = sample_config()
    run = create_run(END)
    service = IngestionService(StubProvider(run), config, run)
    service.ingest(START, END, ["SOL"], include_benchmarks=False)
    counts = service.ingest(START, END, ["SOL"], include_benchmarks=False)
    assert counts == {"SOL": 0}
    with session_scope() as session:
        assert session.query(PriceObservation).count() == (END - START).days + 1


def test_missing_tickers_are_skipped(temp_db):
    config = sample_config()
    run = create_run(END)
    service = IngestionService(StubProvider(run), config, run)
    counts = service.ingest(START, END, ["LINK"], include_benchmarks=False)
    assert counts == {}


def test_stored_provider_serves_ingested_history(temp_db):
    config = sample_config()
    run = create_run(END)
    stub = StubProvider(run)
    IngestionService(stub, config, run).ingest(START, END, ["ETH"])

    stored = StoredPriceProvider(run)
    frames = stored.fetch_prices(
        [PriceRequest("ETH-USD", date(2024, 1, 1), END), PriceRequest("XRP-USD", START, END)]
    )
    assert list(frames) == ["ETH-USD"]
    assert frames["ETH-USD"].data.index[0].date() == date(2024, 1, 1)
    assert frames["ETH-USD"].data["volume"].iloc[0] == pytest.approx(1e9)

    quote = stored.fetch_quote("ETH-USD")
    assert quote.price == pytest.approx(frames["ETH-USD"].closes().iloc[-1])
    with pytest.raises(DataFetchError):
        stored.fetch_quote("^TNX")

    request = AnalysisRequest(coin="ETH", amount=1_000, horizon_years=3, as_of=END)
    offline = AnalysisService(stored, config, run).analyze(request)
    online = AnalysisService(stub, config, run).analyze(request)
    assert offline.beta.beta == pytest.approx(online.beta.beta)
    assert offline.discount_rate.risk_free_rate == pytest.approx(config.analysis.risk_free_rate)
