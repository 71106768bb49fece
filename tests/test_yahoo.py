from datetime import date

import pandas as pd
import pytest

from coin_valuation.db.models import ProviderLog
from coin_valuation.db.session import session_scope
from coin_valuation.errors import DataFetchError
from coin_valuation.providers.base import PriceRequest, fetch_history
from coin_valuation.providers import yahoo
from coin_valuation.runs import create_run

REQUEST = PriceRequest("ETH-USD", date(2024, 1, 1), date(2024, 1, 4))


def _download_frame(*args, **kwargs):
    idx = pd.date_range("2024-01-01", periods=3, freq="D")
    columns = pd.MultiIndex.from_product([["Close", "Volume"], ["ETH-USD"]])
    return pd.DataFrame([[10.0, 5.0], [11.0, 6.0], [12.0, 7.0]], index=idx, columns=columns)


def test_download_is_flattened_and_logged(temp_db, monkeypatch):
    monkeypatch.setattr(yahoo.yf, "download", _download_frame)
    run = create_run(date(2024, 1, 4))
    provider = yahoo.build_provider(run)
    frames = provider.fetch_prices([REQUEST])
    frame = frames["ETH-USD"]
    assert list(frame.data.columns) == ["close", "volume"]
    points = frame.to_points()
    assert [p.price for p in points] == [10.0, 11.0, 12.0]
    assert points[0].volume == 5.0
    with session_scope() as session:
        log = session.query(ProviderLog).one()
        assert log.endpoint == "prices"
        assert log.succeeded
        assert len(log.params_hash) == 64


def test_empty_download_is_omitted(temp_db, monkeypatch):
    monkeypatch.setattr(yahoo.yf, "download", lambda *a, **k: pd.DataFrame())
    run = create_run(date(2024, 1, 4))
    provider = yahoo.YahooProvider(run)
    assert provider.fetch_prices([REQUEST]) == {}
    with pytest.raises(DataFetchError):
        fetch_history(provider, "ETH-USD", REQUEST.start, REQUEST.end)


def test_download_errors_are_retried_then_wrapped(temp_db, monkeypatch):
    attempts = []

    def failing(*args, **kwargs):
        attempts.append(1)
        raise ConnectionError("network down")

    monkeypatch.setattr(yahoo.yf, "download", failing)
    run = create_run(date(2024, 1, 4))
    with pytest.raises(DataFetchError) as excinfo:
        yahoo.YahooProvider(run, retries=2).fetch_prices([REQUEST])
    assert len(attempts) == 2
    assert excinfo.value.source == "yahoo"
    assert "network down" in excinfo.value.details["error"]
    with session_scope() as session:
        assert session.query(ProviderLog).filter_by(succeeded=False).count() == 1
