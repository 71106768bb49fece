from datetime import date, timedelta

import pytest

from coin_valuation.analytics.series import (
    PricePoint,
    align_monthly,
    average_volume,
    monthly_closes,
    period_returns,
)


def _daily(start, days, price=lambda i: 100.0 + i, volume=None):
    return [PricePoint(start + timedelta(days=i), price(i), volume) for i in range(days)]


def test_period_returns_length_and_values():
    assert period_returns([100, 110, 99]) == pytest.approx([0.1, -0.1])
    assert period_returns([100]) == []


def test_period_returns_skips_non_positive_base():
    assert period_returns([0, 10, 20]) == pytest.approx([1.0])


def test_monthly_closes_take_last_price_of_month():
    points = _daily(date(2024, 1, 1), 60)
    closes = monthly_closes(reversed(points))
    assert list(closes.values) == pytest.approx([130.0, 159.0])
    assert str(closes.index[0]) == "2024-01"


def test_align_monthly_keeps_shared_months_only():
    asset = _daily(date(2024, 1, 1), 90)
    bench = _daily(date(2024, 2, 1), 90, price=lambda i: 50.0)
    asset_closes, bench_closes = align_monthly(asset, bench)
    assert len(asset_closes) == len(bench_closes) == 2
    assert bench_closes == [50.0, 50.0]


def test_average_volume_uses_recent_points():
    points = _daily(date(2024, 1, 1), 10, volume=5.0)
    points[-1] = PricePoint(points[-1].timestamp, 1.0, 15.0)
    assert average_volume(points, 2) == pytest.approx(10.0)
    assert average_volume(_daily(date(2024, 1, 1), 3), 30) is None
