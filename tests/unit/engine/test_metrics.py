"""
Tests for period analytics.
"""

import pytest

from engine.event_logger import LOG_HEADERS
from engine.metrics import gini, ohlc_row, period_surplus, price_statistics, trades_to_ohlc


class TestGini:
    def test_equal_distribution(self):
        assert gini([5, 5, 5, 5]) == 0.0

    def test_all_to_one(self):
        # Sample correction makes total concentration exactly 1
        assert gini([0, 0, 0, 10]) == pytest.approx(1.0)

    def test_two_values(self):
        # 1/6 before the n/(n-1) correction
        assert gini([1, 2]) == pytest.approx(1 / 3)

    def test_order_independent(self):
        assert gini([3, 1, 2]) == pytest.approx(gini([1, 2, 3]))

    @pytest.mark.parametrize("values", [[], [7], [0, 0, 0]])
    def test_degenerate(self, values):
        assert gini(values) == 0.0


class TestPriceStatistics:
    def test_single_price(self):
        stats = price_statistics([42])
        assert stats["open"] == stats["close"] == stats["high"] == stats["low"] == 42
        assert stats["volume"] == 1
        assert stats["sd"] == 0
        assert stats["p25"] == stats["p75"] == 42

    def test_ordering(self):
        stats = price_statistics([50, 70, 40, 60])
        assert (stats["open"], stats["high"], stats["low"], stats["close"]) == (50, 70, 40, 60)
        assert stats["volume"] == 4
        assert stats["median"] == 55
        assert stats["mean"] == 55
        # Population standard deviation
        assert stats["sd"] == pytest.approx(11.180339887)

    def test_hazen_percentiles(self):
        stats = price_statistics([10, 20, 30, 40])
        assert stats["p25"] == pytest.approx(15.0)
        assert stats["p75"] == pytest.approx(35.0)

    def test_empty(self):
        with pytest.raises(ValueError):
            price_statistics([])


def test_ohlc_row_matches_header():
    row = ohlc_row(3, [10, 20], [5, 5])
    assert len(row) == len(LOG_HEADERS["ohlc"])
    assert row[0] == 3
    assert row[-1] == 0.0


def test_period_surplus():
    rows = [
        [1, 1.0, 1.0, 50, 1, 80, 30, 3, 20, 30],
        [1, 2.0, 2.0, 60, 2, 70, 10, 4, 40, 20],
    ]
    assert period_surplus(rows) == 90


def test_trades_to_ohlc_skips_quiet_periods():
    rows = [
        [1, 1.0, 1.0, 50, 1, 80, 30, 2, 20, 30],
        [3, 2001.0, 1.0, 40, 1, 80, 40, 2, 20, 20],
    ]
    profits = [[30, 30], [0, 0], [40, 20]]
    result = trades_to_ohlc(rows, profits)
    assert [r[0] for r in result] == [1, 3]
    assert result[1][1] == 40
