# tests/unit/traders/test_kaplan.py
"""
Tests for the sniper agents.

Verifies the three jump-in rules of KaplanSniperAgent:
1. Narrow spread
2. Quote beats last period's extreme price
3. Time running out
and that neither sniper ever accepts an unprofitable quote.
"""

from types import SimpleNamespace

import pytest

from traders.kaplan import KaplanSniperAgent, MedianSniperAgent


def ctx(best_bid=None, best_ask=None, tp=100.0, previous=None):
    return SimpleNamespace(
        best_bid=best_bid,
        best_ask=best_ask,
        tp=tp,
        period_duration=1000.0,
        previous_period=previous,
    )


@pytest.fixture
def buyer():
    return KaplanSniperAgent(is_buyer=True, price_max=200)


@pytest.fixture
def seller():
    return KaplanSniperAgent(is_buyer=False, price_max=200)


class TestKaplanBuyer:
    def test_waits_without_ask(self, buyer):
        assert buyer.bid_price(100, ctx(best_bid=50)) is None

    def test_waits_on_wide_spread(self, buyer):
        assert buyer.bid_price(100, ctx(best_bid=20, best_ask=80)) is None

    def test_narrow_spread(self, buyer):
        assert buyer.bid_price(100, ctx(best_bid=76, best_ask=80)) == 80

    def test_beats_previous_low(self, buyer):
        previous = {"low": 85, "high": 95, "median": 90}
        assert buyer.bid_price(100, ctx(best_ask=80, previous=previous)) == 80

    def test_time_running_out(self, buyer):
        assert buyer.bid_price(100, ctx(best_ask=80, tp=950.0)) == 80

    def test_never_unprofitable(self, buyer):
        assert buyer.bid_price(80, ctx(best_bid=79, best_ask=80, tp=999.0)) is None


class TestKaplanSeller:
    def test_narrow_spread(self, seller):
        assert seller.ask_price(10, ctx(best_bid=76, best_ask=80)) == 76

    def test_beats_previous_high(self, seller):
        previous = {"low": 40, "high": 70, "median": 55}
        assert seller.ask_price(10, ctx(best_bid=75, previous=previous)) == 75

    def test_waits_below_previous_high(self, seller):
        previous = {"low": 40, "high": 70, "median": 55}
        assert seller.ask_price(10, ctx(best_bid=60, previous=previous)) is None

    def test_never_unprofitable(self, seller):
        assert seller.ask_price(76, ctx(best_bid=76, best_ask=80, tp=999.0)) is None


class TestMedianSniper:
    def test_buyer_at_median(self):
        buyer = MedianSniperAgent(is_buyer=True, price_max=200)
        previous = {"low": 40, "high": 70, "median": 55}
        assert buyer.bid_price(100, ctx(best_ask=55, previous=previous)) == 55
        assert buyer.bid_price(100, ctx(best_ask=56, previous=previous)) is None

    def test_seller_at_median(self):
        seller = MedianSniperAgent(is_buyer=False, price_max=200)
        previous = {"low": 40, "high": 70, "median": 55}
        assert seller.ask_price(10, ctx(best_bid=55, previous=previous)) == 55
        assert seller.ask_price(10, ctx(best_bid=54, previous=previous)) is None

    def test_ignores_narrow_spread(self):
        buyer = MedianSniperAgent(is_buyer=True, price_max=200)
        assert buyer.bid_price(100, ctx(best_bid=79, best_ask=80)) is None

    def test_time_running_out(self):
        seller = MedianSniperAgent(is_buyer=False, price_max=200)
        assert seller.ask_price(10, ctx(best_bid=30, tp=901.0)) == 30
