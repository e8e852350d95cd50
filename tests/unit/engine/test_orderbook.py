"""
tests/unit/engine/test_orderbook.py - Continuous double auction matching engine
"""

import pytest

from engine.orderbook import OrderBook, TradeSpec
from engine.orders import OrderError, simple_buy_order, simple_sell_order


@pytest.fixture
def ob():
    """Create a fresh order book with a deterministic clock."""
    ticks = iter(range(1, 10_000))
    return OrderBook(min_price=1, max_price=100, clock=lambda: next(ticks))


@pytest.fixture
def trades(ob):
    events = []
    ob.on_trade(events.append)
    return events


@pytest.fixture
def rejects(ob):
    events = []
    ob.on_reject(lambda order, reason: events.append((order, reason)))
    return events


def submit(ob, order):
    ob.submit(order)
    ob.drain_all()


class TestSubmission:
    def test_submit_is_queued_until_drained(self, ob, trades):
        ob.submit(simple_buy_order(1.0, 1, 50))
        assert len(ob.inbox) == 1
        assert ob.best_bid() is None
        assert ob.drain() is False
        assert ob.best_bid() == 50

    def test_counters_increase(self, ob):
        first = ob.submit(simple_buy_order(1.0, 1, 50))
        second = ob.submit(simple_buy_order(2.0, 2, 50))
        assert second > first

    def test_drain_reports_remaining(self, ob):
        ob.submit(simple_buy_order(1.0, 1, 50))
        ob.submit(simple_buy_order(2.0, 2, 40))
        assert ob.drain() is True
        assert ob.drain() is False
        assert ob.drain() is False

    def test_malformed_order_raises(self, ob):
        with pytest.raises(OrderError):
            ob.submit([1, 2, 3])


class TestRejection:
    def test_price_out_of_range(self, ob, rejects):
        submit(ob, simple_buy_order(1.0, 1, 101))
        submit(ob, simple_sell_order(1.0, 2, 0.5))
        assert len(rejects) == 2
        assert ob.best_bid() is None and ob.best_ask() is None

    def test_zero_price_rejected(self, ob, rejects):
        submit(ob, simple_buy_order(1.0, 1, 0))
        assert "no positive" in rejects[0][1]

    def test_budget_limit(self, rejects):
        limits = {(1, True): 40, (2, False): 60}
        ob = OrderBook(1, 100, budget_limit=lambda i, is_buy: limits[(i, is_buy)])
        ob.on_reject(lambda order, reason: rejects.append((order, reason)))
        submit(ob, simple_buy_order(1.0, 1, 41))
        submit(ob, simple_sell_order(1.0, 2, 59))
        assert [r for _, r in rejects] == ["bid 41 above value 40", "ask 59 below cost 60"]
        submit(ob, simple_buy_order(2.0, 1, 40))
        assert ob.best_bid() == 40

    def test_rejection_leaves_existing_orders(self, ob, rejects):
        submit(ob, simple_buy_order(1.0, 1, 50))
        submit(ob, simple_buy_order(2.0, 1, 500))
        assert len(rejects) == 1
        assert ob.best_bid() == 50


class TestMatching:
    def test_crossing_buy_trades_at_resting_ask(self, ob, trades):
        submit(ob, simple_sell_order(1.0, 2, 30))
        submit(ob, simple_buy_order(2.0, 1, 50))
        assert trades == [TradeSpec(t=2.0, prices=[30], total_q=1, buy_ids=[1], sell_ids=[2])]
        assert ob.best_ask() is None and ob.best_bid() is None
        assert ob.last_trade_price == 30

    def test_crossing_sell_trades_at_resting_bid(self, ob, trades):
        submit(ob, simple_buy_order(1.0, 1, 50))
        submit(ob, simple_sell_order(2.0, 2, 30))
        assert trades[0].price == 50
        assert trades[0].buy_ids == [1] and trades[0].sell_ids == [2]

    def test_no_cross_rests(self, ob, trades):
        submit(ob, simple_buy_order(1.0, 1, 40))
        submit(ob, simple_sell_order(2.0, 2, 60))
        assert trades == []
        assert (ob.best_bid(), ob.best_ask()) == (40, 60)

    def test_price_priority(self, ob, trades):
        submit(ob, simple_sell_order(1.0, 3, 45))
        submit(ob, simple_sell_order(2.0, 4, 35))
        submit(ob, simple_buy_order(3.0, 1, 50))
        assert trades[0].sell_ids == [4]
        assert trades[0].price == 35

    def test_time_priority(self, ob, trades):
        submit(ob, simple_buy_order(1.0, 1, 50))
        submit(ob, simple_buy_order(2.0, 2, 50))
        submit(ob, simple_sell_order(3.0, 3, 50))
        assert trades[0].buy_ids == [1]
        assert ob.best_bid() == 50

    def test_trade_count(self, ob, trades):
        for i in range(3):
            submit(ob, simple_buy_order(float(i), 1, 50))
            submit(ob, simple_sell_order(float(i), 2, 50))
        assert ob.trade_count == 3


class TestStaleRestingOrders:
    @pytest.fixture
    def limits(self):
        return {(1, True): 100, (3, True): 100}

    @pytest.fixture
    def budget_ob(self, limits):
        ticks = iter(range(1, 10_000))
        return OrderBook(
            1, 100, budget_limit=lambda i, is_buy: limits.get((i, is_buy)), clock=lambda: next(ticks)
        )

    def test_resting_bid_over_next_value_is_dropped(self, budget_ob, limits):
        submit(budget_ob, simple_buy_order(1.0, 1, 90, keep_old_orders=True))
        submit(budget_ob, simple_buy_order(2.0, 1, 90, keep_old_orders=True))
        submit(budget_ob, simple_sell_order(3.0, 2, 50))
        assert budget_ob.trade_count == 1
        # Agent 1 moves on to a unit worth 10
        limits[(1, True)] = 10
        submit(budget_ob, simple_sell_order(4.0, 2, 60))
        assert budget_ob.trade_count == 1
        assert budget_ob.best_bid() is None
        assert budget_ob.best_ask() == 60

    def test_matching_continues_past_dropped_bid(self, budget_ob, limits):
        events = []
        budget_ob.on_trade(events.append)
        submit(budget_ob, simple_buy_order(1.0, 1, 90))
        submit(budget_ob, simple_buy_order(2.0, 3, 70))
        limits[(1, True)] = 10
        submit(budget_ob, simple_sell_order(3.0, 2, 60))
        assert [(e.price, e.buy_ids) for e in events] == [(70, [3])]
        assert budget_ob.best_bid() is None

    def test_resting_ask_under_next_cost_is_dropped(self, budget_ob, limits):
        limits[(2, False)] = 5
        submit(budget_ob, simple_sell_order(1.0, 2, 20))
        limits[(2, False)] = 30
        submit(budget_ob, simple_buy_order(2.0, 1, 25))
        assert budget_ob.trade_count == 0
        assert budget_ob.best_ask() is None
        assert budget_ob.best_bid() == 25


class TestCancelReplace:
    def test_new_order_replaces_old(self, ob):
        submit(ob, simple_buy_order(1.0, 1, 40))
        submit(ob, simple_buy_order(2.0, 1, 30))
        assert len(ob.bids) == 1
        assert ob.best_bid() == 30

    def test_keep_old_orders(self, ob):
        submit(ob, simple_buy_order(1.0, 1, 40))
        submit(ob, simple_buy_order(2.0, 1, 30, keep_old_orders=True))
        assert len(ob.bids) == 2

    def test_cancel_all(self, ob):
        submit(ob, simple_buy_order(1.0, 1, 40, keep_old_orders=True))
        submit(ob, simple_buy_order(2.0, 1, 30, keep_old_orders=True))
        submit(ob, simple_sell_order(3.0, 2, 90))
        assert ob.cancel_all(1) == 2
        assert ob.best_bid() is None
        assert ob.best_ask() == 90
