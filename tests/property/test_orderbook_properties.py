# tests/property/test_orderbook_properties.py
"""
Property-based tests for OrderBook invariants using Hypothesis.

These tests verify that key invariants hold across a wide range of order
streams, catching edge cases that example-based tests might miss.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from engine.orderbook import OrderBook
from engine.orders import simple_buy_order, simple_sell_order

# =============================================================================
# Strategies for generating test data
# =============================================================================


@st.composite
def order_streams(draw):
    """Generate a price range and a stream of (is_buy, agent_id, price, keep) orders."""
    min_price = draw(st.integers(min_value=1, max_value=50))
    max_price = draw(st.integers(min_value=min_price + 10, max_value=500))
    orders = draw(
        st.lists(
            st.tuples(
                st.booleans(),
                st.integers(min_value=1, max_value=8),
                st.integers(min_value=0, max_value=max_price + 20),
                st.booleans(),
            ),
            max_size=80,
        )
    )
    return min_price, max_price, orders


def play(min_price, max_price, orders):
    ticks = iter(range(1, 100_000))
    ob = OrderBook(min_price, max_price, clock=lambda: next(ticks))
    trades, rejects = [], []
    ob.on_trade(trades.append)
    ob.on_reject(lambda order, reason: rejects.append(order))
    for t, (is_buy, agent_id, price, keep) in enumerate(orders, start=1):
        build = simple_buy_order if is_buy else simple_sell_order
        ob.submit(build(float(t), agent_id, price, keep))
        ob.drain_all()
    return ob, trades, rejects


# =============================================================================
# Property Tests: OrderBook Invariants
# =============================================================================


class TestOrderBookInvariants:
    """Property tests for OrderBook invariants."""

    @given(order_streams())
    @settings(max_examples=100)
    def test_book_never_crossed(self, stream):
        """After every drain the best bid is below the best ask."""
        ob, _, _ = play(*stream)
        if ob.best_bid() is not None and ob.best_ask() is not None:
            assert ob.best_bid() < ob.best_ask()

    @given(order_streams())
    @settings(max_examples=100)
    def test_trades_are_single_unit_in_range(self, stream):
        min_price, max_price, _ = stream
        _, trades, _ = play(*stream)
        for trade in trades:
            assert trade.total_q == 1
            assert len(trade.buy_ids) == 1 and len(trade.sell_ids) == 1
            assert min_price <= trade.price <= max_price

    @given(order_streams())
    @settings(max_examples=100)
    def test_every_order_accounted_for(self, stream):
        """Each order is rejected, traded, resting or cancelled; never duplicated."""
        _, _, orders = stream
        ob, trades, rejects = play(*stream)
        resting = len(ob.bids) + len(ob.asks)
        assert len(rejects) + 2 * len(trades) + resting <= len(orders)
        assert ob.trade_count == len(trades)

    @given(order_streams())
    @settings(max_examples=100)
    def test_rejects_are_out_of_range(self, stream):
        min_price, max_price, _ = stream
        _, _, rejects = play(*stream)
        for order in rejects:
            price = max(order[7], order[8])
            assert price <= 0 or price < min_price or price > max_price

    @given(order_streams())
    @settings(max_examples=50)
    def test_deterministic(self, stream):
        """The same order stream always produces the same trades."""
        _, first, _ = play(*stream)
        _, second, _ = play(*stream)
        assert first == second

    @given(order_streams())
    @settings(max_examples=100)
    def test_cancel_replace_one_order_per_agent(self, stream):
        min_price, max_price, orders = stream
        orders = [(is_buy, agent_id, price, False) for is_buy, agent_id, price, _ in orders]
        ob, _, _ = play(min_price, max_price, orders)
        ids = [o[4] for o in ob.bids] + [o[4] for o in ob.asks]
        assert len(ids) == len(set(ids))
