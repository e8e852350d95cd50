"""
engine/orderbook.py - Continuous double auction matching engine

Single good, single-unit limit orders with price-time priority:
- An incoming buy trades against the lowest resting ask if ask <= bid
- An incoming sell trades against the highest resting bid if bid >= ask
- The trade executes at the resting order's price
- Unmatched orders rest in the book until cancelled or the book is discarded
- A resting order that no longer fits its owner's budget is dropped when reached

The engine is a pure function of the ordered input stream and the current
book state: there is no randomness, and the local insertion time stamped on
each order is never used for matching.

One OrderBook lives for exactly one period; the simulation builds a fresh
instance at every period start.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable

from sortedcontainers import SortedKeyList

from engine.orders import ORDER_FIELDS, validate_order

logger = logging.getLogger(__name__)

# Column indexes into a submitted (counter and tlocal prepended) order
COL = {name: i for i, name in enumerate(ORDER_FIELDS)}
COUNTER = COL["counter"]
TLOCAL = COL["tlocal"]
T = COL["t"]
TX = COL["tx"]
ID = COL["id"]
CANCEL = COL["cancel"]
Q = COL["q"]
B = COL["b"]
S = COL["s"]


@dataclass
class TradeSpec:
    """
    A trade event emitted by the engine.

    Attributes:
        t: Official time of the order that triggered the trade
        prices: Execution price of each unit traded
        total_q: Total quantity traded
        buy_ids: Agent id of every buyer involved
        sell_ids: Agent id of every seller involved
        goods: Name of the good exchanged
        money: Name of the money good
    """

    t: float
    prices: list[float]
    total_q: int
    buy_ids: list[int]
    sell_ids: list[int]
    goods: str = "X"
    money: str = "money"

    @property
    def price(self) -> float | None:
        return self.prices[0] if self.prices else None


TradeListener = Callable[[TradeSpec], None]
RejectListener = Callable[[list[float], str], None]
# (agent_id, is_buy) -> value (buys) or cost (sells) limit, None = unconstrained
BudgetLimit = Callable[[int, bool], float | None]


@dataclass
class _Listeners:
    trade: list[TradeListener] = field(default_factory=list)
    reject: list[RejectListener] = field(default_factory=list)


class OrderBook:
    """
    Matching engine for one trading period.

    Attributes:
        min_price: Lowest acceptable limit price (inclusive)
        max_price: Highest acceptable limit price (inclusive)
        inbox: Submitted orders waiting to be processed
        bids: Resting buy orders, best (highest, oldest) first
        asks: Resting sell orders, best (lowest, oldest) first
        last_trade_price: Price of the most recent trade (None before any trade)
        trade_count: Number of trades executed
    """

    def __init__(
        self,
        min_price: float,
        max_price: float,
        budget_limit: BudgetLimit | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize an empty book.

        Args:
            min_price: Minimum allowed limit price (inclusive)
            max_price: Maximum allowed limit price (inclusive)
            budget_limit: Optional per-agent value/cost limit; orders bidding
                above value or asking below cost are rejected, and resting
                orders that no longer fit are dropped when a match reaches them
            clock: Source of local insertion timestamps
        """
        self.min_price = min_price
        self.max_price = max_price
        self.budget_limit = budget_limit
        self.clock = clock

        self.inbox: deque[list[float]] = deque()
        self.bids = SortedKeyList(key=lambda o: (-o[B], o[COUNTER]))
        self.asks = SortedKeyList(key=lambda o: (o[S], o[COUNTER]))
        self.last_trade_price: float | None = None
        self.trade_count = 0
        self._counter = 0
        self._listeners = _Listeners()

    # =========================================================================
    # EVENTS
    # =========================================================================

    def on_trade(self, listener: TradeListener) -> None:
        """Register a callback invoked synchronously for every trade."""
        self._listeners.trade.append(listener)

    def on_reject(self, listener: RejectListener) -> None:
        """Register a callback invoked synchronously for every refused order."""
        self._listeners.reject.append(listener)

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def submit(self, order: list[float]) -> int:
        """
        Enqueue an order built by engine.orders.

        Returns:
            The counter assigned to the order

        Raises:
            OrderError: If the order violates the single-unit order invariants
        """
        validate_order(order)
        self._counter += 1
        self.inbox.append([self._counter, self.clock(), *order])
        return self._counter

    def drain(self) -> bool:
        """
        Process one queued order.

        Returns:
            True if more orders remain in the inbox
        """
        if not self.inbox:
            return False
        self.process(self.inbox.popleft())
        return bool(self.inbox)

    def drain_all(self) -> None:
        """Process the inbox until it is empty."""
        while self.drain():
            pass

    def process(self, order: list[float]) -> None:
        """Apply one submitted order to the book."""
        reason = self.reject_reason(order)
        if reason is not None:
            logger.debug(f"order {order[COUNTER]} from agent {order[ID]} rejected: {reason}")
            for listener in self._listeners.reject:
                listener(order, reason)
            return

        if order[CANCEL]:
            self.cancel_all(order[ID])

        if order[B] > 0:
            self._match_buy(order)
        else:
            self._match_sell(order)

    def reject_reason(self, order: list[float]) -> str | None:
        """Return why the engine refuses an order, or None if acceptable."""
        is_buy = order[B] > 0
        if not is_buy and not order[S] > 0:
            return "no positive limit price"
        price = order[B] if is_buy else order[S]
        if price < self.min_price or price > self.max_price:
            return f"price {price} outside [{self.min_price}, {self.max_price}]"
        if order[TX] and order[TX] <= order[T]:
            return "expired on arrival"
        if self.budget_limit is not None:
            limit = self.budget_limit(int(order[ID]), is_buy)
            if limit is not None:
                if is_buy and price > limit:
                    return f"bid {price} above value {limit}"
                if not is_buy and price < limit:
                    return f"ask {price} below cost {limit}"
        return None

    def cancel_all(self, agent_id: float) -> int:
        """Remove every resting order of an agent; returns how many were removed."""
        removed = 0
        for book in (self.bids, self.asks):
            for o in [o for o in book if o[ID] == agent_id]:
                book.remove(o)
                removed += 1
        return removed

    # =========================================================================
    # MATCHING
    # =========================================================================

    def _match_buy(self, order: list[float]) -> None:
        while self.asks and self.asks[0][S] <= order[B]:
            resting = self.asks.pop(0)
            if self._over_budget(resting):
                continue
            self._trade(order[T], resting[S], buyer=order[ID], seller=resting[ID])
            return
        self.bids.add(order)

    def _match_sell(self, order: list[float]) -> None:
        while self.bids and self.bids[0][B] >= order[S]:
            resting = self.bids.pop(0)
            if self._over_budget(resting):
                continue
            self._trade(order[T], resting[B], buyer=resting[ID], seller=order[ID])
            return
        self.asks.add(order)

    def _over_budget(self, resting: list[float]) -> bool:
        """
        Re-check a resting order against its owner's current unit.

        An order accepted for one unit may still rest after that unit traded;
        it is dropped once its price violates the next unit's value or cost.
        """
        if self.budget_limit is None:
            return False
        is_buy = resting[B] > 0
        limit = self.budget_limit(int(resting[ID]), is_buy)
        if limit is None:
            return False
        stale = resting[B] > limit if is_buy else resting[S] < limit
        if stale:
            logger.debug(f"order {resting[COUNTER]} from agent {resting[ID]} dropped: over budget")
        return stale

    def _trade(self, t: float, price: float, buyer: float, seller: float) -> None:
        self.last_trade_price = price
        self.trade_count += 1
        spec = TradeSpec(
            t=t,
            prices=[price],
            total_q=1,
            buy_ids=[int(buyer)],
            sell_ids=[int(seller)],
        )
        for listener in self._listeners.trade:
            listener(spec)

    # =========================================================================
    # MARKET VIEW
    # =========================================================================

    def best_bid(self) -> float | None:
        """Highest resting bid price, or None."""
        return self.bids[0][B] if self.bids else None

    def best_ask(self) -> float | None:
        """Lowest resting ask price, or None."""
        return self.asks[0][S] if self.asks else None
