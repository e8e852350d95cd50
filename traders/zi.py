"""
Zero Intelligence (ZI) Agent.

Implements the zero-intelligence robot of Gode & Sunder (1993):
- Buyer: bid drawn uniformly from [price_min, unit value]
- Seller: ask drawn uniformly from [unit cost, price_max]

With ignore_budget_constraint the draw widens to [price_min, price_max] on both
sides, which is the unconstrained ZI control condition that can trade at a loss.

The agent does not observe the market; every wake produces a fresh random quote.

Reference: Gode & Sunder (1993), "Allocative Efficiency of Markets with
Zero-Intelligence Traders", Journal of Political Economy, Vol. 101, No. 1
"""

import math
from typing import TYPE_CHECKING

from traders.base import Agent

if TYPE_CHECKING:
    from engine.simulation import SubmissionContext


class ZIAgent(Agent):
    """
    Zero Intelligence trader.

    Strategy:
    - Bid: Random value in [price_min, value] (or [price_min, price_max] unconstrained)
    - Ask: Random value in [cost, price_max] (or [price_min, price_max] unconstrained)
    """

    def bid_price(self, value: float, ctx: "SubmissionContext") -> float | None:
        high = self.price_max if self.ignore_budget_constraint else min(value, self.price_max)
        return self._draw(self.price_min, high)

    def ask_price(self, cost: float, ctx: "SubmissionContext") -> float | None:
        low = self.price_min if self.ignore_budget_constraint else max(cost, self.price_min)
        return self._draw(low, self.price_max)

    def _draw(self, low: float, high: float) -> float | None:
        """Uniform draw from [low, high]; None if the interval is empty."""
        if self.integer:
            low, high = math.ceil(low), math.floor(high)
            if low > high:
                return None
            return int(self.rng.integers(low, high, endpoint=True))
        if low > high:
            return None
        return low + (high - low) * float(self.rng.random())
