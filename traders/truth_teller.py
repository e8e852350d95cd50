"""
Truthful Agent.

"A 'truthteller' program which always places bids and asks equal to its true
token valuations." Level-1, nonadaptive, deterministic strategy:
- Bids exactly the unit value, asks exactly the unit cost
- No learning, no prediction, no randomization
"""

import math
from typing import TYPE_CHECKING

from traders.base import Agent

if TYPE_CHECKING:
    from engine.simulation import SubmissionContext


class TruthfulAgent(Agent):
    """
    Truth teller - quotes exactly at the reservation price.

    Quotes outside [price_min, price_max] are clamped into the range, which can
    only move a bid down or an ask up, so the budget constraint still holds.
    """

    def bid_price(self, value: float, ctx: "SubmissionContext") -> float | None:
        if value < self.price_min:
            return None
        return self._round(min(value, self.price_max))

    def ask_price(self, cost: float, ctx: "SubmissionContext") -> float | None:
        if cost > self.price_max:
            return None
        ask = max(cost, self.price_min)
        return math.ceil(ask) if self.integer else ask
