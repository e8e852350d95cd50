"""
Sniper agents.

Kaplan's strategy won the 1993 Santa Fe double auction tournament by waiting
in the background and "stealing the deal": it never makes the market, it only
accepts the standing quote on the other side once that quote is good enough.

KaplanSniperAgent jumps in when any of these holds:
1. The bid/ask spread is narrow (relative spread below spread_threshold)
2. The standing quote beats last period's extreme price (low for buyers,
   high for sellers)
3. Time is running out (the last end_fraction of the period)

MedianSniperAgent is the simpler variant that benchmarks against last
period's median price instead, and also snipes when time is running out.

Both only ever accept strictly profitable quotes, so the budget constraint
always holds.
"""

from typing import TYPE_CHECKING

from traders.base import Agent

if TYPE_CHECKING:
    from engine.simulation import SubmissionContext


class KaplanSniperAgent(Agent):
    """Kaplan's background sniper."""

    spread_threshold = 0.10
    end_fraction = 0.10

    def _time_running_out(self, ctx: "SubmissionContext") -> bool:
        return ctx.tp >= (1.0 - self.end_fraction) * ctx.period_duration

    def _narrow_spread(self, ctx: "SubmissionContext") -> bool:
        bid, ask = ctx.best_bid, ctx.best_ask
        if bid is None or ask is None or ask <= 0:
            return False
        return (ask - bid) / ask < self.spread_threshold

    def bid_price(self, value: float, ctx: "SubmissionContext") -> float | None:
        ask = ctx.best_ask
        if ask is None or ask >= value:
            return None
        previous = ctx.previous_period
        if (
            self._narrow_spread(ctx)
            or (previous is not None and ask <= previous["low"])
            or self._time_running_out(ctx)
        ):
            return ask
        return None

    def ask_price(self, cost: float, ctx: "SubmissionContext") -> float | None:
        bid = ctx.best_bid
        if bid is None or bid <= cost:
            return None
        previous = ctx.previous_period
        if (
            self._narrow_spread(ctx)
            or (previous is not None and bid >= previous["high"])
            or self._time_running_out(ctx)
        ):
            return bid
        return None


class MedianSniperAgent(KaplanSniperAgent):
    """Snipes quotes at or better than last period's median price."""

    def bid_price(self, value: float, ctx: "SubmissionContext") -> float | None:
        ask = ctx.best_ask
        if ask is None or ask >= value:
            return None
        previous = ctx.previous_period
        if (previous is not None and ask <= previous["median"]) or self._time_running_out(ctx):
            return ask
        return None

    def ask_price(self, cost: float, ctx: "SubmissionContext") -> float | None:
        bid = ctx.best_bid
        if bid is None or bid <= cost:
            return None
        previous = ctx.previous_period
        if (previous is not None and bid >= previous["median"]) or self._time_running_out(ctx):
            return bid
        return None
