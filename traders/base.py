"""
Abstract base class for trading agents in the single-good market.

An agent holds an inventory of the good ("X") and of money, a list of unit
values (buyers) or unit costs (sellers), and a Poisson wake schedule. When the
pool wakes an agent it receives a SubmissionContext for that one wake event;
the agent decides a price and submits through the context. Agents never hold
a reference to the simulation that owns them.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from engine.simulation import SubmissionContext

GOOD = "X"
MONEY = "money"


class Agent(ABC):
    """
    Abstract base class for all trading agents.

    Attributes:
        id: Unique identifier (1-indexed, assigned by the pool)
        is_buyer: True if buyer, False if seller
        values: Unit values by good (buyers); values[g][k] is the value of unit k+1
        costs: Unit costs by good (sellers); costs[g][k] is the cost of unit k+1
        inventory: Holdings by good, including money; reset every period
        rate: Poisson wake rate per unit of simulated time
        wake_time: Simulated time of the next wake event (None = not scheduled)
        period_number: Current period number
    """

    def __init__(
        self,
        is_buyer: bool,
        rate: float = 1.0,
        price_min: float = 0,
        price_max: float = 1000,
        integer: bool = False,
        ignore_budget_constraint: bool = False,
        seed: int | None = None,
    ) -> None:
        """
        Initialize a trading agent.

        Args:
            is_buyer: True for buyers, False for sellers
            rate: Poisson wake rate (wakes per unit of simulated time)
            price_min: Lowest price the agent may quote
            price_max: Highest price the agent may quote
            integer: Quote integer prices only
            ignore_budget_constraint: Allow bids above value / asks below cost
            seed: Random seed for the wake schedule and price draws

        Raises:
            ValueError: If rate is not positive
        """
        if rate <= 0:
            raise ValueError(f"rate must be > 0, got {rate}")

        self.id = 0
        self.is_buyer = is_buyer
        self.rate = rate
        self.price_min = price_min
        self.price_max = price_max
        self.integer = integer
        self.ignore_budget_constraint = ignore_budget_constraint
        self.rng = np.random.default_rng(seed)

        self.values: dict[str, list[float]] = {GOOD: []}
        self.costs: dict[str, list[float]] = {GOOD: []}
        self.inventory: dict[str, float] = {GOOD: 0, MONEY: 0}
        self.period_number = 0
        self.period_start = 0.0
        self.period_end = 0.0
        self.wake_time: float | None = None

    # =========================================================================
    # UNIT VALUES AND COSTS
    # =========================================================================

    def unit_value(self, good: str = GOOD) -> float | None:
        """Value of the next unit this buyer would buy, or None if none left."""
        held = int(self.inventory.get(good, 0))
        values = self.values.get(good, [])
        if 0 <= held < len(values):
            return values[held]
        return None

    def unit_cost(self, good: str = GOOD) -> float | None:
        """Cost of the next unit this seller would sell, or None if none left."""
        sold = -int(self.inventory.get(good, 0))
        costs = self.costs.get(good, [])
        if 0 <= sold < len(costs):
            return costs[sold]
        return None

    def limit(self, good: str = GOOD) -> float | None:
        """Reservation price for the next unit: value for buyers, cost for sellers."""
        return self.unit_value(good) if self.is_buyer else self.unit_cost(good)

    def can_trade(self) -> bool:
        """Check if agent has a unit left to trade this period."""
        return self.limit() is not None

    # =========================================================================
    # LIFECYCLE METHODS
    # =========================================================================

    def init_period(self, number: int, start: float, duration: float) -> None:
        """
        Called at the start of a trading period.

        Inventory resets to zero goods and zero money; values and costs stay.
        """
        self.period_number = number
        self.period_start = start
        self.period_end = start + duration
        self.inventory = {GOOD: 0, MONEY: 0}
        self.wake_time = None
        self.schedule_next_wake(start)

    def schedule_next_wake(self, now: float) -> float | None:
        """
        Draw the next wake time (exponential inter-arrival at ``rate``).

        Returns:
            The new wake time, or None when the agent will not wake again this
            period
        """
        wake = now + float(self.rng.exponential(1.0 / self.rate))
        self.wake_time = wake if wake < self.period_end else None
        return self.wake_time

    def end_period(self) -> None:
        """
        Redeem held units at value and charge sold units at cost.

        After this call inventory[MONEY] is the agent's profit for the period.
        """
        held = int(self.inventory.get(GOOD, 0))
        if self.is_buyer:
            redeemed = sum(self.values[GOOD][:held])
            self.inventory[MONEY] += redeemed
        else:
            charged = sum(self.costs[GOOD][:-held]) if held < 0 else 0
            self.inventory[MONEY] -= charged
        self.inventory[GOOD] = 0

    def settle(self, good: str, quantity: int, price: float) -> None:
        """Apply a trade: +quantity for a purchase, -quantity for a sale."""
        self.inventory[good] = self.inventory.get(good, 0) + quantity
        self.inventory[MONEY] = self.inventory.get(MONEY, 0) - quantity * price

    # =========================================================================
    # DECISIONS
    # =========================================================================

    def wake(self, ctx: "SubmissionContext") -> None:
        """
        Handle a wake event: quote a price for the next unit, if any.

        Args:
            ctx: Order-submission capability for this wake event only
        """
        if self.is_buyer:
            value = self.unit_value(GOOD)
            if value is None:
                return
            price = self.bid_price(value, ctx)
            if price is not None:
                ctx.bid(GOOD, price)
        else:
            cost = self.unit_cost(GOOD)
            if cost is None:
                return
            price = self.ask_price(cost, ctx)
            if price is not None:
                ctx.ask(GOOD, price)

    @abstractmethod
    def bid_price(self, value: float, ctx: "SubmissionContext") -> float | None:
        """Return a bid for a unit worth ``value``, or None to pass."""

    @abstractmethod
    def ask_price(self, cost: float, ctx: "SubmissionContext") -> float | None:
        """Return an ask for a unit costing ``cost``, or None to pass."""

    def _round(self, price: float) -> float:
        return int(price) if self.integer else price

    def __repr__(self) -> str:
        agent_type = "Buyer" if self.is_buyer else "Seller"
        return (
            f"{self.__class__.__name__}(id={self.id}, type={agent_type}, "
            f"inventory={self.inventory})"
        )
