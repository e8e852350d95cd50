"""
Deterministic replay of a finished run.

The matching engine is a pure function of its ordered input stream, so the
accepted orders of a run (order logs minus reject logs) are enough to rebuild
every trade. replay() feeds them back, at their original times and with the
original agent ids, into a fresh Simulation built from the same configuration.
The trade, OHLC, effalloc and profit logs of the replay match the original
row for row.
"""

import dataclasses
import logging
from collections import Counter, defaultdict, deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

from engine.config import RunMode
from engine.event_logger import LOG_HEADERS, Log
from traders.base import Agent

if TYPE_CHECKING:
    from engine.simulation import Simulation, SubmissionContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcceptedOrder:
    """One order the matching engine accepted during a run."""

    period: int
    t: float
    agent_id: int
    is_buy: bool
    price: float


def extract_accepted_orders(logs: Mapping[str, Log]) -> list[AcceptedOrder]:
    """
    Collect accepted orders from a run's order and reject logs.

    Args:
        logs: Named logs of a Simulation

    Returns:
        Accepted orders sorted by period then time
    """
    header = LOG_HEADERS["buyorder"]
    period, t, agent_id = (header.index(k) for k in ("period", "t", "id"))
    orders = []
    for side, is_buy, price_key in (
        ("buyorder", True, "buyLimitPrice"),
        ("sellorder", False, "sellLimitPrice"),
    ):
        price = header.index(price_key)
        rejected = Counter(tuple(row) for row in logs["reject" + side].rows)
        for row in logs[side].rows:
            key = tuple(row)
            if rejected[key]:
                rejected[key] -= 1
                continue
            orders.append(
                AcceptedOrder(
                    period=int(row[period]),
                    t=row[t],
                    agent_id=int(row[agent_id]),
                    is_buy=is_buy,
                    price=row[price],
                )
            )
    orders.sort(key=lambda o: (o.period, o.t, o.agent_id))
    return orders


class ReplayAgent(Agent):
    """
    Agent that wakes exactly when a logged agent submitted an order and
    quotes the logged price.

    Attributes:
        script: Per-period (t, price) pairs in time order
    """

    def __init__(self, is_buyer: bool, script: Mapping[int, list[tuple[float, float]]], **kwargs: Any) -> None:
        super().__init__(is_buyer, **kwargs)
        self.script = script
        self._pending: deque[tuple[float, float]] = deque()
        self._price: float | None = None

    def init_period(self, number: int, start: float, duration: float) -> None:
        self._pending = deque(self.script.get(number, []))
        super().init_period(number, start, duration)

    def schedule_next_wake(self, now: float) -> float | None:
        if self._pending:
            self.wake_time, self._price = self._pending.popleft()
        else:
            self.wake_time, self._price = None, None
        return self.wake_time

    def bid_price(self, value: float, ctx: "SubmissionContext") -> float | None:
        return self._price

    def ask_price(self, cost: float, ctx: "SubmissionContext") -> float | None:
        return self._price


def replay(sim: "Simulation", orders: list[AcceptedOrder] | None = None) -> "Simulation":
    """
    Resubmit a run's accepted orders into a fresh, synchronous Simulation.

    Args:
        sim: A Simulation that has run at least one period
        orders: Orders to replay (default: extracted from sim.logs)

    Returns:
        The replay Simulation, after running as many periods as sim did
    """
    from engine.simulation import Simulation

    if orders is None:
        orders = extract_accepted_orders(sim.logs)
    scripts: dict[int, dict[int, list[tuple[float, float]]]] = defaultdict(lambda: defaultdict(list))
    for o in orders:
        scripts[o.agent_id][o.period].append((o.t, o.price))

    def factory(agent_type: str, is_buyer: bool, player_id: int, **kwargs: Any) -> Agent:
        return ReplayAgent(is_buyer, scripts.get(player_id, {}), **kwargs)

    config = dataclasses.replace(
        sim.config,
        periods=sim.period,
        periods_requested=None,
        mode=RunMode.SYNC,
        deadline=None,
        log_to_file_system=False,
        silent=True,
    )
    logger.info(f"replaying {len(orders)} accepted orders over {sim.period} periods")
    return Simulation(config, agent_factory=factory).run()
