"""
Agent pool: the roster of trading agents and their wake schedule.

The pool owns no market and no logs. It advances simulated time by handing
out wake events in time order; whoever iterates wake_events() decides what a
wake does and how fast (immediately, cooperatively, or paced to the wall
clock).
"""

import heapq
import logging
from typing import Iterator, Sequence

from engine.orderbook import TradeSpec
from traders.base import MONEY, Agent

logger = logging.getLogger(__name__)

WakeEvent = tuple[float, Agent]


class Pool:
    """
    An ordered collection of agents.

    Attributes:
        agents: Agents in insertion order
        agents_by_id: Lookup by agent id
    """

    def __init__(self, agents: Sequence[Agent] = ()) -> None:
        self.agents: list[Agent] = []
        self.agents_by_id: dict[int, Agent] = {}
        self._queue: list[tuple[float, int, Agent]] = []
        for agent in agents:
            self.push(agent)

    def push(self, agent: Agent) -> None:
        """
        Add an agent.

        Raises:
            ValueError: If another agent with the same id is already present
        """
        if agent.id in self.agents_by_id:
            raise ValueError(f"duplicate agent id {agent.id}")
        self.agents.append(agent)
        self.agents_by_id[agent.id] = agent

    def __len__(self) -> int:
        return len(self.agents)

    def distribute(self, field: str, good: str, values: Sequence[float]) -> None:
        """
        Deal values round-robin: agent k receives values[k], values[k+n], ...

        Args:
            field: Agent attribute holding per-good lists ("values" or "costs")
            good: Good name
            values: Values to distribute
        """
        n = len(self.agents)
        if n == 0:
            return
        for agent in self.agents:
            getattr(agent, field)[good] = []
        for j, v in enumerate(values):
            getattr(self.agents[j % n], field)[good].append(v)

    # =========================================================================
    # PERIOD LIFECYCLE
    # =========================================================================

    def init_period(self, number: int, start: float, duration: float) -> None:
        """Reset every agent for a new period and build the wake queue."""
        self._queue = []
        for agent in self.agents:
            agent.init_period(number, start, duration)
            if agent.wake_time is not None:
                self._queue.append((agent.wake_time, agent.id, agent))
        heapq.heapify(self._queue)

    def wake_events(self, until: float) -> Iterator[WakeEvent]:
        """
        Yield (wake_time, agent) in time order for wakes before ``until``.

        The agent's next wake is scheduled after the consumer has handled the
        current one, so a wake that exhausts an agent's units also ends its
        schedule. Ties are broken by agent id.
        """
        while self._queue and self._queue[0][0] < until:
            t, _, agent = heapq.heappop(self._queue)
            yield t, agent
            if agent.can_trade() and agent.schedule_next_wake(t) is not None:
                heapq.heappush(self._queue, (agent.wake_time, agent.id, agent))

    def pending_wakes(self) -> int:
        return len(self._queue)

    def settle_trade(self, spec: TradeSpec) -> None:
        """Move goods and money between the buyer and seller of a trade."""
        buyer = self.agents_by_id[spec.buy_ids[0]]
        seller = self.agents_by_id[spec.sell_ids[0]]
        buyer.settle(spec.goods, spec.total_q, spec.price)
        seller.settle(spec.goods, -spec.total_q, spec.price)

    def end_period(self) -> None:
        """Finalize every agent's money balance for the period."""
        self._queue = []
        for agent in self.agents:
            agent.end_period()

    def final_money(self) -> list[float]:
        """Money held by each agent, in pool order."""
        return [agent.inventory[MONEY] for agent in self.agents]
