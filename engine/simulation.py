"""
Simulation orchestrator for repeated trading periods of a single market.

A Simulation owns one agent pool, the matching engine of the active period and
every log. Each period runs the same state machine:

1. INITIALIZING: pool clock reset, fresh OrderBook, trade/reject handlers attached
2. ACTIVE: agents wake in time order; each quote becomes an order that is
   submitted and drained before the next wake is considered
3. SETTLING: pool end-of-period callbacks redeem units, money is final
4. LOGGED: profit, OHLC and effalloc rows are appended

Only the ACTIVE phase differs between execution disciplines (see
engine.scheduler). Agents reach the market through a SubmissionContext built
for a single wake event, never through a reference to the simulation.
"""

import asyncio
import logging
from numbers import Real
from pathlib import Path
from typing import Any, Callable

import pandas as pd
from omegaconf import DictConfig

from engine.agent_factory import create_agent, round_robin
from engine.config import RunMode, SimulationConfig, load_config
from engine.efficiency import (
    calculate_allocative_efficiency,
    calculate_equilibrium_price,
    calculate_max_surplus,
)
from engine.event_logger import LOG_HEADERS, LOG_NAMES, Log
from engine.metrics import ohlc_row, period_surplus
from engine.orderbook import OrderBook, TradeSpec
from engine.orders import OrderError, simple_buy_order, simple_sell_order
from engine.pool import Pool
from engine.scheduler import advance_strategy, deadline_reached
from traders.base import GOOD, Agent

logger = logging.getLogger(__name__)


class TradeLogError(RuntimeError):
    """Raised when a trade event breaks the single-unit trade invariants."""


AgentFactory = Callable[..., Agent]


class SubmissionContext:
    """
    Order-submission capability handed to an agent for one wake event.

    Attributes:
        agent: The agent being woken
        t: Official simulation time of the wake
        tp: Time since the start of the period (t mod period duration)
        period_duration: Length of a period in simulated time
        previous_period: OHLC row of the period just before this one as a dict
            (None in the first period or when that period had no trades)
    """

    def __init__(
        self,
        submit: Callable[[Agent, bool, float, float], None],
        market: OrderBook,
        agent: Agent,
        t: float,
        period_duration: float,
        previous_period: dict[str, Any] | None,
    ) -> None:
        self._submit = submit
        self._market = market
        self.agent = agent
        self.t = t
        self.tp = t % period_duration
        self.period_duration = period_duration
        self.previous_period = previous_period

    @property
    def best_bid(self) -> float | None:
        return self._market.best_bid()

    @property
    def best_ask(self) -> float | None:
        return self._market.best_ask()

    @property
    def last_trade_price(self) -> float | None:
        return self._market.last_trade_price

    def bid(self, good: str, price: float) -> None:
        """Submit a single-unit buy limit order."""
        _check_quote("bid", good, price)
        if good == GOOD:
            self._submit(self.agent, True, self.t, price)

    def ask(self, good: str, price: float) -> None:
        """Submit a single-unit sell limit order."""
        _check_quote("ask", good, price)
        if good == GOOD:
            self._submit(self.agent, False, self.t, price)


def _check_quote(kind: str, good: Any, price: Any) -> None:
    if not isinstance(good, str) or not isinstance(price, Real) or isinstance(price, bool):
        raise OrderError(
            f"{kind} received invalid parameters: {type(good).__name__} {type(price).__name__}"
        )


class Simulation:
    """
    Runs periods of a single-good double auction and logs the results.

    Attributes:
        config: Validated SimulationConfig
        number_of_buyers: Buyer count
        number_of_sellers: Seller count
        number_of_agents: Total agent count
        pool: Every agent (buyers first, ids 1..number_of_agents)
        buyers_pool: Non-owning view of the buyers
        sellers_pool: Non-owning view of the sellers
        logs: Named logs (see engine.event_logger.LOG_NAMES)
        period: Number of the last period started (0 before the first)
        period_duration: Simulated time units per period
        x_market: Matching engine of the current/last period (None before)
        maximum_possible_gains_from_trade: Cached per-period surplus ceiling
    """

    def __init__(
        self,
        config: SimulationConfig | DictConfig | dict[str, Any] | None,
        agent_factory: AgentFactory | None = None,
    ) -> None:
        """
        Initialize the simulation.

        Args:
            config: Options (see engine.config.SimulationConfig)
            agent_factory: Builds each agent as
                agent_factory(agent_type, is_buyer=..., player_id=..., **common);
                defaults to engine.agent_factory.create_agent

        Raises:
            ConfigError: If buyer/seller counts can not be determined or the
                options are invalid
        """
        self.config = load_config(config)
        cfg = self.config

        self.number_of_buyers = cfg.number_of_buyers
        self.number_of_sellers = cfg.number_of_sellers
        self.number_of_agents = self.number_of_buyers + self.number_of_sellers
        self.period = 0
        self.period_duration = cfg.period_duration
        self.x_market: OrderBook | None = None
        self.maximum_possible_gains_from_trade: float | None = None

        self.logs = self._open_logs()
        self._build_pools(agent_factory or _default_factory)
        self.get_maximum_possible_gains_from_trade()

        self._period_trades: list[list[Any]] = []
        self._inflight: dict[int, tuple[str, list[Any]]] = {}

        if not cfg.silent:
            logger.info(f"duration of each period = {self.period_duration}")
            logger.info(f"Number of Buyers  = {self.number_of_buyers}")
            logger.info(f"Number of Sellers = {self.number_of_sellers}")
            logger.info(f"Total Number of Agents  = {self.number_of_agents}")
            logger.info(f"minPrice = {cfg.min_price}")
            logger.info(f"maxPrice = {cfg.max_price}")

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    def _open_logs(self) -> dict[str, Log]:
        cfg = self.config
        ids = list(range(1, self.number_of_agents + 1))
        logs = {}
        for name in LOG_NAMES:
            path = Path(cfg.log_dir) / f"{name}.csv" if cfg.log_to_file_system else None
            if name == "profit":
                logs[name] = Log(ids, path=path)
            else:
                logs[name] = Log(LOG_HEADERS[name], path=path)
        return logs

    def _build_pools(self, factory: AgentFactory) -> None:
        cfg = self.config
        self.pool = Pool()
        self.buyers_pool = Pool()
        self.sellers_pool = Pool()
        common = dict(
            price_min=cfg.min_price,
            price_max=cfg.max_price,
            integer=cfg.integer,
            ignore_budget_constraint=cfg.ignore_budget_constraint,
        )
        for i in range(self.number_of_agents):
            is_buyer = i < self.number_of_buyers
            k = i if is_buyer else i - self.number_of_buyers
            agent_type = round_robin(
                cfg.buyer_agent_type if is_buyer else cfg.seller_agent_type, k
            )
            rate = round_robin(cfg.buyer_rate if is_buyer else cfg.seller_rate, k)
            seed = None if cfg.seed is None else cfg.seed + i + 1
            agent = factory(
                agent_type, is_buyer=is_buyer, player_id=i + 1, rate=rate, seed=seed, **common
            )
            agent.id = i + 1
            (self.buyers_pool if is_buyer else self.sellers_pool).push(agent)
            self.pool.push(agent)
        self.buyers_pool.distribute("values", GOOD, cfg.buyer_values)
        self.sellers_pool.distribute("costs", GOOD, cfg.seller_costs)

    def get_maximum_possible_gains_from_trade(self) -> float:
        """Per-period surplus ceiling from all values and costs (cached)."""
        if self.maximum_possible_gains_from_trade is None:
            self.maximum_possible_gains_from_trade = calculate_max_surplus(
                self.config.buyer_values, self.config.seller_costs
            )
        return self.maximum_possible_gains_from_trade

    def equilibrium_price(self) -> float | None:
        """Competitive equilibrium price of the configured values and costs."""
        return calculate_equilibrium_price(self.config.buyer_values, self.config.seller_costs)

    # =========================================================================
    # PERIOD STATE MACHINE
    # =========================================================================

    def _begin_period(self) -> tuple[float, float]:
        """Initializing: reset the pool clock and build a fresh matching engine."""
        self.period += 1
        start = (self.period - 1) * self.period_duration
        if not self.config.silent:
            logger.info(f"period: {self.period}")
        self.pool.init_period(self.period, start, self.period_duration)
        self.x_market = OrderBook(
            self.config.min_price,
            self.config.max_price,
            budget_limit=None if self.config.ignore_budget_constraint else self._budget_limit,
        )
        self.x_market.on_trade(self._on_trade)
        self.x_market.on_reject(self._on_reject)
        self._period_trades = []
        self._inflight = {}
        return start, start + self.period_duration

    def _fire(self, agent: Agent) -> None:
        """Active: one wake event with its own submission context."""
        ohlc = self.logs["ohlc"]
        previous = None
        if ohlc.last is not None and ohlc.last_by_key("period") == self.period - 1:
            previous = dict(zip(ohlc.header, ohlc.last))
        ctx = SubmissionContext(
            self._submit, self.x_market, agent, agent.wake_time, self.period_duration, previous
        )
        agent.wake(ctx)

    def _finish_period(self) -> "Simulation":
        """Settling and Logged."""
        self.x_market.drain_all()
        self.pool.end_period()
        profits = self.pool.final_money()
        self.logs["profit"].write(profits)
        self._log_period_analytics(profits)
        logger.debug(f"period {self.period} complete: {len(self._period_trades)} trades")
        return self

    def run_period(self) -> "Simulation":
        """
        Run exactly one period, blocking until it is logged.

        In realtime mode the period is paced to the wall clock with blocking
        sleeps; use run_period_async to pace it cooperatively.

        Returns:
            This simulation, mutated in place
        """
        start, end = self._begin_period()
        strategy = advance_strategy(
            self.config.mode, self.config.realtime_scale, start, self.period_duration
        )
        strategy.advance(self.pool.wake_events(end), self._fire)
        return self._finish_period()

    async def run_period_async(self) -> "Simulation":
        """Run exactly one period under the configured discipline (awaitable)."""
        start, end = self._begin_period()
        mode = self.config.mode if self.config.mode is not RunMode.SYNC else RunMode.ASYNC
        strategy = advance_strategy(mode, self.config.realtime_scale, start, self.period_duration)
        await strategy.advance_async(self.pool.wake_events(end), self._fire)
        return self._finish_period()

    # =========================================================================
    # MULTI-PERIOD RUNS
    # =========================================================================

    def run(self, periods: int | None = None, deadline: float | None = None) -> "Simulation":
        """
        Run periods until config.periods is reached or the deadline passes.

        Args:
            periods: Override config.periods
            deadline: Absolute wall-clock deadline in epoch seconds (overrides
                config.deadline); checked between periods only

        Returns:
            This simulation, mutated in place
        """
        deadline = self._prepare_run(periods, deadline)
        while self.period < self.config.periods:
            self.run_period()
            if self._check_deadline(deadline):
                break
        return self

    async def run_async(self, periods: int | None = None, deadline: float | None = None) -> "Simulation":
        """Awaitable run(); periods stay strictly sequential."""
        deadline = self._prepare_run(periods, deadline)
        while self.period < self.config.periods:
            await self.run_period_async()
            if self._check_deadline(deadline):
                break
        return self

    def _prepare_run(self, periods: int | None, deadline: float | None) -> float | None:
        if periods is not None:
            self.config.periods = periods
        return deadline if deadline is not None else self.config.deadline

    def _check_deadline(self, deadline: float | None) -> bool:
        """Truncate the run after the current period if the deadline has passed."""
        if self.period >= self.config.periods or not deadline_reached(deadline):
            return False
        self.config.periods_requested = self.config.periods
        self.config.periods = self.period
        logger.warning(
            f"deadline reached: stopping after period {self.period} "
            f"of {self.config.periods_requested} requested"
        )
        return True

    # =========================================================================
    # ORDER SUBMISSION
    # =========================================================================

    def _budget_limit(self, agent_id: int, is_buy: bool) -> float | None:
        agent = self.pool.agents_by_id.get(agent_id)
        if agent is None:
            return None
        return agent.unit_value(GOOD) if is_buy else agent.unit_cost(GOOD)

    def _order_row(self, agent: Agent, is_buy: bool, t: float, price: float) -> list[Any]:
        tp = t % self.period_duration
        inventory = agent.inventory[GOOD]
        if is_buy:
            value = agent.unit_value(GOOD)
            return [self.period, t, tp, agent.id, 1, price, _blank(value), "", "", inventory]
        cost = agent.unit_cost(GOOD)
        return [self.period, t, tp, agent.id, -1, "", "", price, _blank(cost), inventory]

    def _submit(self, agent: Agent, is_buy: bool, t: float, price: float) -> None:
        """Log an order, push it to the engine and drain the engine's inbox."""
        keep = self.config.keep_previous_orders
        if is_buy:
            order = simple_buy_order(t, agent.id, price, keep)
        else:
            order = simple_sell_order(t, agent.id, price, keep)
        counter = self.x_market.submit(order)
        row = self._order_row(agent, is_buy, t, price)
        side = "buyorder" if is_buy else "sellorder"
        self.logs[side].write(row)
        self._inflight[counter] = ("reject" + side, row)
        self.x_market.drain_all()
        self._inflight.pop(counter, None)

    def _on_reject(self, order: list[float], reason: str) -> None:
        entry = self._inflight.get(int(order[0]))
        if entry is not None:
            name, row = entry
            self.logs[name].write(row)

    # =========================================================================
    # TRADES AND ANALYTICS
    # =========================================================================

    def _on_trade(self, spec: TradeSpec) -> None:
        self.log_trade(spec)
        self.pool.settle_trade(spec)
        # An agent with no units left may not keep standing orders
        for agent_id in (*spec.buy_ids, *spec.sell_ids):
            if not self.pool.agents_by_id[agent_id].can_trade():
                self.x_market.cancel_all(agent_id)

    def log_trade(self, spec: TradeSpec | dict[str, Any]) -> None:
        """
        Append a trade row, reading value and cost from the agents' current
        inventories.

        Raises:
            TradeLogError: If the trade is not a single unit between exactly
                one buyer and one seller at a defined price
        """
        if isinstance(spec, dict):
            spec = TradeSpec(
                t=spec.get("t", 0),
                prices=spec.get("prices", []),
                total_q=spec.get("total_q", 0),
                buy_ids=spec.get("buy_ids", []),
                sell_ids=spec.get("sell_ids", []),
            )
        if spec.total_q != 1 or len(spec.buy_ids) != 1 or len(spec.sell_ids) != 1:
            raise TradeLogError(f"single unit trades required, got: {spec.total_q}")
        price = spec.price
        if not price:
            raise TradeLogError("undefined price in trade")

        buyer = self.pool.agents_by_id[spec.buy_ids[0]]
        seller = self.pool.agents_by_id[spec.sell_ids[0]]
        buyer_value = buyer.unit_value(spec.goods)
        seller_cost = seller.unit_cost(spec.goods)
        if buyer_value is None or seller_cost is None:
            raise TradeLogError(
                f"trade between agents {buyer.id} and {seller.id} with no unit to trade"
            )
        row = [
            self.period,
            spec.t,
            spec.t % self.period_duration,
            price,
            buyer.id,
            buyer_value,
            buyer_value - price,
            seller.id,
            seller_cost,
            price - seller_cost,
        ]
        self.logs["trade"].write(row)
        self._period_trades.append(row)

    def _log_period_analytics(self, profits: list[float]) -> None:
        trades = self._period_trades
        if trades:
            price_col = LOG_HEADERS["trade"].index("price")
            self.logs["ohlc"].write(
                ohlc_row(self.period, [row[price_col] for row in trades], profits)
            )
        efficiency = calculate_allocative_efficiency(
            period_surplus(trades), self.get_maximum_possible_gains_from_trade()
        )
        if efficiency is not None:
            self.logs["effalloc"].write([self.period, efficiency])

    # =========================================================================
    # OUTPUT
    # =========================================================================

    def to_dataframes(self) -> dict[str, pd.DataFrame]:
        """Every log as a DataFrame keyed by log name."""
        return {name: log.to_dataframe() for name, log in self.logs.items()}

    def close(self) -> None:
        """Close file-backed logs."""
        for log in self.logs.values():
            log.close()


def _blank(x: float | None) -> Any:
    return "" if x is None else x


def _default_factory(agent_type: str, is_buyer: bool, player_id: int, **kwargs: Any) -> Agent:
    return create_agent(agent_type, is_buyer, **kwargs)


def run_simulation(config: SimulationConfig | DictConfig | dict[str, Any]) -> Simulation:
    """
    Build a Simulation and run config.periods periods under config.mode.

    Sync mode runs directly; async and realtime modes run on a fresh event
    loop. Use Simulation.run_async to run several simulations on one loop.
    """
    sim = Simulation(config)
    if sim.config.mode is RunMode.SYNC:
        sim.run()
    else:
        asyncio.run(sim.run_async())
    if not sim.config.silent:
        logger.info("done")
    return sim
