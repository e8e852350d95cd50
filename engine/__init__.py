"""
engine - Single-Market Double Auction Simulation

This package drives repeated trading periods: agents wake, submit single-unit
orders to a continuous double auction, and every order, trade and period
statistic is logged.

Modules:
    config: Structured simulation options
    orderbook: The matching engine (bid/ask book operations)
    pool: Agent roster and wake schedule
    scheduler: Sync, async and real-time advance strategies
    simulation: Period state machine and multi-period runs
    event_logger: Log sinks (memory or CSV)
    metrics: OHLC price statistics and Gini coefficient
    efficiency: Maximum surplus and allocative efficiency
    replay: Deterministic replay of accepted orders
"""

__version__ = "2.0.0"
