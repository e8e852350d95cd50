"""
Order records for the single-good market.

An order is a fixed-width list of numbers. The matching engine prepends two
columns on submission (a strictly increasing counter and the local insertion
time), so a submitted order record has ``len(ORDER_FIELDS)`` cells while an
order built here has ``len(SIMPLE_ORDER_FIELDS)``.

Stop and trigger fields are reserved for extensions and always zero here.
"""

from numbers import Real

# Columns of a submitted order, as stored by the matching engine
ORDER_FIELDS = (
    "counter",   # strictly increasing, may have gaps
    "tlocal",    # local insertion time
    "t",         # official simulation time
    "tx",        # expiration time (0 = never)
    "id",        # submitting agent id
    "cancel",    # 1 = cancel all active orders of this agent first
    "q",         # quantity
    "b",         # buy limit price
    "s",         # sell limit price
    "bs",        # buy stop
    "bsp",       # buy stop limit price
    "ss",        # sell stop
    "ssp",       # sell stop limit price
    "trigb",
    "trigs",
    "trigbs",
    "trigbsp",
    "trigss",
    "trigssp",
)

SIMPLE_ORDER_FIELDS = ORDER_FIELDS[2:]

# Column indexes into an order built by simple_order()
T = 0
TX = 1
ID = 2
CANCEL = 3
Q = 4
BUY_PRICE = 5
SELL_PRICE = 6


class OrderError(ValueError):
    """Raised for malformed orders and invalid bid/ask parameters."""


def simple_order(t: float, agent_id: int, cancel_replace: bool) -> list[float]:
    """Create a blank single-unit order for an agent at official time t."""
    order = [0] * len(SIMPLE_ORDER_FIELDS)
    order[T] = t
    order[ID] = agent_id
    order[CANCEL] = 1 if cancel_replace else 0
    order[Q] = 1
    return order


def simple_buy_order(
    t: float, agent_id: int, price: float, keep_old_orders: bool = False
) -> list[float]:
    """Create a single-unit buy limit order."""
    _check_price(price)
    order = simple_order(t, agent_id, not keep_old_orders)
    order[BUY_PRICE] = price
    return order


def simple_sell_order(
    t: float, agent_id: int, price: float, keep_old_orders: bool = False
) -> list[float]:
    """Create a single-unit sell limit order."""
    _check_price(price)
    order = simple_order(t, agent_id, not keep_old_orders)
    order[SELL_PRICE] = price
    return order


def is_buy(order: list[float]) -> bool:
    return order[BUY_PRICE] != 0


def is_sell(order: list[float]) -> bool:
    return order[SELL_PRICE] != 0


def validate_order(order: list[float]) -> None:
    """
    Check the structural invariants of a simple order.

    Raises:
        OrderError: If the order has the wrong width, non-numeric cells,
            a quantity other than 1, or both price sides populated
    """
    if len(order) != len(SIMPLE_ORDER_FIELDS):
        raise OrderError(
            f"order must have {len(SIMPLE_ORDER_FIELDS)} fields, got {len(order)}"
        )
    for name, cell in zip(SIMPLE_ORDER_FIELDS, order):
        if not _is_number(cell):
            raise OrderError(f"order field {name} is not numeric: {cell!r}")
    if order[Q] != 1:
        raise OrderError(f"single unit orders required, got quantity {order[Q]}")
    if is_buy(order) and is_sell(order):
        raise OrderError("order may not carry both a buy and a sell limit price")


def _is_number(x: object) -> bool:
    return isinstance(x, Real) and not isinstance(x, bool)


def _check_price(price: object) -> None:
    if not _is_number(price):
        raise OrderError(f"price must be numeric, got {type(price).__name__}")
