"""
Period analytics derived from the trade log.

Everything here is a pure function of trade rows and profit rows, so the OHLC
log can always be recomputed by re-scanning the trade log (see trades_to_ohlc).
"""

from typing import Any, Sequence

import numpy as np

from engine.event_logger import LOG_HEADERS


def gini(values: Sequence[float]) -> float:
    """
    Sample Gini coefficient of a distribution (0 = perfectly equal).

    Uses the mean absolute difference with the n/(n-1) small-sample
    correction. Returns 0.0 for fewer than two values or a zero total.
    """
    x = np.sort(np.asarray(values, dtype=float))
    n = len(x)
    if n < 2:
        return 0.0
    total = x.sum()
    if total == 0:
        return 0.0
    ranks = np.arange(1, n + 1)
    g = (2.0 * np.sum(ranks * x) - (n + 1) * total) / (n * total)
    return float(g * n / (n - 1))


def price_statistics(prices: Sequence[float]) -> dict[str, float]:
    """
    Summary statistics for one period's trade prices, in submission order.

    Args:
        prices: Executed prices, first trade first

    Returns:
        Dict with open, high, low, close, volume, median, mean, sd
        (population), p25 and p75 (Hazen plotting position)

    Raises:
        ValueError: If prices is empty
    """
    if len(prices) == 0:
        raise ValueError("price_statistics requires at least one price")
    p = np.asarray(prices, dtype=float)
    return {
        "open": float(p[0]),
        "high": float(p.max()),
        "low": float(p.min()),
        "close": float(p[-1]),
        "volume": int(len(p)),
        "median": float(np.median(p)),
        "mean": float(p.mean()),
        "sd": float(p.std()),
        "p25": float(np.percentile(p, 25, method="hazen")),
        "p75": float(np.percentile(p, 75, method="hazen")),
    }


def ohlc_row(period: int, prices: Sequence[float], profits: Sequence[float]) -> list[Any]:
    """Build one OHLC log row; gini is over the period's profit distribution."""
    stats = price_statistics(prices)
    stats["period"] = period
    stats["gini"] = gini(profits)
    return [stats[key] for key in LOG_HEADERS["ohlc"]]


def period_surplus(trade_rows: Sequence[Sequence[Any]], header: Sequence[str] | None = None) -> float:
    """Realized surplus (buyer profit + seller profit) over a set of trade rows."""
    header = list(header or LOG_HEADERS["trade"])
    bp = header.index("buyerProfit")
    sp = header.index("sellerProfit")
    return float(sum(row[bp] + row[sp] for row in trade_rows))


def split_by_period(
    trade_rows: Sequence[Sequence[Any]], header: Sequence[str] | None = None
) -> dict[int, list[Sequence[Any]]]:
    """Group trade rows by their period column, preserving row order."""
    header = list(header or LOG_HEADERS["trade"])
    period_col = header.index("period")
    by_period: dict[int, list[Sequence[Any]]] = {}
    for row in trade_rows:
        by_period.setdefault(row[period_col], []).append(row)
    return by_period


def trades_to_ohlc(
    trade_rows: Sequence[Sequence[Any]],
    profit_rows: Sequence[Sequence[float]],
    header: Sequence[str] | None = None,
) -> list[list[Any]]:
    """
    Recompute OHLC rows from a trade log.

    Args:
        trade_rows: Trade log data rows (no header row)
        profit_rows: Profit log rows, profit_rows[k] belongs to period k+1
        header: Trade log header (defaults to the standard trade header)

    Returns:
        One OHLC row per period that had at least one trade
    """
    header = list(header or LOG_HEADERS["trade"])
    price_col = header.index("price")
    result = []
    for period, rows in split_by_period(trade_rows, header).items():
        prices = [row[price_col] for row in rows]
        result.append(ohlc_row(period, prices, profit_rows[period - 1]))
    return result
