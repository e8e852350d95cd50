"""
Market efficiency calculations.

This module implements the surplus benchmarks used to evaluate a period:
- Maximum possible gains from trade (competitive equilibrium surplus)
- Equilibrium price (midpoint of the marginal pair)
- Allocative efficiency (realized surplus / maximum surplus, as a percentage)
"""

from typing import Sequence


def calculate_max_surplus(buyer_values: Sequence[float], seller_costs: Sequence[float]) -> float:
    """
    Calculate the maximum possible gains from trade.

    Args:
        buyer_values: Every unit value in the market (all buyers)
        seller_costs: Every unit cost in the market (all sellers)

    Returns:
        Maximum total surplus for one period

    Algorithm:
        1. Sort all buyer values descending (demand curve)
        2. Sort all seller costs ascending (supply curve)
        3. Pair the k-th highest value with the k-th lowest cost while value > cost
        4. Sum up (value - cost) for all such pairs
    """
    values = sorted(buyer_values, reverse=True)
    costs = sorted(seller_costs)

    max_surplus = 0
    for value, cost in zip(values, costs):
        # Strict inequality: a zero-surplus pair adds nothing and ends the scan
        if value > cost:
            max_surplus += value - cost
        else:
            break

    return max_surplus


def calculate_equilibrium_price(
    buyer_values: Sequence[float], seller_costs: Sequence[float]
) -> float | None:
    """
    Calculate the market-clearing (competitive equilibrium) price.

    Returns the midpoint of the last surplus-positive value/cost pair, or
    None when no pair has value > cost.
    """
    values = sorted(buyer_values, reverse=True)
    costs = sorted(seller_costs)

    marginal = None
    for value, cost in zip(values, costs):
        if value <= cost:
            break
        marginal = (value, cost)

    if marginal is None:
        return None
    return (marginal[0] + marginal[1]) / 2


def calculate_allocative_efficiency(actual_surplus: float, max_surplus: float) -> float | None:
    """
    Calculate allocative efficiency as a percentage.

    Args:
        actual_surplus: Realized surplus (sum of buyer and seller profits)
        max_surplus: Maximum possible surplus

    Returns:
        100 * actual_surplus / max_surplus, or None when max_surplus is 0
        (0/0 is undefined and is not reported)
    """
    if max_surplus == 0:
        return None
    return 100.0 * actual_surplus / max_surplus
