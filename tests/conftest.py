# tests/conftest.py
"""Minimal shared fixtures for test suite."""

import numpy as np
import pytest


@pytest.fixture
def seed():
    """Fixed seed for reproducibility."""
    return 42


@pytest.fixture
def rng(seed):
    """Numpy random generator with fixed seed."""
    return np.random.default_rng(seed)


@pytest.fixture
def single_unit_config(seed):
    """One buyer valuing one unit at 1000, one seller with cost 1."""
    return {
        "buyer_values": [1000],
        "seller_costs": [1],
        "periods": 1,
        "seed": seed,
        "silent": True,
    }


@pytest.fixture
def no_trade_config(seed):
    """Every buyer value below every seller cost."""
    return {
        "buyer_values": [10, 9, 8],
        "seller_costs": [20, 40],
        "periods": 1,
        "seed": seed,
        "silent": True,
    }


@pytest.fixture
def market_config(seed):
    """A small market with overlapping demand and supply."""
    return {
        "buyer_values": [100, 90, 80, 70, 60, 50],
        "seller_costs": [10, 20, 30, 40, 50, 60],
        "number_of_buyers": 3,
        "number_of_sellers": 3,
        "L": 1,
        "H": 200,
        "period_duration": 100,
        "periods": 3,
        "seed": seed,
        "silent": True,
    }
