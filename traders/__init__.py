"""
traders - Agent Zoo

This package contains the trading agent implementations:
- ZIAgent: zero-intelligence random bidding within the budget constraint
- TruthfulAgent: bids value, asks cost
- KaplanSniperAgent / MedianSniperAgent: background snipers

All agents must implement the base.Agent interface.
"""

__version__ = "2.0.0"
