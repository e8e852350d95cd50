"""
Agent Factory.
"""

from typing import Any, Sequence

from traders.base import Agent
from traders.kaplan import KaplanSniperAgent, MedianSniperAgent
from traders.truth_teller import TruthfulAgent
from traders.zi import ZIAgent

AGENT_TYPES: dict[str, type[Agent]] = {
    "ZIAgent": ZIAgent,
    "TruthfulAgent": TruthfulAgent,
    "KaplanSniperAgent": KaplanSniperAgent,
    "MedianSniperAgent": MedianSniperAgent,
}


def create_agent(agent_type: str, is_buyer: bool, **kwargs: Any) -> Agent:
    """
    Agent instance

    Raises:
        ValueError: If agent_type is not registered
    """
    try:
        cls = AGENT_TYPES[agent_type]
    except KeyError:
        raise ValueError(
            f"Unknown agent type: {agent_type!r} (known: {sorted(AGENT_TYPES)})"
        ) from None
    return cls(is_buyer=is_buyer, **kwargs)


def round_robin(items: Sequence[Any], index: int) -> Any:
    """Item for slot ``index`` when ``items`` is assigned round-robin."""
    return items[index % len(items)]
