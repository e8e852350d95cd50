"""
Simulation configuration.

The configuration is a structured OmegaConf schema: every recognized option is
an explicit, typed, defaulted field of ``SimulationConfig``. User input (a plain
dict, a DictConfig from Hydra, or an existing ``SimulationConfig``) is merged
onto the schema, so unknown keys and badly typed values fail at load time.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any, List, Optional

from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException


class ConfigError(ValueError):
    """Raised when a simulation cannot be configured from the given options."""


class RunMode(str, Enum):
    """Execution discipline for the period scheduler."""

    SYNC = "sync"
    ASYNC = "async"
    REALTIME = "realtime"


@dataclass
class SimulationConfig:
    """
    All options recognized by ``Simulation``.

    Attributes:
        number_of_buyers: Buyer count (0 = infer from buyer_values)
        number_of_sellers: Seller count (0 = infer from seller_costs)
        buyer_values: Unit values, distributed round-robin over the buyers
        seller_costs: Unit costs, distributed round-robin over the sellers
        L: Lowest allowed price
        H: Highest allowed price (None = 2 * max(first value, last cost))
        period_duration: Simulated time units per period
        periods: Number of periods to run (reduced when a deadline truncates)
        periods_requested: Original period count, set only on truncation
        mode: sync, async or realtime
        realtime_scale: Wall-clock seconds per simulated time unit (realtime)
        deadline: Absolute wall-clock deadline in epoch seconds
        ignore_budget_constraint: Let robots bid above value / ask below cost
        integer: Robots quote integer prices
        buyer_rate: Poisson wake rates, distributed round-robin over buyers
        seller_rate: Poisson wake rates, distributed round-robin over sellers
        buyer_agent_type: Agent type names, assigned round-robin to buyers
        seller_agent_type: Agent type names, assigned round-robin to sellers
        keep_previous_orders: When False each order cancels the agent's old ones
        seed: Seed for wake schedules and robot prices (None = nondeterministic)
        log_to_file_system: Write logs as CSV files instead of keeping them in memory
        log_dir: Directory for CSV logs
        silent: Suppress construction and period progress messages
    """

    number_of_buyers: int = 0
    number_of_sellers: int = 0
    buyer_values: List[float] = field(default_factory=list)
    seller_costs: List[float] = field(default_factory=list)
    L: float = 0.0
    H: Optional[float] = None
    period_duration: float = 1000.0
    periods: int = 1
    periods_requested: Optional[int] = None
    mode: RunMode = RunMode.SYNC
    realtime_scale: float = 0.001
    deadline: Optional[float] = None
    ignore_budget_constraint: bool = False
    integer: bool = False
    buyer_rate: List[float] = field(default_factory=lambda: [1.0])
    seller_rate: List[float] = field(default_factory=lambda: [1.0])
    buyer_agent_type: List[str] = field(default_factory=lambda: ["ZIAgent"])
    seller_agent_type: List[str] = field(default_factory=lambda: ["ZIAgent"])
    keep_previous_orders: bool = False
    seed: Optional[int] = None
    log_to_file_system: bool = False
    log_dir: str = "logs"
    silent: bool = False

    @property
    def min_price(self) -> float:
        return self.L

    @property
    def max_price(self) -> float:
        if self.H is not None:
            return self.H
        return 2 * max(self.buyer_values[0], self.seller_costs[-1])

    def validate(self) -> "SimulationConfig":
        """
        Check cross-field constraints and fill inferred counts.

        Raises:
            ConfigError: If buyer/seller counts can not be determined or any
                numeric option is out of range
        """
        if not self.number_of_buyers:
            self.number_of_buyers = len(self.buyer_values)
        if not self.number_of_sellers:
            self.number_of_sellers = len(self.seller_costs)
        if self.number_of_buyers <= 0 or self.number_of_sellers <= 0:
            raise ConfigError(
                "can not determine number_of_buyers and/or number_of_sellers"
            )
        if self.H is None and not (self.buyer_values and self.seller_costs):
            raise ConfigError("H is required when buyer_values or seller_costs is empty")
        if self.period_duration <= 0:
            raise ConfigError(f"period_duration must be > 0, got {self.period_duration}")
        if self.periods < 0:
            raise ConfigError(f"periods must be >= 0, got {self.periods}")
        if self.min_price > self.max_price:
            raise ConfigError(f"L ({self.L}) must not exceed H ({self.max_price})")
        if self.realtime_scale <= 0:
            raise ConfigError(f"realtime_scale must be > 0, got {self.realtime_scale}")
        for name in ("buyer_rate", "seller_rate"):
            rates = getattr(self, name)
            if not rates or any(r <= 0 or not math.isfinite(r) for r in rates):
                raise ConfigError(f"{name} must be a non-empty list of positive numbers")
        for name in ("buyer_agent_type", "seller_agent_type"):
            if not getattr(self, name):
                raise ConfigError(f"{name} must name at least one agent type")
        return self


def _positive_number_array(value: Any) -> Any:
    """Coerce a scalar rate to a one-element list."""
    if isinstance(value, Real) and not isinstance(value, bool):
        return [float(value)]
    return value


def _string_array(value: Any) -> Any:
    if isinstance(value, str):
        return [value]
    return value


def load_config(options: "SimulationConfig | DictConfig | dict[str, Any] | None") -> SimulationConfig:
    """
    Build a validated SimulationConfig from user options.

    Args:
        options: A SimulationConfig, a DictConfig (e.g. from Hydra) or a dict

    Returns:
        A validated SimulationConfig instance

    Raises:
        ConfigError: On unknown keys, bad types or failed validation
    """
    if isinstance(options, SimulationConfig):
        return options.validate()

    if options is None:
        options = {}
    if isinstance(options, DictConfig):
        options = OmegaConf.to_container(options, resolve=True)
    options = dict(options)

    for key in ("buyer_rate", "seller_rate"):
        if key in options:
            options[key] = _positive_number_array(options[key])
    for key in ("buyer_agent_type", "seller_agent_type"):
        if key in options:
            options[key] = _string_array(options[key])
    if isinstance(options.get("mode"), str):
        try:
            options["mode"] = RunMode(options["mode"].lower())
        except ValueError as e:
            raise ConfigError(f"unknown mode: {options['mode']!r}") from e

    schema = OmegaConf.structured(SimulationConfig)
    try:
        merged = OmegaConf.merge(schema, options)
        config = OmegaConf.to_object(merged)
    except OmegaConfBaseException as e:
        raise ConfigError(f"invalid simulation config: {e}") from e

    return config.validate()
