"""Configuration loading and validation for the ABM."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from typing import Any

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config"

AGENT_ORDERS = ("creation", "shuffled")


@dataclass(frozen=True)
class SimulationConfig:
    """Top-level simulation settings.

    One tick is one simulated hour; the default horizon is one month.
    """

    ticks: int = 5040
    seed: int = 42
    agent_order: str = "creation"


@dataclass(frozen=True)
class GridConfig:
    """Spatial lattice settings."""

    half_extent: int = 25
    search_radius: float = 10.0
    region_radius: int = 5


@dataclass(frozen=True)
class PopulationConfig:
    """How many markets, homes and factories to place at setup."""

    num_regions: int = 3
    num_markets_per_region: int = 3
    num_households: int = 40
    num_consumers_per_household: int = 3
    num_factories: int = 10
    num_producers_per_factory: int = 3


@dataclass(frozen=True)
class ConsumerConfig:
    """Initial endowments and decision parameters for consumers."""

    wealth_mean: float = 500.0
    wealth_std: float = 50.0
    wage_mean: float = 300.0
    wage_std: float = 15.0
    max_demand: float = 10.0
    debt_to_wealth_limit: float = 2.0
    debt_relief: float = 0.5


@dataclass(frozen=True)
class ProducerConfig:
    """Output and capacity parameters for producers."""

    base_output: float = 10.0
    min_output: float = 5.0
    capacity: float = 150.0


@dataclass(frozen=True)
class MarketConfig:
    """Market inventory and price adjustment parameters."""

    initial_price: float = 10.0
    capacity: float = 150.0
    max_price_increase: float = 0.02
    price_decrease: float = 0.05
    scale_price_decrease: bool = False


@dataclass(frozen=True)
class ScheduleConfig:
    """Dwell thresholds and periodic events, all in ticks."""

    market_dwell: int = 5
    origin_dwell: int = 10
    income_period: int = 24
    selection_warm_up: int = 24


@dataclass(frozen=True)
class ModelConfig:
    """Complete model configuration."""

    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    population: PopulationConfig = field(default_factory=PopulationConfig)
    consumers: ConsumerConfig = field(default_factory=ConsumerConfig)
    producers: ProducerConfig = field(default_factory=ProducerConfig)
    markets: MarketConfig = field(default_factory=MarketConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)

    @property
    def num_markets(self) -> int:
        """Total number of market cells across all regions."""
        return self.population.num_regions * self.population.num_markets_per_region

    @property
    def num_consumers(self) -> int:
        """Total number of consumer agents."""
        pop = self.population
        return pop.num_households * pop.num_consumers_per_household

    @property
    def num_producers(self) -> int:
        """Total number of producer agents."""
        pop = self.population
        return pop.num_factories * pop.num_producers_per_factory


def validate_config(config: ModelConfig) -> None:
    """Check the setup preconditions the simulation relies on.

    Raises:
        ValueError: If the configuration cannot produce a runnable model.
    """
    if config.simulation.ticks <= 0:
        msg = f"ticks must be positive, got {config.simulation.ticks}"
        raise ValueError(msg)
    if config.simulation.agent_order not in AGENT_ORDERS:
        msg = (
            f"agent_order must be one of {AGENT_ORDERS}, "
            f"got {config.simulation.agent_order!r}"
        )
        raise ValueError(msg)
    if config.grid.half_extent < 1:
        msg = f"half_extent must be at least 1, got {config.grid.half_extent}"
        raise ValueError(msg)

    schedule = config.schedule
    if schedule.income_period < 1:
        msg = f"income_period must be at least 1, got {schedule.income_period}"
        raise ValueError(msg)
    for name in ("market_dwell", "origin_dwell", "selection_warm_up"):
        if getattr(schedule, name) < 0:
            msg = f"{name} must not be negative, got {getattr(schedule, name)}"
            raise ValueError(msg)

    n_cells = (2 * config.grid.half_extent + 1) ** 2
    n_sites = config.num_markets + (
        config.population.num_households + config.population.num_factories
    )
    if n_sites > n_cells:
        msg = f"{n_sites} markets, homes and factories do not fit on {n_cells} cells"
        raise ValueError(msg)

    if config.num_markets == 0 and (config.num_consumers or config.num_producers):
        msg = "at least one market is required when agents are present"
        raise ValueError(msg)


def load_config(path: Path | None = None) -> ModelConfig:
    """Load model configuration from a YAML file.

    Args:
        path: Path to a YAML config file.  When *None* the default
              ``config/model_parameters.yml`` shipped with the repository is
              used.

    Returns:
        A fully-populated :class:`ModelConfig` instance.
    """
    if path is None:
        path = _DEFAULT_CONFIG_PATH / "model_parameters.yml"

    raw: dict[str, Any] = {}
    if path.exists():
        with path.open() as fh:
            loaded = yaml.safe_load(fh)
            if isinstance(loaded, dict):
                raw = loaded

    return ModelConfig(
        simulation=SimulationConfig(**raw.get("simulation", {})),
        grid=GridConfig(**raw.get("grid", {})),
        population=PopulationConfig(**raw.get("population", {})),
        consumers=ConsumerConfig(**raw.get("consumers", {})),
        producers=ProducerConfig(**raw.get("producers", {})),
        markets=MarketConfig(**raw.get("markets", {})),
        schedule=ScheduleConfig(**raw.get("schedule", {})),
    )
