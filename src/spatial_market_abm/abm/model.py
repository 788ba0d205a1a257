"""Simulation model orchestrator for the ABM.

The :class:`Simulation` class owns the grid, markets and agents and drives
the tick-by-tick execution loop.  One tick is one simulated hour and the
run stops at a fixed horizon.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import TYPE_CHECKING

import numpy as np
import polars as pl

from spatial_market_abm.abm.agents.base import LifecycleState
from spatial_market_abm.abm.agents.consumer import Consumer
from spatial_market_abm.abm.agents.producer import Producer
from spatial_market_abm.abm.config import ModelConfig, load_config, validate_config
from spatial_market_abm.abm.context import SimulationContext
from spatial_market_abm.abm.expectations import ExpectationEngine, count_expectations
from spatial_market_abm.abm.grid import SpatialGrid, distance
from spatial_market_abm.abm.markets.local import Market, PriceAdjustmentEngine
from spatial_market_abm.abm.movement import MovementEngine
from spatial_market_abm.abm.selection import TargetMarketSelector, mean_costs

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path
    from typing import Any, TypeVar

    from spatial_market_abm.abm.agents.base import SpatialAgent
    from spatial_market_abm.abm.grid import Cell

    AgentT = TypeVar("AgentT", bound=SpatialAgent)

logger = logging.getLogger(__name__)


def gini(values: Sequence[float]) -> float:
    """Gini coefficient of non-negative *values* (0.0 for empty or all-zero)."""
    arr = np.sort(np.asarray(values, dtype=float))
    n = arr.size
    total = arr.sum()
    if n == 0 or total <= 0:
        return 0.0
    ranks = np.arange(1, n + 1)
    return float(2 * np.sum(ranks * arr) / (n * total) - (n + 1) / n)


@dataclass
class TickRecord:
    """Aggregate statistics recorded at the end of a single tick."""

    tick: int = 0
    aggregate_demand: float = 0.0
    aggregate_supply: float = 0.0
    mean_price: float = 0.0
    mean_demand: float = 0.0
    mean_output: float = 0.0
    total_wealth: float = 0.0
    total_debt: float = 0.0
    wealth_gini: float = 0.0
    total_stock: float = 0.0
    consumers_expect_up: int = 0
    consumers_expect_stay: int = 0
    consumers_expect_down: int = 0
    producers_expect_up: int = 0
    producers_expect_stay: int = 0
    producers_expect_down: int = 0
    agents_moving_to_market: int = 0
    agents_at_market: int = 0
    agents_returning: int = 0
    agents_at_origin: int = 0


# Field annotations are strings under postponed evaluation
_POLARS_TYPES = {"int": pl.Int64, "float": pl.Float64}
_RECORD_SCHEMA = {f.name: _POLARS_TYPES[f.type] for f in fields(TickRecord)}


@dataclass
class SimulationResult:
    """Container for the full simulation output."""

    records: list[TickRecord] = field(default_factory=list)
    market_states: list[list[dict[str, Any]]] = field(default_factory=list)
    consumer_states: list[list[dict[str, Any]]] = field(default_factory=list)
    producer_states: list[list[dict[str, Any]]] = field(default_factory=list)

    @property
    def price_series(self) -> list[float]:
        """Mean market price across all recorded ticks."""
        return [r.mean_price for r in self.records]

    @property
    def aggregate_demand_series(self) -> list[float]:
        """Cumulative AD across all recorded ticks."""
        return [r.aggregate_demand for r in self.records]

    @property
    def aggregate_supply_series(self) -> list[float]:
        """Cumulative AS across all recorded ticks."""
        return [r.aggregate_supply for r in self.records]

    def to_frame(self) -> pl.DataFrame:
        """Return the tick records as a polars DataFrame, one row per tick."""
        return pl.DataFrame(
            [asdict(r) for r in self.records], schema=_RECORD_SCHEMA
        )

    def write(self, path: Path) -> pl.DataFrame:
        """Write the tick records to *path* as parquet, or CSV for ``.csv``."""
        df = self.to_frame()
        if path.suffix == ".csv":
            df.write_csv(path)
        else:
            df.write_parquet(path)
        logger.info("Wrote %d tick records to %s", len(df), path)
        return df


class Simulation:
    """The top-level simulation orchestrator.

    Usage::

        sim = Simulation.from_config()
        result = sim.run()

    Attributes:
        config: The model configuration.
        grid: The spatial lattice and its markets.
        consumers: Consumer agents in creation order.
        producers: Producer agents in creation order.
        context: Clock and aggregate counters for the run.
    """

    def __init__(self, config: ModelConfig | None = None) -> None:
        self.config = config or ModelConfig()
        self._reset()

    def _reset(self) -> None:
        """Discard any previous run: fresh rng, grid, counters and agents."""
        self._rng = np.random.default_rng(self.config.simulation.seed)

        self.grid = SpatialGrid(self.config.grid.half_extent)
        self.context = SimulationContext()

        # Agents
        self.consumers: list[Consumer] = []
        self.producers: list[Producer] = []

        # Per-tick phases
        self.selector = TargetMarketSelector(
            self.grid,
            search_radius=self.config.grid.search_radius,
            warm_up=self.config.schedule.selection_warm_up,
        )
        self.movement = MovementEngine(self.grid, self.config.schedule)
        self.pricing = PriceAdjustmentEngine(self.grid)
        self.expectations = ExpectationEngine(self.grid)

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, path: Path | None = None) -> Simulation:
        """Create a simulation from a YAML configuration file.

        Args:
            path: Path to configuration YAML.  Uses defaults when *None*.

        Returns:
            A configured :class:`Simulation` instance with initialised
            markets and agents.
        """
        config = load_config(path)
        sim = cls(config)
        sim.initialize_agents()
        return sim

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize_agents(self) -> None:
        """Place markets, homes and factories and create the population.

        Raises:
            ValueError: If the configuration violates a setup precondition.
        """
        cfg = self.config
        validate_config(cfg)
        self._reset()

        free = set(self.grid.cells())
        self._place_markets(free)

        # --- Consumers, grouped in households sharing a home cell ---
        homes = self._draw_cells(free, cfg.population.num_households)
        for household, home in enumerate(homes):
            for _ in range(cfg.population.num_consumers_per_household):
                i = len(self.consumers)
                wealth = float(
                    self._rng.normal(
                        cfg.consumers.wealth_mean, cfg.consumers.wealth_std
                    )
                )
                wage = float(
                    self._rng.normal(cfg.consumers.wage_mean, cfg.consumers.wage_std)
                )
                self.consumers.append(
                    Consumer(
                        agent_id=f"consumer_{i:05d}",
                        index=i,
                        origin=home,
                        household=household,
                        wealth=max(wealth, 0.0),
                        wage=max(wage, 0.0),
                        last_price_paid=cfg.markets.initial_price,
                        behavior=cfg.consumers,
                    )
                )

        # --- Producers, grouped in factories sharing a cell ---
        factories = self._draw_cells(free, cfg.population.num_factories)
        for factory, site in enumerate(factories):
            for _ in range(cfg.population.num_producers_per_factory):
                i = len(self.producers)
                self.producers.append(
                    Producer(
                        agent_id=f"producer_{i:05d}",
                        index=i,
                        origin=site,
                        factory=factory,
                        behavior=cfg.producers,
                    )
                )

        # --- Initial destinations ---
        for agent in self.agents:
            self.selector.assign(agent, self.context.tick, 0.0)

        logger.info(
            "Initialised %d markets, %d consumers and %d producers",
            len(self.grid.markets),
            len(self.consumers),
            len(self.producers),
        )

    def _place_markets(self, free: set[Cell]) -> None:
        """Put each region's markets on free cells around a random centre."""
        cfg = self.config
        h = cfg.grid.half_extent
        for region in range(cfg.population.num_regions):
            centre = (
                int(self._rng.integers(-h, h + 1)),
                int(self._rng.integers(-h, h + 1)),
            )
            for _ in range(cfg.population.num_markets_per_region):
                nearby = sorted(
                    c for c in free if distance(c, centre) <= cfg.grid.region_radius
                )
                # A crowded region spills over onto any free cell
                pool = nearby or sorted(free)
                cell = pool[int(self._rng.integers(len(pool)))]
                free.discard(cell)
                self.grid.add_market(
                    Market(
                        f"market_{len(self.grid.markets):03d}",
                        cell,
                        region=region,
                        config=cfg.markets,
                    )
                )

    def _draw_cells(self, free: set[Cell], n: int) -> list[Cell]:
        """Draw *n* distinct free cells and mark them used."""
        pool = sorted(free)
        picks = self._rng.choice(len(pool), size=n, replace=False) if n else []
        cells = [pool[int(k)] for k in picks]
        free.difference_update(cells)
        return cells

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    @property
    def agents(self) -> list[SpatialAgent]:
        """All agents: consumers first, then producers."""
        return [*self.consumers, *self.producers]

    @property
    def finished(self) -> bool:
        """Whether the horizon has been reached."""
        return self.context.tick >= self.config.simulation.ticks

    def run(
        self,
        ticks: int | None = None,
        collect_micro: bool = False,
    ) -> SimulationResult:
        """Run the simulation for up to *ticks* ticks.

        The run never goes past the configured horizon.

        Args:
            ticks: Number of ticks to run.  Defaults to the remaining
                ticks up to the horizon.
            collect_micro: Whether to collect market and agent states each
                tick.

        Returns:
            A :class:`SimulationResult` with aggregate and (optionally)
            micro data.
        """
        remaining = self.config.simulation.ticks - self.context.tick
        n = remaining if ticks is None else min(ticks, remaining)
        result = SimulationResult()

        for _ in range(max(n, 0)):
            record = self.step()
            result.records.append(record)

            if collect_micro:
                result.market_states.append([m.get_state() for m in self.grid.markets])
                result.consumer_states.append([c.get_state() for c in self.consumers])
                result.producer_states.append([p.get_state() for p in self.producers])

        if self.finished:
            logger.info("Reached horizon at tick %d", self.context.tick)
        return result

    def step(self) -> TickRecord:
        """Execute a single tick of the simulation.

        The within-tick sequence:

        1. Every agent (re)selects its target market.
        2. Outbound agents move one step; arrivals switch to ``at_market``.
        3. Producers plan output and stock their target market.
        4. Consumers plan demand and buy from their target market.
        5. Markets reprice from the agents standing on them.
        6. Agents at market count their dwell; returning agents move home.
        7. Agents revise their expectations.
        8. Wages are paid every ``income_period`` ticks.
        9. Agents at origin count their dwell and set off again.
        10. Record aggregate statistics.

        Returns:
            A :class:`TickRecord` for this tick.
        """
        ctx = self.context
        ctx.tick += 1
        tick = ctx.tick

        consumers = self._ordered(self.consumers)
        producers = self._ordered(self.producers)
        agents: list[SpatialAgent] = [*consumers, *producers]

        # 1. Target selection
        costs = mean_costs(producers)
        for agent in agents:
            self.selector.assign(agent, tick, costs)

        # 2. Outbound movement
        for agent in agents:
            self.movement.advance_outbound(agent)

        # 3-4. Supply before demand so consumers see this tick's stock
        for producer in producers:
            producer.trade(self._target(producer), ctx)
        for consumer in consumers:
            consumer.trade(self._target(consumer), ctx)

        # 5. Price adjustment
        self.pricing.adjust(consumers, producers)

        # 6. Market dwell and return trip
        for agent in agents:
            self.movement.advance_return(agent)

        # 7. Expectations
        self.expectations.update(consumers, producers)

        # 8. Income
        if tick % self.config.schedule.income_period == 0:
            self.distribute_income()

        # 9. Origin dwell and departure
        costs = mean_costs(producers)
        for agent in agents:
            self.movement.advance_departure(agent, self.selector, tick, costs)

        # 10. Record
        return self._record()

    def distribute_income(self) -> None:
        """Pay every consumer one wage."""
        for consumer in self.consumers:
            consumer.receive_wage()

    def _ordered(self, agents: list[AgentT]) -> list[AgentT]:
        """Return *agents* in this tick's acting order."""
        if self.config.simulation.agent_order == "shuffled":
            return [agents[int(k)] for k in self._rng.permutation(len(agents))]
        return sorted(agents, key=lambda a: a.index)

    def _target(self, agent: SpatialAgent) -> Market | None:
        if agent.target_market is None:
            return None
        return self.grid.market(agent.target_market)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _record(self) -> TickRecord:
        consumers = self.consumers
        producers = self.producers
        price_counts = count_expectations([c.price_expectation for c in consumers])
        demand_counts = count_expectations([p.demand_expectation for p in producers])
        states = self.state_counts()

        return TickRecord(
            tick=self.context.tick,
            aggregate_demand=self.context.aggregate_demand,
            aggregate_supply=self.context.aggregate_supply,
            mean_price=self.grid.mean_price(),
            mean_demand=_mean([c.demand for c in consumers]),
            mean_output=_mean([p.output for p in producers]),
            total_wealth=sum(c.wealth for c in consumers),
            total_debt=sum(c.debt for c in consumers),
            wealth_gini=gini([c.wealth for c in consumers]),
            total_stock=sum(m.quantity_available for m in self.grid.markets),
            consumers_expect_up=price_counts["up"],
            consumers_expect_stay=price_counts["stay"],
            consumers_expect_down=price_counts["down"],
            producers_expect_up=demand_counts["up"],
            producers_expect_stay=demand_counts["stay"],
            producers_expect_down=demand_counts["down"],
            agents_moving_to_market=states[LifecycleState.MOVING_TO_MARKET.value],
            agents_at_market=states[LifecycleState.AT_MARKET.value],
            agents_returning=states[LifecycleState.RETURNING.value],
            agents_at_origin=states[LifecycleState.AT_ORIGIN.value],
        )

    def state_counts(self) -> dict[str, int]:
        """Number of agents in each lifecycle state."""
        counts = {s.value: 0 for s in LifecycleState}
        for agent in self.agents:
            counts[agent.state.value] += 1
        return counts

    def snapshot(self) -> dict[str, Any]:
        """Return a read-only view of the current state for plotting.

        Returns:
            Dictionary with per-market coordinates and prices, the mean
            price, expectation counts, cumulative AD/AS and per-agent
            states keyed by agent id.
        """
        return {
            "tick": self.context.tick,
            "market_prices": [(m.cell, m.unit_price) for m in self.grid.markets],
            "mean_price": self.grid.mean_price(),
            "price_expectations": count_expectations(
                [c.price_expectation for c in self.consumers]
            ),
            "demand_expectations": count_expectations(
                [p.demand_expectation for p in self.producers]
            ),
            "aggregate_demand": self.context.aggregate_demand,
            "aggregate_supply": self.context.aggregate_supply,
            "consumers": {c.agent_id: c.get_state() for c in self.consumers},
            "producers": {p.agent_id: p.get_state() for p in self.producers},
        }


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0
