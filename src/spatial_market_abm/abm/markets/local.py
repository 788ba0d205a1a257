"""Spatial market cells and the price adjustment rule.

Each market sits on one grid cell and holds a stock of the single traded
good.  Producers commit supply into it, consumers buy out of it, and once
per tick its price moves according to the demand/supply imbalance among
the agents standing on the cell.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from spatial_market_abm.abm.markets.base import BaseMarket

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

    from spatial_market_abm.abm.agents.consumer import Consumer
    from spatial_market_abm.abm.agents.producer import Producer
    from spatial_market_abm.abm.config import MarketConfig
    from spatial_market_abm.abm.grid import Cell, SpatialGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalActivity:
    """Demand and supply of the agents standing on one market cell.

    ``demand`` and ``supply`` are floored at 1 so the ratios below are
    always defined.
    """

    demand: float = 1.0
    supply: float = 1.0
    unmet_demand: float = 0.0
    unmet_supply: float = 0.0

    @classmethod
    def from_agents(
        cls, consumers: Iterable[Consumer], producers: Iterable[Producer]
    ) -> LocalActivity:
        consumers = list(consumers)
        producers = list(producers)
        return cls(
            demand=max(1.0, sum(c.demand for c in consumers)),
            supply=max(1.0, sum(p.output for p in producers)),
            unmet_demand=sum(c.unmet_demand for c in consumers),
            unmet_supply=sum(p.unmet_supply for p in producers),
        )

    @property
    def excess_demand_ratio(self) -> float:
        return self.unmet_demand / self.demand

    @property
    def excess_supply_ratio(self) -> float:
        return self.unmet_supply / self.supply


class Market(BaseMarket):
    """A market cell.

    Attributes:
        market_id: Stable identifier agents use to reference the market.
        cell: Grid cell the market occupies.
        region: Index of the region the market was placed in.
        quantity_available: Units currently in stock.
        unit_price: Current price per unit.
        market_capacity: Ceiling on ``quantity_available``.
    """

    def __init__(
        self,
        market_id: str,
        cell: Cell,
        *,
        region: int = 0,
        quantity_available: float = 0.0,
        config: MarketConfig | None = None,
    ) -> None:
        self.market_id = market_id
        self.cell = cell
        self.region = region
        self.quantity_available = quantity_available
        self.unit_price: float = config.initial_price if config else 10.0
        self.market_capacity: float = config.capacity if config else 150.0
        self.last_activity = LocalActivity()

        self._config = config

    @property
    def free_capacity(self) -> float:
        """Units that can still be stocked before hitting capacity."""
        return max(self.market_capacity - self.quantity_available, 0.0)

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def add_supply(self, amount: float) -> float:
        """Stock up to *amount* units, clipped at capacity.

        Returns:
            The quantity actually committed.
        """
        committed = min(max(amount, 0.0), self.free_capacity)
        self.quantity_available += committed
        return committed

    def take(self, amount: float) -> float:
        """Remove up to *amount* units from stock.

        Returns:
            The quantity actually removed.
        """
        taken = min(max(amount, 0.0), self.quantity_available)
        self.quantity_available -= taken
        return taken

    # ------------------------------------------------------------------
    # Price adjustment
    # ------------------------------------------------------------------

    def adjust_price(self, activity: LocalActivity) -> float:
        """Move the price by the local demand/supply imbalance.

        When demand exceeds supply the price rises by at most
        ``max_price_increase``, scaled by the share of demand left unmet.
        Otherwise it falls by a flat ``price_decrease``; the excess supply
        ratio only scales the cut when ``scale_price_decrease`` is set.
        """
        max_increase = self._config.max_price_increase if self._config else 0.02
        decrease = self._config.price_decrease if self._config else 0.05
        scale_decrease = self._config.scale_price_decrease if self._config else False

        self.last_activity = activity
        if activity.demand > activity.supply:
            ratio = min(activity.excess_demand_ratio, 1.0)
            self.unit_price *= 1 + max_increase * ratio
        else:
            if scale_decrease:
                decrease *= min(activity.excess_supply_ratio, 1.0)
            self.unit_price *= 1 - decrease
        return self.unit_price

    # ------------------------------------------------------------------
    # State reporting
    # ------------------------------------------------------------------

    def get_state(self) -> dict[str, Any]:
        """Return a snapshot of the market's state."""
        return {
            "market_id": self.market_id,
            "x": self.cell[0],
            "y": self.cell[1],
            "region": self.region,
            "quantity_available": self.quantity_available,
            "unit_price": self.unit_price,
            "market_capacity": self.market_capacity,
            "local_demand": self.last_activity.demand,
            "local_supply": self.last_activity.supply,
            "excess_supply_ratio": self.last_activity.excess_supply_ratio,
        }

    def __repr__(self) -> str:
        return f"Market(id={self.market_id}, cell={self.cell})"


class PriceAdjustmentEngine:
    """Applies :meth:`Market.adjust_price` to every market once per tick."""

    def __init__(self, grid: SpatialGrid) -> None:
        self._grid = grid

    def adjust(
        self, consumers: Iterable[Consumer], producers: Iterable[Producer]
    ) -> dict[str, float]:
        """Reprice every market from the agents physically on its cell.

        Returns:
            Mapping of market id to its new unit price.
        """
        consumers_on: dict[str, list[Consumer]] = {}
        producers_on: dict[str, list[Producer]] = {}
        for consumer in consumers:
            site = self._grid.market_at(consumer.cell)
            if site is not None:
                consumers_on.setdefault(site.market_id, []).append(consumer)
        for producer in producers:
            site = self._grid.market_at(producer.cell)
            if site is not None:
                producers_on.setdefault(site.market_id, []).append(producer)

        prices: dict[str, float] = {}
        for market in self._grid.markets:
            activity = LocalActivity.from_agents(
                consumers_on.get(market.market_id, []),
                producers_on.get(market.market_id, []),
            )
            prices[market.market_id] = market.adjust_price(activity)
        return prices
