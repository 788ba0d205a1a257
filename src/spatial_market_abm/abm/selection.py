"""Target market selection.

Agents look for markets within a search radius of where they stand.  At
first they simply head for the nearest one; once the warm-up is over
consumers chase lower prices and producers chase emptier shelves.  Ties
are broken by the lowest cell coordinate so selection is reproducible.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from spatial_market_abm.abm.agents.consumer import Consumer

if TYPE_CHECKING:
    from collections.abc import Sequence

    from spatial_market_abm.abm.agents.base import SpatialAgent
    from spatial_market_abm.abm.agents.producer import Producer
    from spatial_market_abm.abm.grid import SpatialGrid
    from spatial_market_abm.abm.markets.local import Market

logger = logging.getLogger(__name__)


def mean_costs(producers: Sequence[Producer]) -> float:
    """Mean ``costs`` across all producers (0.0 when there are none)."""
    if not producers:
        return 0.0
    return sum(p.costs for p in producers) / len(producers)


class TargetMarketSelector:
    """Assigns every agent a ``target_market``.

    Attributes:
        search_radius: Distance within which markets count as local.
        warm_up: Ticks during which agents always pick the nearest market.
    """

    def __init__(
        self,
        grid: SpatialGrid,
        *,
        search_radius: float = 10.0,
        warm_up: int = 24,
    ) -> None:
        self.search_radius = search_radius
        self.warm_up = warm_up
        self._grid = grid

    def assign(self, agent: SpatialAgent, tick: int, producer_costs: float) -> Market:
        """Select and store the target market for *agent*.

        Args:
            agent: The consumer or producer to route.
            tick: The tick being executed.
            producer_costs: Mean costs across all producers this tick.

        Returns:
            The market now targeted.
        """
        if isinstance(agent, Consumer):
            market = self.select_for_consumer(agent, tick)
        else:
            market = self.select_for_producer(agent, tick, producer_costs)

        if market.market_id != agent.target_market:
            logger.debug(
                "tick %d: %s targets %s (was %s)",
                tick,
                agent.agent_id,
                market.market_id,
                agent.target_market,
            )
        agent.target_market = market.market_id
        return market

    def select_for_consumer(self, consumer: Consumer, tick: int) -> Market:
        """Nearest market, or the cheapest local one once prices are known.

        After the warm-up a consumer whose current market is dearer than
        the local average moves to the cheapest local market.
        """
        local, current = self._candidates(consumer)
        if not local:
            return self._nearest(consumer, None)
        if tick <= self.warm_up or current is None:
            return self._nearest(consumer, local)

        mean_price = sum(m.unit_price for m in local) / len(local)
        if current.unit_price > mean_price:
            return min(local, key=lambda m: (m.unit_price, m.cell))
        return current

    def select_for_producer(
        self, producer: Producer, tick: int, producer_costs: float
    ) -> Market:
        """Nearest market, or a less saturated local one.

        After the warm-up, or earlier if its costs exceed the producer
        average, a producer moves to the local market holding the least
        stock, provided it holds less than the current target.
        """
        local, current = self._candidates(producer)
        if not local:
            return self._nearest(producer, None)
        if current is None or not (
            tick > self.warm_up or producer.costs > producer_costs
        ):
            return self._nearest(producer, local)

        emptier = [
            m for m in local if m.quantity_available < current.quantity_available
        ]
        if not emptier:
            return current
        return min(emptier, key=lambda m: (m.quantity_available, m.cell))

    def _candidates(self, agent: SpatialAgent) -> tuple[list[Market], Market | None]:
        local = self._grid.markets_within(agent.position, self.search_radius)
        current = (
            self._grid.market(agent.target_market)
            if agent.target_market is not None
            else None
        )
        return local, current

    def _nearest(self, agent: SpatialAgent, pool: list[Market] | None) -> Market:
        market = self._grid.nearest_market(agent.position, pool)
        if market is None:
            msg = "no markets on the grid"
            raise ValueError(msg)
        return market
