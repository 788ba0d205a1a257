"""Producer agent for the ABM.

Producers make a batch of the good each tick and carry it to a market,
where it is stocked up to the market's capacity.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from spatial_market_abm.abm.agents.base import (
    FEEDBACK_FRACTION,
    Expectation,
    SpatialAgent,
)

if TYPE_CHECKING:
    from typing import Any

    from spatial_market_abm.abm.config import ProducerConfig
    from spatial_market_abm.abm.context import SimulationContext
    from spatial_market_abm.abm.grid import Position
    from spatial_market_abm.abm.markets.local import Market

logger = logging.getLogger(__name__)


class Producer(SpatialAgent):
    """A producer agent.

    Attributes:
        factory: Index of the factory the producer works from.
        output: Units the producer brings to market on its next visit.
        capacity: Ceiling on ``output``.
        costs: Value of the last fully stocked batch at the market price.
        unmet_supply: Cumulative units the market had no room for.
        demand_expectation: Expected direction of consumer demand.
        last_demand_supplied: Size of the last fully stocked batch.
    """

    def __init__(
        self,
        agent_id: str | None = None,
        *,
        index: int = 0,
        origin: Position = (0.0, 0.0),
        factory: int = 0,
        behavior: ProducerConfig | None = None,
    ) -> None:
        super().__init__(agent_id, index=index, origin=origin)
        self.factory = factory
        self.base_output: float = behavior.base_output if behavior else 10.0
        self.min_output: float = behavior.min_output if behavior else 5.0
        self.capacity: float = behavior.capacity if behavior else 150.0
        self.output: float = self.base_output
        self.costs: float = 0.0
        self.unmet_supply: float = 0.0
        self.demand_expectation = Expectation.STAY
        self.last_demand_supplied: float = self.base_output

        self._behavior = behavior

    # ------------------------------------------------------------------
    # Decision rule
    # ------------------------------------------------------------------

    def plan_output(self) -> float:
        """Recompute ``output`` from the backlog of unmet supply.

        With a backlog, output is cut by a share of it (floored at
        ``min_output``).  Without one, output resets to ``base_output``.
        """
        if self.unmet_supply > 0:
            fraction = FEEDBACK_FRACTION[self.demand_expectation]
            self.output = max(
                self.output - fraction * self.unmet_supply, self.min_output
            )
        else:
            self.output = self.base_output
        self.output = min(self.output, self.capacity)
        return self.output

    def supply(self, market: Market | None, context: SimulationContext) -> float:
        """Stock ``output`` at *market* if the producer just arrived there.

        The full ``output`` counts towards aggregate supply even when the
        market can only take part of it.

        Returns:
            Units actually committed to the market.
        """
        if market is None or not self.can_trade(market):
            return 0.0

        committed = market.add_supply(self.output)
        context.record_supply(self.output)
        if committed >= self.output:
            self.last_demand_supplied = self.output
            self.costs = self.last_demand_supplied * market.unit_price
        else:
            shortfall = self.output - committed
            self.unmet_supply += shortfall
            logger.debug(
                "%s clipped at %s: %.2f of %.2f units did not fit",
                self.agent_id,
                market.market_id,
                shortfall,
                self.output,
            )
        return committed

    def trade(self, market: Market | None, context: SimulationContext) -> float:
        self.plan_output()
        return self.supply(market, context)

    # ------------------------------------------------------------------
    # State reporting
    # ------------------------------------------------------------------

    def get_state(self) -> dict[str, Any]:
        """Return a snapshot of the producer's state."""
        return {
            **self._spatial_state(),
            "factory": self.factory,
            "output": self.output,
            "costs": self.costs,
            "unmet_supply": self.unmet_supply,
            "demand_expectation": self.demand_expectation.value,
            "last_demand_supplied": self.last_demand_supplied,
        }
