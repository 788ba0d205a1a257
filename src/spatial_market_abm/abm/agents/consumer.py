"""Consumer agent for the ABM.

Consumers earn a periodic wage, walk to a market and buy the good,
borrowing when a purchase exceeds their wealth.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from spatial_market_abm.abm.agents.base import (
    FEEDBACK_FRACTION,
    Expectation,
    SpatialAgent,
)

if TYPE_CHECKING:
    from typing import Any

    from spatial_market_abm.abm.config import ConsumerConfig
    from spatial_market_abm.abm.context import SimulationContext
    from spatial_market_abm.abm.grid import Position
    from spatial_market_abm.abm.markets.local import Market


class Consumer(SpatialAgent):
    """A consumer agent.

    ``wealth`` and ``debt`` are never both positive: spending past zero
    wealth becomes debt, and wages pay debt down before adding to wealth.

    Attributes:
        household: Index of the household the consumer belongs to.
        wealth: Cash on hand.
        debt: Outstanding borrowing.
        wage: Income received every pay period.
        demand: Units the consumer wants to buy on its next visit.
        unmet_demand: Cumulative units the consumer failed to buy.
        price_expectation: Expected direction of market prices.
        last_price_paid: Unit price of the most recent purchase.
    """

    def __init__(
        self,
        agent_id: str | None = None,
        *,
        index: int = 0,
        origin: Position = (0.0, 0.0),
        household: int = 0,
        wealth: float = 0.0,
        debt: float = 0.0,
        wage: float = 0.0,
        last_price_paid: float = 10.0,
        behavior: ConsumerConfig | None = None,
    ) -> None:
        super().__init__(agent_id, index=index, origin=origin)
        self.household = household
        self.wealth = wealth
        self.debt = debt
        self.wage = wage
        self.max_demand: float = behavior.max_demand if behavior else 10.0
        self.demand: float = self.max_demand
        self.unmet_demand: float = 0.0
        self.price_expectation = Expectation.STAY
        self.last_price_paid = last_price_paid

        self._behavior = behavior

    # ------------------------------------------------------------------
    # Decision rule
    # ------------------------------------------------------------------

    def plan_demand(self) -> float:
        """Recompute ``demand`` from the backlog of unmet demand.

        With a backlog, the consumer adds a share of it to its demand,
        larger when it expects prices to rise.  Without one, demand resets
        to the maximum.
        """
        if self.unmet_demand > 0:
            fraction = FEEDBACK_FRACTION[self.price_expectation]
            self.demand = self.demand + fraction * self.unmet_demand
        else:
            self.demand = self.max_demand
        self.demand = min(max(self.demand, 0.0), self.max_demand)
        return self.demand

    def consume(self, market: Market | None, context: SimulationContext) -> float:
        """Buy from *market* if the consumer is on its first tick there.

        Returns:
            Units bought (0.0 when the consumer is elsewhere or refused).
        """
        if market is None or not self.can_trade(market):
            return 0.0

        limit = self._behavior.debt_to_wealth_limit if self._behavior else 2.0
        relief = self._behavior.debt_relief if self._behavior else 0.5

        price = market.unit_price
        if market.quantity_available > 0 and self.debt < limit * self.wealth:
            quantity = market.take(min(self.demand, market.quantity_available))
            self.wealth -= quantity * price
            self.last_price_paid = price
            if self.wealth < 0:
                self.debt += -self.wealth
                self.wealth = 0.0
            context.record_demand(quantity)
            return quantity

        # Refused: the whole plan goes unmet and half the debt is forgiven
        self.unmet_demand += self.demand
        self.debt *= relief
        return 0.0

    def trade(self, market: Market | None, context: SimulationContext) -> float:
        self.plan_demand()
        return self.consume(market, context)

    # ------------------------------------------------------------------
    # Income
    # ------------------------------------------------------------------

    def receive_wage(self) -> None:
        """Collect one wage payment, repaying debt first."""
        repayment = min(self.debt, self.wage)
        self.debt -= repayment
        self.wealth += self.wage - repayment

    # ------------------------------------------------------------------
    # State reporting
    # ------------------------------------------------------------------

    def get_state(self) -> dict[str, Any]:
        """Return a snapshot of the consumer's state."""
        return {
            **self._spatial_state(),
            "household": self.household,
            "wealth": self.wealth,
            "debt": self.debt,
            "wage": self.wage,
            "demand": self.demand,
            "unmet_demand": self.unmet_demand,
            "price_expectation": self.price_expectation.value,
            "last_price_paid": self.last_price_paid,
        }
