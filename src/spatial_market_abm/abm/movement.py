"""Movement state machine.

Every agent cycles through::

    moving_to_market -> at_market -> returning -> at_origin -> moving_to_market

advancing at most one distance unit per tick.  The simulation calls the
three ``advance_*`` methods at different points of the tick, so each
transition happens in exactly one phase.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from spatial_market_abm.abm.agents.base import LifecycleState
from spatial_market_abm.abm.grid import distance, step_towards

if TYPE_CHECKING:
    from spatial_market_abm.abm.agents.base import SpatialAgent
    from spatial_market_abm.abm.config import ScheduleConfig
    from spatial_market_abm.abm.grid import SpatialGrid
    from spatial_market_abm.abm.selection import TargetMarketSelector

# The cyclic order of lifecycle states.
NEXT_STATE: dict[LifecycleState, LifecycleState] = {
    LifecycleState.MOVING_TO_MARKET: LifecycleState.AT_MARKET,
    LifecycleState.AT_MARKET: LifecycleState.RETURNING,
    LifecycleState.RETURNING: LifecycleState.AT_ORIGIN,
    LifecycleState.AT_ORIGIN: LifecycleState.MOVING_TO_MARKET,
}


class MovementEngine:
    """Moves agents and applies lifecycle transitions."""

    def __init__(
        self,
        grid: SpatialGrid,
        schedule: ScheduleConfig | None = None,
        step_size: float = 1.0,
    ) -> None:
        self._grid = grid
        self.market_dwell = schedule.market_dwell if schedule else 5
        self.origin_dwell = schedule.origin_dwell if schedule else 10
        self.step_size = step_size

    def advance_outbound(self, agent: SpatialAgent) -> None:
        """Step an outbound agent towards its target; mark arrival."""
        if agent.state is not LifecycleState.MOVING_TO_MARKET:
            return
        if agent.target_market is None:
            return
        market = self._grid.market(agent.target_market)
        agent.position = step_towards(agent.position, market.cell, self.step_size)
        if agent.cell == market.cell:
            _transition(agent)
            agent.ticks_at_market = 0

    def advance_return(self, agent: SpatialAgent) -> None:
        """Count down the market dwell, then walk home."""
        if agent.state is LifecycleState.AT_MARKET:
            agent.ticks_at_market += 1
            if agent.ticks_at_market >= self.market_dwell:
                agent.ticks_at_market = 0
                _transition(agent)
        elif agent.state is LifecycleState.RETURNING:
            agent.position = step_towards(agent.position, agent.origin, self.step_size)
            if distance(agent.position, agent.origin) < 1:
                agent.ticks_at_origin = 0
                _transition(agent)

    def advance_departure(
        self,
        agent: SpatialAgent,
        selector: TargetMarketSelector,
        tick: int,
        producer_costs: float,
    ) -> None:
        """Count down the origin dwell, then pick a market and set off."""
        if agent.state is not LifecycleState.AT_ORIGIN:
            return
        agent.ticks_at_origin += 1
        if agent.ticks_at_origin >= self.origin_dwell:
            agent.ticks_at_origin = 0
            selector.assign(agent, tick, producer_costs)
            _transition(agent)


def _transition(agent: SpatialAgent) -> None:
    agent.state = NEXT_STATE[agent.state]
