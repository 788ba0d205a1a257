"""Base agent class for the ABM."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING
from uuid import uuid4

if TYPE_CHECKING:
    from typing import Any

    from spatial_market_abm.abm.context import SimulationContext
    from spatial_market_abm.abm.grid import Cell, Position
    from spatial_market_abm.abm.markets.local import Market


class LifecycleState(Enum):
    """Where an agent is in its trip between origin and market."""

    MOVING_TO_MARKET = "moving_to_market"
    AT_MARKET = "at_market"
    RETURNING = "returning"
    AT_ORIGIN = "at_origin"


class Expectation(Enum):
    """Direction an agent expects its benchmark to move."""

    UP = "up"
    STAY = "stay"
    DOWN = "down"


# Share of unmet demand/supply fed back into next tick's plan.
FEEDBACK_FRACTION: dict[Expectation, float] = {
    Expectation.DOWN: 0.3,
    Expectation.STAY: 0.5,
    Expectation.UP: 0.7,
}


class SpatialAgent(ABC):
    """Abstract base class for agents that travel between origin and market.

    Consumers and producers share the spatial half of their state here and
    implement their own planning and trading rules.

    Attributes:
        agent_id: Unique identifier for the agent.
        agent_type: Type of agent (``'consumer'`` or ``'producer'``).
        index: Creation index, used as the default acting order.
        origin: Home or factory position the agent returns to.
        position: Current continuous position.
        target_market: Identifier of the market the agent is heading for.
        state: Current :class:`LifecycleState`.
        ticks_at_market: Dwell counter while at the market.
        ticks_at_origin: Dwell counter while back at the origin.
    """

    def __init__(
        self,
        agent_id: str | None = None,
        *,
        index: int = 0,
        origin: Position = (0.0, 0.0),
    ) -> None:
        """Initialize the spatial state.

        Args:
            agent_id: Optional unique identifier. If not provided, a UUID is generated.
            index: Creation index within the agent's population.
            origin: Starting position, also the position returned to.
        """
        self.agent_id = agent_id or str(uuid4())
        self.agent_type = self.__class__.__name__.lower()
        self.index = index
        self.origin: Position = (float(origin[0]), float(origin[1]))
        self.position: Position = self.origin
        self.target_market: str | None = None
        self.state = LifecycleState.MOVING_TO_MARKET
        self.ticks_at_market: int = 0
        self.ticks_at_origin: int = 0

    @property
    def cell(self) -> Cell:
        """Grid cell the agent currently stands on."""
        return (round(self.position[0]), round(self.position[1]))

    def can_trade(self, market: Market) -> bool:
        """Return whether the agent may transact with *market* this tick.

        Agents trade once per visit: on the tick they arrive at their target.
        """
        return (
            market.market_id == self.target_market
            and self.state is LifecycleState.AT_MARKET
            and self.cell == market.cell
            and self.ticks_at_market < 1
        )

    @abstractmethod
    def trade(self, market: Market | None, context: SimulationContext) -> float:
        """Plan this tick's quantity and transact with *market* if possible.

        Returns:
            The quantity exchanged with the market this tick.
        """

    @abstractmethod
    def get_state(self) -> dict[str, Any]:
        """Return the current state of the agent.

        Returns:
            Dictionary containing agent attributes for logging/analysis.
        """

    def _spatial_state(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "agent_type": self.agent_type,
            "x": self.position[0],
            "y": self.position[1],
            "state": self.state.value,
            "target_market": self.target_market,
        }

    def __repr__(self) -> str:
        """Return string representation of the agent."""
        return f"{self.__class__.__name__}(id={self.agent_id})"
