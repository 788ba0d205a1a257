"""Base market class for the ABM."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any

    from spatial_market_abm.abm.markets.local import LocalActivity


class BaseMarket(ABC):
    """Abstract base class for all markets.

    Markets hold inventory that producers supply into and consumers buy
    from, and revise their price from the activity observed on their cell.
    """

    @abstractmethod
    def adjust_price(self, activity: LocalActivity) -> float:
        """Update the unit price from this tick's local activity.

        Returns:
            The new unit price.
        """

    @abstractmethod
    def get_state(self) -> dict[str, Any]:
        """Return the current state of the market.

        Returns:
            Dictionary of market statistics for logging/analysis.
        """
