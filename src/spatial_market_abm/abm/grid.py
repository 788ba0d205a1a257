"""Bounded 2D lattice holding the market cells.

Coordinates are continuous ``(x, y)`` positions; a position occupies the
cell whose integer coordinates are nearest to it.  The lattice does not
wrap: cells run from ``-half_extent`` to ``half_extent`` on both axes.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from spatial_market_abm.abm.markets.local import Market

Cell = tuple[int, int]
Position = tuple[float, float]


def distance(a: Position, b: Position) -> float:
    """Euclidean distance between two positions."""
    return math.hypot(b[0] - a[0], b[1] - a[1])


def step_towards(position: Position, target: Position, step: float = 1.0) -> Position:
    """Move *position* up to *step* units along the straight line to *target*.

    Lands exactly on *target* when it is closer than *step*.
    """
    gap = distance(position, target)
    if gap <= step:
        return (float(target[0]), float(target[1]))
    scale = step / gap
    return (
        position[0] + (target[0] - position[0]) * scale,
        position[1] + (target[1] - position[1]) * scale,
    )


class SpatialGrid:
    """The lattice of cells and the markets placed on it.

    Attributes:
        half_extent: Cells span ``[-half_extent, half_extent]`` on each axis.
    """

    def __init__(self, half_extent: int = 25) -> None:
        self.half_extent = half_extent
        self._markets: dict[str, Market] = {}
        self._by_cell: dict[Cell, Market] = {}

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------

    def cells(self) -> Iterator[Cell]:
        """Yield every cell in row-major order."""
        for x in range(-self.half_extent, self.half_extent + 1):
            for y in range(-self.half_extent, self.half_extent + 1):
                yield (x, y)

    def contains(self, cell: Cell) -> bool:
        """Return whether *cell* lies on the lattice."""
        return all(-self.half_extent <= c <= self.half_extent for c in cell)

    # ------------------------------------------------------------------
    # Markets
    # ------------------------------------------------------------------

    def add_market(self, market: Market) -> None:
        """Place *market* on its cell.

        Raises:
            ValueError: If the cell is off the grid or already has a market.
        """
        if not self.contains(market.cell):
            msg = f"market cell {market.cell} lies outside the grid"
            raise ValueError(msg)
        if market.cell in self._by_cell:
            msg = f"cell {market.cell} already holds a market"
            raise ValueError(msg)
        self._markets[market.market_id] = market
        self._by_cell[market.cell] = market

    @property
    def markets(self) -> list[Market]:
        """All markets, in placement order."""
        return list(self._markets.values())

    def market(self, market_id: str) -> Market:
        """Look up a market by its identifier."""
        return self._markets[market_id]

    def market_at(self, cell: Cell) -> Market | None:
        """Return the market on *cell*, if any."""
        return self._by_cell.get(cell)

    def markets_within(self, position: Position, radius: float) -> list[Market]:
        """Markets whose cell lies within *radius* of *position*."""
        return [
            m for m in self._markets.values() if distance(position, m.cell) <= radius
        ]

    def nearest_market(
        self, position: Position, candidates: Iterable[Market] | None = None
    ) -> Market | None:
        """Return the closest market, breaking ties by lowest coordinate."""
        pool = self._markets.values() if candidates is None else candidates
        return min(
            pool,
            key=lambda m: (distance(position, m.cell), m.cell),
            default=None,
        )

    def mean_price(self) -> float:
        """Mean unit price across all markets (0.0 when there are none)."""
        if not self._markets:
            return 0.0
        return sum(m.unit_price for m in self._markets.values()) / len(self._markets)
