"""Market mechanisms for the ABM."""

from __future__ import annotations

from spatial_market_abm.abm.markets.base import BaseMarket
from spatial_market_abm.abm.markets.local import (
    LocalActivity,
    Market,
    PriceAdjustmentEngine,
)

__all__ = [
    "BaseMarket",
    "LocalActivity",
    "Market",
    "PriceAdjustmentEngine",
]
