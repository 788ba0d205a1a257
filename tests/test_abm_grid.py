"""Tests for the spatial grid."""

from __future__ import annotations

import math

import pytest

from spatial_market_abm.abm.grid import SpatialGrid, distance, step_towards
from spatial_market_abm.abm.markets.local import Market


class TestGeometry:
    def test_distance(self):
        assert distance((0, 0), (3, 4)) == 5.0

    def test_step_towards_moves_one_unit(self):
        pos = step_towards((0.0, 0.0), (3.0, 4.0))
        assert pos == pytest.approx((0.6, 0.8))
        assert distance((0.0, 0.0), pos) == pytest.approx(1.0)

    def test_step_towards_lands_on_close_target(self):
        assert step_towards((0.0, 0.0), (0.5, 0.5)) == (0.5, 0.5)

    def test_step_towards_at_target(self):
        assert step_towards((2.0, 2.0), (2, 2)) == (2.0, 2.0)


class TestSpatialGrid:
    def test_cells(self):
        g = SpatialGrid(half_extent=2)
        cells = list(g.cells())
        assert len(cells) == 25
        assert (-2, -2) in cells
        assert (2, 2) in cells

    def test_contains(self):
        g = SpatialGrid(half_extent=2)
        assert g.contains((0, 0))
        assert not g.contains((3, 0))

    def test_add_and_lookup_market(self):
        g = SpatialGrid(half_extent=5)
        m = Market("m1", (1, 2))
        g.add_market(m)
        assert g.market("m1") is m
        assert g.market_at((1, 2)) is m
        assert g.market_at((0, 0)) is None
        assert g.markets == [m]

    def test_add_market_off_grid(self):
        g = SpatialGrid(half_extent=2)
        with pytest.raises(ValueError, match="outside"):
            g.add_market(Market("m1", (3, 0)))

    def test_add_market_occupied_cell(self):
        g = SpatialGrid(half_extent=2)
        g.add_market(Market("m1", (0, 0)))
        with pytest.raises(ValueError, match="already"):
            g.add_market(Market("m2", (0, 0)))

    def test_markets_within(self):
        g = SpatialGrid(half_extent=25)
        near = Market("near", (3, 4))
        far = Market("far", (20, 0))
        g.add_market(near)
        g.add_market(far)
        assert g.markets_within((0.0, 0.0), 5.0) == [near]
        assert g.markets_within((0.0, 0.0), 4.9) == []

    def test_nearest_market_tie_break(self):
        g = SpatialGrid(half_extent=25)
        right = Market("right", (2, 0))
        left = Market("left", (-2, 0))
        g.add_market(right)
        g.add_market(left)
        assert g.nearest_market((0.0, 0.0)) is left

    def test_nearest_market_empty(self):
        assert SpatialGrid().nearest_market((0.0, 0.0)) is None

    def test_mean_price(self):
        g = SpatialGrid(half_extent=5)
        a = Market("a", (0, 0))
        b = Market("b", (1, 0))
        b.unit_price = 20.0
        g.add_market(a)
        g.add_market(b)
        assert math.isclose(g.mean_price(), 15.0)
        assert SpatialGrid().mean_price() == 0.0
