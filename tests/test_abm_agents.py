"""Tests for ABM agent classes."""

from __future__ import annotations

import pytest

from spatial_market_abm.abm.agents.base import (
    Expectation,
    LifecycleState,
    SpatialAgent,
)
from spatial_market_abm.abm.agents.consumer import Consumer
from spatial_market_abm.abm.agents.producer import Producer
from spatial_market_abm.abm.config import ConsumerConfig, ProducerConfig
from spatial_market_abm.abm.context import SimulationContext
from spatial_market_abm.abm.markets.local import Market

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _arrive(agent: SpatialAgent, market: Market) -> None:
    agent.target_market = market.market_id
    agent.position = (float(market.cell[0]), float(market.cell[1]))
    agent.state = LifecycleState.AT_MARKET
    agent.ticks_at_market = 0


# ---------------------------------------------------------------------------
# SpatialAgent
# ---------------------------------------------------------------------------


class TestSpatialAgent:
    def test_cannot_instantiate_directly(self):
        with pytest.raises(TypeError):
            SpatialAgent()

    def test_agent_id_auto_generated(self):
        consumer = Consumer()
        assert consumer.agent_id is not None
        assert len(consumer.agent_id) > 0

    def test_agent_id_custom(self):
        assert Producer(agent_id="custom_id").agent_id == "custom_id"

    def test_agent_type(self):
        assert Consumer().agent_type == "consumer"
        assert Producer().agent_type == "producer"

    def test_initial_spatial_state(self):
        agent = Consumer(origin=(3, -4), index=7)
        assert agent.position == (3.0, -4.0)
        assert agent.origin == (3.0, -4.0)
        assert agent.cell == (3, -4)
        assert agent.index == 7
        assert agent.state is LifecycleState.MOVING_TO_MARKET
        assert agent.target_market is None

    def test_can_trade_only_on_first_tick_at_target(self):
        market = Market("m", (2, 2))
        agent = Consumer()
        assert not agent.can_trade(market)
        _arrive(agent, market)
        assert agent.can_trade(market)
        agent.ticks_at_market = 1
        assert not agent.can_trade(market)

    def test_cannot_trade_at_other_market(self):
        market = Market("m", (2, 2))
        other = Market("o", (2, 2))
        agent = Consumer()
        _arrive(agent, market)
        assert not agent.can_trade(other)


# ---------------------------------------------------------------------------
# Consumer
# ---------------------------------------------------------------------------


class TestConsumerPlan:
    def test_reset_without_backlog(self):
        c = Consumer()
        c.demand = 3.0
        assert c.plan_demand() == 10.0

    @pytest.mark.parametrize(
        ("expectation", "expected"),
        [
            (Expectation.DOWN, 2.0 + 0.3 * 4.0),
            (Expectation.STAY, 2.0 + 0.5 * 4.0),
            (Expectation.UP, 2.0 + 0.7 * 4.0),
        ],
    )
    def test_backlog_raises_demand(self, expectation, expected):
        c = Consumer()
        c.demand = 2.0
        c.unmet_demand = 4.0
        c.price_expectation = expectation
        assert c.plan_demand() == pytest.approx(expected)

    def test_demand_capped(self):
        c = Consumer()
        c.unmet_demand = 100.0
        assert c.plan_demand() == 10.0

    def test_custom_cap(self):
        c = Consumer(behavior=ConsumerConfig(max_demand=6.0))
        assert c.plan_demand() == 6.0


class TestConsumerConsume:
    def test_purchase_debits_wealth(self):
        m = Market("m", (0, 0), quantity_available=50.0)
        m.unit_price = 12.0
        ctx = SimulationContext()
        c = Consumer(wealth=500.0)
        _arrive(c, m)

        assert c.consume(m, ctx) == 10.0
        assert c.wealth == pytest.approx(380.0)
        assert c.debt == 0.0
        assert c.last_price_paid == 12.0
        assert m.quantity_available == 40.0
        assert ctx.aggregate_demand == 10.0

    def test_purchase_limited_by_stock(self):
        m = Market("m", (0, 0), quantity_available=4.0)
        ctx = SimulationContext()
        c = Consumer(wealth=500.0)
        _arrive(c, m)

        assert c.consume(m, ctx) == 4.0
        assert m.quantity_available == 0.0
        assert ctx.aggregate_demand == 4.0

    def test_overspend_becomes_debt(self):
        m = Market("m", (0, 0), quantity_available=50.0)
        ctx = SimulationContext()
        c = Consumer(wealth=60.0)
        _arrive(c, m)

        c.consume(m, ctx)
        assert c.wealth == 0.0
        assert c.debt == pytest.approx(40.0)

    def test_empty_market_leaves_demand_unmet(self):
        m = Market("m", (0, 0), quantity_available=0.0)
        ctx = SimulationContext()
        c = Consumer(wealth=0.0, debt=40.0)
        _arrive(c, m)

        assert c.consume(m, ctx) == 0.0
        assert c.unmet_demand == 10.0
        assert c.debt == 20.0
        assert ctx.aggregate_demand == 0.0

    def test_debt_ceiling_refuses_purchase(self):
        m = Market("m", (0, 0), quantity_available=50.0)
        ctx = SimulationContext()
        c = Consumer(wealth=0.0, debt=8.0)
        _arrive(c, m)

        assert c.consume(m, ctx) == 0.0
        assert m.quantity_available == 50.0
        assert c.unmet_demand == 10.0
        assert c.debt == 4.0

    def test_no_trade_away_from_market(self):
        m = Market("m", (5, 5), quantity_available=50.0)
        ctx = SimulationContext()
        c = Consumer(wealth=500.0)
        c.target_market = "m"

        assert c.consume(m, ctx) == 0.0
        assert c.consume(None, ctx) == 0.0
        assert c.wealth == 500.0
        assert c.unmet_demand == 0.0

    def test_trade_plans_then_consumes(self):
        m = Market("m", (0, 0), quantity_available=50.0)
        ctx = SimulationContext()
        c = Consumer(wealth=500.0)
        c.demand = 1.0
        _arrive(c, m)

        assert c.trade(m, ctx) == 10.0


class TestConsumerIncome:
    def test_wage_added_to_wealth(self):
        c = Consumer(wealth=100.0, wage=50.0)
        c.receive_wage()
        assert c.wealth == 150.0

    def test_wage_repays_debt_first(self):
        c = Consumer(wealth=0.0, debt=30.0, wage=50.0)
        c.receive_wage()
        assert c.debt == 0.0
        assert c.wealth == 20.0

    def test_wage_smaller_than_debt(self):
        c = Consumer(wealth=0.0, debt=80.0, wage=50.0)
        c.receive_wage()
        assert c.debt == 30.0
        assert c.wealth == 0.0

    def test_get_state(self):
        state = Consumer("c", wealth=1.0, wage=2.0).get_state()
        assert state["agent_id"] == "c"
        assert state["agent_type"] == "consumer"
        assert state["wealth"] == 1.0
        assert state["price_expectation"] == "stay"
        assert state["state"] == "moving_to_market"


# ---------------------------------------------------------------------------
# Producer
# ---------------------------------------------------------------------------


class TestProducerPlan:
    def test_reset_without_backlog(self):
        p = Producer()
        p.output = 7.0
        assert p.plan_output() == 10.0

    @pytest.mark.parametrize(
        ("expectation", "expected"),
        [
            (Expectation.DOWN, 20.0 - 0.3 * 10.0),
            (Expectation.STAY, 20.0 - 0.5 * 10.0),
            (Expectation.UP, 20.0 - 0.7 * 10.0),
        ],
    )
    def test_backlog_cuts_output(self, expectation, expected):
        p = Producer()
        p.output = 20.0
        p.unmet_supply = 10.0
        p.demand_expectation = expectation
        assert p.plan_output() == pytest.approx(expected)

    def test_output_floor(self):
        p = Producer()
        p.unmet_supply = 100.0
        assert p.plan_output() == 5.0

    def test_output_capped_by_capacity(self):
        p = Producer(behavior=ProducerConfig(base_output=200.0, capacity=150.0))
        assert p.plan_output() == 150.0


class TestProducerSupply:
    def test_full_commit(self):
        m = Market("m", (0, 0))
        m.unit_price = 12.0
        ctx = SimulationContext()
        p = Producer()
        _arrive(p, m)

        assert p.supply(m, ctx) == 10.0
        assert m.quantity_available == 10.0
        assert p.last_demand_supplied == 10.0
        assert p.costs == pytest.approx(120.0)
        assert p.unmet_supply == 0.0
        assert ctx.aggregate_supply == 10.0

    def test_supply_clipped_at_capacity(self):
        m = Market("m", (0, 0), quantity_available=140.0)
        ctx = SimulationContext()
        p = Producer()
        p.output = 20.0
        p.costs = 33.0
        _arrive(p, m)

        assert p.supply(m, ctx) == 10.0
        assert m.quantity_available == 150.0
        assert p.unmet_supply == 10.0
        # Costs and last batch only change on a full commit
        assert p.costs == 33.0
        assert p.last_demand_supplied == 10.0
        # AS counts the intended batch
        assert ctx.aggregate_supply == 20.0

    def test_no_supply_away_from_market(self):
        m = Market("m", (4, 0))
        ctx = SimulationContext()
        p = Producer()
        p.target_market = "m"

        assert p.supply(m, ctx) == 0.0
        assert m.quantity_available == 0.0
        assert ctx.aggregate_supply == 0.0

    def test_get_state(self):
        state = Producer("p", factory=2).get_state()
        assert state["agent_type"] == "producer"
        assert state["factory"] == 2
        assert state["output"] == 10.0
        assert state["demand_expectation"] == "stay"
