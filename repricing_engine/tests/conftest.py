from typing import List, Sequence

import pytest

from repricer.channel.client import ChannelUpdateResult, PriceUpdate
from repricer.models.proposal import Proposal, ProposalStatus
from repricer.models.schemas import (
    ActionType,
    PricingRule,
    Product,
    RoundingRule,
    RuleAction,
    RuleConditions,
)
from repricer.pricing.cost_model import compute_breakdown
from repricer.pricing.price_calculator import PricingSettings
from repricer.proposals.repository import InMemoryProposalRepository

def make_product(**overrides) -> Product:
    values = dict(
        sku="SKU-1",
        title="Oak Bathroom Cabinet",
        brand="Acme",
        category="Bathroom Furniture",
        cost_price=50.0,
        delivery_cost=5.0,
        current_price=100.0,
        mrp=150.0,
        stock_level=20,
        competitor_floor_price=None,
        sales_velocity=2.0,
    )
    values.update(overrides)
    return Product(**values)

def make_rule(
    rule_id="r1",
    priority=10,
    action_type=ActionType.SET_MARGIN,
    value=20.0,
    rounding=None,
    is_active=True,
    **conditions,
) -> PricingRule:
    return PricingRule(
        rule_id=rule_id,
        name=f"Rule {rule_id}",
        priority=priority,
        is_active=is_active,
        conditions=RuleConditions(**conditions),
        action=RuleAction(
            type=action_type,
            value=value,
            rounding_rule=RoundingRule(rounding) if rounding else None,
        ),
    )

def make_proposal(proposal_id="p1", status=ProposalStatus.PENDING, **overrides) -> Proposal:
    values = dict(
        proposal_id=proposal_id,
        sku=f"SKU-{proposal_id}",
        batch_id="calc-2026-10-18-abcd1234",
        title="Walnut Mirror",
        brand="Acme",
        category="Mirrors",
        current_price=100.0,
        proposed_price=110.0,
        price_change=10.0,
        price_change_percent=10.0,
        current_margin=10.0,
        proposed_margin=18.0,
        margin_change=8.0,
        cost_breakdown=compute_breakdown(110.0, 50.0, 5.0),
        reason="Set to achieve 20% margin (rule: Rule r1)",
        created_at="2026-10-18T00:00:00+00:00",
        ttl=1_800_000_000,
        status=status,
        stock_level=10,
        sales_velocity=1.0,
    )
    values.update(overrides)
    return Proposal(**values)

class FakeChannel:
    def __init__(self, success: bool = True, errors: Sequence[str] = ()):
        self.success = success
        self.errors = list(errors)
        self.calls: List[List[PriceUpdate]] = []

    def update_prices(self, updates):
        self.calls.append(list(updates))
        return ChannelUpdateResult(success=self.success, errors=list(self.errors))

@pytest.fixture
def settings():
    return PricingSettings(
        default_target_margin_pct=25.0,
        minimum_margin_pct=15.0,
        change_threshold_pct=1.0,
        proposal_ttl_days=30,
        velocity_window_days=7,
    )

@pytest.fixture
def repo():
    return InMemoryProposalRepository()

@pytest.fixture
def channel():
    return FakeChannel()
