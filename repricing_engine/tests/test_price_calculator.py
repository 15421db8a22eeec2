import pytest

from repricer.models.schemas import ActionType, RoundingRule
from repricer.pricing.cost_model import compute_breakdown
from repricer.pricing.price_calculator import apply_rounding, calculate_price

from conftest import make_product, make_rule

def test_target_margin_with_99p_rounding(settings):
    product = make_product(cost_price=50.0, delivery_cost=5.0, current_price=100.0)
    rule = make_rule(value=20.0, rounding="nearest_99p")
    calc = calculate_price(product, rule, settings)
    assert calc.raw_price == pytest.approx(68.75)
    assert calc.proposed_price == pytest.approx(68.99)
    assert calc.applied_rule_id == "r1"
    assert calc.should_propose

def test_default_margin_used_without_rule(settings):
    product = make_product(cost_price=50.0, delivery_cost=5.0)
    calc = calculate_price(product, None, settings)
    assert calc.proposed_price == pytest.approx(73.33)
    assert calc.applied_rule_id is None
    assert "default target margin" in calc.reason

def test_non_margin_rules_do_not_use_default_margin(settings):
    product = make_product(current_price=100.0, cost_price=50.0, mrp=150.0)
    cases = [
        (ActionType.SET_MARKUP, 1.5, 75.0),
        (ActionType.ADJUST_PERCENT, -10.0, 90.0),
        (ActionType.ADJUST_FIXED, 5.0, 105.0),
        (ActionType.SET_PRICE, 79.5, 79.5),
        (ActionType.MATCH_MRP, 0.0, 150.0),
        (ActionType.DISCOUNT_FROM_MRP, 20.0, 120.0),
    ]
    for action_type, value, expected in cases:
        calc = calculate_price(product, make_rule(action_type=action_type, value=value), settings)
        assert calc.proposed_price == pytest.approx(expected), action_type

@pytest.mark.parametrize(
    "rule,price,expected",
    [
        (None, 10.005, 10.01),
        (RoundingRule.NONE, 12.344, 12.34),
        (RoundingRule.NEAREST_99P, 12.3, 12.99),
        (RoundingRule.NEAREST_95P, 12.3, 12.95),
        (RoundingRule.NEAREST_POUND, 12.5, 13.0),
        (RoundingRule.NEAREST_POUND, 12.49, 12.0),
        (RoundingRule.ROUND_DOWN, 12.349, 12.34),
        (RoundingRule.ROUND_UP, 12.341, 12.35),
        (RoundingRule.ROUND_UP, 1.1, 1.1),
    ],
)
def test_rounding_rules(rule, price, expected):
    assert apply_rounding(price, rule) == pytest.approx(expected)

def test_rounding_is_idempotent():
    prices = [0.01, 1.1, 9.999, 12.5, 68.75, 99.995, 1234.5678]
    for rule in list(RoundingRule) + [None]:
        for price in prices:
            once = apply_rounding(price, rule)
            assert apply_rounding(once, rule) == once, (rule, price)

def test_competitor_floor_breach_is_advisory(settings):
    product = make_product(current_price=70.0, competitor_floor_price=60.0)
    calc = calculate_price(product, make_rule(action_type=ActionType.SET_PRICE, value=58.0), settings)
    assert calc.proposed_price == pytest.approx(58.0)
    assert calc.should_propose
    assert any("below competitor floor" in w for w in calc.warnings)

def test_threshold_boundary(settings):
    product = make_product(current_price=100.0, cost_price=10.0, delivery_cost=0.0)
    just_under = calculate_price(product, make_rule(action_type=ActionType.SET_PRICE, value=100.99), settings)
    exactly = calculate_price(product, make_rule(action_type=ActionType.SET_PRICE, value=101.0), settings)
    assert not just_under.should_propose
    assert exactly.should_propose
    assert exactly.price_change_percent == pytest.approx(1.0)

def test_threshold_is_configurable(settings):
    from dataclasses import replace

    product = make_product(current_price=100.0, cost_price=10.0)
    rule = make_rule(action_type=ActionType.SET_PRICE, value=103.0)
    strict = replace(settings, change_threshold_pct=5.0)
    assert calculate_price(product, rule, settings).should_propose
    assert not calculate_price(product, rule, strict).should_propose

def test_impact_forecast(settings):
    product = make_product(current_price=100.0, cost_price=50.0, delivery_cost=5.0, sales_velocity=2.0)
    calc = calculate_price(product, make_rule(action_type=ActionType.SET_PRICE, value=110.0), settings)
    old = compute_breakdown(100.0, 50.0, 5.0).net_profit
    new = compute_breakdown(110.0, 50.0, 5.0).net_profit
    assert calc.estimated_daily_profit_change == pytest.approx((new - old) * 2.0)
    assert calc.estimated_weekly_profit_impact == pytest.approx((new - old) * 2.0 * 7)
    assert calc.estimated_weekly_revenue_impact == pytest.approx(10.0 * 2.0 * 7)

def test_velocity_override(settings):
    product = make_product(sales_velocity=0.0)
    calc = calculate_price(product, make_rule(action_type=ActionType.SET_PRICE, value=110.0), settings, sales_velocity=3.0)
    assert calc.sales_velocity == 3.0
    assert calc.estimated_weekly_revenue_impact == pytest.approx(10.0 * 3.0 * 7)

def test_unreachable_margin_keeps_current_price(settings):
    product = make_product(current_price=100.0)
    calc = calculate_price(product, make_rule(value=100.0), settings)
    assert calc.proposed_price == pytest.approx(100.0)
    assert not calc.should_propose
    assert any("target too high" in w for w in calc.warnings)

def test_negative_price_is_clamped(settings):
    product = make_product(current_price=100.0)
    calc = calculate_price(product, make_rule(action_type=ActionType.ADJUST_FIXED, value=-250.0), settings)
    assert calc.proposed_price == 0.0
    assert any("clamped to 0" in w for w in calc.warnings)

def test_low_margin_and_mrp_warnings(settings):
    product = make_product(current_price=100.0, cost_price=50.0, delivery_cost=5.0, mrp=90.0)
    calc = calculate_price(product, make_rule(action_type=ActionType.SET_PRICE, value=95.0), settings)
    assert any("below minimum" in w for w in calc.warnings)
    assert any("above MRP" in w for w in calc.warnings)

def test_proposed_margin_round_trips_through_cost_model(settings):
    product = make_product(cost_price=33.0, delivery_cost=4.5)
    calc = calculate_price(product, make_rule(value=35.0, rounding="nearest_95p"), settings)
    again = compute_breakdown(calc.proposed_price, product.cost_price, product.delivery_cost)
    assert again.margin_percent == calc.proposed_margin
